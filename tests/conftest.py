from datetime import date
from decimal import Decimal

import pytest

from loan_tracker.data_models import CalculationMethod, LoanRecord, LoanType, PaymentFrequency


def build_loan(**overrides) -> LoanRecord:
    values = {
        "id": "loan-1",
        "name": "Car loan",
        "lender": "City Bank",
        "type": LoanType.AUTO,
        "total_amount": Decimal("10000"),
        "paid_amount": Decimal("0"),
        "interest_rate": Decimal("12"),
        "tenure": 12,
        "start_date": date(2024, 1, 15),
        "due_date": date(2025, 1, 15),
        "calculation_method": CalculationMethod.REDUCING,
        "payment_frequency": PaymentFrequency.MONTHLY,
        "emi_amount": None,
    }
    for key, value in overrides.items():
        if key in ("total_amount", "paid_amount", "interest_rate", "emi_amount") and value is not None:
            value = Decimal(str(value))
        values[key] = value
    return LoanRecord(**values)


@pytest.fixture
def make_loan():
    return build_loan


@pytest.fixture
def sample_loans_payload():
    return [
        {
            "id": "a",
            "name": "Credit card",
            "lender": "Bank A",
            "type": "personal",
            "totalAmount": 5000,
            "paidAmount": 1000,
            "interestRate": 18,
            "tenure": 12,
            "startDate": "2024-01-10",
            "dueDate": "2025-01-10",
        },
        {
            "id": "b",
            "name": "Home loan",
            "lender": "Bank B",
            "type": "mortgage",
            "totalAmount": "200000",
            "paidAmount": "20000",
            "interestRate": "8.5",
            "tenure": 240,
            "startDate": "2023-06-01",
            "dueDate": "2043-06-01",
            "calculationMethod": "reducing",
            "paymentFrequency": "monthly",
        },
        {
            "id": "c",
            "name": "Settled bike loan",
            "lender": "Bank C",
            "type": "auto",
            "totalAmount": 3000,
            "paidAmount": 3000,
            "interestRate": 11,
            "tenure": 12,
            "startDate": "2023-01-01",
            "dueDate": "2024-01-01",
            "calculationMethod": "flat",
        },
    ]
