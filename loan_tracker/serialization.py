"""Conversion between loan tracker objects and JSON-friendly dictionaries.

Keys are camelCase so that payloads match what dashboard clients already
send and expect (``totalAmount``, ``nextEMIDate`` and so on). Monetary values
are emitted as floats, dates as ISO strings.
"""

from __future__ import annotations

import json
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from .data_models import (
    CalculationMethod,
    DebtRecommendation,
    EMIScheduleEntry,
    EnrichedLoan,
    LoanAnalytics,
    LoanRecord,
    LoanSummary,
    LoanType,
    PaymentFrequency,
    StrategyAdvice,
    UpcomingPayment,
)
from .utils import parse_iso_date, to_decimal

REQUIRED_FIELDS = (
    "id",
    "name",
    "lender",
    "type",
    "totalAmount",
    "interestRate",
    "tenure",
    "startDate",
    "dueDate",
)


def _decimal_field(data: Mapping[str, Any], key: str, default: Optional[str] = None) -> Decimal:
    value = data.get(key, default)
    try:
        return to_decimal(value)
    except ValueError as exc:
        raise ValueError(f"{key}: {exc}") from exc


def _choice_field(data: Mapping[str, Any], key: str, enum_cls, default):
    value = data.get(key) or default
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).lower())
    except ValueError as exc:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValueError(f"{key} must be one of {allowed}; got {value}") from exc


def loan_from_dict(data: Mapping[str, Any]) -> LoanRecord:
    """Build a ``LoanRecord`` from a camelCase mapping.

    Numbers may be given as numbers or numeric strings. ``paidAmount``
    defaults to 0, ``calculationMethod`` to reducing and ``paymentFrequency``
    to monthly.

    Raises
    ------
    ValueError
        If a required field is missing or a value cannot be parsed. The
        message names the offending field.
    """
    missing = [key for key in REQUIRED_FIELDS if data.get(key) in (None, "")]
    if missing:
        raise ValueError(f"Missing required field(s): {', '.join(missing)}")

    for key in ("name", "lender"):
        if not str(data[key]).strip():
            raise ValueError(f"{key} must not be empty")

    try:
        tenure = int(data["tenure"])
    except (TypeError, ValueError) as exc:
        raise ValueError(f"tenure: invalid integer {data['tenure']!r}") from exc

    try:
        start_date = parse_iso_date(str(data["startDate"]))
        due_date = parse_iso_date(str(data["dueDate"]))
    except ValueError as exc:
        raise ValueError(f"startDate/dueDate: {exc}") from exc

    if tenure <= 0:
        raise ValueError("tenure must be greater than 0")

    emi_amount = None
    if data.get("emiAmount") not in (None, ""):
        emi_amount = _decimal_field(data, "emiAmount")

    loan = LoanRecord(
        id=str(data["id"]),
        name=str(data["name"]).strip(),
        lender=str(data["lender"]).strip(),
        type=_choice_field(data, "type", LoanType, LoanType.PERSONAL),
        total_amount=_decimal_field(data, "totalAmount"),
        paid_amount=_decimal_field(data, "paidAmount", "0"),
        interest_rate=_decimal_field(data, "interestRate"),
        tenure=tenure,
        start_date=start_date,
        due_date=due_date,
        calculation_method=_choice_field(data, "calculationMethod", CalculationMethod, CalculationMethod.REDUCING),
        payment_frequency=_choice_field(data, "paymentFrequency", PaymentFrequency, PaymentFrequency.MONTHLY),
        emi_amount=emi_amount,
    )
    for key, value in (
        ("totalAmount", loan.total_amount),
        ("paidAmount", loan.paid_amount),
        ("interestRate", loan.interest_rate),
    ):
        if value < 0:
            raise ValueError(f"{key} must not be negative")
    return loan


def loan_to_dict(loan: LoanRecord) -> Dict[str, Any]:
    return {
        "id": loan.id,
        "name": loan.name,
        "lender": loan.lender,
        "type": loan.type.value,
        "totalAmount": float(loan.total_amount),
        "paidAmount": float(loan.paid_amount),
        "interestRate": float(loan.interest_rate),
        "tenure": loan.tenure,
        "startDate": loan.start_date.isoformat(),
        "dueDate": loan.due_date.isoformat(),
        "calculationMethod": loan.calculation_method.value,
        "paymentFrequency": loan.payment_frequency.value,
        "emiAmount": float(loan.emi_amount) if loan.emi_amount is not None else None,
    }


def enriched_loan_to_dict(enriched: EnrichedLoan) -> Dict[str, Any]:
    data = loan_to_dict(enriched.loan)
    data.update(
        {
            "emiAmount": float(enriched.emi_amount),
            "totalInterest": float(enriched.total_interest),
            "nextEMIDate": enriched.next_emi_date.isoformat(),
            "remainingTenure": enriched.remaining_tenure,
            "healthStatus": enriched.health_status.value,
            "healthMessage": enriched.health_message,
        }
    )
    return data


def schedule_entry_to_dict(entry: EMIScheduleEntry) -> Dict[str, Any]:
    return {
        "installmentNumber": entry.installment_number,
        "date": entry.date.isoformat(),
        "emiAmount": float(entry.emi_amount),
        "principalAmount": float(entry.principal_amount),
        "interestAmount": float(entry.interest_amount),
        "remainingBalance": float(entry.remaining_balance),
    }


def recommendation_to_dict(rec: DebtRecommendation) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "loanId": rec.loan_id,
        "loanName": rec.loan_name,
        "priority": rec.priority,
        "reason": rec.reason,
    }
    if rec.potential_savings is not None:
        data["potentialSavings"] = float(rec.potential_savings)
    return data


def summary_to_dict(summary: LoanSummary) -> Dict[str, Any]:
    return {
        "totalBorrowed": float(summary.total_borrowed),
        "totalPaid": float(summary.total_paid),
        "totalRemaining": float(summary.total_remaining),
        "totalInterestPaid": float(summary.total_interest_paid),
        "totalInterestRemaining": float(summary.total_interest_remaining),
        "averageInterestRate": float(summary.average_interest_rate),
        "loansAheadOfSchedule": summary.loans_ahead_of_schedule,
        "loansBehindSchedule": summary.loans_behind_schedule,
        "loansOnTrack": summary.loans_on_track,
    }


def upcoming_payment_to_dict(payment: UpcomingPayment) -> Dict[str, Any]:
    return {
        "loanId": payment.loan_id,
        "loanName": payment.loan_name,
        "amount": float(payment.amount),
        "dueDate": payment.due_date.isoformat(),
        "daysUntilDue": payment.days_until_due,
        "urgency": payment.urgency.value,
        "urgencyText": payment.urgency_text,
    }


def analytics_to_dict(analytics: LoanAnalytics, advice: Optional[StrategyAdvice] = None) -> Dict[str, Any]:
    data: Dict[str, Any] = {
        "avalanche": [recommendation_to_dict(r) for r in analytics.avalanche],
        "snowball": [recommendation_to_dict(r) for r in analytics.snowball],
        "highInterest": [loan_to_dict(loan) for loan in analytics.high_interest],
        "nearPayoff": [loan_to_dict(loan) for loan in analytics.near_payoff],
        "totalInterest": float(analytics.total_interest),
        "totalLoans": analytics.total_loans,
        "activeLoans": analytics.active_loans,
    }
    if advice is not None:
        data["bestStrategy"] = {
            "strategy": advice.strategy,
            "reason": advice.reason,
            "priorityLoanId": advice.priority_loan_id,
        }
    return data


def load_loans(path: Path) -> List[LoanRecord]:
    """Read loan records from a JSON file.

    The file may hold either a list of loans or an object with a ``loans``
    list.
    """
    with path.open("r", encoding="utf-8") as f:
        payload = json.load(f)
    if isinstance(payload, dict):
        payload = payload.get("loans", [])
    if not isinstance(payload, list):
        raise ValueError(f"{path}: expected a list of loans")
    loans = []
    for index, item in enumerate(payload):
        if not isinstance(item, dict):
            raise ValueError(f"{path}: loan #{index + 1}: expected an object")
        try:
            loans.append(loan_from_dict(item))
        except ValueError as exc:
            raise ValueError(f"{path}: loan #{index + 1}: {exc}") from exc
    return loans
