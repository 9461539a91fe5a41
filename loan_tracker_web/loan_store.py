"""Persistence layer for loans and their payments.

The calculation core never touches storage; this store supplies it with
``LoanRecord`` objects. It defaults to SQLite for local development, but
accepts any SQLAlchemy-compatible URL (e.g. PostgreSQL/MySQL).

Recording a payment adds its amount to the loan's ``paid_amount``; deleting
one subtracts it again, never going below zero.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import uuid4

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, Numeric, String, Text, create_engine, select
from sqlalchemy.orm import declarative_base, sessionmaker

from loan_tracker.data_models import CalculationMethod, LoanRecord, LoanType, PaymentFrequency

logger = logging.getLogger(__name__)

Base = declarative_base()

# Decimal places kept by the numeric columns below.
AMOUNT_PLACES = 4
RATE_PLACES = 4


class LoanAlreadyExists(ValueError):
    """Raised when a loan is added with an id that is already stored."""


def _fit(value: Optional[Decimal], places: int, field: str) -> Optional[Decimal]:
    """Reject values the column would silently round."""
    if value is None:
        return None
    if value.as_tuple().exponent < -places and value != round(value, places):
        raise ValueError(f"{field} supports at most {places} decimal places; got {value}")
    return value


class LoanModel(Base):
    __tablename__ = "loans"

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False)
    lender = Column(String(255), nullable=False)
    type = Column(String(32), nullable=False)
    total_amount = Column(Numeric(18, 4), nullable=False)
    paid_amount = Column(Numeric(18, 4), nullable=False, default=0)
    interest_rate = Column(Numeric(9, 4), nullable=False)
    tenure = Column(Integer, nullable=False)
    start_date = Column(Date, nullable=False)
    due_date = Column(Date, nullable=False)
    calculation_method = Column(String(16), nullable=False, default=CalculationMethod.REDUCING.value)
    payment_frequency = Column(String(16), nullable=False, default=PaymentFrequency.MONTHLY.value)
    emi_amount = Column(Numeric(18, 4), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class LoanPaymentModel(Base):
    __tablename__ = "loan_payments"

    id = Column(String(64), primary_key=True)
    loan_id = Column(String(64), ForeignKey("loans.id", ondelete="CASCADE"), index=True, nullable=False)
    amount = Column(Numeric(18, 4), nullable=False)
    date = Column(Date, nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class LoanStore:
    """Database-backed loan store."""

    def __init__(self, url: str) -> None:
        self._engine = create_engine(url, future=True)
        Base.metadata.create_all(self._engine)
        self._session_factory = sessionmaker(self._engine, expire_on_commit=False, future=True)

    def list_loans(self) -> List[LoanRecord]:
        with self._session_factory() as session:
            rows = session.execute(select(LoanModel).order_by(LoanModel.created_at.asc())).scalars()
            return [self._to_record(row) for row in rows]

    def get_loan(self, loan_id: str) -> Optional[LoanRecord]:
        with self._session_factory() as session:
            row = session.get(LoanModel, loan_id)
            return self._to_record(row) if row else None

    def add_loan(self, loan: LoanRecord) -> LoanRecord:
        """Persist ``loan``; a fresh id is assigned when it has none.

        Raises ``LoanAlreadyExists`` when the id is taken.
        """
        row = LoanModel(id=loan.id or uuid4().hex)
        self._apply(row, loan)
        with self._session_factory() as session:
            if session.get(LoanModel, row.id) is not None:
                raise LoanAlreadyExists(f"Loan {row.id} already exists")
            session.add(row)
            session.commit()
            logger.info("Created loan %s (%s)", row.id, row.name)
            return self._to_record(row)

    def update_loan(self, loan_id: str, loan: LoanRecord) -> Optional[LoanRecord]:
        with self._session_factory() as session:
            row = session.get(LoanModel, loan_id)
            if row is None:
                return None
            self._apply(row, loan)
            session.commit()
            return self._to_record(row)

    def delete_loan(self, loan_id: str) -> bool:
        with self._session_factory() as session:
            row = session.get(LoanModel, loan_id)
            if row is None:
                return False
            session.execute(LoanPaymentModel.__table__.delete().where(LoanPaymentModel.loan_id == loan_id))
            session.delete(row)
            session.commit()
            logger.info("Deleted loan %s", loan_id)
            return True

    def list_payments(self, loan_id: str) -> List[Dict[str, Any]]:
        with self._session_factory() as session:
            rows = session.execute(
                select(LoanPaymentModel)
                .where(LoanPaymentModel.loan_id == loan_id)
                .order_by(LoanPaymentModel.date.desc(), LoanPaymentModel.created_at.desc())
            ).scalars()
            return [self._payment_to_dict(row) for row in rows]

    def record_payment(
        self, loan_id: str, amount: Decimal, paid_on: date, notes: Optional[str] = None
    ) -> Optional[Dict[str, Any]]:
        """Store a payment and add it to the loan's paid amount.

        Returns ``None`` when the loan does not exist.
        """
        with self._session_factory() as session:
            loan = session.get(LoanModel, loan_id)
            if loan is None:
                return None
            amount = _fit(amount, AMOUNT_PLACES, "amount")
            payment = LoanPaymentModel(id=uuid4().hex, loan_id=loan_id, amount=amount, date=paid_on, notes=notes)
            loan.paid_amount = Decimal(loan.paid_amount) + amount
            session.add(payment)
            session.commit()
            logger.info("Recorded payment of %s on loan %s", amount, loan_id)
            return self._payment_to_dict(payment)

    def delete_payment(self, payment_id: str) -> bool:
        """Remove a payment and subtract it from the loan's paid amount (floored at 0)."""
        with self._session_factory() as session:
            payment = session.get(LoanPaymentModel, payment_id)
            if payment is None:
                return False
            loan = session.get(LoanModel, payment.loan_id)
            if loan is not None:
                loan.paid_amount = max(Decimal("0"), Decimal(loan.paid_amount) - Decimal(payment.amount))
            session.delete(payment)
            session.commit()
            return True

    @staticmethod
    def _apply(row: LoanModel, loan: LoanRecord) -> None:
        row.name = loan.name
        row.lender = loan.lender
        row.type = loan.type.value
        row.total_amount = _fit(loan.total_amount, AMOUNT_PLACES, "totalAmount")
        row.paid_amount = _fit(loan.paid_amount, AMOUNT_PLACES, "paidAmount")
        row.interest_rate = _fit(loan.interest_rate, RATE_PLACES, "interestRate")
        row.tenure = loan.tenure
        row.start_date = loan.start_date
        row.due_date = loan.due_date
        row.calculation_method = loan.calculation_method.value
        row.payment_frequency = loan.payment_frequency.value
        row.emi_amount = _fit(loan.emi_amount, AMOUNT_PLACES, "emiAmount")

    @staticmethod
    def _to_record(row: LoanModel) -> LoanRecord:
        return LoanRecord(
            id=row.id,
            name=row.name,
            lender=row.lender,
            type=LoanType(row.type),
            total_amount=Decimal(row.total_amount),
            paid_amount=Decimal(row.paid_amount),
            interest_rate=Decimal(row.interest_rate),
            tenure=row.tenure,
            start_date=row.start_date,
            due_date=row.due_date,
            calculation_method=CalculationMethod(row.calculation_method),
            payment_frequency=PaymentFrequency(row.payment_frequency),
            emi_amount=Decimal(row.emi_amount) if row.emi_amount is not None else None,
        )

    @staticmethod
    def _payment_to_dict(row: LoanPaymentModel) -> Dict[str, Any]:
        return {
            "id": row.id,
            "loanId": row.loan_id,
            "amount": float(row.amount),
            "date": row.date.isoformat(),
            "notes": row.notes,
        }


def create_store_from_env(url: str | None) -> LoanStore:
    return LoanStore(url or "sqlite:///loan_tracker.sqlite3")
