"""Data models for the loan tracker.

This module defines the enums and dataclasses passed between the EMI
calculator, the amortization scheduler, the analytics helpers and the debt
strategy ranker. Loan records are supplied by the caller; every other
structure is derived and recomputed on each call.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import List, Optional


class LoanType(str, Enum):
    PERSONAL = "personal"
    BUSINESS = "business"
    AUTO = "auto"
    MORTGAGE = "mortgage"


class CalculationMethod(str, Enum):
    """How interest is charged over the life of a loan.

    ``REDUCING`` charges each period's interest on the outstanding balance.
    ``FLAT`` charges interest on the original principal for the full term.
    """

    REDUCING = "reducing"
    FLAT = "flat"


class PaymentFrequency(str, Enum):
    """Spacing of installments on the calendar."""

    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"

    @property
    def periods_per_year(self) -> int:
        return {"monthly": 12, "quarterly": 4, "yearly": 1}[self.value]

    @property
    def months_per_period(self) -> int:
        return 12 // self.periods_per_year


class HealthStatus(str, Enum):
    ON_TRACK = "on-track"
    AHEAD = "ahead"
    BEHIND = "behind"


class Urgency(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass
class LoanRecord:
    """A loan as recorded by the user.

    Attributes
    ----------
    total_amount: Decimal
        Principal borrowed.
    paid_amount: Decimal
        Cumulative amount repaid. Over-payment is tolerated; such a loan is
        simply no longer active.
    interest_rate: Decimal
        Nominal annual rate in percent.
    tenure: int
        Loan term in months.
    due_date: date
        Expected full repayment date. Only used to judge the loan's health,
        never to build the schedule.
    emi_amount: Optional[Decimal]
        Memoized installment. When missing it is derived on demand.
    """

    id: str
    name: str
    lender: str
    type: LoanType
    total_amount: Decimal
    paid_amount: Decimal
    interest_rate: Decimal
    tenure: int
    start_date: date
    due_date: date
    calculation_method: CalculationMethod = CalculationMethod.REDUCING
    payment_frequency: PaymentFrequency = PaymentFrequency.MONTHLY
    emi_amount: Optional[Decimal] = None

    @property
    def remaining_principal(self) -> Decimal:
        return max(Decimal("0"), self.total_amount - self.paid_amount)

    @property
    def is_active(self) -> bool:
        return self.total_amount > self.paid_amount


@dataclass
class EMIScheduleEntry:
    """One remaining installment of an amortization schedule."""

    installment_number: int
    date: date
    emi_amount: Decimal
    principal_amount: Decimal
    interest_amount: Decimal
    remaining_balance: Decimal


@dataclass
class DebtRecommendation:
    loan_id: str
    loan_name: str
    priority: int  # 1-based rank within a strategy
    reason: str
    potential_savings: Optional[Decimal] = None


@dataclass
class LoanHealth:
    status: HealthStatus
    message: str


@dataclass
class EnrichedLoan:
    """A loan record together with the figures derived from it."""

    loan: LoanRecord
    emi_amount: Decimal
    total_interest: Decimal
    next_emi_date: date
    remaining_tenure: int
    health_status: HealthStatus
    health_message: str

    @property
    def is_active(self) -> bool:
        return self.loan.is_active


@dataclass
class LoanSummary:
    """Portfolio-wide totals.

    ``total_interest_paid`` is an estimate derived from each loan's remaining
    interest and paid share, not a ledger of historical interest.
    """

    total_borrowed: Decimal
    total_paid: Decimal
    total_remaining: Decimal
    total_interest_paid: Decimal
    total_interest_remaining: Decimal
    average_interest_rate: Decimal
    loans_ahead_of_schedule: int
    loans_behind_schedule: int
    loans_on_track: int


def urgency_for(days_until_due: int) -> Urgency:
    """Classify how soon a payment is due (3 and 7 day cut-offs)."""
    if days_until_due <= 3:
        return Urgency.HIGH
    if days_until_due <= 7:
        return Urgency.MEDIUM
    return Urgency.LOW


def describe_days_until_due(days_until_due: int) -> str:
    if days_until_due == 0:
        return "Due today"
    if days_until_due == 1:
        return "Due tomorrow"
    if days_until_due < 0:
        return f"{abs(days_until_due)} days overdue"
    return f"{days_until_due} days"


@dataclass
class UpcomingPayment:
    loan_id: str
    loan_name: str
    amount: Decimal
    due_date: date
    days_until_due: int

    @property
    def urgency(self) -> Urgency:
        return urgency_for(self.days_until_due)

    @property
    def urgency_text(self) -> str:
        return describe_days_until_due(self.days_until_due)


@dataclass
class EarlyPayoffSavings:
    saved_interest: Decimal
    reduced_tenure: int


@dataclass
class LoanAnalytics:
    """Strategy rankings and flags for a whole loan portfolio."""

    avalanche: List[DebtRecommendation] = field(default_factory=list)
    snowball: List[DebtRecommendation] = field(default_factory=list)
    high_interest: List[LoanRecord] = field(default_factory=list)
    near_payoff: List[LoanRecord] = field(default_factory=list)
    total_interest: Decimal = Decimal("0")
    total_loans: int = 0
    active_loans: int = 0


@dataclass
class StrategyAdvice:
    strategy: str  # 'avalanche', 'snowball' or 'balanced'
    reason: str
    priority_loan_id: Optional[str] = None
