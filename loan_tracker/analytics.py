"""Per-loan and portfolio analytics.

These helpers derive the figures shown next to each loan (remaining interest,
remaining tenure, next installment date, health status) and the portfolio
summary and upcoming-payment list built from them. They never mutate the
records they are given.
"""

from __future__ import annotations

import dataclasses
import logging
import math
from datetime import date
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence

from .data_models import (
    CalculationMethod,
    EarlyPayoffSavings,
    EnrichedLoan,
    HealthStatus,
    LoanHealth,
    LoanRecord,
    LoanSummary,
    PaymentFrequency,
    UpcomingPayment,
    describe_days_until_due,
    urgency_for,
)
from .emi import resolve_emi, total_periods
from .engine import payments_made
from .utils import add_periods, round_currency, round_whole

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
HUNDRED = Decimal("100")
# Percentage points either side of the expected progress counted as on track.
HEALTH_TOLERANCE = Decimal("5")

__all__ = [
    "calculate_total_interest",
    "calculate_remaining_tenure",
    "calculate_next_emi_date",
    "calculate_early_payoff_savings",
    "get_loan_health_status",
    "enrich_loan",
    "enrich_loans",
    "get_loan_summary",
    "get_upcoming_payments",
    "get_total_monthly_emi",
    "calculate_debt_to_income_ratio",
    "urgency_for",
    "describe_days_until_due",
]


def _paid_share(loan: LoanRecord) -> Decimal:
    if loan.total_amount <= 0:
        return ZERO
    return loan.paid_amount / loan.total_amount


def calculate_total_interest(loan: LoanRecord) -> Decimal:
    """Return the interest still to be paid on ``loan``.

    The full-term interest is scaled by the share of principal not yet
    repaid. Loans with no principal carry no interest.
    """
    if loan.total_amount <= 0:
        return ZERO

    if loan.calculation_method == CalculationMethod.FLAT:
        total_interest = loan.total_amount * loan.interest_rate * (Decimal(loan.tenure) / 12) / HUNDRED
    else:
        emi = resolve_emi(loan)
        installments = total_periods(loan.tenure, loan.payment_frequency)
        total_interest = emi * installments - loan.total_amount

    return max(ZERO, total_interest * max(ZERO, 1 - _paid_share(loan)))


def calculate_remaining_tenure(loan: LoanRecord) -> int:
    """Return the number of installments left, or 0 when there is no installment."""
    emi = resolve_emi(loan)
    if emi <= 0:
        return 0
    return math.ceil(loan.remaining_principal / emi)


def calculate_next_emi_date(
    start_date: date,
    payment_frequency: PaymentFrequency,
    paid_amount: Decimal,
    emi_amount: Decimal,
) -> date:
    """Return the date of the first installment not covered by ``paid_amount``."""
    return add_periods(start_date, payment_frequency, payments_made(paid_amount, emi_amount) + 1)


def get_loan_health_status(loan: LoanRecord, today: Optional[date] = None) -> LoanHealth:
    """Compare actual repayment progress against the elapsed share of the term.

    The expected percentage is the linear share of time elapsed between the
    start and due dates. A loan more than five points ahead of it is
    ``ahead``, more than five points behind it ``behind``.
    """
    today = today or date.today()
    term_days = (loan.due_date - loan.start_date).days
    if term_days > 0:
        expected = Decimal((today - loan.start_date).days) / Decimal(term_days) * HUNDRED
    else:
        expected = HUNDRED if today >= loan.due_date else ZERO

    if loan.total_amount > 0:
        actual = loan.paid_amount / loan.total_amount * HUNDRED
    else:
        actual = HUNDRED

    gap = int(round_whole(actual - expected))
    if actual >= expected + HEALTH_TOLERANCE:
        return LoanHealth(HealthStatus.AHEAD, f"You're ahead of schedule! {gap}% ahead")
    if actual < expected - HEALTH_TOLERANCE:
        return LoanHealth(HealthStatus.BEHIND, f"{-gap}% behind schedule")
    return LoanHealth(HealthStatus.ON_TRACK, f"On track with payment schedule ({gap:+}%)")


def enrich_loan(loan: LoanRecord, today: Optional[date] = None) -> EnrichedLoan:
    emi = resolve_emi(loan)
    health = get_loan_health_status(loan, today)
    return EnrichedLoan(
        loan=loan,
        emi_amount=emi,
        total_interest=round_currency(calculate_total_interest(loan)),
        next_emi_date=calculate_next_emi_date(loan.start_date, loan.payment_frequency, loan.paid_amount, emi),
        remaining_tenure=calculate_remaining_tenure(loan),
        health_status=health.status,
        health_message=health.message,
    )


def enrich_loans(loans: Iterable[LoanRecord], today: Optional[date] = None) -> List[EnrichedLoan]:
    today = today or date.today()
    enriched = [enrich_loan(loan, today) for loan in loans]
    logger.debug("Enriched %d loans as of %s", len(enriched), today)
    return enriched


def get_loan_summary(loans: Sequence[EnrichedLoan]) -> LoanSummary:
    """Aggregate a portfolio of enriched loans.

    Borrowed, paid and remaining totals cover every loan; interest remaining
    and the average rate cover active loans only. Interest already paid is
    estimated by scaling each loan's remaining interest back up to its full
    term and taking the paid share of that.
    """
    active = [e for e in loans if e.is_active]

    total_borrowed = sum((e.loan.total_amount for e in loans), ZERO)
    total_paid = sum((e.loan.paid_amount for e in loans), ZERO)
    total_interest_remaining = sum((e.total_interest for e in active), ZERO)

    total_interest_paid = ZERO
    for enriched in loans:
        paid_share = _paid_share(enriched.loan)
        unpaid_share = (1 - paid_share) or Decimal("1")
        estimated_total_interest = enriched.total_interest / unpaid_share
        total_interest_paid += estimated_total_interest * paid_share

    if active:
        average_rate = sum((e.loan.interest_rate for e in active), ZERO) / len(active)
    else:
        average_rate = ZERO

    statuses = [e.health_status for e in loans]
    return LoanSummary(
        total_borrowed=round_whole(total_borrowed),
        total_paid=round_whole(total_paid),
        total_remaining=round_whole(total_borrowed - total_paid),
        total_interest_paid=round_whole(total_interest_paid),
        total_interest_remaining=round_whole(total_interest_remaining),
        average_interest_rate=round_currency(average_rate),
        loans_ahead_of_schedule=statuses.count(HealthStatus.AHEAD),
        loans_behind_schedule=statuses.count(HealthStatus.BEHIND),
        loans_on_track=statuses.count(HealthStatus.ON_TRACK),
    )


def get_upcoming_payments(
    loans: Iterable[EnrichedLoan],
    today: Optional[date] = None,
    window_days: int = 30,
) -> List[UpcomingPayment]:
    """Return installments of active loans due within ``window_days`` of today.

    Both ends of the window are inclusive. The result is sorted by the number
    of calendar days until each payment is due.
    """
    today = today or date.today()
    upcoming: List[UpcomingPayment] = []
    for enriched in loans:
        if not enriched.is_active:
            continue
        days_until_due = (enriched.next_emi_date - today).days
        if 0 <= days_until_due <= window_days:
            upcoming.append(
                UpcomingPayment(
                    loan_id=enriched.loan.id,
                    loan_name=enriched.loan.name,
                    amount=enriched.emi_amount,
                    due_date=enriched.next_emi_date,
                    days_until_due=days_until_due,
                )
            )
    upcoming.sort(key=lambda p: p.days_until_due)
    return upcoming


def calculate_early_payoff_savings(loan: LoanRecord, early_payment: Decimal) -> EarlyPayoffSavings:
    """Estimate the interest and installments saved by a lump-sum prepayment."""
    prepaid = dataclasses.replace(loan, paid_amount=loan.paid_amount + early_payment)

    saved_interest = calculate_total_interest(loan) - calculate_total_interest(prepaid)
    reduced_tenure = calculate_remaining_tenure(loan) - calculate_remaining_tenure(prepaid)
    return EarlyPayoffSavings(
        saved_interest=round_currency(max(ZERO, saved_interest)),
        reduced_tenure=max(0, reduced_tenure),
    )


def get_total_monthly_emi(loans: Iterable[EnrichedLoan]) -> Decimal:
    """Sum the installments of active loans that are repaid monthly."""
    return sum(
        (
            e.emi_amount
            for e in loans
            if e.is_active and e.loan.payment_frequency == PaymentFrequency.MONTHLY
        ),
        ZERO,
    )


def calculate_debt_to_income_ratio(loans: Iterable[EnrichedLoan], monthly_income: Decimal) -> Decimal:
    """Monthly installments as a percentage of income (0 for no income)."""
    if monthly_income == 0:
        return ZERO
    return round_currency(get_total_monthly_emi(loans) / monthly_income * HUNDRED)
