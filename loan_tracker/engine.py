"""Amortization engine for the loan tracker.

This module expands a loan's installment into the remaining payment-by-payment
schedule, splitting each installment into its principal and interest portions
and tracking the outstanding balance. The schedule resumes from the number of
installments that the loan's cumulative payments cover, not from calendar
time elapsed since the start date.

Reducing-balance loans charge each period's interest on the outstanding
balance. Flat-rate loans charge interest on the original principal every
period, which is how flat-rate products are quoted even though it makes late
installments interest-heavy.
"""

from __future__ import annotations

import logging
from decimal import Decimal, getcontext
from typing import Dict, Iterable, List

from .data_models import CalculationMethod, EMIScheduleEntry, LoanRecord
from .emi import periodic_rate, resolve_emi, total_periods
from .utils import add_periods, round_currency

getcontext().prec = 28  # increase precision for financial calculations

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
# Residual balances smaller than half a cent are treated as fully repaid.
RESIDUAL = Decimal("0.005")


def payments_made(paid_amount: Decimal, emi: Decimal) -> int:
    """Return how many whole installments ``paid_amount`` covers."""
    if emi <= 0:
        return 0
    return int(paid_amount // emi)


def generate_schedule(loan: LoanRecord) -> List[EMIScheduleEntry]:
    """Compute the remaining amortization schedule for a loan.

    Parameters
    ----------
    loan: LoanRecord
        The loan to expand. ``emi_amount`` is used when present, otherwise it
        is derived from the outstanding principal.

    Returns
    -------
    List[EMIScheduleEntry]
        One entry per remaining installment, numbered from
        ``floor(paid_amount / emi) + 1``. The list ends early once the
        balance is cleared, and is empty for settled loans or loans without
        an installment. The final installment of the term clears any
        balance still outstanding.
    """
    emi = resolve_emi(loan)
    rate = periodic_rate(loan.interest_rate, loan.payment_frequency)
    installments = total_periods(loan.tenure, loan.payment_frequency)
    remaining_balance = loan.total_amount - loan.paid_amount
    flat = loan.calculation_method == CalculationMethod.FLAT

    schedule: List[EMIScheduleEntry] = []
    first = payments_made(loan.paid_amount, emi) + 1
    for number in range(first, installments + 1):
        if remaining_balance <= 0:
            break

        if flat:
            interest_amount = loan.total_amount * rate
        else:
            interest_amount = remaining_balance * rate

        # Never overdraw the balance on the final installment, and never let
        # an installment smaller than its interest grow the balance.
        principal_amount = max(ZERO, min(emi - interest_amount, remaining_balance))
        remaining_balance -= principal_amount
        if remaining_balance.copy_abs() < RESIDUAL:
            remaining_balance = ZERO

        installment = emi
        if number == installments and remaining_balance > 0:
            # The last installment of the term settles whatever is left,
            # including the drift from rounding the installment to cents.
            principal_amount += remaining_balance
            installment = principal_amount + interest_amount
            remaining_balance = ZERO

        schedule.append(
            EMIScheduleEntry(
                installment_number=number,
                date=add_periods(loan.start_date, loan.payment_frequency, number),
                emi_amount=round_currency(installment),
                principal_amount=round_currency(principal_amount),
                interest_amount=round_currency(interest_amount),
                remaining_balance=max(ZERO, round_currency(remaining_balance)),
            )
        )

    logger.debug(
        "Generated %d schedule entries for loan %s starting at installment %d",
        len(schedule),
        loan.id,
        first,
    )
    return schedule


def schedule_totals(schedule: Iterable[EMIScheduleEntry]) -> Dict[str, object]:
    """Summarize a schedule: totals of each money column and the end date."""
    entries = list(schedule)
    total_principal = sum((e.principal_amount for e in entries), ZERO)
    total_interest = sum((e.interest_amount for e in entries), ZERO)
    return {
        "installments": len(entries),
        "total_principal": total_principal,
        "total_interest": total_interest,
        "total_payable": total_principal + total_interest,
        "first_date": entries[0].date if entries else None,
        "last_date": entries[-1].date if entries else None,
    }
