"""Output helpers for the loan tracker CLI.

This module renders schedules, enriched loans, portfolio summaries and
strategy rankings as plain tab-separated tables for the terminal.
"""

from __future__ import annotations

from typing import Iterable, Optional

from .data_models import (
    DebtRecommendation,
    EMIScheduleEntry,
    EnrichedLoan,
    LoanRecord,
    LoanSummary,
    StrategyAdvice,
    UpcomingPayment,
)
from .engine import schedule_totals
from .utils import format_rate


def print_schedule(schedule: Iterable[EMIScheduleEntry]) -> None:
    """Print the amortization schedule followed by its column totals."""
    entries = list(schedule)
    headers = ["No", "Date", "EMI", "Principal", "Interest", "Balance"]
    print("\t".join(headers))
    for entry in entries:
        row = [
            str(entry.installment_number),
            entry.date.isoformat(),
            f"{entry.emi_amount:.2f}",
            f"{entry.principal_amount:.2f}",
            f"{entry.interest_amount:.2f}",
            f"{entry.remaining_balance:.2f}",
        ]
        print("\t".join(row))
    totals = schedule_totals(entries)
    print("-" * 72)
    print(f"Installments       : {totals['installments']}")
    print(f"Total principal    : {totals['total_principal']:.2f}")
    print(f"Total interest     : {totals['total_interest']:.2f}")
    print(f"Total payable      : {totals['total_payable']:.2f}")


def print_loans(loans: Iterable[EnrichedLoan]) -> None:
    headers = ["Id", "Name", "Rate", "Remaining", "EMI", "Left", "Next EMI", "Interest left", "Health"]
    print("\t".join(headers))
    for enriched in loans:
        loan = enriched.loan
        row = [
            loan.id,
            loan.name,
            f"{format_rate(loan.interest_rate)}%",
            f"{loan.remaining_principal:.2f}",
            f"{enriched.emi_amount:.2f}",
            str(enriched.remaining_tenure),
            enriched.next_emi_date.isoformat(),
            f"{enriched.total_interest:.2f}",
            enriched.health_status.value,
        ]
        print("\t".join(row))


def print_summary(summary: LoanSummary) -> None:
    """Print portfolio totals in a human-readable format."""
    print("Summary")
    print("-" * 72)
    print(f"Total borrowed     : {summary.total_borrowed}")
    print(f"Total paid         : {summary.total_paid}")
    print(f"Total remaining    : {summary.total_remaining}")
    print(f"Interest paid (est): {summary.total_interest_paid}")
    print(f"Interest remaining : {summary.total_interest_remaining}")
    print(f"Average rate       : {summary.average_interest_rate}%")
    print(
        f"Health             : {summary.loans_ahead_of_schedule} ahead, "
        f"{summary.loans_on_track} on track, {summary.loans_behind_schedule} behind"
    )
    print("-" * 72)


def print_upcoming(payments: Iterable[UpcomingPayment]) -> None:
    payments = list(payments)
    print("Upcoming payments")
    if not payments:
        print("  none in the next window")
        return
    for payment in payments:
        print(
            f"  {payment.due_date.isoformat()}  {payment.loan_name:20s} "
            f"{payment.amount:>12.2f}  {payment.urgency_text} [{payment.urgency.value}]"
        )


def print_recommendations(title: str, recommendations: Iterable[DebtRecommendation]) -> None:
    print(title)
    print("=" * 72)
    for rec in recommendations:
        line = f"{rec.priority:>3d}. {rec.loan_name}: {rec.reason}"
        if rec.potential_savings is not None:
            line += f" (savings {rec.potential_savings:.2f})"
        print(line)
    print("=" * 72)


def print_flagged(title: str, loans: Iterable[LoanRecord]) -> None:
    loans = list(loans)
    print(f"{title}: {len(loans)}")
    for loan in loans:
        print(f"  {loan.name} ({loan.lender}) {format_rate(loan.interest_rate)}% remaining {loan.remaining_principal:.2f}")


def print_advice(advice: StrategyAdvice, total_interest: Optional[object] = None) -> None:
    print(f"Suggested strategy : {advice.strategy}")
    print(f"Why                : {advice.reason}")
    if total_interest is not None:
        print(f"Interest at stake  : {total_interest}")
