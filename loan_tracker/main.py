"""Command-line interface for the loan tracker.

This module uses the ``click`` library to implement a multi-command
interface. Users can compute an installment, print or export the remaining
amortization schedule of a single loan, and analyse a portfolio of loans read
from a JSON file (health, upcoming payments and repayment strategies).
"""

from __future__ import annotations

import csv
import json
import logging
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import List, Optional

import click

from .analytics import enrich_loans, get_loan_summary, get_upcoming_payments
from .data_models import (
    CalculationMethod,
    EMIScheduleEntry,
    LoanRecord,
    LoanType,
    PaymentFrequency,
)
from .emi import calculate_emi
from .engine import generate_schedule, schedule_totals
from .formatter import (
    print_advice,
    print_flagged,
    print_loans,
    print_recommendations,
    print_schedule,
    print_summary,
    print_upcoming,
)
from .serialization import load_loans, schedule_entry_to_dict
from .strategy import build_loan_analytics, recommend_strategy
from .utils import add_months, parse_amount, parse_iso_date

logger = logging.getLogger(__name__)

METHOD_CHOICE = click.Choice([m.value for m in CalculationMethod])
FREQUENCY_CHOICE = click.Choice([f.value for f in PaymentFrequency])


def _amount(value: Optional[str], name: str) -> Decimal:
    if value is None:
        return Decimal("0")
    try:
        return parse_amount(value)
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint=name)


def _date(value: Optional[str], name: str) -> Optional[date]:
    if value is None:
        return None
    try:
        return parse_iso_date(value)
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint=name)


def build_loan_from_options(
    principal: str,
    rate: float,
    term: int,
    method: str,
    frequency: str,
    start_date: Optional[str] = None,
    paid: Optional[str] = None,
    emi: Optional[str] = None,
) -> LoanRecord:
    """Turn CLI option values into a ``LoanRecord``.

    The start date defaults to today and the due date is the start date plus
    the term.
    """
    if term <= 0:
        raise click.BadParameter("Term must be a positive number of months", param_hint="--term")
    if rate < 0:
        raise click.BadParameter("Rate must not be negative", param_hint="--rate")
    start = _date(start_date, "--start-date") or date.today()
    return LoanRecord(
        id="cli",
        name="Loan",
        lender="-",
        type=LoanType.PERSONAL,
        total_amount=_amount(principal, "--principal"),
        paid_amount=_amount(paid, "--paid"),
        interest_rate=Decimal(str(rate)),
        tenure=term,
        start_date=start,
        due_date=add_months(start, term),
        calculation_method=CalculationMethod(method),
        payment_frequency=PaymentFrequency(frequency),
        emi_amount=_amount(emi, "--emi") if emi else None,
    )


def _load_portfolio(path: str) -> List[LoanRecord]:
    try:
        loans = load_loans(Path(path))
    except (OSError, ValueError) as exc:
        raise click.ClickException(str(exc))
    logger.debug("Loaded %d loans from %s", len(loans), path)
    return loans


def export_to_json(path: Path, schedule: List[EMIScheduleEntry]) -> None:
    """Export the schedule and its totals to a JSON file."""
    totals = schedule_totals(schedule)
    data = {
        "summary": {
            "installments": totals["installments"],
            "totalPrincipal": float(totals["total_principal"]),
            "totalInterest": float(totals["total_interest"]),
            "totalPayable": float(totals["total_payable"]),
        },
        "schedule": [schedule_entry_to_dict(e) for e in schedule],
    }
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def export_to_csv(path: Path, schedule: List[EMIScheduleEntry]) -> None:
    """Export the schedule to a CSV file."""
    header = [
        "Installment",
        "Date",
        "EMI",
        "Principal",
        "Interest",
        "Remaining_Balance",
    ]
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        for e in schedule:
            writer.writerow(
                [
                    e.installment_number,
                    e.date.isoformat(),
                    f"{e.emi_amount:.2f}",
                    f"{e.principal_amount:.2f}",
                    f"{e.interest_amount:.2f}",
                    f"{e.remaining_balance:.2f}",
                ]
            )


def loan_options(func):
    """Attach the options describing a single loan to a command."""
    options = [
        click.option("--principal", "-p", "principal", required=True, help="Total loan amount (500k, 1.2m accepted)"),
        click.option("--rate", "-r", "rate", required=True, type=float, help="Annual interest rate (percent)"),
        click.option("--term", "-t", "term", required=True, type=int, help="Loan term in months"),
        click.option("--method", "method", type=METHOD_CHOICE, default="reducing", show_default=True, help="Interest calculation method"),
        click.option("--frequency", "frequency", type=FREQUENCY_CHOICE, default="monthly", show_default=True, help="Installment frequency"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group()
@click.option(
    "--log-level",
    "log_level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    help="Logging verbosity",
)
def cli(log_level: str) -> None:
    """Track loans: installments, schedules and repayment strategies."""
    logging.basicConfig(level=log_level.upper(), format="%(levelname)s %(name)s: %(message)s")


@cli.command()
@loan_options
def emi(principal: str, rate: float, term: int, method: str, frequency: str) -> None:
    """Compute the periodic installment for a loan."""
    loan = build_loan_from_options(principal, rate, term, method, frequency)
    click.echo(f"EMI ({frequency}, {method}): {calculate_emi(loan):.2f}")


@cli.command()
@loan_options
@click.option("--start-date", "-s", "start_date", help="Loan start date (YYYY-MM-DD); defaults to today")
@click.option("--paid", "paid", help="Amount already repaid")
@click.option("--emi", "emi_amount", help="Known installment amount; derived when omitted")
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def schedule(
    principal: str,
    rate: float,
    term: int,
    method: str,
    frequency: str,
    start_date: Optional[str],
    paid: Optional[str],
    emi_amount: Optional[str],
    output: Optional[str],
) -> None:
    """Compute and print the remaining amortization schedule."""
    loan = build_loan_from_options(principal, rate, term, method, frequency, start_date, paid, emi_amount)
    entries = generate_schedule(loan)
    if output:
        path = Path(output)
        if path.suffix.lower() == ".json":
            export_to_json(path, entries)
        elif path.suffix.lower() == ".csv":
            export_to_csv(path, entries)
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv", param_hint="--output")
        click.echo(f"Schedule exported to {path}")
    else:
        print_schedule(entries)


@cli.command()
@click.argument("loans_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--today", "today", help="Evaluate as of this date (YYYY-MM-DD)")
@click.option("--window", "window", type=int, default=30, show_default=True, help="Upcoming payment window in days")
def analyze(loans_file: str, today: Optional[str], window: int) -> None:
    """Show loan health, portfolio totals and upcoming payments."""
    loans = _load_portfolio(loans_file)
    as_of = _date(today, "--today") or date.today()
    enriched = enrich_loans(loans, as_of)
    print_loans(enriched)
    print_summary(get_loan_summary(enriched))
    print_upcoming(get_upcoming_payments(enriched, as_of, window))


@cli.command()
@click.argument("loans_file", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--strategy",
    "strategy_name",
    type=click.Choice(["avalanche", "snowball", "both"]),
    default="both",
    show_default=True,
    help="Ranking to print",
)
@click.option("--threshold", "threshold", type=float, default=10.0, show_default=True, help="High-interest rate threshold (percent)")
@click.option("--months", "months", type=int, default=3, show_default=True, help="Near-payoff threshold in installments")
def strategy(loans_file: str, strategy_name: str, threshold: float, months: int) -> None:
    """Rank loans for repayment and flag high-interest and near-payoff loans."""
    loans = _load_portfolio(loans_file)
    analytics = build_loan_analytics(loans, Decimal(str(threshold)), months)
    if analytics.active_loans == 0:
        click.echo("No active loans.")
        return
    if strategy_name in ("avalanche", "both"):
        print_recommendations("Avalanche (highest rate first)", analytics.avalanche)
    if strategy_name in ("snowball", "both"):
        print_recommendations("Snowball (smallest balance first)", analytics.snowball)
    print_flagged(f"High interest (>= {threshold:g}%)", analytics.high_interest)
    print_flagged(f"Near payoff (<= {months} installments)", analytics.near_payoff)
    print_advice(recommend_strategy(analytics), analytics.total_interest)


if __name__ == "__main__":
    cli()
