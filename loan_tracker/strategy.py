"""Debt repayment strategies.

Rankings only consider active loans (``total_amount > paid_amount``). Sorting
is stable, so loans that tie keep the order they were supplied in, and no
function here depends on the current date.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import List, Sequence

from .analytics import calculate_remaining_tenure, calculate_total_interest
from .data_models import DebtRecommendation, LoanAnalytics, LoanRecord, StrategyAdvice
from .utils import format_rate, round_currency, round_whole

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
DEFAULT_HIGH_INTEREST_THRESHOLD = Decimal("10")
DEFAULT_NEAR_PAYOFF_MONTHS = 3
DEFAULT_SAVINGS_THRESHOLD = Decimal("10000")


def _active(loans: Sequence[LoanRecord]) -> List[LoanRecord]:
    return [loan for loan in loans if loan.is_active]


def get_debt_avalanche_recommendations(loans: Sequence[LoanRecord]) -> List[DebtRecommendation]:
    """Rank active loans highest interest rate first.

    Paying the most expensive debt first minimises the total interest paid.
    Each recommendation carries the loan's remaining interest as the savings
    from prioritising it.
    """
    ranked = sorted(_active(loans), key=lambda loan: loan.interest_rate, reverse=True)
    recommendations = []
    for priority, loan in enumerate(ranked, start=1):
        total_interest = round_currency(calculate_total_interest(loan))
        recommendations.append(
            DebtRecommendation(
                loan_id=loan.id,
                loan_name=loan.name,
                priority=priority,
                reason=(
                    f"{format_rate(loan.interest_rate)}% interest rate - paying this first "
                    f"saves ₹{round_whole(total_interest)} in interest"
                ),
                potential_savings=total_interest,
            )
        )
    return recommendations


def get_debt_snowball_recommendations(loans: Sequence[LoanRecord]) -> List[DebtRecommendation]:
    """Rank active loans smallest remaining balance first."""
    ranked = sorted(_active(loans), key=lambda loan: loan.remaining_principal)
    return [
        DebtRecommendation(
            loan_id=loan.id,
            loan_name=loan.name,
            priority=priority,
            reason=f"Smallest balance (₹{round_whole(loan.remaining_principal)}) - quick win builds momentum",
        )
        for priority, loan in enumerate(ranked, start=1)
    ]


def get_high_interest_loans(
    loans: Sequence[LoanRecord],
    threshold: Decimal = DEFAULT_HIGH_INTEREST_THRESHOLD,
) -> List[LoanRecord]:
    """Return active loans with a rate at or above ``threshold``, highest first."""
    flagged = [loan for loan in _active(loans) if loan.interest_rate >= threshold]
    return sorted(flagged, key=lambda loan: loan.interest_rate, reverse=True)


def get_loans_near_payoff(
    loans: Sequence[LoanRecord],
    months_threshold: int = DEFAULT_NEAR_PAYOFF_MONTHS,
) -> List[LoanRecord]:
    """Return active loans with 1 to ``months_threshold`` installments left, fewest first."""
    tenures = [(calculate_remaining_tenure(loan), loan) for loan in _active(loans)]
    near = [(tenure, loan) for tenure, loan in tenures if 0 < tenure <= months_threshold]
    near.sort(key=lambda item: item[0])
    return [loan for _, loan in near]


def calculate_total_interest_all_loans(loans: Sequence[LoanRecord]) -> Decimal:
    return round_currency(sum((calculate_total_interest(loan) for loan in _active(loans)), ZERO))


def build_loan_analytics(
    loans: Sequence[LoanRecord],
    threshold: Decimal = DEFAULT_HIGH_INTEREST_THRESHOLD,
    months_threshold: int = DEFAULT_NEAR_PAYOFF_MONTHS,
) -> LoanAnalytics:
    """Bundle both strategy rankings and both flags for a portfolio."""
    analytics = LoanAnalytics(
        avalanche=get_debt_avalanche_recommendations(loans),
        snowball=get_debt_snowball_recommendations(loans),
        high_interest=get_high_interest_loans(loans, threshold),
        near_payoff=get_loans_near_payoff(loans, months_threshold),
        total_interest=calculate_total_interest_all_loans(loans),
        total_loans=len(loans),
        active_loans=len(_active(loans)),
    )
    logger.debug(
        "Analytics for %d loans: %d active, %d high interest, %d near payoff",
        analytics.total_loans,
        analytics.active_loans,
        len(analytics.high_interest),
        len(analytics.near_payoff),
    )
    return analytics


def recommend_strategy(
    analytics: LoanAnalytics,
    savings_threshold: Decimal = DEFAULT_SAVINGS_THRESHOLD,
) -> StrategyAdvice:
    """Pick the repayment strategy to suggest for a portfolio.

    Avalanche is suggested when high-interest loans exist and the average
    interest saved per loan exceeds ``savings_threshold``; otherwise snowball,
    for momentum, as long as any loan is active.
    """
    if analytics.active_loans == 0:
        return StrategyAdvice(strategy="balanced", reason="No active loans")

    if analytics.avalanche:
        total_savings = sum((r.potential_savings or ZERO for r in analytics.avalanche), ZERO)
        average_savings = total_savings / len(analytics.avalanche)
    else:
        average_savings = ZERO

    if analytics.high_interest and average_savings > savings_threshold:
        return StrategyAdvice(
            strategy="avalanche",
            reason=f"Focus on high-interest loans to save ₹{round_whole(average_savings)} per loan",
            priority_loan_id=analytics.avalanche[0].loan_id,
        )

    if analytics.snowball:
        return StrategyAdvice(
            strategy="snowball",
            reason="Pay off smallest loans first to build momentum and reduce monthly obligations",
            priority_loan_id=analytics.snowball[0].loan_id,
        )

    return StrategyAdvice(strategy="balanced", reason="Maintain current payment strategy")
