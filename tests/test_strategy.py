from decimal import Decimal

from loan_tracker.analytics import calculate_total_interest
from loan_tracker.strategy import (
    build_loan_analytics,
    calculate_total_interest_all_loans,
    get_debt_avalanche_recommendations,
    get_debt_snowball_recommendations,
    get_high_interest_loans,
    get_loans_near_payoff,
    recommend_strategy,
)


def _portfolio(make_loan):
    return [
        make_loan(id="low", name="Low", interest_rate="5", total_amount="30000"),
        make_loan(id="high", name="High", interest_rate="18", total_amount="8000", paid_amount="2000"),
        make_loan(id="mid", name="Mid", interest_rate="9", total_amount="4000"),
        make_loan(id="done", name="Done", interest_rate="24", total_amount="1000", paid_amount="1000"),
    ]


def test_avalanche_ranks_highest_rate_first(make_loan):
    recs = get_debt_avalanche_recommendations(_portfolio(make_loan))

    assert [r.loan_id for r in recs] == ["high", "mid", "low"]
    assert [r.priority for r in recs] == [1, 2, 3]
    assert recs[0].reason.startswith("18% interest rate - paying this first saves ₹")
    assert recs[2].potential_savings == calculate_total_interest(_portfolio(make_loan)[0]).quantize(Decimal("0.01"))


def test_snowball_ranks_smallest_balance_first(make_loan):
    recs = get_debt_snowball_recommendations(_portfolio(make_loan))

    assert [r.loan_id for r in recs] == ["mid", "high", "low"]
    assert [r.priority for r in recs] == [1, 2, 3]
    assert recs[0].reason == "Smallest balance (₹4000) - quick win builds momentum"
    assert recs[1].reason.startswith("Smallest balance (₹6000)")
    assert all(r.potential_savings is None for r in recs)


def test_ties_keep_input_order(make_loan):
    loans = [
        make_loan(id="first", interest_rate="10"),
        make_loan(id="second", interest_rate="10"),
        make_loan(id="third", interest_rate="10"),
    ]
    assert [r.loan_id for r in get_debt_avalanche_recommendations(loans)] == ["first", "second", "third"]
    assert [r.loan_id for r in get_debt_snowball_recommendations(loans)] == ["first", "second", "third"]


def test_avalanche_scenario_priorities(make_loan):
    loans = [make_loan(id=f"r{rate}", interest_rate=rate) for rate in ("5", "18", "9")]
    recs = get_debt_avalanche_recommendations(loans)
    assert [r.loan_id for r in recs] == ["r18", "r9", "r5"]
    assert [r.priority for r in recs] == [1, 2, 3]


def test_fully_paid_loans_are_excluded_everywhere(make_loan):
    settled = make_loan(id="done", interest_rate="30", paid_amount="10000", emi_amount="5000")
    loans = [settled, make_loan(id="open")]

    assert "done" not in [r.loan_id for r in get_debt_avalanche_recommendations(loans)]
    assert "done" not in [r.loan_id for r in get_debt_snowball_recommendations(loans)]
    assert settled not in get_high_interest_loans(loans)
    assert settled not in get_loans_near_payoff(loans, months_threshold=100)


def test_high_interest_threshold(make_loan):
    loans = [
        make_loan(id="a", interest_rate="5"),
        make_loan(id="b", interest_rate="10"),
        make_loan(id="c", interest_rate="18"),
    ]
    assert [loan.id for loan in get_high_interest_loans(loans)] == ["c", "b"]
    assert [loan.id for loan in get_high_interest_loans(loans, threshold=Decimal("15"))] == ["c"]


def test_loans_near_payoff(make_loan):
    loans = [
        make_loan(id="two", total_amount="1000", emi_amount="500"),
        make_loan(id="four", total_amount="2000", emi_amount="500"),
        make_loan(id="one", total_amount="300", emi_amount="500"),
    ]
    assert [loan.id for loan in get_loans_near_payoff(loans)] == ["one", "two"]
    assert [loan.id for loan in get_loans_near_payoff(loans, months_threshold=4)] == ["one", "two", "four"]


def test_total_interest_all_loans(make_loan):
    loans = [make_loan(id="a"), make_loan(id="b"), make_loan(id="c", paid_amount="10000")]
    assert calculate_total_interest_all_loans(loans) == Decimal("1323.76")


def test_rankings_are_deterministic(make_loan):
    loans = _portfolio(make_loan)
    assert get_debt_avalanche_recommendations(loans) == get_debt_avalanche_recommendations(loans)
    assert [loan.id for loan in loans] == ["low", "high", "mid", "done"]


def test_build_loan_analytics(make_loan):
    analytics = build_loan_analytics(_portfolio(make_loan), threshold=Decimal("9"), months_threshold=3)

    assert analytics.total_loans == 4
    assert analytics.active_loans == 3
    assert [loan.id for loan in analytics.high_interest] == ["high", "mid"]
    assert analytics.near_payoff == []
    assert analytics.total_interest == calculate_total_interest_all_loans(_portfolio(make_loan))


def test_recommend_avalanche_for_large_high_interest_debt(make_loan):
    loans = [make_loan(id="big", interest_rate="18", total_amount="1000000", tenure=60)]
    advice = recommend_strategy(build_loan_analytics(loans))
    assert advice.strategy == "avalanche"
    assert advice.priority_loan_id == "big"


def test_recommend_snowball_for_small_debts(make_loan):
    loans = [
        make_loan(id="bigger", total_amount="8000", interest_rate="12"),
        make_loan(id="smaller", total_amount="3000", interest_rate="6"),
    ]
    advice = recommend_strategy(build_loan_analytics(loans))
    assert advice.strategy == "snowball"
    assert advice.priority_loan_id == "smaller"


def test_recommend_balanced_without_active_loans(make_loan):
    advice = recommend_strategy(build_loan_analytics([make_loan(paid_amount="10000")]))
    assert advice.strategy == "balanced"
    assert advice.priority_loan_id is None
