"""EMI (equated periodic installment) calculations.

Two interest conventions are supported:

* reducing balance, using the annuity formula

      EMI = P * r * (1 + r)^N / ((1 + r)^N - 1)

  where ``r`` is the periodic rate and ``N`` the number of installments;
* flat rate, where the interest for the whole term is charged on the
  original principal and spread evenly over the installments.

Tenure is always expressed in months and converted to the installment count
that matches the payment frequency. Degenerate inputs (no principal, no
tenure) yield an installment of zero rather than an exception.
"""

from __future__ import annotations

import logging
import math
from decimal import Decimal, getcontext

from .data_models import CalculationMethod, LoanRecord, PaymentFrequency
from .utils import round_currency

getcontext().prec = 28  # increase precision for financial calculations

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def periods_per_year(frequency: PaymentFrequency) -> int:
    return PaymentFrequency(frequency).periods_per_year


def total_periods(tenure_months: int, frequency: PaymentFrequency) -> int:
    """Return the number of installments covering ``tenure_months``.

    Quarterly and yearly loans round partial periods up, so a 10-month loan
    repaid quarterly has 4 installments.
    """
    frequency = PaymentFrequency(frequency)
    if frequency == PaymentFrequency.MONTHLY:
        return tenure_months
    return math.ceil(tenure_months / frequency.months_per_period)


def periodic_rate(annual_rate: Decimal, frequency: PaymentFrequency) -> Decimal:
    """Convert a nominal annual percentage into a per-installment fraction."""
    return annual_rate / (Decimal(100) * periods_per_year(frequency))


def calculate_emi_reducing(
    principal: Decimal,
    annual_rate: Decimal,
    tenure_months: int,
    frequency: PaymentFrequency = PaymentFrequency.MONTHLY,
) -> Decimal:
    """Return the reducing-balance installment, rounded to cents.

    When the interest rate is zero the payment simplifies to ``P / N``.
    """
    if principal <= 0 or tenure_months <= 0:
        return ZERO
    periods = total_periods(tenure_months, frequency)
    if annual_rate == 0:
        return round_currency(principal / Decimal(periods))

    rate = periodic_rate(annual_rate, frequency)
    factor = (1 + rate) ** periods
    return round_currency(principal * rate * factor / (factor - 1))


def calculate_emi_flat(
    principal: Decimal,
    annual_rate: Decimal,
    tenure_months: int,
    frequency: PaymentFrequency = PaymentFrequency.MONTHLY,
) -> Decimal:
    """Return the flat-rate installment, rounded to cents.

    Total interest is ``P * rate * (tenure / 12) / 100`` regardless of the
    frequency; only the number of installments it is spread over changes.
    """
    if principal <= 0 or tenure_months <= 0:
        return ZERO
    periods = total_periods(tenure_months, frequency)
    total_interest = principal * annual_rate * (Decimal(tenure_months) / 12) / 100
    return round_currency((principal + total_interest) / Decimal(periods))


def calculate_emi(loan: LoanRecord) -> Decimal:
    """Compute the installment for ``loan`` on its outstanding principal."""
    principal = loan.remaining_principal
    if loan.calculation_method == CalculationMethod.FLAT:
        emi = calculate_emi_flat(principal, loan.interest_rate, loan.tenure, loan.payment_frequency)
    else:
        emi = calculate_emi_reducing(principal, loan.interest_rate, loan.tenure, loan.payment_frequency)
    if emi == 0:
        logger.debug("Loan %s has no installment (principal=%s, tenure=%s)", loan.id, principal, loan.tenure)
    return emi


def resolve_emi(loan: LoanRecord) -> Decimal:
    """Return the memoized installment if set, otherwise compute it."""
    return loan.emi_amount or calculate_emi(loan)
