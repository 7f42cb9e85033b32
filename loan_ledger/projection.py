"""Projection calculator.

Given a loan's terms alone, this module derives the theoretical monthly
payment and the month-by-month payoff curve, assuming every payment is made
exactly as scheduled. Three kinds of loans are handled:

* fixed-term loans (``term_months > 0``) use the annuity formula;
* open-ended loans (a ``minimum_payment`` is set) pay the minimum every month
  and are simulated up to ``SIMULATION_CAP_MONTHS``;
* degenerate loans (neither) have no payment plan and a single month-0 entry.

The per-month step lives in ``advance_balance`` so that the reconciliation
engine can move its actual-balance track with exactly the same arithmetic.
"""

from __future__ import annotations

from decimal import Decimal, getcontext
from typing import List, Optional, Tuple

from .data_models import Loan, PayoffEstimate, Projection, ProjectionEntry
from .errors import InvalidLoanError, InvalidTermError

getcontext().prec = 28  # increase precision for financial calculations

ZERO = Decimal("0")

# Open-ended loans are simulated for at most 25 years.
SIMULATION_CAP_MONTHS = 300

# Display cap for fixed-term charts; does not change the payoff math.
CHART_HORIZON_MONTHS = 60

# Payment adjustment comparisons look up to 50 years ahead.
ADJUSTMENT_CAP_MONTHS = 600

# Balances below half a cent are treated as paid off.
PAYOFF_TOLERANCE = Decimal("0.005")


def monthly_rate(annual_interest_rate: Decimal) -> Decimal:
    """Convert an annual percentage rate into a monthly decimal rate."""
    return annual_interest_rate / Decimal(100) / Decimal(12)


def validate_loan(loan: Loan) -> None:
    """Reject loans for which no amortization can be computed."""
    if loan.principal <= 0:
        raise InvalidLoanError(f"Principal must be positive; got {loan.principal}")
    if not ZERO <= loan.annual_interest_rate <= Decimal(100):
        raise InvalidLoanError(
            f"Annual interest rate must be between 0 and 100; got {loan.annual_interest_rate}"
        )
    if loan.term_months < 0:
        raise InvalidTermError(f"Term cannot be negative; got {loan.term_months}")


def annuity_payment(principal: Decimal, rate_per_month: Decimal, term: int) -> Decimal:
    """Return the annuity (equal installment) monthly payment for a loan.

    The formula is:

        payment = P * (i * (1 + i)^n) / ((1 + i)^n - 1)

    where ``P`` is the principal, ``i`` is the monthly interest rate and
    ``n`` is the number of payments. When the interest rate is zero, the
    payment simplifies to ``P / n``.
    """
    if term <= 0:
        raise InvalidTermError(f"Term must be positive for an installment loan; got {term}")
    if rate_per_month == 0:
        return principal / Decimal(term)
    factor = (1 + rate_per_month) ** term
    return principal * (rate_per_month * factor) / (factor - 1)


def monthly_payment_for(loan: Loan) -> Decimal:
    """The payment the loan's terms call for each month.

    A minimum payment takes precedence over a term; a loan with neither has
    no computed payment.
    """
    if loan.has_minimum_payment:
        return loan.minimum_payment
    if loan.term_months > 0:
        return annuity_payment(loan.principal, monthly_rate(loan.annual_interest_rate), loan.term_months)
    return ZERO


def advance_balance(balance: Decimal, payment: Decimal, rate_per_month: Decimal) -> Tuple[Decimal, Decimal, Decimal]:
    """Apply one month of interest and one payment to ``balance``.

    Returns ``(new_balance, interest, principal)``. Interest is charged on
    the opening balance; whatever the payment leaves after interest goes to
    principal, never less than zero and never more than the balance. A
    payment smaller than the interest leaves the balance unchanged.
    """
    interest = balance * rate_per_month
    principal = min(max(ZERO, payment - interest), balance)
    new_balance = balance - principal
    if new_balance < PAYOFF_TOLERANCE:
        new_balance = ZERO
        principal = balance
    return new_balance, interest, principal


def compute_projection(loan: Loan, horizon: Optional[int] = None) -> Projection:
    """Compute the monthly payment and projected payoff curve for ``loan``.

    Parameters
    ----------
    loan: Loan
        The loan terms. Payments are never consulted.
    horizon: Optional[int]
        Rendering cap in months. The returned schedule stops at this month,
        but ``total_interest`` and ``payoff_months`` still describe the whole
        simulation.

    Returns
    -------
    Projection
        Month 0 carries the full principal and no payment; months
        ``1..payoff`` follow. Fixed-term schedules never run past
        ``term_months``; open-ended ones never past ``SIMULATION_CAP_MONTHS``.

    Notes
    -----
    When an open-ended loan is still unpaid at the simulation cap,
    ``total_interest`` is *estimated* as ``principal * rate * cap`` (the
    interest-only cost of carrying the original balance for the whole cap)
    and ``interest_estimated`` is set. This is a deliberate approximation,
    not a projection; the simulated accrual remains available as
    ``simulated_interest`` and in each entry's ``cumulative_interest``.
    """
    validate_loan(loan)
    rate = monthly_rate(loan.annual_interest_rate)
    payment = monthly_payment_for(loan)

    if loan.has_minimum_payment:
        max_months = SIMULATION_CAP_MONTHS
    else:
        max_months = loan.term_months

    balance = loan.principal
    total_interest = ZERO
    entries: List[ProjectionEntry] = [
        ProjectionEntry(month=0, balance=balance, interest=ZERO, principal=ZERO, cumulative_interest=ZERO)
    ]
    month = 0
    while month < max_months and balance > 0:
        month += 1
        balance, interest, principal = advance_balance(balance, payment, rate)
        total_interest += interest
        entries.append(
            ProjectionEntry(
                month=month,
                balance=balance,
                interest=interest,
                principal=principal,
                cumulative_interest=total_interest,
            )
        )

    capped = loan.has_minimum_payment and balance > 0
    simulated_interest = total_interest
    if capped:
        total_interest = loan.principal * rate * Decimal(SIMULATION_CAP_MONTHS)

    if horizon is not None:
        entries = [e for e in entries if e.month <= max(0, horizon)]

    return Projection(
        monthly_payment=payment,
        monthly_rate=rate,
        schedule=entries,
        total_interest=total_interest,
        simulated_interest=simulated_interest,
        payoff_months=month,
        capped=capped,
        interest_estimated=capped,
    )


def simulate_payoff(
    balance: Decimal,
    payment: Decimal,
    rate_per_month: Decimal,
    max_months: int = ADJUSTMENT_CAP_MONTHS,
) -> PayoffEstimate:
    """Count the months and interest needed to clear ``balance`` at ``payment``."""
    if payment <= 0 or balance <= 0:
        return PayoffEstimate(months=0, total_interest=ZERO, paid_off=balance <= 0)
    months = 0
    total_interest = ZERO
    while balance > 0 and months < max_months:
        balance, interest, _ = advance_balance(balance, payment, rate_per_month)
        total_interest += interest
        months += 1
    return PayoffEstimate(months=months, total_interest=total_interest, paid_off=balance <= 0)
