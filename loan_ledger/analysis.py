"""Read-only analyses built on top of the projection and the ledger."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Iterable, Optional, Tuple

from .data_models import Loan, Payment, PaymentAdjustment, PaymentBreakdown, Projection
from .engine import current_balance, effective_minimum, sort_payments, split_on_date
from .errors import InvalidPaymentError
from .projection import ADJUSTMENT_CAP_MONTHS, ZERO, simulate_payoff
from .utils import months_between


def last_payment_breakdown(loan: Loan, projection: Projection, payments: Iterable[Payment]) -> Optional[PaymentBreakdown]:
    """Balance before and after the most recent payment, with its split."""
    ordered = sort_payments(loan, payments)
    if not ordered:
        return None
    last = ordered[-1]
    rate = projection.monthly_rate
    balance_before = current_balance(loan, ordered[:-1], rate)
    if last.has_split:
        principal, interest = last.principal_amount, last.interest_amount
    else:
        principal, interest = split_on_date(loan, balance_before, last.amount, last.payment_date, rate)
    if last.remaining_balance is not None:
        balance_after = max(ZERO, last.remaining_balance)
    else:
        balance_after = max(ZERO, balance_before - principal)
    return PaymentBreakdown(
        payment=last,
        balance_before=balance_before,
        balance_after=balance_after,
        principal_paid=principal,
        interest_paid=interest,
    )


def additional_spent_over_minimum(
    loan: Loan, projection: Projection, payments: Iterable[Payment], today: date
) -> Decimal:
    """How much more than the minimum has been paid up to ``today``.

    The expected minimum counts the start month, so a loan started this
    month expects one payment. Payments dated after ``today`` are ignored.
    """
    paid = [p for p in sort_payments(loan, payments) if p.payment_date <= today]
    if not paid:
        return ZERO
    total = sum((p.amount for p in paid), ZERO)
    months = max(1, months_between(today, loan.start_date) + 1)
    expected = effective_minimum(loan, projection) * Decimal(months)
    return max(ZERO, total - expected)


def payment_adjustment(
    loan: Loan,
    projection: Projection,
    payments: Iterable[Payment],
    adjusted_amount: Decimal,
    max_months: int = ADJUSTMENT_CAP_MONTHS,
) -> PaymentAdjustment:
    """Compare paying ``adjusted_amount`` instead of the scheduled payment.

    Both payoffs start from the balance the ledger has reached today.
    """
    if adjusted_amount <= 0:
        raise InvalidPaymentError(f"Adjusted payment must be greater than 0; got {adjusted_amount}")
    original_amount = projection.monthly_payment
    rate = projection.monthly_rate
    balance = current_balance(loan, payments, rate)

    original = simulate_payoff(balance, original_amount, rate, max_months)
    adjusted = simulate_payoff(balance, adjusted_amount, rate, max_months)

    return PaymentAdjustment(
        original_amount=original_amount,
        adjusted_amount=adjusted_amount,
        current_balance=balance,
        monthly_difference=adjusted_amount - original_amount,
        months_saved=max(0, original.months - adjusted.months),
        interest_saved=max(ZERO, original.total_interest - adjusted.total_interest),
        total_difference=original_amount * original.months - adjusted_amount * adjusted.months,
        original_payoff=original,
        adjusted_payoff=adjusted,
    )


def next_payment_split(loan: Loan, projection: Projection, payments: Iterable[Payment]) -> Tuple[Decimal, Decimal]:
    """``(interest, principal)`` of the next scheduled payment.

    The split is taken against the balance the ledger has reached, so with
    no payments recorded it is the first payment of the schedule.
    """
    balance = current_balance(loan, payments, projection.monthly_rate)
    if projection.monthly_payment <= 0 or balance <= 0:
        return ZERO, ZERO
    interest = min(balance * projection.monthly_rate, projection.monthly_payment)
    principal = min(projection.monthly_payment - interest, balance)
    return interest, principal
