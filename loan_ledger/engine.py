"""Reconciliation engine for the loan ledger.

This module merges a loan's projected payoff curve with its ledger of actual
payments. ``reconcile`` walks the projection's month axis and carries two
balance tracks side by side: the projected track, which never looks at real
payments, and the actual track, which folds in whatever was paid in each
calendar month and otherwise assumes the scheduled payment was made.
Lifetime totals are computed separately by ``compute_stats`` from the
payments themselves.

Every function here is a pure computation over its arguments: payments are
only read, and nothing is cached between calls.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple
from uuid import uuid4

from .data_models import Loan, LoanStats, Payment, Projection, Reconciliation, ScheduleEntry
from .errors import InvalidPaymentError
from .projection import PAYOFF_TOLERANCE, ZERO, advance_balance, validate_loan
from .utils import add_months, months_between


def sort_payments(loan: Loan, payments: Iterable[Payment]) -> List[Payment]:
    """Return the loan's payments in date order.

    The sort is stable, so payments sharing a date keep their recording
    order and the last one is the most recent.
    """
    relevant = [p for p in payments if p.loan_id == loan.id]
    return sorted(relevant, key=lambda p: p.payment_date)


def payment_month(loan: Loan, payment: Payment) -> int:
    """Month offset of ``payment`` from the loan's start; earlier dates map to 0."""
    return max(0, months_between(payment.payment_date, loan.start_date))


def bucket_payments(loan: Loan, payments: Iterable[Payment]) -> Dict[int, List[Payment]]:
    """Group payments by month offset, each bucket in date order."""
    mapping: Dict[int, List[Payment]] = {}
    for payment in sort_payments(loan, payments):
        mapping.setdefault(payment_month(loan, payment), []).append(payment)
    return mapping


def split_amount(balance: Decimal, amount: Decimal, rate_per_month: Decimal) -> Tuple[Decimal, Decimal]:
    """Split ``amount`` into ``(principal, interest)`` against ``balance``.

    Interest is paid first, up to one month's accrual; the rest is principal.
    The two parts always add up to ``amount``.
    """
    interest = min(balance * rate_per_month, amount)
    return amount - interest, interest


def split_on_date(
    loan: Loan, balance: Decimal, amount: Decimal, payment_date: date, rate_per_month: Decimal
) -> Tuple[Decimal, Decimal]:
    """``split_amount`` for a payment made on ``payment_date``.

    Nothing has accrued in the disbursement month, so a payment dated then
    is all principal, the same way ``reconcile`` applies it.
    """
    if months_between(payment_date, loan.start_date) <= 0:
        return amount, ZERO
    return split_amount(balance, amount, rate_per_month)


def _apply_month_payments(
    balance: Decimal, month: int, amount: Decimal, rate_per_month: Decimal
) -> Tuple[Decimal, Decimal, Decimal]:
    """Fold one month's total payments into the actual balance.

    Month 0 is the disbursement month: nothing has accrued yet, so a payment
    made then goes entirely to principal.
    """
    if month == 0:
        interest = ZERO
        principal = min(amount, balance)
    else:
        interest_owed = balance * rate_per_month
        interest = min(interest_owed, amount)
        principal = min(max(ZERO, amount - interest_owed), balance)
    return balance - principal, interest, principal


def reconcile(loan: Loan, projection: Projection, payments: Iterable[Payment]) -> Reconciliation:
    """Merge ``projection`` with the recorded ``payments`` of ``loan``.

    Parameters
    ----------
    loan: Loan
        The loan the payments belong to. Payments for other loans are ignored.
    projection: Projection
        Output of ``compute_projection`` for the same loan. Its schedule fixes
        the month axis and supplies the projected columns unchanged.
    payments: Iterable[Payment]
        The ledger, in any order. It is read once and never modified.

    Returns
    -------
    Reconciliation
        The merged schedule and the lifetime statistics. The schedule stops
        at the projection's last month, or earlier at the first month whose
        actual balance reaches zero.

    Notes
    -----
    In a month with recorded payments their amounts are summed and split
    against the actual balance; the ``remaining_balance`` recorded on the
    month's most recent payment then replaces the simulated balance. In a
    month without payments the actual balance advances by the scheduled
    payment exactly like the projected track, so with an empty ledger both
    tracks are identical.
    """
    validate_loan(loan)
    payments = list(payments)
    rate = projection.monthly_rate
    buckets = bucket_payments(loan, payments)

    schedule: List[ScheduleEntry] = []
    actual_balance = loan.principal
    for projected in projection.schedule:
        month = projected.month
        month_payments = buckets.get(month)
        actual_payment: Optional[Decimal] = None
        interest = ZERO
        principal = ZERO
        if month_payments:
            actual_payment = sum((p.amount for p in month_payments), ZERO)
            actual_balance, interest, principal = _apply_month_payments(
                actual_balance, month, actual_payment, rate
            )
            recorded = month_payments[-1].remaining_balance
            if recorded is not None:
                actual_balance = max(ZERO, recorded)
            if actual_balance < PAYOFF_TOLERANCE:
                actual_balance = ZERO
        elif month > 0:
            actual_balance, interest, principal = advance_balance(
                actual_balance, projection.monthly_payment, rate
            )

        schedule.append(
            ScheduleEntry(
                month=month,
                date=add_months(loan.start_date, month),
                projected_balance=projected.balance,
                projected_interest=projected.interest,
                projected_principal=projected.principal,
                actual_balance=actual_balance,
                actual_payment=actual_payment,
                actual_interest=interest,
                actual_principal=principal,
            )
        )
        if actual_balance <= 0:
            break

    return Reconciliation(schedule=schedule, stats=compute_stats(loan, projection, payments))


def effective_minimum(loan: Loan, projection: Projection) -> Decimal:
    """The payment a month is measured against when deciding what is extra."""
    if loan.has_minimum_payment:
        return loan.minimum_payment
    return projection.monthly_payment


def compute_stats(loan: Loan, projection: Projection, payments: Iterable[Payment]) -> LoanStats:
    """Lifetime totals over the whole payment ledger.

    Stored principal/interest splits are trusted as recorded. A payment that
    was imported without a split gets one computed against the balance the
    ledger has reached by then, so ``total_paid`` always equals
    ``principal_paid + interest_paid``.
    """
    minimum = effective_minimum(loan, projection)
    stats = LoanStats()
    balance = loan.principal
    ordered = sort_payments(loan, payments)
    for payment in ordered:
        if payment.has_split:
            principal, interest = payment.principal_amount, payment.interest_amount
        else:
            principal, interest = split_on_date(
                loan, balance, payment.amount, payment.payment_date, projection.monthly_rate
            )
        balance = max(ZERO, balance - principal)

        stats.total_paid += payment.amount
        stats.principal_paid += principal
        stats.interest_paid += interest
        stats.payment_count += 1
        if payment.is_extra_payment:
            stats.extra_payment_total += max(ZERO, payment.amount - minimum)

    stats.remaining_balance = max(ZERO, loan.principal - stats.principal_paid)
    if ordered:
        stats.average_payment = stats.total_paid / Decimal(stats.payment_count)
        stats.last_payment_date = ordered[-1].payment_date
        if ordered[-1].remaining_balance is not None:
            stats.ledger_balance = max(ZERO, ordered[-1].remaining_balance)
    return stats


def current_balance(loan: Loan, payments: Iterable[Payment], rate_per_month: Decimal) -> Decimal:
    """Balance after the whole ledger.

    The most recent payment's recorded ``remaining_balance`` wins; payments
    without one are replayed from the principal.
    """
    balance = loan.principal
    for payment in sort_payments(loan, payments):
        if payment.remaining_balance is not None:
            balance = max(ZERO, payment.remaining_balance)
            continue
        if payment.has_split:
            principal = payment.principal_amount
        else:
            principal, _ = split_on_date(loan, balance, payment.amount, payment.payment_date, rate_per_month)
        balance = max(ZERO, balance - principal)
    return balance


def validate_payment(amount: Decimal, payment_date: date, today: date) -> None:
    """Reject a payment about to be recorded.

    ``today`` is passed in by the caller rather than read from the system
    clock.
    """
    if amount <= 0:
        raise InvalidPaymentError(f"Payment amount must be greater than 0; got {amount}")
    if payment_date > today:
        raise InvalidPaymentError(f"Payment date cannot be in the future: {payment_date.isoformat()}")


def split_payment(
    loan: Loan,
    projection: Projection,
    payments: Iterable[Payment],
    amount: Decimal,
    payment_date: date,
    payment_id: Optional[str] = None,
    notes: str = "",
) -> Payment:
    """Build the ``Payment`` record for a new payment of ``amount``.

    The split is taken against the balance the existing ledger has reached,
    interest first. The new payment is flagged as extra when it exceeds the
    loan's minimum payment (or, for fixed-term loans, the scheduled monthly
    payment).
    """
    rate = projection.monthly_rate
    balance = current_balance(loan, payments, rate)
    principal, interest = split_on_date(loan, balance, amount, payment_date, rate)
    minimum = effective_minimum(loan, projection)
    return Payment(
        id=payment_id or uuid4().hex,
        loan_id=loan.id,
        amount=amount,
        payment_date=payment_date,
        principal_amount=principal,
        interest_amount=interest,
        remaining_balance=max(ZERO, balance - principal),
        is_extra_payment=minimum > 0 and amount > minimum,
        notes=notes,
    )
