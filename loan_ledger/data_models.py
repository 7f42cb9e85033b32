"""Data models for the loan ledger.

This module defines dataclasses for the two inputs of the engine (a loan and
its payments) and for everything the engine hands back: the projected curve,
the reconciled month-by-month schedule and the aggregate statistics. Inputs
are frozen because the payment ledger is append-only and a loan's terms do
not change while a schedule is being computed.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import List, Optional

from .loan_types import LoanType


@dataclass(frozen=True)
class Loan:
    """Terms of a borrowing agreement.

    Attributes
    ----------
    id: str
        Opaque identifier.
    principal: Decimal
        Amount borrowed. Must be positive.
    annual_interest_rate: Decimal
        Nominal annual rate in percent, in ``[0, 100]``.
    term_months: int
        Contractual term. ``0`` means the loan is open-ended (credit card,
        student loan) and is governed by ``minimum_payment`` instead.
    start_date: date
        Disbursement date. Month 0 of every schedule is this month.
    minimum_payment: Optional[Decimal]
        Policy floor for open-ended loans. A value that is not positive is
        treated as absent.
    """

    id: str
    principal: Decimal
    annual_interest_rate: Decimal
    term_months: int
    start_date: date
    minimum_payment: Optional[Decimal] = None
    name: str = ""
    loan_type: LoanType = LoanType.PERSONAL

    @property
    def has_minimum_payment(self) -> bool:
        return self.minimum_payment is not None and self.minimum_payment > 0

    @property
    def is_degenerate(self) -> bool:
        """No term and no minimum payment: an informational loan with no plan."""
        return self.term_months == 0 and not self.has_minimum_payment


@dataclass(frozen=True)
class Payment:
    """One recorded transaction against a loan.

    ``principal_amount`` and ``interest_amount`` are the split stored when the
    payment was recorded. They may be ``None`` for imported payments, in
    which case the engine computes the split itself. ``remaining_balance`` is
    the balance right after the payment as recorded at creation time.
    """

    id: str
    loan_id: str
    amount: Decimal
    payment_date: date
    principal_amount: Optional[Decimal] = None
    interest_amount: Optional[Decimal] = None
    remaining_balance: Optional[Decimal] = None
    is_extra_payment: bool = False
    notes: str = ""

    @property
    def has_split(self) -> bool:
        return self.principal_amount is not None and self.interest_amount is not None


@dataclass
class ProjectionEntry:
    """One month of the theoretical payoff curve."""

    month: int
    balance: Decimal
    interest: Decimal
    principal: Decimal
    cumulative_interest: Decimal


@dataclass
class Projection:
    """Result of the projection calculator.

    ``schedule`` may be shorter than the payoff when a rendering horizon was
    requested; ``total_interest`` and ``payoff_months`` always describe the
    full simulation. ``capped`` is set when an open-ended loan had not been
    paid off within the simulation ceiling, and ``interest_estimated`` when
    ``total_interest`` is the ``principal * rate * ceiling`` approximation
    rather than ``simulated_interest``, the interest accrued month by month.
    """

    monthly_payment: Decimal
    monthly_rate: Decimal
    schedule: List[ProjectionEntry]
    total_interest: Decimal
    simulated_interest: Decimal
    payoff_months: int
    capped: bool = False
    interest_estimated: bool = False

    def total_cost(self, principal: Decimal) -> Decimal:
        return principal + self.total_interest


@dataclass
class ScheduleEntry:
    """A reconciled month: projected values next to the actual balance.

    ``actual_payment`` is ``None`` when no payment was recorded in the month.
    ``actual_interest`` and ``actual_principal`` are the split of whatever was
    applied to the actual track that month (the recorded payments, or the
    assumed contractual payment when the ledger has a gap).
    """

    month: int
    date: date
    projected_balance: Decimal
    projected_interest: Decimal
    projected_principal: Decimal
    actual_balance: Decimal
    actual_payment: Optional[Decimal]
    actual_interest: Decimal = Decimal("0")
    actual_principal: Decimal = Decimal("0")


@dataclass
class LoanStats:
    """Lifetime totals derived from the payment ledger.

    ``ledger_balance`` is the ``remaining_balance`` of the most recent
    payment, shown next to ``remaining_balance`` (principal minus principal
    paid) without replacing it.
    """

    total_paid: Decimal = Decimal("0")
    principal_paid: Decimal = Decimal("0")
    interest_paid: Decimal = Decimal("0")
    remaining_balance: Decimal = Decimal("0")
    extra_payment_total: Decimal = Decimal("0")
    payment_count: int = 0
    average_payment: Decimal = Decimal("0")
    last_payment_date: Optional[date] = None
    ledger_balance: Optional[Decimal] = None


@dataclass
class Reconciliation:
    schedule: List[ScheduleEntry]
    stats: LoanStats

    @property
    def paid_off(self) -> bool:
        return bool(self.schedule) and self.schedule[-1].actual_balance <= 0


@dataclass
class PayoffEstimate:
    months: int
    total_interest: Decimal
    paid_off: bool


@dataclass
class PaymentAdjustment:
    """Impact of changing the monthly payment from the current balance on."""

    original_amount: Decimal
    adjusted_amount: Decimal
    current_balance: Decimal
    monthly_difference: Decimal
    months_saved: int
    interest_saved: Decimal
    total_difference: Decimal
    original_payoff: PayoffEstimate
    adjusted_payoff: PayoffEstimate


@dataclass
class PaymentBreakdown:
    payment: Payment
    balance_before: Decimal
    balance_after: Decimal
    principal_paid: Decimal
    interest_paid: Decimal
