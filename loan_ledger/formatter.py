"""Output helpers for the loan ledger.

This module provides simple functions to render projections, reconciled
schedules and statistics in a tabular text format. We rely only on built-in
printing and string formatting.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Optional

from .data_models import (
    Loan,
    LoanStats,
    PaymentAdjustment,
    PaymentBreakdown,
    Projection,
    ProjectionEntry,
    ScheduleEntry,
)
from .loan_types import LoanType


def print_projection_summary(loan: Loan, projection: Projection) -> None:
    """Print the monthly payment and lifetime cost of a loan's terms."""
    print("Projection")
    print("-" * 72)
    print(f"Loan type          : {loan.loan_type.info.label}")
    print(f"Principal          : {loan.principal:.2f}")
    print(f"Monthly payment    : {projection.monthly_payment:.2f}")
    print(f"Total interest     : {projection.total_interest:.2f}")
    print(f"Total cost         : {projection.total_cost(loan.principal):.2f}")
    print(f"Payoff months      : {projection.payoff_months}")
    if projection.interest_estimated:
        # The minimum payment does not clear the balance within the cap
        print(f"Note               : not paid off after {projection.payoff_months} months; "
              "total interest is an interest-only estimate")
    print("-" * 72)


def print_projection(entries: Iterable[ProjectionEntry]) -> None:
    headers = ["Month", "Balance", "Interest", "Principal", "CumInterest"]
    print("\t".join(headers))
    for entry in entries:
        row = [
            str(entry.month),
            f"{entry.balance:.2f}",
            f"{entry.interest:.2f}",
            f"{entry.principal:.2f}",
            f"{entry.cumulative_interest:.2f}",
        ]
        print("\t".join(row))


def print_stats(stats: LoanStats) -> None:
    """Print lifetime payment statistics in a human-readable format."""
    print("Statistics")
    print("-" * 72)
    print(f"Payments recorded  : {stats.payment_count}")
    print(f"Total paid         : {stats.total_paid:.2f}")
    if stats.last_payment_date is not None:
        print(f"Average payment    : {stats.average_payment:.2f}")
        print(f"Last payment date  : {stats.last_payment_date.isoformat()}")
    print(f"Principal paid     : {stats.principal_paid:.2f}")
    print(f"Interest paid      : {stats.interest_paid:.2f}")
    print(f"Remaining balance  : {stats.remaining_balance:.2f}")
    if stats.ledger_balance is not None:
        print(f"Last recorded bal. : {stats.ledger_balance:.2f}")
    if stats.extra_payment_total:
        print(f"Extra payments     : {stats.extra_payment_total:.2f}")
    print("-" * 72)


def print_schedule(schedule: Iterable[ScheduleEntry]) -> None:
    """Print the reconciled schedule as a simple table.

    Months without a recorded payment show ``-`` in the ``Paid`` column.
    """
    headers = ["Month", "Date", "ProjBal", "ProjInt", "ProjPrin", "Paid", "ActualBal"]
    print("\t".join(headers))
    for entry in schedule:
        paid = "-" if entry.actual_payment is None else f"{entry.actual_payment:.2f}"
        row = [
            str(entry.month),
            entry.date.strftime("%Y-%m"),
            f"{entry.projected_balance:.2f}",
            f"{entry.projected_interest:.2f}",
            f"{entry.projected_principal:.2f}",
            paid,
            f"{entry.actual_balance:.2f}",
        ]
        print("\t".join(row))


def print_breakdown(breakdown: Optional[PaymentBreakdown], over_minimum: Decimal) -> None:
    if breakdown is None:
        print("No payments recorded.")
        return
    payment = breakdown.payment
    print(f"Last payment       : {payment.amount:.2f} on {payment.payment_date.isoformat()}")
    print(f"  Balance before   : {breakdown.balance_before:.2f}")
    print(f"  Interest         : {breakdown.interest_paid:.2f}")
    print(f"  Principal        : {breakdown.principal_paid:.2f}")
    print(f"  Balance after    : {breakdown.balance_after:.2f}")
    print(f"Paid over minimum  : {over_minimum:.2f}")


def print_adjustment(adjustment: PaymentAdjustment) -> None:
    """Print the effect of changing the monthly payment side by side."""
    print("Payment adjustment")
    print("=" * 72)
    print(f"{'Metric':20s} {'Current':>15s} {'Adjusted':>15s}")
    print(f"{'monthly_payment':20s} {adjustment.original_amount:15.2f} {adjustment.adjusted_amount:15.2f}")
    print(f"{'payoff_months':20s} {adjustment.original_payoff.months:15d} {adjustment.adjusted_payoff.months:15d}")
    print(
        f"{'total_interest':20s} {adjustment.original_payoff.total_interest:15.2f} "
        f"{adjustment.adjusted_payoff.total_interest:15.2f}"
    )
    print("=" * 72)
    print(f"Starting balance   : {adjustment.current_balance:.2f}")
    print(f"Months saved       : {adjustment.months_saved}")
    print(f"Interest saved     : {adjustment.interest_saved:.2f}")
    print(f"Total difference   : {adjustment.total_difference:.2f}")


def print_loan_types() -> None:
    print(f"{'Type':14s} {'Label':18s} {'Term':>5s} {'Collat.':>8s} {'MinPay':>7s}")
    for loan_type in LoanType:
        info = loan_type.info
        print(
            f"{loan_type.value:14s} {info.label:18s} "
            f"{'yes' if info.has_term else 'no':>5s} "
            f"{'yes' if info.has_collateral else 'no':>8s} "
            f"{'yes' if info.needs_minimum_payment else 'no':>7s}"
        )


def print_next_payment(interest: Decimal, principal: Decimal) -> None:
    print(f"Next payment       : {interest + principal:.2f}")
    print(f"  Interest         : {interest:.2f}")
    print(f"  Principal        : {principal:.2f}")
