"""Command-line interface for the loan ledger.

This module uses the ``click`` library to implement a multi-command
interface. Users can project a loan from its terms, reconcile a ledger file
of recorded payments against that projection, view lifetime statistics or
see how a different monthly payment would change the payoff. Results can be
printed to the terminal or exported to JSON/CSV files.
"""

from __future__ import annotations

import csv
import json
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional

import click

from .analysis import (
    additional_spent_over_minimum,
    last_payment_breakdown,
    next_payment_split,
    payment_adjustment,
)
from .data_models import Loan, ProjectionEntry, ScheduleEntry
from .engine import reconcile
from .errors import LoanError
from .formatter import (
    print_adjustment,
    print_breakdown,
    print_loan_types,
    print_next_payment,
    print_projection,
    print_projection_summary,
    print_schedule,
    print_stats,
)
from .loan_types import LoanType, normalize_terms, parse_loan_type
from .projection import compute_projection
from .serialization import (
    adjustment_to_dict,
    breakdown_to_dict,
    load_ledger,
    next_payment_to_dict,
    projection_to_dict,
    schedule_to_list,
    stats_to_dict,
)
from .utils import decimal_from_str, parse_date

MAX_PRINTED_ROWS = 120


def parse_amount(value: str) -> str:
    """Parse a numeric string with optional suffixes.

    Accepts plain numbers ("25000") and shorthand with ``k``/``m`` suffixes
    (e.g., "25k" meaning 25_000). Returns a plain numeric string suitable for
    ``decimal_from_str``.
    """
    value = value.strip().lower().replace(",", "")
    factor = 1
    if value.endswith("k"):
        factor = 1_000
        value = value[:-1]
    elif value.endswith("m"):
        factor = 1_000_000
        value = value[:-1]
    try:
        return str(decimal_from_str(value) * factor)
    except ValueError:
        raise click.BadParameter(f"Invalid amount: {value}")


def build_loan_from_options(
    principal: str,
    rate: str,
    term: int,
    start_date: str,
    minimum_payment: Optional[str] = None,
    loan_type: Optional[str] = None,
    name: str = "",
) -> Loan:
    principal_value = decimal_from_str(parse_amount(principal))
    minimum_value = decimal_from_str(parse_amount(minimum_payment)) if minimum_payment else None
    try:
        start_dt = parse_date(start_date)
        rate_value = decimal_from_str(rate.rstrip("%"))
    except ValueError as exc:
        raise click.BadParameter(str(exc))
    kind = LoanType.PERSONAL
    if loan_type:
        kind = parse_loan_type(loan_type)
        term, minimum_value = normalize_terms(kind, term, minimum_value)
    return Loan(
        id="cli",
        principal=principal_value,
        annual_interest_rate=rate_value,
        term_months=term,
        start_date=start_dt,
        minimum_payment=minimum_value,
        name=name,
        loan_type=kind,
    )


def export_to_json(path: Path, data: Dict[str, Any]) -> None:
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def export_projection_to_csv(path: Path, entries: List[ProjectionEntry]) -> None:
    header = ["Month", "Balance", "Interest", "Principal", "Cumulative_Interest"]
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        for e in entries:
            writer.writerow(
                [
                    e.month,
                    float(e.balance),
                    float(e.interest),
                    float(e.principal),
                    float(e.cumulative_interest),
                ]
            )


def export_schedule_to_csv(path: Path, schedule: List[ScheduleEntry]) -> None:
    """Export a reconciled schedule to a CSV file."""
    header = [
        "Month",
        "Date",
        "Projected_Balance",
        "Projected_Interest",
        "Projected_Principal",
        "Actual_Payment",
        "Actual_Balance",
    ]
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        for e in schedule:
            writer.writerow(
                [
                    e.month,
                    e.date.strftime("%Y-%m"),
                    float(e.projected_balance),
                    float(e.projected_interest),
                    float(e.projected_principal),
                    "" if e.actual_payment is None else float(e.actual_payment),
                    float(e.actual_balance),
                ]
            )


def _load(ledger_file: str):
    try:
        return load_ledger(Path(ledger_file))
    except (KeyError, ValueError) as exc:
        raise click.ClickException(f"Invalid ledger file {ledger_file}: {exc}")


@click.group()
def cli() -> None:
    """Track loans and reconcile recorded payments against their schedule."""
    pass


@cli.command()
@click.option("--principal", "-p", "principal", required=True, help="Amount borrowed")
@click.option("--rate", "-r", "rate", required=True, help="Annual interest rate (percent)")
@click.option("--term", "-t", "term", type=int, default=0, show_default=True, help="Term in months; 0 for open-ended loans")
@click.option("--minimum-payment", "-m", "minimum_payment", help="Minimum monthly payment for open-ended loans")
@click.option("--start-date", "-s", "start_date", required=True, help="Disbursement date (YYYY-MM-DD or YYYY-MM)")
@click.option("--type", "loan_type", type=click.Choice([t.value for t in LoanType]), help="Loan type")
@click.option("--horizon", "horizon", type=int, help="Only show the first N months")
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def project(
    principal: str,
    rate: str,
    term: int,
    minimum_payment: Optional[str],
    start_date: str,
    loan_type: Optional[str],
    horizon: Optional[int],
    output: Optional[str],
) -> None:
    """Compute the monthly payment and projected payoff curve."""
    loan = build_loan_from_options(principal, rate, term, start_date, minimum_payment, loan_type)
    try:
        projection = compute_projection(loan, horizon=horizon)
    except LoanError as exc:
        raise click.BadParameter(str(exc))
    if output:
        path = Path(output)
        if path.suffix.lower() == ".json":
            export_to_json(path, {"projection": projection_to_dict(loan, projection)})
        elif path.suffix.lower() == ".csv":
            export_projection_to_csv(path, projection.schedule)
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv")
        click.echo(f"Projection exported to {path}")
        return
    print_projection_summary(loan, projection)
    if len(projection.schedule) > MAX_PRINTED_ROWS:
        click.echo(
            f"Schedule has {len(projection.schedule)} rows; showing first {MAX_PRINTED_ROWS} rows."
        )
    print_projection(projection.schedule[:MAX_PRINTED_ROWS])


@cli.command("reconcile")
@click.argument("ledger_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--horizon", "horizon", type=int, help="Only show the first N months")
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def reconcile_command(ledger_file: str, horizon: Optional[int], output: Optional[str]) -> None:
    """Merge a ledger file's payments with the loan's projection.

    LEDGER_FILE is a JSON document with a ``loan`` object and a
    ``payments`` list.
    """
    loan, payments = _load(ledger_file)
    try:
        projection = compute_projection(loan, horizon=horizon)
        result = reconcile(loan, projection, payments)
    except LoanError as exc:
        raise click.ClickException(str(exc))
    if output:
        path = Path(output)
        if path.suffix.lower() == ".json":
            export_to_json(
                path,
                {"stats": stats_to_dict(result.stats), "schedule": schedule_to_list(result.schedule)},
            )
        elif path.suffix.lower() == ".csv":
            export_schedule_to_csv(path, result.schedule)
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv")
        click.echo(f"Schedule exported to {path}")
        return
    print_stats(result.stats)
    if len(result.schedule) > MAX_PRINTED_ROWS:
        click.echo(f"Schedule has {len(result.schedule)} rows; showing first {MAX_PRINTED_ROWS} rows.")
    print_schedule(result.schedule[:MAX_PRINTED_ROWS])


@cli.command()
@click.argument("ledger_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--today", "today", help="Date to measure payments against (YYYY-MM-DD); defaults to today")
@click.option("--output", "output", type=str, help="Output file path (.json)")
def stats(ledger_file: str, today: Optional[str], output: Optional[str]) -> None:
    """Print lifetime statistics and the last payment breakdown."""
    loan, payments = _load(ledger_file)
    try:
        as_of = parse_date(today) if today else date.today()
    except ValueError as exc:
        raise click.BadParameter(str(exc))
    try:
        projection = compute_projection(loan)
        result = reconcile(loan, projection, payments)
    except LoanError as exc:
        raise click.ClickException(str(exc))
    breakdown = last_payment_breakdown(loan, projection, payments)
    over_minimum = additional_spent_over_minimum(loan, projection, payments, as_of)
    next_split = next_payment_split(loan, projection, payments)
    if output:
        path = Path(output)
        if path.suffix.lower() != ".json":
            raise click.BadParameter("Stats export must use .json extension")
        export_to_json(
            path,
            {
                "stats": stats_to_dict(result.stats),
                "last_payment": breakdown_to_dict(breakdown),
                "additional_spent_over_minimum": float(over_minimum),
                "next_payment": next_payment_to_dict(next_split),
            },
        )
        click.echo(f"Stats exported to {path}")
        return
    print_stats(result.stats)
    print_breakdown(breakdown, over_minimum)
    print_next_payment(*next_split)


@cli.command()
@click.argument("ledger_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--amount", "-a", "amount", required=True, help="Proposed monthly payment")
@click.option("--output", "output", type=str, help="Output file path (.json)")
def adjust(ledger_file: str, amount: str, output: Optional[str]) -> None:
    """Compare the scheduled monthly payment with a proposed one."""
    loan, payments = _load(ledger_file)
    adjusted = decimal_from_str(parse_amount(amount))
    try:
        projection = compute_projection(loan)
        adjustment = payment_adjustment(loan, projection, payments, adjusted)
    except LoanError as exc:
        raise click.ClickException(str(exc))
    if output:
        path = Path(output)
        if path.suffix.lower() != ".json":
            raise click.BadParameter("Adjustment export must use .json extension")
        export_to_json(path, {"adjustment": adjustment_to_dict(adjustment)})
        click.echo(f"Adjustment exported to {path}")
        return
    print_adjustment(adjustment)


@cli.command()
def types() -> None:
    """List loan types and the terms each one uses."""
    print_loan_types()


if __name__ == "__main__":
    cli()
