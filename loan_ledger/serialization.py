"""Conversion between engine objects and JSON-friendly dictionaries.

Input dictionaries may use either ``snake_case`` or the ``camelCase`` keys
of exported ledgers (``annualInterestRate``, ``paymentDate``...). Output is
always ``snake_case`` with money as floats, which is what charts and the
JSON/CSV exports expect.
"""

from __future__ import annotations

import json
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .data_models import (
    Loan,
    LoanStats,
    Payment,
    PaymentAdjustment,
    PaymentBreakdown,
    Projection,
    ScheduleEntry,
)
from .loan_types import LoanType, normalize_terms, parse_loan_type
from .utils import parse_date, to_decimal

_ALIASES = {
    "annualInterestRate": "annual_interest_rate",
    "interestRate": "annual_interest_rate",
    "rate": "annual_interest_rate",
    "termMonths": "term_months",
    "term": "term_months",
    "minimumPayment": "minimum_payment",
    "startDate": "start_date",
    "disbursementDate": "start_date",
    "disbursement_date": "start_date",
    "loanType": "loan_type",
    "loanId": "loan_id",
    "paymentDate": "payment_date",
    "principalAmount": "principal_amount",
    "interestAmount": "interest_amount",
    "remainingBalance": "remaining_balance",
    "isExtraPayment": "is_extra_payment",
}


def _normalize_keys(data: Mapping[str, Any]) -> Dict[str, Any]:
    normalized: Dict[str, Any] = {}
    for key, value in data.items():
        normalized[_ALIASES.get(key, key)] = value
    return normalized


def _as_date(value: Any) -> date:
    if isinstance(value, date):
        return value
    return parse_date(str(value))


def _optional_decimal(value: Any):
    if value is None or value == "":
        return None
    return to_decimal(value)


def _money(value) -> Optional[float]:
    return None if value is None else float(value)


def loan_from_dict(data: Mapping[str, Any]) -> Loan:
    """Build a ``Loan``; ``KeyError``/``ValueError`` on missing or bad fields."""
    fields = _normalize_keys(data)
    loan_type = parse_loan_type(fields["loan_type"]) if fields.get("loan_type") else None
    term = int(fields.get("term_months") or 0)
    minimum = _optional_decimal(fields.get("minimum_payment"))
    if loan_type is not None:
        term, minimum = normalize_terms(loan_type, term, minimum)
    return Loan(
        id=str(fields.get("id") or ""),
        principal=to_decimal(fields["principal"]),
        annual_interest_rate=to_decimal(fields.get("annual_interest_rate") or 0),
        term_months=term,
        start_date=_as_date(fields["start_date"]),
        minimum_payment=minimum,
        name=str(fields.get("name") or ""),
        loan_type=loan_type or LoanType.PERSONAL,
    )


def payment_from_dict(data: Mapping[str, Any], loan_id: str = "") -> Payment:
    fields = _normalize_keys(data)
    return Payment(
        id=str(fields.get("id") or ""),
        loan_id=str(fields.get("loan_id") or loan_id),
        amount=to_decimal(fields["amount"]),
        payment_date=_as_date(fields["payment_date"]),
        principal_amount=_optional_decimal(fields.get("principal_amount")),
        interest_amount=_optional_decimal(fields.get("interest_amount")),
        remaining_balance=_optional_decimal(fields.get("remaining_balance")),
        is_extra_payment=bool(fields.get("is_extra_payment", False)),
        notes=str(fields.get("notes") or ""),
    )


def load_ledger(path: Path) -> Tuple[Loan, List[Payment]]:
    """Read a ``{"loan": {...}, "payments": [...]}`` JSON file."""
    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)
    loan = loan_from_dict(data["loan"])
    payments = [payment_from_dict(item, loan.id) for item in data.get("payments", [])]
    return loan, payments


def loan_to_dict(loan: Loan) -> Dict[str, Any]:
    return {
        "id": loan.id,
        "name": loan.name,
        "loan_type": loan.loan_type.value,
        "principal": float(loan.principal),
        "annual_interest_rate": float(loan.annual_interest_rate),
        "term_months": loan.term_months,
        "minimum_payment": _money(loan.minimum_payment),
        "start_date": loan.start_date.isoformat(),
    }


def payment_to_dict(payment: Payment) -> Dict[str, Any]:
    return {
        "id": payment.id,
        "loan_id": payment.loan_id,
        "amount": float(payment.amount),
        "payment_date": payment.payment_date.isoformat(),
        "principal_amount": _money(payment.principal_amount),
        "interest_amount": _money(payment.interest_amount),
        "remaining_balance": _money(payment.remaining_balance),
        "is_extra_payment": payment.is_extra_payment,
        "notes": payment.notes,
    }


def projection_to_dict(loan: Loan, projection: Projection) -> Dict[str, Any]:
    return {
        "monthly_payment": float(projection.monthly_payment),
        "total_interest": float(projection.total_interest),
        "simulated_interest": float(projection.simulated_interest),
        "total_cost": float(projection.total_cost(loan.principal)),
        "payoff_months": projection.payoff_months,
        "capped": projection.capped,
        "interest_estimated": projection.interest_estimated,
        "schedule": [
            {
                "month": e.month,
                "balance": float(e.balance),
                "interest": float(e.interest),
                "principal": float(e.principal),
                "cumulative_interest": float(e.cumulative_interest),
            }
            for e in projection.schedule
        ],
    }


def schedule_to_list(schedule: List[ScheduleEntry]) -> List[Dict[str, Any]]:
    """Convert schedule entries into JSON-serialisable dictionaries for charts."""
    serialized = []
    for entry in schedule:
        serialized.append(
            {
                "month": entry.month,
                "date": entry.date.strftime("%Y-%m"),
                "projected_balance": float(entry.projected_balance),
                "projected_interest": float(entry.projected_interest),
                "projected_principal": float(entry.projected_principal),
                "actual_balance": float(entry.actual_balance),
                "actual_payment": _money(entry.actual_payment),
                "actual_interest": float(entry.actual_interest),
                "actual_principal": float(entry.actual_principal),
            }
        )
    return serialized


def stats_to_dict(stats: LoanStats) -> Dict[str, Any]:
    return {
        "total_paid": float(stats.total_paid),
        "principal_paid": float(stats.principal_paid),
        "interest_paid": float(stats.interest_paid),
        "remaining_balance": float(stats.remaining_balance),
        "extra_payment_total": float(stats.extra_payment_total),
        "payment_count": stats.payment_count,
        "average_payment": float(stats.average_payment),
        "last_payment_date": stats.last_payment_date.isoformat() if stats.last_payment_date else None,
        "ledger_balance": _money(stats.ledger_balance),
    }


def breakdown_to_dict(breakdown: Optional[PaymentBreakdown]) -> Optional[Dict[str, Any]]:
    if breakdown is None:
        return None
    return {
        "payment": payment_to_dict(breakdown.payment),
        "balance_before": float(breakdown.balance_before),
        "balance_after": float(breakdown.balance_after),
        "principal_paid": float(breakdown.principal_paid),
        "interest_paid": float(breakdown.interest_paid),
    }


def adjustment_to_dict(adjustment: PaymentAdjustment) -> Dict[str, Any]:
    return {
        "original_amount": float(adjustment.original_amount),
        "adjusted_amount": float(adjustment.adjusted_amount),
        "current_balance": float(adjustment.current_balance),
        "monthly_difference": float(adjustment.monthly_difference),
        "months_saved": adjustment.months_saved,
        "interest_saved": float(adjustment.interest_saved),
        "total_difference": float(adjustment.total_difference),
        "original_payoff_months": adjustment.original_payoff.months,
        "adjusted_payoff_months": adjustment.adjusted_payoff.months,
        "original_paid_off": adjustment.original_payoff.paid_off,
        "adjusted_paid_off": adjustment.adjusted_payoff.paid_off,
    }


def next_payment_to_dict(split: Tuple[Decimal, Decimal]) -> Dict[str, Any]:
    interest, principal = split
    return {"interest": float(interest), "principal": float(principal)}
