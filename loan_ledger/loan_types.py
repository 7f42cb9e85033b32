"""Loan type metadata.

Each loan type carries the capabilities that decide which terms apply to it:
a fixed term, collateral, or a minimum payment instead of a term.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple


@dataclass(frozen=True)
class LoanTypeInfo:
    label: str
    description: str
    has_term: bool
    has_collateral: bool
    needs_minimum_payment: bool


class LoanType(str, Enum):
    PERSONAL = "personal"
    AUTO = "auto"
    MORTGAGE = "mortgage"
    STUDENT = "student"
    CREDIT_CARD = "credit_card"
    BUSINESS = "business"
    HOME_EQUITY = "home_equity"

    @property
    def info(self) -> LoanTypeInfo:
        return LOAN_TYPE_INFO[self]

    @property
    def has_term(self) -> bool:
        return self.info.has_term

    @property
    def has_collateral(self) -> bool:
        return self.info.has_collateral

    @property
    def needs_minimum_payment(self) -> bool:
        return self.info.needs_minimum_payment


LOAN_TYPE_INFO = {
    LoanType.PERSONAL: LoanTypeInfo(
        "Personal Loan", "Unsecured loan with fixed monthly payments", True, False, False
    ),
    LoanType.AUTO: LoanTypeInfo(
        "Auto Loan", "Secured by the vehicle with fixed monthly payments", True, True, False
    ),
    LoanType.MORTGAGE: LoanTypeInfo(
        "Mortgage", "Secured by the property with fixed monthly payments", True, True, False
    ),
    LoanType.STUDENT: LoanTypeInfo(
        "Student Loan", "Monthly minimum payments, can pay more to reduce interest", False, False, True
    ),
    LoanType.CREDIT_CARD: LoanTypeInfo(
        "Credit Card", "Monthly minimum payments, revolving credit line", False, False, True
    ),
    LoanType.BUSINESS: LoanTypeInfo(
        "Business Loan", "Secured business loan with fixed monthly payments", True, True, False
    ),
    LoanType.HOME_EQUITY: LoanTypeInfo(
        "Home Equity Loan", "Secured by home equity with fixed monthly payments", True, True, False
    ),
}


def parse_loan_type(value: str) -> LoanType:
    """Return the ``LoanType`` for ``value`` (``"credit-card"`` is accepted too)."""
    try:
        return LoanType(value.strip().lower().replace("-", "_"))
    except ValueError as exc:
        choices = ", ".join(t.value for t in LoanType)
        raise ValueError(f"Unknown loan type: {value} (expected one of {choices})") from exc


def normalize_terms(
    loan_type: LoanType, term_months: int, minimum_payment: Optional[Decimal]
) -> Tuple[int, Optional[Decimal]]:
    """Drop the terms a loan type does not use.

    A type without a term gets ``term_months=0``; a type that does not need a
    minimum payment loses it.
    """
    info = loan_type.info
    term = term_months if info.has_term else 0
    minimum = minimum_payment if info.needs_minimum_payment else None
    return term, minimum
