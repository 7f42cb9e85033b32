from datetime import date
from decimal import Decimal

import pytest

from loan_ledger.data_models import Loan, Payment
from loan_ledger.loan_types import LoanType


@pytest.fixture
def fixed_loan():
    """12 000 at 12 % over a year: the monthly rate is exactly 1 %."""
    return Loan(
        id="car",
        principal=Decimal("12000"),
        annual_interest_rate=Decimal("12"),
        term_months=12,
        start_date=date(2024, 1, 15),
        loan_type=LoanType.AUTO,
    )


@pytest.fixture
def open_loan():
    return Loan(
        id="card",
        principal=Decimal("10000"),
        annual_interest_rate=Decimal("12"),
        term_months=0,
        start_date=date(2024, 1, 1),
        minimum_payment=Decimal("200"),
        loan_type=LoanType.CREDIT_CARD,
    )


@pytest.fixture
def make_payment():
    counter = {"n": 0}

    def _make(loan, amount, payment_date, **fields):
        counter["n"] += 1
        return Payment(
            id=fields.pop("id", f"p{counter['n']}"),
            loan_id=fields.pop("loan_id", loan.id),
            amount=Decimal(str(amount)),
            payment_date=payment_date,
            **fields,
        )

    return _make
