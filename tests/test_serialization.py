import json
from datetime import date
from decimal import Decimal

import pytest

from loan_ledger.engine import reconcile
from loan_ledger.loan_types import LoanType
from loan_ledger.projection import compute_projection
from loan_ledger.serialization import (
    load_ledger,
    loan_from_dict,
    payment_from_dict,
    schedule_to_list,
    stats_to_dict,
)


def test_loan_from_camel_case():
    loan = loan_from_dict(
        {
            "id": "x",
            "principal": "5000",
            "annualInterestRate": 9.5,
            "termMonths": 24,
            "startDate": "2024-02-10",
            "loanType": "personal",
        }
    )
    assert loan.principal == Decimal("5000")
    assert loan.annual_interest_rate == Decimal("9.5")
    assert loan.term_months == 24
    assert loan.start_date == date(2024, 2, 10)
    assert loan.loan_type is LoanType.PERSONAL


def test_loan_type_drops_unused_terms():
    loan = loan_from_dict(
        {"principal": 800, "rate": 20, "term": 12, "minimum_payment": 40,
         "start_date": "2024-01", "loan_type": "credit_card"}
    )
    assert loan.term_months == 0
    assert loan.minimum_payment == Decimal("40")


def test_loan_requires_principal():
    with pytest.raises(KeyError):
        loan_from_dict({"start_date": "2024-01-01"})


def test_payment_defaults_loan_id():
    payment = payment_from_dict({"amount": "100", "paymentDate": "2024-02-01"}, loan_id="abc")
    assert payment.loan_id == "abc"
    assert payment.principal_amount is None
    assert not payment.is_extra_payment


def test_load_ledger_and_schedule_output(tmp_path):
    path = tmp_path / "ledger.json"
    path.write_text(
        json.dumps(
            {
                "loan": {
                    "id": "car",
                    "principal": 12000,
                    "annual_interest_rate": 12,
                    "term_months": 12,
                    "start_date": "2024-01-15",
                },
                "payments": [{"id": "p1", "amount": 120, "payment_date": "2024-02-10"}],
            }
        ),
        encoding="utf-8",
    )
    loan, payments = load_ledger(path)
    assert loan.id == "car"
    assert [p.loan_id for p in payments] == ["car"]

    result = reconcile(loan, compute_projection(loan), payments)
    rows = schedule_to_list(result.schedule)
    assert rows[0]["date"] == "2024-01"
    assert rows[0]["actual_payment"] is None
    assert rows[1]["actual_payment"] == 120.0
    assert rows[1]["actual_balance"] == 12000.0
    assert stats_to_dict(result.stats)["total_paid"] == 120.0
