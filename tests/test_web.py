from datetime import date

import pytest

from loan_ledger_web.app import create_app
from loan_ledger_web.ledger_store import LedgerStore


@pytest.fixture
def app():
    store = LedgerStore("sqlite:///:memory:")
    return create_app({"TESTING": True}, store=store, clock=lambda: date(2024, 6, 1))


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def car_loan(client):
    response = client.post(
        "/loans",
        json={
            "id": "car",
            "name": "Hatchback",
            "principal": 12000,
            "annual_interest_rate": 12,
            "term_months": 12,
            "start_date": "2024-01-15",
            "loan_type": "auto",
        },
    )
    assert response.status_code == 201
    return response.get_json()


def test_loan_types(client):
    body = client.get("/loan-types").get_json()
    card = next(t for t in body if t["value"] == "credit_card")
    assert card["needs_minimum_payment"]
    assert not card["has_term"]


def test_projection_endpoint(client):
    response = client.post(
        "/projection",
        json={"principal": 25000, "annualInterestRate": 5.5, "termMonths": 60, "startDate": "2024-01-01"},
    )
    assert response.status_code == 200
    body = response.get_json()
    assert body["monthly_payment"] == pytest.approx(477.53, abs=0.01)
    # fixed-term charts are capped at 60 months by default
    assert body["schedule"][-1]["month"] == 60
    assert body["payoff_months"] == 60


def test_projection_rejects_bad_principal(client):
    response = client.post("/projection", json={"principal": 0, "rate": 5, "term": 12, "start_date": "2024-01"})
    assert response.status_code == 400
    assert "Principal" in response.get_json()["error"]


def test_create_and_fetch_loan(client, car_loan):
    assert car_loan["loan_type"] == "auto"
    body = client.get("/loans/car").get_json()
    assert body["monthly_payment"] == pytest.approx(1066.19, abs=0.01)
    assert [loan["id"] for loan in client.get("/loans").get_json()] == ["car"]


def test_duplicate_loan(client, car_loan):
    response = client.post(
        "/loans",
        json={"id": "car", "principal": 1, "rate": 1, "term": 1, "start_date": "2024-01-01"},
    )
    assert response.status_code == 409


def test_create_loan_missing_field(client):
    response = client.post("/loans", json={"principal": 1000})
    assert response.status_code == 400


def test_unknown_loan(client):
    assert client.get("/loans/nope").status_code == 404
    assert client.get("/loans/nope/schedule").status_code == 404
    assert client.post("/loans/nope/payments", json={"amount": 10}).status_code == 404


def test_record_payments_and_reconcile(client, car_loan):
    first = client.post("/loans/car/payments", json={"amount": 500, "payment_date": "2024-02-15"})
    assert first.status_code == 201
    first_body = first.get_json()
    assert first_body["interest_amount"] == pytest.approx(120.0)
    assert first_body["principal_amount"] == pytest.approx(380.0)
    assert first_body["remaining_balance"] == pytest.approx(11620.0)
    assert not first_body["is_extra_payment"]

    second = client.post("/loans/car/payments", json={"amount": 2000, "paymentDate": "2024-03-15"})
    assert second.status_code == 201
    assert second.get_json()["is_extra_payment"]

    payments = client.get("/loans/car/payments").get_json()
    assert [p["amount"] for p in payments] == [500.0, 2000.0]

    body = client.get("/loans/car/schedule").get_json()
    schedule = body["schedule"]
    assert schedule[0]["date"] == "2024-01"
    assert schedule[1]["actual_payment"] == pytest.approx(500.0)
    assert schedule[1]["actual_balance"] == pytest.approx(11620.0)
    assert schedule[2]["actual_payment"] == pytest.approx(2000.0)
    assert schedule[3]["actual_payment"] is None
    assert body["stats"]["total_paid"] == pytest.approx(2500.0)
    assert body["stats"]["total_paid"] == pytest.approx(
        body["stats"]["principal_paid"] + body["stats"]["interest_paid"]
    )


def test_schedule_horizon(client, car_loan):
    body = client.get("/loans/car/schedule?horizon=3").get_json()
    assert [row["month"] for row in body["schedule"]] == [0, 1, 2, 3]


def test_future_payment_rejected(client, car_loan):
    response = client.post("/loans/car/payments", json={"amount": 100, "payment_date": "2024-07-01"})
    assert response.status_code == 400
    assert "future" in response.get_json()["error"]


def test_non_positive_payment_rejected(client, car_loan):
    response = client.post("/loans/car/payments", json={"amount": 0, "payment_date": "2024-02-01"})
    assert response.status_code == 400


def test_stats_and_adjustment(client, car_loan):
    client.post("/loans/car/payments", json={"amount": 500, "payment_date": "2024-02-15"})
    body = client.get("/loans/car/stats").get_json()
    assert body["stats"]["payment_count"] == 1
    assert body["last_payment"]["balance_after"] == pytest.approx(11620.0)
    assert body["additional_spent_over_minimum"] == 0

    adjustment = client.get("/loans/car/adjustment?amount=2000").get_json()
    assert adjustment["current_balance"] == pytest.approx(11620.0)
    assert adjustment["months_saved"] > 0

    assert client.get("/loans/car/adjustment").status_code == 400
    assert client.get("/loans/car/adjustment?amount=-5").status_code == 400


def test_open_ended_loan_schedule_is_not_capped(client):
    response = client.post(
        "/loans",
        json={
            "id": "card",
            "principal": 10000,
            "annual_interest_rate": 24,
            "minimum_payment": 150,
            "start_date": "2024-01-01",
            "loan_type": "credit_card",
        },
    )
    assert response.status_code == 201
    schedule = client.get("/loans/card/schedule").get_json()["schedule"]
    assert schedule[-1]["month"] == 300


@pytest.mark.parametrize("body", [[1, 2], "loan", 42, None])
def test_body_must_be_json_object(client, car_loan, body):
    for url in ("/loans", "/projection", "/loans/car/payments"):
        response = client.post(url, json=body)
        assert response.status_code == 400
        assert response.get_json()["error"] == "Request body must be a JSON object"


def test_body_that_is_not_json(client):
    response = client.post("/loans", data="not json", content_type="application/json")
    assert response.status_code == 400


def test_stats_report_next_payment_and_averages(client, car_loan):
    client.post("/loans/car/payments", json={"amount": 500, "payment_date": "2024-02-15"})
    client.post("/loans/car/payments", json={"amount": 1500, "payment_date": "2024-03-15"})
    body = client.get("/loans/car/stats").get_json()
    assert body["stats"]["average_payment"] == pytest.approx(1000.0)
    assert body["stats"]["last_payment_date"] == "2024-03-15"
    balance = body["last_payment"]["balance_after"]
    assert body["next_payment"]["interest"] == pytest.approx(balance * 0.01, abs=0.01)
    assert body["next_payment"]["interest"] + body["next_payment"]["principal"] == pytest.approx(1066.19, abs=0.01)


def test_disbursement_month_payment_is_all_principal(client, car_loan):
    body = client.post("/loans/car/payments", json={"amount": 1000, "payment_date": "2024-01-20"}).get_json()
    assert body["interest_amount"] == 0
    assert body["remaining_balance"] == pytest.approx(11000.0)
    row = client.get("/loans/car/schedule").get_json()["schedule"][0]
    assert row["actual_interest"] == 0
    assert row["actual_balance"] == pytest.approx(11000.0)
