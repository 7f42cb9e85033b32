import os
from datetime import date
from uuid import uuid4

from flask import Flask, jsonify, request

from loan_ledger.analysis import (
    additional_spent_over_minimum,
    last_payment_breakdown,
    next_payment_split,
    payment_adjustment,
)
from loan_ledger.engine import reconcile, split_payment, validate_payment
from loan_ledger.errors import LoanError
from loan_ledger.loan_types import LoanType
from loan_ledger.projection import CHART_HORIZON_MONTHS, compute_projection
from loan_ledger.serialization import (
    adjustment_to_dict,
    breakdown_to_dict,
    loan_from_dict,
    loan_to_dict,
    next_payment_to_dict,
    payment_to_dict,
    projection_to_dict,
    schedule_to_list,
    stats_to_dict,
)
from loan_ledger.utils import parse_date, to_decimal
from loan_ledger_web.ledger_store import LedgerStore, create_store_from_env


NOT_AN_OBJECT = "Request body must be a JSON object"


def _settings_from_env() -> dict:
    return {
        "SECRET_KEY": os.environ.get("FLASK_SECRET_KEY", "dev-secret-key"),
        "LEDGER_DATABASE_URL": os.environ.get("LEDGER_DATABASE_URL"),
        "LEDGER_CHART_MONTHS": int(os.environ.get("LEDGER_CHART_MONTHS", CHART_HORIZON_MONTHS)),
    }


def _error(message: str, status: int = 400):
    return jsonify({"error": message}), status


def _json_object():
    """The request's JSON body, or ``None`` when it is not a JSON object."""
    body = request.get_json(force=True, silent=True)
    return body if isinstance(body, dict) else None


def _chart_horizon(loan, requested, default: int):
    """Rendering cap for a loan's schedule.

    Fixed-term loans are capped at ``default`` months unless the caller asks
    for a different horizon; open-ended loans keep their full simulation.
    """
    if requested is not None:
        return requested
    if loan.has_minimum_payment or loan.term_months == 0:
        return None
    return min(loan.term_months, default)


def create_app(config=None, store: LedgerStore = None, clock=date.today) -> Flask:
    """Build the JSON API.

    ``clock`` returns today's date and is used to reject payments dated in
    the future and to measure payments against the minimum.
    """
    app = Flask(__name__)
    app.config.update(_settings_from_env())
    if config:
        app.config.update(config)
    app.secret_key = app.config["SECRET_KEY"]
    ledger = store or create_store_from_env(app.config.get("LEDGER_DATABASE_URL"))
    app.extensions["ledger_store"] = ledger

    def _load_loan(loan_id):
        loan = ledger.get_loan(loan_id)
        if loan is None:
            return None, _error(f"Loan not found: {loan_id}", 404)
        return loan, None

    @app.errorhandler(LoanError)
    def handle_loan_error(exc):
        app.logger.info("Rejected request: %s", exc)
        return _error(str(exc))

    @app.get("/loan-types")
    def loan_types():
        return jsonify(
            [
                {
                    "value": t.value,
                    "label": t.info.label,
                    "description": t.info.description,
                    "has_term": t.has_term,
                    "has_collateral": t.has_collateral,
                    "needs_minimum_payment": t.needs_minimum_payment,
                }
                for t in LoanType
            ]
        )

    @app.post("/projection")
    def projection():
        data = _json_object()
        if data is None:
            return _error(NOT_AN_OBJECT)
        try:
            loan = loan_from_dict(data)
        except (KeyError, ValueError) as exc:
            return _error(f"Invalid loan: {exc}")
        horizon = request.args.get("horizon", type=int)
        result = compute_projection(loan, horizon=_chart_horizon(loan, horizon, app.config["LEDGER_CHART_MONTHS"]))
        return jsonify(projection_to_dict(loan, result))

    @app.post("/loans")
    def create_loan():
        data = _json_object()
        if data is None:
            return _error(NOT_AN_OBJECT)
        if not data.get("id"):
            data["id"] = uuid4().hex
        try:
            loan = loan_from_dict(data)
        except (KeyError, ValueError) as exc:
            return _error(f"Invalid loan: {exc}")
        # fails fast on terms the engine cannot amortize
        compute_projection(loan, horizon=0)
        if ledger.get_loan(loan.id) is not None:
            return _error(f"Loan already exists: {loan.id}", 409)
        ledger.add_loan(loan)
        app.logger.info("Created loan %s (%s)", loan.id, loan.loan_type.value)
        return jsonify(loan_to_dict(loan)), 201

    @app.get("/loans")
    def list_loans():
        return jsonify([loan_to_dict(loan) for loan in ledger.list_loans()])

    @app.get("/loans/<loan_id>")
    def get_loan(loan_id):
        loan, error = _load_loan(loan_id)
        if error:
            return error
        result = compute_projection(loan)
        body = loan_to_dict(loan)
        body["monthly_payment"] = float(result.monthly_payment)
        body["total_interest"] = float(result.total_interest)
        body["total_cost"] = float(result.total_cost(loan.principal))
        return jsonify(body)

    @app.post("/loans/<loan_id>/payments")
    def add_payment(loan_id):
        loan, error = _load_loan(loan_id)
        if error:
            return error
        data = _json_object()
        if data is None:
            return _error(NOT_AN_OBJECT)
        try:
            amount = to_decimal(data["amount"])
            payment_date = parse_date(str(data.get("payment_date") or data.get("paymentDate") or clock().isoformat()))
        except (KeyError, ValueError) as exc:
            return _error(f"Invalid payment: {exc}")
        validate_payment(amount, payment_date, clock())
        payments = ledger.list_payments(loan.id)
        payment = split_payment(
            loan,
            compute_projection(loan),
            payments,
            amount,
            payment_date,
            notes=str(data.get("notes") or ""),
        )
        ledger.add_payment(payment)
        app.logger.info("Recorded payment %s of %s on loan %s", payment.id, payment.amount, loan.id)
        return jsonify(payment_to_dict(payment)), 201

    @app.get("/loans/<loan_id>/payments")
    def list_payments(loan_id):
        loan, error = _load_loan(loan_id)
        if error:
            return error
        return jsonify([payment_to_dict(p) for p in ledger.list_payments(loan.id)])

    @app.get("/loans/<loan_id>/schedule")
    def schedule(loan_id):
        loan, error = _load_loan(loan_id)
        if error:
            return error
        horizon = request.args.get("horizon", type=int)
        result = reconcile(
            loan,
            compute_projection(loan, horizon=_chart_horizon(loan, horizon, app.config["LEDGER_CHART_MONTHS"])),
            ledger.list_payments(loan.id),
        )
        return jsonify({"schedule": schedule_to_list(result.schedule), "stats": stats_to_dict(result.stats)})

    @app.get("/loans/<loan_id>/stats")
    def stats(loan_id):
        loan, error = _load_loan(loan_id)
        if error:
            return error
        payments = ledger.list_payments(loan.id)
        result = compute_projection(loan)
        reconciled = reconcile(loan, result, payments)
        return jsonify(
            {
                "stats": stats_to_dict(reconciled.stats),
                "last_payment": breakdown_to_dict(last_payment_breakdown(loan, result, payments)),
                "next_payment": next_payment_to_dict(next_payment_split(loan, result, payments)),
                "additional_spent_over_minimum": float(
                    additional_spent_over_minimum(loan, result, payments, clock())
                ),
            }
        )

    @app.get("/loans/<loan_id>/adjustment")
    def adjustment(loan_id):
        loan, error = _load_loan(loan_id)
        if error:
            return error
        try:
            amount = to_decimal(request.args["amount"])
        except (KeyError, ValueError) as exc:
            return _error(f"Invalid amount: {exc}")
        result = payment_adjustment(loan, compute_projection(loan), ledger.list_payments(loan.id), amount)
        return jsonify(adjustment_to_dict(result))

    return app


if __name__ == "__main__":
    print("Starting Loan Ledger web app...")
    create_app().run(host="0.0.0.0", port=8710, debug=True)
