import logging
import os
from datetime import date
from uuid import uuid4

from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from loan_tracker.analytics import (
    calculate_early_payoff_savings,
    enrich_loan,
    enrich_loans,
    get_loan_summary,
    get_upcoming_payments,
)
from loan_tracker.engine import generate_schedule
from loan_tracker.serialization import (
    analytics_to_dict,
    enriched_loan_to_dict,
    loan_from_dict,
    loan_to_dict,
    schedule_entry_to_dict,
    summary_to_dict,
    upcoming_payment_to_dict,
)
from loan_tracker.strategy import build_loan_analytics, recommend_strategy
from loan_tracker.utils import parse_iso_date, to_decimal
from loan_tracker_web.loan_store import LoanAlreadyExists, create_store_from_env

logger = logging.getLogger(__name__)


class LoanNotFound(Exception):
    pass


def _settings_from_env() -> dict:
    return {
        "DATABASE_URL": os.environ.get("LOAN_TRACKER_DATABASE_URL"),
        "LOG_LEVEL": os.environ.get("LOAN_TRACKER_LOG_LEVEL", "INFO"),
        "HIGH_INTEREST_THRESHOLD": os.environ.get("LOAN_TRACKER_HIGH_INTEREST_THRESHOLD", "10"),
        "NEAR_PAYOFF_MONTHS": os.environ.get("LOAN_TRACKER_NEAR_PAYOFF_MONTHS", "3"),
        "UPCOMING_WINDOW_DAYS": os.environ.get("LOAN_TRACKER_UPCOMING_WINDOW_DAYS", "30"),
    }


def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValueError("Request body must be a JSON object")
    return data


def _today() -> date:
    value = request.args.get("today")
    return parse_iso_date(value) if value else date.today()


def create_app(config=None, store=None) -> Flask:
    """Build the JSON API.

    Settings come from ``LOAN_TRACKER_*`` environment variables; ``config``
    overrides them and ``store`` replaces the database-backed loan store.
    """
    app = Flask(__name__)
    app.config.update(_settings_from_env())
    if config:
        app.config.update(config)

    logging.basicConfig(level=str(app.config["LOG_LEVEL"]).upper())
    loan_store = store or create_store_from_env(app.config["DATABASE_URL"])

    def load_loan(loan_id: str):
        loan = loan_store.get_loan(loan_id)
        if loan is None:
            raise LoanNotFound(f"Loan {loan_id} not found")
        return loan

    @app.errorhandler(ValueError)
    def handle_bad_request(exc):
        return jsonify({"message": str(exc)}), 400

    @app.errorhandler(LoanNotFound)
    def handle_not_found(exc):
        return jsonify({"message": str(exc)}), 404

    @app.errorhandler(LoanAlreadyExists)
    def handle_conflict(exc):
        return jsonify({"message": str(exc)}), 409

    @app.errorhandler(Exception)
    def handle_unexpected(exc):
        if isinstance(exc, HTTPException):
            return jsonify({"message": exc.description}), exc.code
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return jsonify({"message": "An unexpected error occurred"}), 500

    @app.get("/api/loans")
    def list_loans():
        enriched = enrich_loans(loan_store.list_loans(), _today())
        return jsonify([enriched_loan_to_dict(e) for e in enriched])

    @app.post("/api/loans")
    def create_loan():
        data = _json_body()
        data["id"] = data.get("id") or uuid4().hex
        created = loan_store.add_loan(loan_from_dict(data))
        return jsonify(enriched_loan_to_dict(enrich_loan(created, _today()))), 201

    @app.get("/api/loans/<loan_id>")
    def get_loan(loan_id):
        return jsonify(enriched_loan_to_dict(enrich_loan(load_loan(loan_id), _today())))

    @app.put("/api/loans/<loan_id>")
    def update_loan(loan_id):
        current = loan_to_dict(load_loan(loan_id))
        current.update(_json_body())
        current["id"] = loan_id
        updated = loan_store.update_loan(loan_id, loan_from_dict(current))
        return jsonify(enriched_loan_to_dict(enrich_loan(updated, _today())))

    @app.delete("/api/loans/<loan_id>")
    def delete_loan(loan_id):
        if not loan_store.delete_loan(loan_id):
            raise LoanNotFound(f"Loan {loan_id} not found")
        return "", 204

    @app.get("/api/loans/<loan_id>/schedule")
    def loan_schedule(loan_id):
        return jsonify([schedule_entry_to_dict(e) for e in generate_schedule(load_loan(loan_id))])

    @app.get("/api/loans/<loan_id>/savings")
    def early_payoff_savings(loan_id):
        amount = to_decimal(request.args.get("amount", "0"))
        if amount <= 0:
            raise ValueError("amount must be greater than 0")
        savings = calculate_early_payoff_savings(load_loan(loan_id), amount)
        return jsonify(
            {"savedInterest": float(savings.saved_interest), "reducedTenure": savings.reduced_tenure}
        )

    @app.get("/api/loans/<loan_id>/payments")
    def list_payments(loan_id):
        load_loan(loan_id)
        return jsonify(loan_store.list_payments(loan_id))

    @app.post("/api/loans/<loan_id>/payments")
    def create_payment(loan_id):
        data = _json_body()
        amount = to_decimal(data.get("amount"))
        if amount <= 0:
            raise ValueError("Amount must be greater than 0")
        paid_on = parse_iso_date(data["date"]) if data.get("date") else date.today()
        payment = loan_store.record_payment(loan_id, amount, paid_on, data.get("notes"))
        if payment is None:
            raise LoanNotFound(f"Loan {loan_id} not found")
        return jsonify(payment), 201

    @app.delete("/api/payments/<payment_id>")
    def delete_payment(payment_id):
        if not loan_store.delete_payment(payment_id):
            raise LoanNotFound(f"Payment {payment_id} not found")
        return "", 204

    @app.get("/api/loans/analytics")
    def loan_analytics():
        threshold = to_decimal(request.args.get("threshold", app.config["HIGH_INTEREST_THRESHOLD"]))
        months = int(request.args.get("months", app.config["NEAR_PAYOFF_MONTHS"]))
        analytics = build_loan_analytics(loan_store.list_loans(), threshold, months)
        return jsonify(analytics_to_dict(analytics, recommend_strategy(analytics)))

    @app.get("/api/loans/summary")
    def loan_summary():
        enriched = enrich_loans(loan_store.list_loans(), _today())
        return jsonify(summary_to_dict(get_loan_summary(enriched)))

    @app.get("/api/loans/upcoming")
    def upcoming_payments():
        today = _today()
        window = int(request.args.get("days", app.config["UPCOMING_WINDOW_DAYS"]))
        enriched = enrich_loans(loan_store.list_loans(), today)
        return jsonify([upcoming_payment_to_dict(p) for p in get_upcoming_payments(enriched, today, window)])

    return app


if __name__ == "__main__":
    print("Starting Loan Tracker API...")
    create_app().run(host="0.0.0.0", port=8710, debug=True)
