import pytest

from loan_tracker_web.app import create_app
from loan_tracker_web.loan_store import LoanStore


@pytest.fixture
def store(tmp_path):
    return LoanStore(f"sqlite:///{tmp_path / 'loans.sqlite3'}")


@pytest.fixture
def client(store):
    app = create_app({"TESTING": True, "LOG_LEVEL": "WARNING"}, store=store)
    return app.test_client()


@pytest.fixture
def seeded(client, sample_loans_payload):
    for payload in sample_loans_payload:
        response = client.post("/api/loans", json=payload)
        assert response.status_code == 201, response.get_json()
    return client


def test_create_and_get_loan(client, sample_loans_payload):
    payload = dict(sample_loans_payload[0])
    del payload["id"]
    response = client.post("/api/loans?today=2024-03-01", json=payload)

    assert response.status_code == 201
    created = response.get_json()
    assert created["id"]
    assert created["name"] == "Credit card"
    assert created["nextEMIDate"] == "2024-04-10"
    assert created["healthStatus"] in ("on-track", "ahead", "behind")

    fetched = client.get(f"/api/loans/{created['id']}").get_json()
    assert fetched["totalAmount"] == 5000.0
    assert fetched["paidAmount"] == 1000.0


def test_create_loan_validation_error(client, sample_loans_payload):
    payload = dict(sample_loans_payload[0], totalAmount="-5")
    response = client.post("/api/loans", json=payload)
    assert response.status_code == 400
    assert "totalAmount" in response.get_json()["message"]


def test_create_loan_requires_json_object(client):
    response = client.post("/api/loans", data="not json", content_type="text/plain")
    assert response.status_code == 400


def test_list_loans_is_enriched(seeded):
    loans = seeded.get("/api/loans?today=2024-03-01").get_json()
    assert [loan["id"] for loan in loans] == ["a", "b", "c"]
    assert all("remainingTenure" in loan for loan in loans)
    assert loans[2]["remainingTenure"] == 0


def test_update_loan(seeded):
    response = seeded.put("/api/loans/a", json={"interestRate": 20})
    assert response.status_code == 200
    assert response.get_json()["interestRate"] == 20.0
    assert response.get_json()["name"] == "Credit card"


def test_delete_loan(seeded):
    assert seeded.delete("/api/loans/a").status_code == 204
    assert seeded.get("/api/loans/a").status_code == 404
    assert seeded.delete("/api/loans/a").status_code == 404


def test_schedule_endpoint(seeded):
    schedule = seeded.get("/api/loans/b/schedule").get_json()
    # 20000 paid covers 12 installments of the 240
    assert schedule[0]["installmentNumber"] == 13
    assert len(schedule) == 228
    balances = [e["remainingBalance"] for e in schedule]
    assert balances == sorted(balances, reverse=True)
    assert seeded.get("/api/loans/c/schedule").get_json() == []


def test_unknown_loan_returns_404(client):
    response = client.get("/api/loans/missing/schedule")
    assert response.status_code == 404
    assert response.get_json()["message"] == "Loan missing not found"


def test_analytics_endpoint(seeded):
    data = seeded.get("/api/loans/analytics").get_json()

    assert data["totalLoans"] == 3
    assert data["activeLoans"] == 2
    assert [r["loanId"] for r in data["avalanche"]] == ["a", "b"]
    assert [r["loanId"] for r in data["snowball"]] == ["a", "b"]
    assert [loan["id"] for loan in data["highInterest"]] == ["a"]
    assert data["bestStrategy"]["strategy"] in ("avalanche", "snowball")


def test_analytics_threshold_override(seeded):
    data = seeded.get("/api/loans/analytics?threshold=8").get_json()
    assert [loan["id"] for loan in data["highInterest"]] == ["a", "b"]


def test_summary_endpoint(seeded):
    data = seeded.get("/api/loans/summary?today=2024-03-01").get_json()
    assert data["totalBorrowed"] == 208000
    assert data["totalPaid"] == 24000
    assert data["totalRemaining"] == 184000
    assert data["averageInterestRate"] == 13.25


def test_upcoming_endpoint(seeded):
    # Credit card: 1000 paid covers two installments, the third falls on 2024-04-10
    data = seeded.get("/api/loans/upcoming?today=2024-04-01").get_json()
    assert [p["loanId"] for p in data] == ["a"]
    assert data[0]["daysUntilDue"] == 9
    assert data[0]["urgency"] == "low"
    assert data[0]["urgencyText"] == "9 days"


def test_payments_update_paid_amount(seeded):
    response = seeded.post("/api/loans/a/payments", json={"amount": 500, "date": "2024-03-10", "notes": "March"})
    assert response.status_code == 201
    payment = response.get_json()
    assert seeded.get("/api/loans/a").get_json()["paidAmount"] == 1500.0

    payments = seeded.get("/api/loans/a/payments").get_json()
    assert [p["id"] for p in payments] == [payment["id"]]

    assert seeded.delete(f"/api/payments/{payment['id']}").status_code == 204
    assert seeded.get("/api/loans/a").get_json()["paidAmount"] == 1000.0
    assert seeded.delete(f"/api/payments/{payment['id']}").status_code == 404


def test_payment_validation(seeded):
    assert seeded.post("/api/loans/a/payments", json={"amount": 0}).status_code == 400
    assert seeded.post("/api/loans/missing/payments", json={"amount": 10}).status_code == 404


def test_early_payoff_savings_endpoint(seeded):
    data = seeded.get("/api/loans/b/savings?amount=10000").get_json()
    assert data["savedInterest"] > 0
    assert seeded.get("/api/loans/b/savings").status_code == 400


def test_unknown_route_is_json_404(client):
    response = client.get("/api/nothing")
    assert response.status_code == 404
    assert "message" in response.get_json()


def test_duplicate_loan_id_is_a_conflict(seeded, sample_loans_payload):
    response = seeded.post("/api/loans", json=sample_loans_payload[0])
    assert response.status_code == 409
    assert response.get_json()["message"] == "Loan a already exists"
    assert len(seeded.get("/api/loans").get_json()) == 3


def test_fractional_rate_survives_storage(client, sample_loans_payload):
    payload = dict(sample_loans_payload[1], interestRate="8.125", totalAmount="200000.1234")
    created = client.post("/api/loans", json=payload).get_json()

    fetched = client.get("/api/loans/b").get_json()
    assert fetched["interestRate"] == 8.125
    assert fetched["totalAmount"] == 200000.1234
    assert fetched["emiAmount"] == created["emiAmount"]
    assert fetched["totalInterest"] == created["totalInterest"]


def test_values_finer_than_storage_are_rejected(client, sample_loans_payload):
    payload = dict(sample_loans_payload[1], interestRate="8.12345")
    response = client.post("/api/loans", json=payload)
    assert response.status_code == 400
    assert "interestRate" in response.get_json()["message"]
    assert client.get("/api/loans/b").status_code == 404


def test_deleting_payment_never_makes_paid_amount_negative(seeded):
    payment = seeded.post("/api/loans/a/payments", json={"amount": 500, "date": "2024-03-10"}).get_json()
    assert seeded.put("/api/loans/a", json={"paidAmount": 200}).status_code == 200

    assert seeded.delete(f"/api/payments/{payment['id']}").status_code == 204
    assert seeded.get("/api/loans/a").get_json()["paidAmount"] == 0.0
