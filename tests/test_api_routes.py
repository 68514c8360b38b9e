from datetime import timedelta

from schoolpay.billing.clock import utcnow
from schoolpay.services import SubscriptionService


def test_initiate_payment_endpoint(client, school):
    response = client.post("/api/payments/initiate", json={
        "school_id": school.id,
        "plan_type": "pro",
        "provider": "flutterwave",
    })

    assert response.status_code == 201
    body = response.get_json()
    assert body["payment"]["reference"].startswith("PAY-")
    assert body["payment"]["amount"] == "45000.00"
    assert body["payment"]["status"] == "pending"
    assert body["plan"]["plan_name"] == "Pro"


def test_initiate_payment_requires_fields(client):
    response = client.post("/api/payments/initiate", json={"plan_type": "pro"})

    assert response.status_code == 400
    body = response.get_json()
    assert body["error"] == "validation_error"
    assert set(body["fields"]) == {"school_id", "provider"}


def test_initiate_payment_unknown_school(client):
    response = client.post("/api/payments/initiate", json={
        "school_id": "missing",
        "plan_type": "pro",
        "provider": "paga",
    })

    assert response.status_code == 404


def test_unreconciled_audit_endpoint(client, school, make_payment):
    orphan = make_payment(school, status="completed")

    response = client.get("/api/payments/audit/unreconciled")

    assert response.status_code == 200
    body = response.get_json()
    assert body["count"] == 1
    assert body["payments"][0]["reference"] == orphan.reference


def test_subscription_summary_endpoint(client, school):
    SubscriptionService().start_trial(school, now=utcnow() - timedelta(days=1))

    response = client.get(f"/api/schools/{school.id}/subscription")

    assert response.status_code == 200
    subscription = response.get_json()["subscription"]
    assert subscription["status"] == "trial"
    assert subscription["days_remaining"] == 29


def test_payment_history_newest_first(client, school, make_payment):
    older = make_payment(school)
    older.created_at = utcnow() - timedelta(days=3)
    newer = make_payment(school)

    response = client.get(f"/api/schools/{school.id}/payments")

    assert response.status_code == 200
    references = [p["reference"] for p in response.get_json()["payments"]]
    assert references == [newer.reference, older.reference]


def test_payment_history_unknown_school(client):
    response = client.get("/api/schools/missing/payments")

    assert response.status_code == 404
    assert response.get_json()["error"] == "not_found"


def test_health_endpoint(client):
    response = client.get("/health")

    assert response.status_code == 200
    body = response.get_json()
    assert body["checks"]["database"]["status"] == "ok"
    assert body["checks"]["redis"]["status"] == "skipped"


def test_request_id_is_echoed(client):
    response = client.get("/health", headers={"X-Request-ID": "req-123"})

    assert response.headers["X-Request-ID"] == "req-123"
