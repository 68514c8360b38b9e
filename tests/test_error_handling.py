from unittest.mock import patch

from schoolpay.errors import AmountMismatchError, AppError, ReconciliationError
from schoolpay.extensions import db
from schoolpay.models import Payment, Subscription
from schoolpay.observability.metrics import MetricsManager

from helpers import flutterwave_event


def test_app_error_serialisation():
    error = AmountMismatchError("mismatch", payload={"expected": "1.00"})

    assert error.status_code == 400
    assert error.to_dict() == {
        "status": "error",
        "error": "amount_mismatch",
        "message": "mismatch",
        "expected": "1.00",
    }


def test_status_code_override():
    assert AppError("teapot", status_code=418).status_code == 418


def test_unknown_route_returns_json_404(client):
    response = client.get("/api/does-not-exist")

    assert response.status_code == 404
    assert response.get_json()["status"] == "error"


def test_method_not_allowed_is_json(client):
    response = client.delete("/api/payments/webhook")

    assert response.status_code == 405
    assert response.get_json()["status"] == "error"


def test_reconciliation_failure_returns_500_and_keeps_payment_pending(post_webhook, school, make_payment):
    payment = make_payment(school)

    with patch(
        "schoolpay.webhooks.ingestor.SubscriptionReconciler.reconcile",
        side_effect=RuntimeError("disk full"),
    ):
        response = post_webhook(flutterwave_event(payment.reference, 45000))

    assert response.status_code == 500
    assert response.get_json()["error"] == ReconciliationError.code

    db.session.expire_all()
    stored = db.session.get(Payment, payment.id)
    assert stored.status == "pending"
    assert "webhook_data" not in stored.meta
    assert Subscription.query.count() == 0


def test_unexpected_errors_do_not_leak_details(app, client):
    with patch(
        "schoolpay.routes.schools.SubscriptionService.summary",
        side_effect=KeyError("internal detail"),
    ):
        response = client.get("/api/schools/any/subscription")

    assert response.status_code == 500
    body = response.get_json()
    assert body["error"] == "internal_error"
    assert "internal detail" not in body["message"]


def test_metrics_manager_counts_webhook_outcomes():
    manager = MetricsManager(enabled=True)

    manager.record_webhook("paga", "success")
    manager.record_webhook("paga", "success")
    manager.record_webhook(None, "unknown_provider")

    registry = manager.registry
    assert registry.get_sample_value(
        "webhook_events_total", {"provider": "paga", "outcome": "success"}
    ) == 2.0
    assert registry.get_sample_value(
        "webhook_events_total", {"provider": "unknown", "outcome": "unknown_provider"}
    ) == 1.0


def test_disabled_metrics_are_noops():
    manager = MetricsManager()

    manager.record_webhook("flutterwave", "success")

    assert manager.registry is None
