import json
from datetime import datetime, timedelta
from decimal import Decimal
from unittest.mock import Mock

import pytest

from schoolpay.billing.reconciler import SubscriptionReconciler
from schoolpay.errors import (
    AmountMismatchError,
    InvalidPayloadError,
    InvalidSignatureError,
    PaymentNotFoundError,
    ReconciliationError,
    UnknownProviderError,
)
from schoolpay.webhooks import WebhookIngestor

from helpers import flutterwave_event, paga_event, sign
from memory_stores import (
    FakePayment,
    InMemoryPaymentStore,
    InMemorySubscriptionStore,
    MemoryBackend,
)

NOW = datetime(2026, 3, 1, 12, 0, 0)

SECRETS = {
    "FLUTTERWAVE_SECRET_HASH": "flw-test-secret",
    "PAGA_WEBHOOK_SECRET": "paga-test-secret",
}


@pytest.fixture()
def backend():
    return MemoryBackend()


@pytest.fixture()
def stores(backend):
    return InMemoryPaymentStore(backend), InMemorySubscriptionStore(backend)


@pytest.fixture()
def ingestor(stores):
    payments, subscriptions = stores
    return WebhookIngestor(payments, subscriptions, SECRETS, clock=lambda: NOW)


@pytest.fixture()
def pending_payment(stores):
    payments, _ = stores
    return payments.add(FakePayment(
        reference="PAY-TX123",
        amount=Decimal("45000.00"),
        school_id="S1",
        meta={"plan_type": "pro", "duration_days": 30},
    ))


def test_success_event_completes_payment_and_creates_subscription(ingestor, pending_payment, backend):
    raw, headers = sign(flutterwave_event("PAY-TX123", 45000))

    result = ingestor.handle(raw, headers)

    assert result.status == "success"
    assert result.subscription_action == "created"
    assert pending_payment.status == "completed"
    assert pending_payment.paid_at == NOW
    assert pending_payment.transaction_id.startswith("FLW-MOCK-")
    assert pending_payment.meta["webhook_data"]["tx_ref"] == "PAY-TX123"
    assert pending_payment.meta["completed_at"] == NOW.isoformat()
    assert pending_payment.meta["subscription_processed"] is True

    [subscription] = backend.subscriptions.values()
    assert subscription.school_id == "S1"
    assert subscription.status == "active"
    assert subscription.plan_name == "Pro"
    assert subscription.start_date == NOW
    assert subscription.end_date == NOW + timedelta(days=30)
    assert pending_payment.subscription_id == subscription.id


def test_paga_success_event(ingestor, pending_payment):
    raw, headers = sign(paga_event("PAY-TX123", "45000.00"), provider="paga")

    result = ingestor.handle(raw, headers)

    assert result.provider == "paga"
    assert result.status == "success"
    assert pending_payment.provider == "paga"


def test_headers_are_matched_case_insensitively(ingestor, pending_payment):
    raw, headers = sign(flutterwave_event("PAY-TX123", 45000))
    headers = {"Verif-Hash": headers["verif-hash"]}

    assert ingestor.handle(raw, headers).status == "success"


def test_duplicate_delivery_extends_once(ingestor, pending_payment, backend):
    raw, headers = sign(flutterwave_event("PAY-TX123", 45000))

    ingestor.handle(raw, headers)
    [subscription] = backend.subscriptions.values()
    end_date = subscription.end_date

    second = ingestor.handle(raw, headers)

    assert second.status == "ignored"
    assert second.reason == "already_processed"
    assert subscription.end_date == end_date
    assert len(backend.subscriptions) == 1


def test_amount_mismatch_leaves_payment_pending(stores, pending_payment):
    payments, subscriptions = stores
    reconciler = Mock(spec=SubscriptionReconciler)
    ingestor = WebhookIngestor(payments, subscriptions, SECRETS, reconciler=reconciler)
    raw, headers = sign(flutterwave_event("PAY-TX123", 100))

    with pytest.raises(AmountMismatchError):
        ingestor.handle(raw, headers)

    assert pending_payment.status == "pending"
    reconciler.reconcile.assert_not_called()


def test_currency_mismatch_is_rejected(ingestor, pending_payment):
    raw, headers = sign(flutterwave_event("PAY-TX123", 45000, currency="USD"))

    with pytest.raises(AmountMismatchError):
        ingestor.handle(raw, headers)
    assert pending_payment.status == "pending"


def test_unknown_provider_changes_nothing(ingestor, pending_payment, backend):
    raw = json.dumps({"type": "checkout.session.completed"}).encode()

    with pytest.raises(UnknownProviderError):
        ingestor.handle(raw, {"Content-Type": "application/json"})

    assert pending_payment.status == "pending"
    assert backend.subscriptions == {}


def test_bad_signature_is_rejected(ingestor, pending_payment):
    raw, headers = sign(flutterwave_event("PAY-TX123", 45000), secret="wrong-secret")

    with pytest.raises(InvalidSignatureError):
        ingestor.handle(raw, headers)
    assert pending_payment.status == "pending"


def test_payload_detected_provider_without_signature_is_rejected(ingestor, pending_payment):
    raw = json.dumps(flutterwave_event("PAY-TX123", 45000)).encode()

    with pytest.raises(InvalidSignatureError):
        ingestor.handle(raw, {})


def test_verification_can_be_disabled(stores, pending_payment):
    payments, subscriptions = stores
    ingestor = WebhookIngestor(payments, subscriptions, {}, verify_signatures=False)
    raw = json.dumps(flutterwave_event("PAY-TX123", 45000)).encode()

    assert ingestor.handle(raw, {}).status == "success"


def test_non_json_body_is_invalid_payload(ingestor):
    raw, headers = sign(b"not-json", provider="paga")

    with pytest.raises(InvalidPayloadError):
        ingestor.handle(raw, headers)


def test_unknown_reference_is_not_found(ingestor):
    raw, headers = sign(flutterwave_event("PAY-missing", 45000))

    with pytest.raises(PaymentNotFoundError) as exc_info:
        ingestor.handle(raw, headers)
    assert exc_info.value.payload == {"reference": "PAY-missing"}


def test_non_success_event_is_ignored_without_side_effects(ingestor, pending_payment, backend):
    raw, headers = sign(flutterwave_event("PAY-TX123", 45000, status="failed"))

    result = ingestor.handle(raw, headers)

    assert result.status == "ignored"
    assert result.reason is None
    assert pending_payment.status == "pending"
    assert backend.subscriptions == {}


def test_failed_payment_is_not_completed_by_late_success(ingestor, pending_payment):
    pending_payment.status = "failed"
    raw, headers = sign(flutterwave_event("PAY-TX123", 45000))

    result = ingestor.handle(raw, headers)

    assert result.reason == "already_processed"
    assert pending_payment.status == "failed"


def test_reconciliation_failure_rolls_back(stores, pending_payment, backend):
    payments, subscriptions = stores
    reconciler = Mock(spec=SubscriptionReconciler)
    reconciler.reconcile.side_effect = RuntimeError("subscription table locked")
    ingestor = WebhookIngestor(payments, subscriptions, SECRETS, reconciler=reconciler)
    raw, headers = sign(flutterwave_event("PAY-TX123", 45000))

    with pytest.raises(ReconciliationError):
        ingestor.handle(raw, headers)

    assert pending_payment.status == "pending"
    assert "webhook_data" not in pending_payment.meta
    assert backend.subscriptions == {}
