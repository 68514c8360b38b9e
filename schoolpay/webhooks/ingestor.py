import json
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Mapping, Optional

from schoolpay.billing.clock import utcnow
from schoolpay.billing.reconciler import SubscriptionReconciler
from schoolpay.billing.state_machine import PaymentStatus
from schoolpay.billing.stores import (
    PaymentStore,
    SqlAlchemyPaymentStore,
    SqlAlchemySubscriptionStore,
    SubscriptionStore,
)
from schoolpay.errors import (
    AmountMismatchError,
    InvalidPayloadError,
    InvalidSignatureError,
    PaymentNotFoundError,
    ReconciliationError,
    UnknownProviderError,
    WebhookError,
)
from schoolpay.observability import metrics_manager
from schoolpay.webhooks.providers import PROVIDERS, PaymentEvent, detect_provider
from schoolpay.webhooks.security import verify_signature

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WebhookResult:
    status: str  # success | ignored
    provider: str
    reference: Optional[str] = None
    reason: Optional[str] = None
    subscription_action: Optional[str] = None

    def to_dict(self):
        body = {"status": self.status}
        if self.reason:
            body["reason"] = self.reason
        if self.reference:
            body["reference"] = self.reference
        return body


class WebhookIngestor:
    """
    Authenticates and normalises provider notifications, then confirms the
    matching payment and hands it to the reconciler.

    Confirmation and reconciliation run as one unit of work: the payment is
    only left ``completed`` if the subscription effect was written too.
    """

    def __init__(
        self,
        payments: PaymentStore,
        subscriptions: SubscriptionStore,
        secrets: Mapping[str, Optional[str]],
        verify_signatures: bool = True,
        reconciler: Optional[SubscriptionReconciler] = None,
        providers=PROVIDERS,
        clock=utcnow,
    ):
        self.payments = payments
        self.subscriptions = subscriptions
        self.secrets = secrets
        self.verify_signatures = verify_signatures
        self.providers = providers
        self.clock = clock
        self.reconciler = reconciler or SubscriptionReconciler(payments, subscriptions, clock=clock)

    @classmethod
    def from_config(cls, config):
        payments = SqlAlchemyPaymentStore()
        subscriptions = SqlAlchemySubscriptionStore()
        reconciler = SubscriptionReconciler(
            payments,
            subscriptions,
            default_duration_days=config.get("DEFAULT_PLAN_DURATION_DAYS", 30),
        )
        return cls(
            payments,
            subscriptions,
            secrets={p.secret_config_key: config.get(p.secret_config_key) for p in PROVIDERS},
            verify_signatures=config.get("WEBHOOK_VERIFY_SIGNATURES", True),
            reconciler=reconciler,
        )

    def handle(self, raw_body: bytes, headers) -> WebhookResult:
        headers = {key.lower(): value for key, value in headers.items()}
        body = self._decode(raw_body)

        provider = detect_provider(body, headers, self.providers)
        if provider is None:
            metrics_manager.record_webhook(None, UnknownProviderError.code)
            raise UnknownProviderError("Unknown payment provider")

        try:
            result = self._handle_for_provider(provider, raw_body, body, headers)
        except WebhookError as exc:
            metrics_manager.record_webhook(provider.name, exc.code)
            raise

        outcome = result.reason or result.status
        metrics_manager.record_webhook(provider.name, outcome)
        return result

    def _handle_for_provider(self, provider, raw_body, body, headers):
        if self.verify_signatures:
            secret = self.secrets.get(provider.secret_config_key)
            if not verify_signature(raw_body, provider.signature(headers), secret):
                logger.warning(f"Invalid {provider.name} webhook signature")
                raise InvalidSignatureError(f"Invalid {provider.name} signature")
        else:
            logger.warning(f"Signature verification disabled; accepting {provider.name} webhook unverified")

        if not isinstance(body, dict):
            raise InvalidPayloadError("Webhook body must be a JSON object")

        event = provider.parse(body)
        if not event.succeeded:
            logger.info(
                f"Ignoring {provider.name} event {event.event_type}",
                extra={"reference": event.reference},
            )
            return WebhookResult("ignored", provider.name, reference=event.reference)

        return self._confirm(event)

    def _confirm(self, event: PaymentEvent) -> WebhookResult:
        payment = self.payments.get_by_reference(event.reference)
        if payment is None:
            logger.error(f"Payment not found for reference: {event.reference}")
            raise PaymentNotFoundError(
                f"Payment not found: {event.reference}",
                payload={"reference": event.reference},
            )

        self._check_amount(payment, event)

        now = self.clock()
        meta = dict(payment.meta or {})
        meta["webhook_data"] = event.raw
        meta["completed_at"] = now.isoformat()
        meta["provider_event"] = event.event_type

        try:
            with self.payments.atomic():
                won = self.payments.compare_and_set_status(
                    payment,
                    PaymentStatus.PENDING,
                    PaymentStatus.COMPLETED,
                    transaction_id=event.transaction_id,
                    paid_at=now,
                    provider=event.provider,
                    meta=meta,
                )
                if not won:
                    logger.info(
                        f"Payment {event.reference} already processed",
                        extra={"reference": event.reference, "status": payment.status},
                    )
                    return WebhookResult(
                        "ignored", event.provider, reference=event.reference, reason="already_processed"
                    )

                outcome = self.reconciler.reconcile(payment, now=now)
        except ReconciliationError:
            logger.exception(f"Reconciliation failed for {event.reference}; payment left pending")
            raise
        except Exception as exc:
            logger.exception(f"Webhook processing failed for {event.reference}; payment left pending")
            raise ReconciliationError(
                f"Webhook processing failed for {event.reference}"
            ) from exc

        logger.info(
            f"{event.provider} payment completed: {event.reference}",
            extra={"reference": event.reference, "subscription_action": outcome.action},
        )
        return WebhookResult(
            "success", event.provider, reference=event.reference, subscription_action=outcome.action
        )

    @staticmethod
    def _check_amount(payment, event: PaymentEvent) -> None:
        expected = Decimal(payment.amount)
        if expected != event.amount:
            logger.error(
                f"Amount mismatch. Expected: {expected}, Got: {event.amount}",
                extra={"reference": event.reference},
            )
            raise AmountMismatchError(
                "Confirmed amount does not match the recorded payment",
                payload={"expected": str(expected), "received": str(event.amount)},
            )

        if event.currency and payment.currency and event.currency.upper() != payment.currency.upper():
            logger.error(
                f"Currency mismatch. Expected: {payment.currency}, Got: {event.currency}",
                extra={"reference": event.reference},
            )
            raise AmountMismatchError(
                "Confirmed currency does not match the recorded payment",
                payload={"expected": payment.currency, "received": event.currency},
            )

    @staticmethod
    def _decode(raw_body: bytes):
        if not raw_body:
            return None
        try:
            return json.loads(raw_body)
        except (ValueError, UnicodeDecodeError):
            return None
