import logging
import secrets
import string
from decimal import Decimal

from schoolpay.billing.clock import utcnow
from schoolpay.billing.plans import get_plan
from schoolpay.billing.state_machine import PaymentStatus
from schoolpay.billing.stores import SqlAlchemyPaymentStore
from schoolpay.errors import NotFoundError, ValidationError
from schoolpay.extensions import db
from schoolpay.models import Payment, School
from schoolpay.webhooks.providers import get_provider

logger = logging.getLogger(__name__)

REFERENCE_PREFIX = "PAY-"
REFERENCE_ALPHABET = string.ascii_letters + string.digits + "_-"
REFERENCE_LENGTH = 10


def generate_reference() -> str:
    suffix = "".join(secrets.choice(REFERENCE_ALPHABET) for _ in range(REFERENCE_LENGTH))
    return f"{REFERENCE_PREFIX}{suffix}"


class PaymentService:
    """Service for creating and closing out plan payments"""

    def __init__(self, payments=None, currency="NGN"):
        self.payments = payments or SqlAlchemyPaymentStore()
        self.currency = currency

    def initiate_plan_payment(self, school_id, plan_type, provider):
        """
        Create a pending payment for a catalogue plan.

        The returned payment's reference is what the provider checkout
        must carry back (tx_ref / merchantReference).
        """
        school = db.session.get(School, school_id) if school_id else None
        if school is None:
            raise NotFoundError(f"School not found: {school_id}")

        plan = get_plan(plan_type)
        if plan is None:
            raise ValidationError(f"Unknown plan: {plan_type}", payload={"field": "plan_type"})

        if get_provider(provider or "") is None:
            raise ValidationError(f"Unsupported payment provider: {provider}", payload={"field": "provider"})

        payment = Payment(
            reference=generate_reference(),
            amount=Decimal(plan.price),
            currency=self.currency,
            status=PaymentStatus.PENDING.value,
            provider=provider,
            school_id=school.id,
            meta={
                "plan_type": plan.plan_type,
                "plan_name": plan.name,
                "duration_days": plan.duration_days,
                "features": plan.feature_flags(),
            },
        )

        with self.payments.atomic():
            self.payments.add(payment)

        logger.info(
            f"Payment initiated for school {school.id}",
            extra={"reference": payment.reference, "plan_type": plan.plan_type, "provider": provider},
        )
        return payment

    def fail_payment(self, reference, reason=None):
        """Mark a pending payment as failed. Completed payments are left alone."""
        payment = self.payments.get_by_reference(reference)
        if payment is None:
            raise NotFoundError(f"Payment not found: {reference}")

        meta = dict(payment.meta or {})
        meta["failure_reason"] = reason or "unspecified"
        meta["failed_at"] = utcnow().isoformat()

        with self.payments.atomic():
            changed = self.payments.compare_and_set_status(
                payment, PaymentStatus.PENDING, PaymentStatus.FAILED, meta=meta
            )

        if changed:
            logger.warning(f"Payment failed: {reference}", extra={"reason": reason})
        else:
            logger.info(f"Payment {reference} is {payment.status}; not marking failed")
        return changed

    def history(self, school_id):
        return self.payments.list_for_school(school_id)
