import logging
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from schoolpay.billing.clock import utcnow
from schoolpay.billing.plans import get_plan, plan_display_name
from schoolpay.billing.state_machine import (
    InvalidStateTransition,
    PaymentStatus,
    SubscriptionStatus,
)
from schoolpay.billing.stores import PaymentStore, SubscriptionStore
from schoolpay.errors import ReconciliationError

logger = logging.getLogger(__name__)

DEFAULT_DURATION_DAYS = 30


def _first(meta, *keys):
    for key in keys:
        if meta.get(key) not in (None, ""):
            return meta[key]
    return None


@dataclass(frozen=True)
class PlanTerms:
    plan_type: str
    plan_name: str
    duration_days: int
    features: dict

    @classmethod
    def from_payment(cls, payment, default_duration_days=DEFAULT_DURATION_DAYS):
        # snake_case keys come from PaymentService, camelCase from the school portal
        meta = payment.meta or {}
        plan_type = _first(meta, "plan_type", "planType")
        if not plan_type or not isinstance(plan_type, str):
            raise ReconciliationError(
                f"Payment {payment.reference} carries no plan type"
            )
        plan_type = plan_type.lower()
        plan = get_plan(plan_type)

        duration = _first(meta, "duration_days", "duration")
        if duration is None:
            duration = plan.duration_days if plan else default_duration_days
        try:
            duration = int(duration)
        except (TypeError, ValueError):
            raise ReconciliationError(
                f"Payment {payment.reference} has an invalid duration: {duration!r}"
            ) from None
        if duration <= 0:
            raise ReconciliationError(
                f"Payment {payment.reference} requests a non-positive duration ({duration})"
            )

        features = meta.get("features")
        if features is None:
            features = plan.feature_flags() if plan else {}

        return cls(
            plan_type=plan_type,
            plan_name=_first(meta, "plan_name", "planName") or plan_display_name(plan_type),
            duration_days=duration,
            features=dict(features),
        )


@dataclass(frozen=True)
class ReconciliationResult:
    action: str  # created | activated | extended | noop
    subscription: object
    period_start: Optional[object] = None
    period_end: Optional[object] = None


class SubscriptionReconciler:
    """
    Turns one completed payment into the school's subscription state.

    Preserves "at most one active subscription per school":
    an active row is extended (additively), otherwise a trial row is
    promoted or a new active row is created. A payment already linked to a
    subscription is a no-op, so replays never double-extend.
    """

    def __init__(
        self,
        payments: PaymentStore,
        subscriptions: SubscriptionStore,
        default_duration_days: int = DEFAULT_DURATION_DAYS,
        clock=utcnow,
    ):
        self.payments = payments
        self.subscriptions = subscriptions
        self.default_duration_days = default_duration_days
        self.clock = clock

    def reconcile(self, payment, now=None) -> ReconciliationResult:
        if payment.status != PaymentStatus.COMPLETED:
            raise InvalidStateTransition(
                f"Reconciliation requires a completed payment, got {payment.status}"
            )

        if payment.subscription_id is not None:
            logger.info(
                "Payment already reconciled",
                extra={"reference": payment.reference, "subscription_id": payment.subscription_id},
            )
            return ReconciliationResult(
                "noop", self.subscriptions.get(payment.subscription_id)
            )

        now = now or self.clock()
        terms = PlanTerms.from_payment(payment, self.default_duration_days)
        duration = timedelta(days=terms.duration_days)

        try:
            self.subscriptions.lock_school(payment.school_id)
            existing = self.subscriptions.find_active(payment.school_id, now)

            if existing is not None:
                period_start = existing.end_date
                subscription = self.subscriptions.extend_end_date(existing, terms.duration_days)
                action = "extended"
            else:
                period_start = now
                fields = dict(
                    plan_name=terms.plan_name,
                    plan_type=terms.plan_type,
                    amount=Decimal(payment.amount),
                    currency=payment.currency,
                    start_date=now,
                    end_date=now + duration,
                    features=terms.features,
                )
                trial = self.subscriptions.find_trial(payment.school_id)
                if trial is not None:
                    subscription = self.subscriptions.activate(trial, **fields)
                    action = "activated"
                else:
                    subscription = self.subscriptions.create(
                        school_id=payment.school_id,
                        status=SubscriptionStatus.ACTIVE.value,
                        **fields,
                    )
                    action = "created"

            self.payments.link_subscription(
                payment,
                subscription,
                {
                    "subscription_processed": True,
                    "subscription_action": action,
                    "subscription_start_date": period_start.isoformat(),
                    "subscription_end_date": subscription.end_date.isoformat(),
                },
            )
        except SQLAlchemyError as exc:
            raise ReconciliationError(
                f"Subscription write failed for payment {payment.reference}"
            ) from exc

        logger.info(
            f"Subscription {action} for school {payment.school_id}",
            extra={
                "reference": payment.reference,
                "subscription_id": subscription.id,
                "end_date": subscription.end_date.isoformat(),
            },
        )
        return ReconciliationResult(action, subscription, period_start, subscription.end_date)
