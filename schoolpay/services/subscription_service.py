import logging
from datetime import timedelta
from decimal import Decimal

from schoolpay.billing.clock import utcnow
from schoolpay.billing.plans import TRIAL_FEATURES, TRIAL_PLAN_NAME, UNLIMITED
from schoolpay.billing.state_machine import SubscriptionStatus
from schoolpay.billing.stores import SqlAlchemyPaymentStore, SqlAlchemySubscriptionStore
from schoolpay.errors import NotFoundError
from schoolpay.extensions import db
from schoolpay.models import School

logger = logging.getLogger(__name__)

NO_ACTIVE_PLAN = "No Active Plan"


class SubscriptionService:
    """Read side and lifecycle helpers around school subscriptions"""

    def __init__(self, subscriptions=None, payments=None, trial_duration_days=30):
        self.subscriptions = subscriptions or SqlAlchemySubscriptionStore()
        self.payments = payments or SqlAlchemyPaymentStore()
        self.trial_duration_days = trial_duration_days

    def start_trial(self, school, now=None):
        """Give a newly registered school its trial. Returns None if it already has a subscription."""
        if self.subscriptions.latest_for_school(school.id) is not None:
            logger.info(f"School {school.id} already has a subscription; no trial created")
            return None

        now = now or utcnow()
        subscription = self.subscriptions.create(
            school_id=school.id,
            plan_name=TRIAL_PLAN_NAME,
            plan_type="basic",
            amount=Decimal("0"),
            status=SubscriptionStatus.TRIAL.value,
            start_date=now,
            end_date=now + timedelta(days=self.trial_duration_days),
            features=dict(TRIAL_FEATURES),
        )
        db.session.commit()
        logger.info(f"Trial started for school {school.id}", extra={"subscription_id": subscription.id})
        return subscription

    def summary(self, school_id, now=None):
        school = db.session.get(School, school_id)
        if school is None:
            raise NotFoundError(f"School not found: {school_id}")

        now = now or utcnow()
        subscription = self.subscriptions.latest_for_school(school_id)

        if subscription is None:
            plan = {
                "plan_name": NO_ACTIVE_PLAN,
                "plan_type": None,
                "status": SubscriptionStatus.EXPIRED.value,
                "end_date": None,
                "days_remaining": 0,
                "features": {},
                "max_students": 0,
            }
        else:
            plan = subscription.to_dict(now)
            max_students = (subscription.features or {}).get("max_students", 0)
            plan["max_students"] = "unlimited" if max_students == UNLIMITED else max_students

        return {
            "school_id": school.id,
            "school_name": school.name,
            "subscription": plan,
            "payments": [p.to_dict() for p in self.payments.list_for_school(school_id)],
        }

    def find_unreconciled_payments(self):
        return [
            {
                "reference": p.reference,
                "school_id": p.school_id,
                "amount": str(p.amount),
                "currency": p.currency,
                "provider": p.provider,
                "paid_at": p.paid_at.isoformat() if p.paid_at else None,
            }
            for p in self.payments.find_unreconciled()
        ]

    def expire_lapsed_subscriptions(self, now=None):
        now = now or utcnow()
        count = self.subscriptions.expire_lapsed(now)
        db.session.commit()
        if count:
            logger.info(f"Expired {count} lapsed subscription(s)")
        return count
