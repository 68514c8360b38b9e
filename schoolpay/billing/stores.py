"""
Repository interfaces for payments and subscriptions.

The stores are the only mutation surface the webhook ingestor and the
reconciler use. Concurrency guarantees live here:

- ``PaymentStore.compare_and_set_status`` is a conditional UPDATE; exactly
  one caller wins the pending -> completed transition.
- ``SubscriptionStore.extend_end_date`` re-reads the row under
  ``SELECT ... FOR UPDATE`` before adding to ``end_date``.
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import timedelta
from typing import List, Optional

from sqlalchemy import select, update

from schoolpay.billing.clock import utcnow
from schoolpay.billing.state_machine import (
    PaymentStatus,
    SubscriptionStatus,
    payment_transition,
    subscription_transition,
)
from schoolpay.extensions import db
from schoolpay.models import Payment, School, Subscription


class PaymentStore(ABC):

    @abstractmethod
    def atomic(self):
        """Context manager: commit on success, roll back on any exception."""

    @abstractmethod
    def add(self, payment: Payment) -> Payment:
        ...

    @abstractmethod
    def get_by_reference(self, reference: str) -> Optional[Payment]:
        ...

    @abstractmethod
    def compare_and_set_status(self, payment: Payment, expected, new, **changes) -> bool:
        """Move ``payment`` from ``expected`` to ``new`` only if it is still ``expected``."""

    @abstractmethod
    def link_subscription(self, payment: Payment, subscription: Subscription, meta_updates: dict) -> Payment:
        ...

    @abstractmethod
    def list_for_school(self, school_id: str) -> List[Payment]:
        ...

    @abstractmethod
    def find_unreconciled(self) -> List[Payment]:
        """Completed payments that never produced a subscription effect."""


class SubscriptionStore(ABC):

    @abstractmethod
    def get(self, subscription_id: int) -> Optional[Subscription]:
        ...

    @abstractmethod
    def lock_school(self, school_id: str) -> None:
        """Serialize reconciliation per school."""

    @abstractmethod
    def find_active(self, school_id: str, now) -> Optional[Subscription]:
        ...

    @abstractmethod
    def find_trial(self, school_id: str) -> Optional[Subscription]:
        ...

    @abstractmethod
    def extend_end_date(self, subscription: Subscription, days: int) -> Subscription:
        ...

    @abstractmethod
    def create(self, **fields) -> Subscription:
        ...

    @abstractmethod
    def activate(self, subscription: Subscription, **fields) -> Subscription:
        """Promote a trial row to active in place."""

    @abstractmethod
    def latest_for_school(self, school_id: str) -> Optional[Subscription]:
        ...

    @abstractmethod
    def expire_lapsed(self, now) -> int:
        ...


class SqlAlchemyPaymentStore(PaymentStore):
    def __init__(self, session=None):
        self.session = session if session is not None else db.session

    @contextmanager
    def atomic(self):
        try:
            yield
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

    def add(self, payment):
        self.session.add(payment)
        self.session.flush()
        return payment

    def get_by_reference(self, reference):
        return self.session.execute(
            select(Payment).filter_by(reference=reference)
        ).scalar_one_or_none()

    def compare_and_set_status(self, payment, expected, new, **changes):
        target = payment_transition(expected, new)
        values = {getattr(Payment, key): value for key, value in changes.items()}
        values[Payment.status] = target.value
        values[Payment.updated_at] = utcnow()

        result = self.session.execute(
            update(Payment)
            .where(Payment.id == payment.id, Payment.status == PaymentStatus(expected).value)
            .values(values)
            .execution_options(synchronize_session=False)
        )
        self.session.refresh(payment)
        return result.rowcount == 1

    def link_subscription(self, payment, subscription, meta_updates):
        payment.subscription_id = subscription.id
        payment.meta = {**(payment.meta or {}), **meta_updates}
        self.session.flush()
        return payment

    def list_for_school(self, school_id):
        return list(
            self.session.execute(
                select(Payment)
                .filter_by(school_id=school_id)
                .order_by(Payment.created_at.desc(), Payment.id.desc())
            ).scalars()
        )

    def find_unreconciled(self):
        return list(
            self.session.execute(
                select(Payment)
                .where(
                    Payment.status == PaymentStatus.COMPLETED.value,
                    Payment.subscription_id.is_(None),
                )
                .order_by(Payment.paid_at)
            ).scalars()
        )


class SqlAlchemySubscriptionStore(SubscriptionStore):
    def __init__(self, session=None):
        self.session = session if session is not None else db.session

    def get(self, subscription_id):
        return self.session.get(Subscription, subscription_id)

    def lock_school(self, school_id):
        self.session.execute(
            select(School.id).where(School.id == school_id).with_for_update()
        )

    def find_active(self, school_id, now):
        return self.session.execute(
            select(Subscription)
            .where(
                Subscription.school_id == school_id,
                Subscription.status == SubscriptionStatus.ACTIVE.value,
                Subscription.end_date >= now,
            )
            .order_by(Subscription.end_date.desc())
            .limit(1)
            .with_for_update()
        ).scalar_one_or_none()

    def find_trial(self, school_id):
        return self.session.execute(
            select(Subscription)
            .where(
                Subscription.school_id == school_id,
                Subscription.status == SubscriptionStatus.TRIAL.value,
            )
            .order_by(Subscription.created_at.desc())
            .limit(1)
            .with_for_update()
        ).scalar_one_or_none()

    def extend_end_date(self, subscription, days):
        # Re-read under the row lock so the addition starts from the latest end date
        self.session.refresh(subscription, with_for_update=True)
        subscription_transition(subscription.status, SubscriptionStatus.ACTIVE)
        subscription.end_date = subscription.end_date + timedelta(days=days)
        self.session.flush()
        return subscription

    def create(self, **fields):
        subscription = Subscription(**fields)
        self.session.add(subscription)
        self.session.flush()
        return subscription

    def activate(self, subscription, **fields):
        subscription.status = subscription_transition(
            subscription.status, SubscriptionStatus.ACTIVE
        ).value
        for key, value in fields.items():
            setattr(subscription, key, value)
        self.session.flush()
        return subscription

    def latest_for_school(self, school_id):
        return self.session.execute(
            select(Subscription)
            .filter_by(school_id=school_id)
            .order_by(Subscription.end_date.desc(), Subscription.id.desc())
            .limit(1)
        ).scalar_one_or_none()

    def expire_lapsed(self, now):
        result = self.session.execute(
            update(Subscription)
            .where(
                Subscription.status.in_(
                    [SubscriptionStatus.ACTIVE.value, SubscriptionStatus.TRIAL.value]
                ),
                Subscription.end_date < now,
            )
            .values({Subscription.status: SubscriptionStatus.EXPIRED.value, Subscription.updated_at: now})
            .execution_options(synchronize_session=False)
        )
        return result.rowcount
