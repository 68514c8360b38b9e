import math

from sqlalchemy import Index

from schoolpay.billing.clock import utcnow
from schoolpay.billing.state_machine import SubscriptionStatus
from schoolpay.extensions import db


class Subscription(db.Model):
    __tablename__ = "subscriptions"

    id = db.Column(db.Integer, primary_key=True)
    school_id = db.Column(db.String(36), db.ForeignKey("schools.id"), nullable=False, index=True)

    plan_name = db.Column(db.String(100), nullable=False)
    plan_type = db.Column(db.String(50), nullable=False)
    amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    currency = db.Column(db.String(10), nullable=False, default="NGN")
    status = db.Column(db.String(20), nullable=False, default=SubscriptionStatus.TRIAL.value)

    start_date = db.Column(db.DateTime, nullable=False, default=utcnow)
    end_date = db.Column(db.DateTime, nullable=False)
    features = db.Column(db.JSON, nullable=False, default=dict)

    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    school = db.relationship("School", back_populates="subscriptions")
    payments = db.relationship("Payment", back_populates="subscription", lazy="select")

    __table_args__ = (
        Index("idx_subscription_school_status_end", "school_id", "status", "end_date"),
    )

    def is_active(self, now=None):
        """Active means status=active and the window has not closed yet."""
        now = now or utcnow()
        return self.status == SubscriptionStatus.ACTIVE and self.end_date >= now

    def effective_status(self, now=None):
        """Status as observed at ``now``; lapsed active/trial rows read as expired."""
        now = now or utcnow()
        if self.status in (SubscriptionStatus.ACTIVE, SubscriptionStatus.TRIAL) and self.end_date < now:
            return SubscriptionStatus.EXPIRED.value
        return self.status

    def days_remaining(self, now=None):
        now = now or utcnow()
        seconds = (self.end_date - now).total_seconds()
        return max(0, math.ceil(seconds / 86400))

    def to_dict(self, now=None):
        now = now or utcnow()
        return {
            "id": self.id,
            "school_id": self.school_id,
            "plan_name": self.plan_name,
            "plan_type": self.plan_type,
            "amount": str(self.amount),
            "currency": self.currency,
            "status": self.effective_status(now),
            "start_date": self.start_date.isoformat() if self.start_date else None,
            "end_date": self.end_date.isoformat() if self.end_date else None,
            "days_remaining": self.days_remaining(now),
            "features": self.features or {},
        }

    def __repr__(self):
        return f"<Subscription id={self.id} school={self.school_id} status={self.status}>"
