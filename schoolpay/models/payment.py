from schoolpay.billing.clock import utcnow
from schoolpay.billing.state_machine import PaymentStatus
from schoolpay.extensions import db


class Payment(db.Model):
    __tablename__ = "payments"

    id = db.Column(db.Integer, primary_key=True)
    reference = db.Column(db.String(64), unique=True, nullable=False, index=True)
    transaction_id = db.Column(db.String(128), nullable=True)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    currency = db.Column(db.String(10), nullable=False, default="NGN")
    status = db.Column(db.String(20), nullable=False, default=PaymentStatus.PENDING.value, index=True)
    provider = db.Column(db.String(30), nullable=True)

    school_id = db.Column(db.String(36), db.ForeignKey("schools.id"), nullable=False, index=True)
    subscription_id = db.Column(db.Integer, db.ForeignKey("subscriptions.id"), nullable=True, index=True)

    # "metadata" is reserved on declarative models
    meta = db.Column("metadata", db.JSON, nullable=False, default=dict)

    paid_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    school = db.relationship("School", back_populates="payments")
    subscription = db.relationship("Subscription", back_populates="payments")

    def to_dict(self):
        return {
            "id": self.id,
            "reference": self.reference,
            "transaction_id": self.transaction_id,
            "amount": str(self.amount),
            "currency": self.currency,
            "status": self.status,
            "provider": self.provider,
            "school_id": self.school_id,
            "subscription_id": self.subscription_id,
            "paid_at": self.paid_at.isoformat() if self.paid_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self):
        return f"<Payment reference={self.reference} status={self.status}>"
