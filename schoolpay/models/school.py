import uuid

from schoolpay.billing.clock import utcnow
from schoolpay.extensions import db


class School(db.Model):
    __tablename__ = "schools"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    subscriptions = db.relationship("Subscription", back_populates="school", lazy="dynamic")
    payments = db.relationship("Payment", back_populates="school", lazy="dynamic")

    def __repr__(self):
        return f"<School id={self.id} name={self.name!r}>"
