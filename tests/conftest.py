from decimal import Decimal

import pytest
from faker import Faker

from schoolpay import create_app
from schoolpay.billing.plans import PLANS
from schoolpay.extensions import db
from schoolpay.models import Payment, School
from schoolpay.services.payment_service import generate_reference

from helpers import sign

# Initialize Faker for generating test data
fake = Faker()


def pytest_configure(config):
    config.addinivalue_line(
        "markers",
        "payment: mark test as payment-related"
    )
    config.addinivalue_line(
        "markers",
        "slow: mark test as slow-running"
    )


@pytest.fixture(scope="session")
def app():
    """Application built from the testing config (in-memory SQLite)"""
    app = create_app("testing")

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(autouse=True)
def _reset_database(app):
    yield
    db.session.rollback()
    db.session.remove()
    db.drop_all()
    db.create_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def school(app):
    school = School(name=fake.company(), email=fake.company_email())
    db.session.add(school)
    db.session.commit()
    return school


@pytest.fixture()
def make_payment():
    """Factory for persisted plan payments"""

    def _make(school, plan_type="pro", status="pending", amount=None, reference=None, **meta_overrides):
        plan = PLANS[plan_type]
        meta = {
            "plan_type": plan.plan_type,
            "plan_name": plan.name,
            "duration_days": plan.duration_days,
            "features": plan.feature_flags(),
        }
        meta.update(meta_overrides)
        payment = Payment(
            reference=reference or generate_reference(),
            amount=Decimal(amount) if amount is not None else plan.price,
            currency="NGN",
            status=status,
            provider="flutterwave",
            school_id=school.id,
            meta=meta,
        )
        db.session.add(payment)
        db.session.commit()
        return payment

    return _make


@pytest.fixture()
def post_webhook(client):
    def _post(body, provider="flutterwave", secret=None, headers=None):
        raw, signed_headers = sign(body, provider, secret)
        if headers is not None:
            signed_headers = headers
        return client.post("/api/payments/webhook", data=raw, headers=signed_headers)

    return _post
