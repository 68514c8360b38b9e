from .base import BaseConfig


class TestingConfig(BaseConfig):
    """
    Test configuration: in-memory database, fixed provider secrets.
    """

    TESTING = True
    ENVIRONMENT = "testing"

    SECRET_KEY = "test-secret-key"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"

    FLUTTERWAVE_SECRET_HASH = "flw-test-secret"
    PAGA_WEBHOOK_SECRET = "paga-test-secret"
    WEBHOOK_VERIFY_SIGNATURES = True
    WEBHOOK_VERIFY_TOKEN = "verify-me"

    METRICS_ENABLED = False
    SENTRY_DSN = None
