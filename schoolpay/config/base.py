import os


class ConfigurationError(Exception):
    """
    Raised when an invalid or unsupported configuration is requested.
    """
    pass


def _env_bool(name, default=False):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class BaseConfig:
    """
    Base configuration shared by all environments.
    """

    # Flask
    DEBUG = False
    TESTING = False
    SECRET_KEY = os.getenv("SECRET_KEY")
    ENVIRONMENT = "base"

    # Application
    APP_NAME = "SchoolPay Billing"
    APP_VERSION = "1.0.0"

    # Database
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///schoolpay.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Payment providers
    FLUTTERWAVE_SECRET_HASH = os.getenv("FLUTTERWAVE_SECRET_HASH")
    PAGA_WEBHOOK_SECRET = os.getenv("PAGA_WEBHOOK_SECRET")
    WEBHOOK_VERIFY_SIGNATURES = _env_bool("WEBHOOK_VERIFY_SIGNATURES", True)
    WEBHOOK_VERIFY_TOKEN = os.getenv("WEBHOOK_VERIFY_TOKEN")

    # Billing
    DEFAULT_CURRENCY = os.getenv("DEFAULT_CURRENCY", "NGN")
    DEFAULT_PLAN_DURATION_DAYS = int(os.getenv("DEFAULT_PLAN_DURATION_DAYS", "30"))
    TRIAL_DURATION_DAYS = int(os.getenv("TRIAL_DURATION_DAYS", "30"))

    # Logging / observability
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_REQUESTS = _env_bool("LOG_REQUESTS", False)
    SENTRY_DSN = os.getenv("SENTRY_DSN")
    METRICS_ENABLED = _env_bool("METRICS_ENABLED", False)

    # Background workers
    CELERY_BROKER_URL = os.getenv("CELERY_BROKER_URL", os.getenv("REDIS_URL", "redis://localhost:6379/0"))
    CELERY_RESULT_BACKEND = os.getenv("CELERY_RESULT_BACKEND", CELERY_BROKER_URL)

    # CORS
    CORS_ORIGINS = [o for o in os.getenv("CORS_ORIGINS", "").split(",") if o]
