"""
SchoolPay application factory.

Payment webhook ingestion and subscription reconciliation for the
school-management platform.
"""

import logging

import sentry_sdk
from flask import Flask
from sentry_sdk.integrations.flask import FlaskIntegration

from schoolpay.cli import register_cli
from schoolpay.config import get_config
from schoolpay.config.validator import validate_config
from schoolpay.error_handlers import register_error_handlers
from schoolpay.extensions import init_extensions
from schoolpay.logging_config import setup_logging
from schoolpay.middleware.request_id import init_request_id_middleware
from schoolpay.observability import init_metrics
from schoolpay.routes import register_blueprints

logger = logging.getLogger(__name__)


def setup_sentry(app: Flask) -> None:
    """Initialize Sentry error tracking"""
    sentry_dsn = app.config.get("SENTRY_DSN")

    if sentry_dsn and app.config.get("ENVIRONMENT") == "production":
        sentry_sdk.init(
            dsn=sentry_dsn,
            integrations=[FlaskIntegration()],
            traces_sample_rate=0.1,
            environment="production",
            release=app.config.get("APP_VERSION", "1.0.0"),
            send_default_pii=False,
        )
        app.logger.info("Sentry error tracking initialized")


def create_app(config_name=None) -> Flask:
    app = Flask(__name__)
    app.config.from_object(get_config(config_name))

    setup_logging(app)
    validate_config(app)
    setup_sentry(app)

    init_request_id_middleware(app)
    init_extensions(app)
    init_metrics(app)

    register_error_handlers(app)
    register_blueprints(app)
    register_cli(app)

    logger.info(
        f"{app.config['APP_NAME']} started",
        extra={"environment": app.config.get("ENVIRONMENT")},
    )
    return app
