# schoolpay/extensions.py
"""
Flask extensions initialization module.
"""

import logging

from flask_cors import CORS
from flask_migrate import Migrate
from flask_sqlalchemy import SQLAlchemy

# Initialize extensions
db = SQLAlchemy()
migrate = Migrate()
cors = CORS()

logger = logging.getLogger(__name__)


def init_extensions(app):
    """Initialize all Flask extensions."""

    db.init_app(app)
    logger.info("SQLAlchemy initialized")

    migrate.init_app(app, db)
    logger.info("Flask-Migrate initialized")

    init_cors(app)

    if app.config.get("ENVIRONMENT") in ("development", "testing"):
        create_tables(app)

    return app


def init_cors(app):
    """Initialize CORS for the read-only API routes."""
    origins = app.config.get("CORS_ORIGINS") or []
    if not origins:
        logger.info("CORS_ORIGINS not set, CORS disabled")
        return

    if "*" in origins and app.config.get("ENVIRONMENT") == "production":
        raise RuntimeError("Wildcard CORS origin '*' is not allowed in production")

    cors.init_app(
        app,
        resources={r"/api/schools/*": {"origins": origins}},
        methods=["GET", "OPTIONS"],
        max_age=600,
    )
    logger.info("CORS configured", extra={"origins": origins})


def create_tables(app):
    """Create database tables (development and tests only)."""
    # Import models so they are registered on the metadata
    from . import models  # noqa: F401

    with app.app_context():
        db.create_all()
    logger.info("Database tables created")
