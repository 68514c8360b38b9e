"""
Configuration validation.
Designed to fail fast on settings that would make billing unsafe.
"""

import logging
from dataclasses import dataclass, field
from typing import List

from .base import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    """Result of validation"""
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


def _check_production(config, result: ValidationResult) -> None:
    if not config.get("SECRET_KEY"):
        result.errors.append("SECRET_KEY must be set in production")

    if not config.get("WEBHOOK_VERIFY_SIGNATURES", True):
        result.errors.append(
            "WEBHOOK_VERIFY_SIGNATURES cannot be disabled in production"
        )

    for key in ("FLUTTERWAVE_SECRET_HASH", "PAGA_WEBHOOK_SECRET", "WEBHOOK_VERIFY_TOKEN"):
        if not config.get(key):
            result.errors.append(f"{key} is required in production")

    database_url = config.get("SQLALCHEMY_DATABASE_URI") or ""
    if database_url.startswith("sqlite"):
        result.errors.append("SQLite is not suitable for production")


def validate_config(app) -> ValidationResult:
    """
    Validate the application configuration.

    Production errors raise ConfigurationError; elsewhere they are logged
    as warnings so local setups can run with partial secrets.
    """
    result = ValidationResult()
    config = app.config
    environment = config.get("ENVIRONMENT")

    if environment == "production":
        _check_production(config, result)
    else:
        if not config.get("WEBHOOK_VERIFY_SIGNATURES", True):
            result.warnings.append(
                "Webhook signature verification is DISABLED "
                f"({environment} mode only)"
            )
        for key in ("FLUTTERWAVE_SECRET_HASH", "PAGA_WEBHOOK_SECRET"):
            if not config.get(key):
                result.warnings.append(f"{key} is not set; signatures for that provider will fail")

    for warning in result.warnings:
        logger.warning(warning)

    if not result.is_valid:
        for error in result.errors:
            logger.critical(error)
        raise ConfigurationError("; ".join(result.errors))

    return result
