"""
Configuration validation.

Runs at start-up in production only; a failure aborts the start.
"""
import logging
from typing import List

from sqlalchemy import text

from schoolshare.config import Settings, get_settings
from schoolshare.database import engine

logger = logging.getLogger("schoolshare.config_validator")

DEFAULT_SECRETS = {
    "secret_key": "change-me-in-production",
    "jwt_secret_key": "jwt-secret-change-in-production",
}


async def validate_configuration() -> None:
    """
    Validate settings and database connectivity.

    Raises:
        ValueError: one or more checks failed
    """
    settings = get_settings()

    if not settings.is_production:
        logger.info(
            "Config validation skipped (not production)",
            extra={"event": "config", "environment": settings.environment.value},
        )
        return

    logger.info("Starting configuration validation", extra={"event": "config"})

    errors: List[str] = []

    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info("Database connection: OK", extra={"event": "config"})
    except Exception as e:
        error_msg = f"Database connection failed: {str(e)}"
        errors.append(error_msg)
        logger.error(error_msg, extra={"event": "config"}, exc_info=True)

    errors.extend(_validate_secrets(settings))
    errors.extend(_validate_share_config(settings))

    if errors:
        error_summary = "\n".join(f"  - {e}" for e in errors)
        raise ValueError(
            f"Configuration validation failed:\n{error_summary}\n"
            "Please check your environment variables and configuration."
        )

    logger.info("Configuration validation completed successfully", extra={"event": "config"})


def _validate_secrets(settings: Settings) -> List[str]:
    errors: List[str] = []
    for field, default in DEFAULT_SECRETS.items():
        value = getattr(settings, field)
        if value == default:
            errors.append(f"{field.upper()} still has its default value")
        elif len(value) < 32:
            errors.append(f"{field.upper()} must be at least 32 characters")
    return errors


def _validate_share_config(settings: Settings) -> List[str]:
    errors: List[str] = []
    if not settings.public_base_url.startswith("https://"):
        errors.append("PUBLIC_BASE_URL must use https in production")
    if bool(settings.admin_bootstrap_email) != bool(settings.admin_bootstrap_password):
        errors.append("ADMIN_BOOTSTRAP_EMAIL and ADMIN_BOOTSTRAP_PASSWORD must be set together")
    return errors
