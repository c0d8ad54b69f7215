"""
Process bootstrap: load configuration and apply schema migrations.

Usage:
    labelstore-migrate
    ENV_FILE=.env.test labelstore-migrate
"""

import logging
import os

from pydantic import ValidationError as SettingsValidationError
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError

from labelstore.core.dotenv import load_env_file
from labelstore.core.errors import MigrationError
from labelstore.core.observability import configure_plain_logging, configure_structured_logging

logger = logging.getLogger(__name__)


def redact_database_url(url: str) -> str:
    """Render a database URL with its password hidden."""
    return make_url(url).render_as_string(hide_password=True)


def main() -> int:
    """
    Load configuration and bring the database schema up to date.

    Returns:
        Process exit code: 0 on success, 1 on configuration or migration failure
    """
    load_env_file(os.getenv("ENV_FILE") or ".env", overwrite=False)

    # Plain logging until settings load, so a configuration error is still reported.
    configure_plain_logging("INFO")

    try:
        # Settings are built on import; DATABASE_URL must be present by now.
        from labelstore.core.config import settings
    except SettingsValidationError as e:
        logger.error(f"Could not load DATABASE_URL: {e}")
        return 1

    if settings.observability_structured_logs:
        configure_structured_logging(settings.app_log_level)
    else:
        configure_plain_logging(settings.app_log_level)

    logger.info(f"Starting {settings.app_name} migrations")
    logger.info(f"Loaded DATABASE_URL: {redact_database_url(settings.sync_url)}")

    from labelstore.core.db import dispose_engine, get_engine
    from labelstore.db.migrations import run_migrations

    try:
        applied = run_migrations(get_engine())
    except (MigrationError, SQLAlchemyError) as e:
        logger.error(f"Failed to apply database migrations: {e}", exc_info=True)
        return 1
    finally:
        dispose_engine()

    logger.info(
        "Database migrations applied",
        extra={"applied": [migration.version for migration in applied]},
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
