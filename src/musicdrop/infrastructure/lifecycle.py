"""Application lifecycle management for startup and shutdown tasks.

This module handles the FastAPI lifespan context manager that wires the
long-lived collaborators (database, progress broadcaster, process runner,
acquisition pipeline) onto app.state.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI

from musicdrop.application.services.acquisition_pipeline import AcquisitionPipeline
from musicdrop.application.services.auth_service import bootstrap_admin
from musicdrop.application.services.progress_broadcaster import ProgressBroadcaster
from musicdrop.config import Settings, get_settings
from musicdrop.domain.exceptions import ConfigurationError
from musicdrop.infrastructure.integrations import ProcessRunner
from musicdrop.infrastructure.observability import configure_logging
from musicdrop.infrastructure.persistence import Database, unit_of_work_factory

logger = logging.getLogger(__name__)


# Hey future me, this validates SQLite paths BEFORE we try creating the DB engine. SQLite
# creates -journal/-wal files next to the .db, so the parent directory must be writable.
# We DON'T pre-create the .db file here, SQLite does that on first connect. If this fails
# the app won't start, which beats a cryptic "unable to open database file" later.
def _validate_sqlite_path(settings: Settings) -> None:
    """Validate SQLite database path accessibility before engine creation."""
    db_path = settings._get_sqlite_db_path()
    if db_path is None:
        return

    try:
        if db_path.parent and str(db_path.parent) != ".":
            db_path.parent.mkdir(parents=True, exist_ok=True)
            logger.debug("Ensured SQLite parent directory exists: %s", db_path.parent)
    except OSError as exc:
        raise ConfigurationError(
            f"Unable to create SQLite database directory '{db_path.parent}': {exc}. "
            "Update DATABASE_URL or adjust directory permissions."
        ) from exc

    try:
        test_file = db_path.parent / f".{db_path.stem}_write_test"
        test_file.write_bytes(b"test")
        test_file.unlink()
    except OSError as exc:
        raise ConfigurationError(
            f"Unable to write files in database directory '{db_path.parent}': {exc}. "
            "SQLite requires write permissions to create database and journal files."
        ) from exc


def _settings_for(app: FastAPI) -> Settings:
    # create_app(settings=...) pins settings for tests, production reads env/config once
    settings = getattr(app.state, "settings", None)
    if settings is None:
        settings = get_settings()
        app.state.settings = settings
    return settings


# Listen future me, everything before `yield` runs at STARTUP, everything after runs at
# SHUTDOWN. The try/finally makes sure the DB and lingering progress tasks get cleaned up
# even when startup dies halfway. Routes reach all of this through app.state.
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Handles startup and shutdown tasks including:
    - Logging configuration
    - Directory creation and SQLite path validation
    - Database initialization and first-run admin account
    - Progress broadcaster, process runner and pipeline wiring
    - Resource cleanup
    """
    settings = _settings_for(app)

    configure_logging(
        log_level=settings.log_level,
        json_format=settings.observability.log_json_format,
        app_name=settings.app_name,
    )
    logger.info("Starting application: %s", settings.app_name)

    broadcaster: ProgressBroadcaster | None = None
    db: Database | None = None
    try:
        settings.ensure_directories()
        logger.info("Storage directories initialized: %s", settings.summary())

        _validate_sqlite_path(settings)

        db = Database(settings)
        app.state.db = db
        await db.create_tables()
        logger.info("Database initialized: %s", settings.database.url)

        uow_factory = unit_of_work_factory(db)
        app.state.uow_factory = uow_factory

        if settings.security.bootstrap_admin:
            async with uow_factory() as store:
                await bootstrap_admin(store.users)

        broadcaster = ProgressBroadcaster(
            capacity=settings.progress.channel_capacity,
            teardown_delay=settings.progress.teardown_delay_seconds,
        )
        app.state.broadcaster = broadcaster

        runner = ProcessRunner()
        app.state.runner = runner

        app.state.pipeline = AcquisitionPipeline(
            settings=settings,
            uow_factory=uow_factory,
            runner=runner,
            broadcaster=broadcaster,
        )
        app.state.startup_time = datetime.now(UTC)

        yield

    except Exception as e:
        logger.exception("Error during application startup: %s", e)
        raise
    finally:
        logger.info("Shutting down application")

        if broadcaster is not None:
            await broadcaster.close()

        if db is not None:
            try:
                await db.close()
                logger.info("Database connection closed")
            except Exception as e:
                logger.exception("Error closing database: %s", e)
