"""SQLAlchemy engine setup."""

import logging

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine

from services.api.src.helpline.config import settings
from services.api.src.helpline.db.models import metadata

logger = logging.getLogger(__name__)

_engine: Engine | None = None


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(url: str) -> Engine:
    """Create an engine; SQLite gets cross-thread access and enforced foreign keys."""
    if url.startswith("sqlite"):
        engine = create_engine(url, connect_args={"check_same_thread": False})
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
        return engine
    return create_engine(url, pool_pre_ping=True)


def get_engine(database_url: str | None = None) -> Engine:
    """Get or create the process-wide engine.

    An explicit `database_url` always builds a fresh, uncached engine.
    """
    global _engine

    if database_url is not None:
        return build_engine(database_url)
    if _engine is None:
        _engine = build_engine(settings.database_url)
    return _engine


def init_db(engine: Engine) -> None:
    """Create any missing tables."""
    metadata.create_all(engine)
    logger.info("tables_ensured", extra={"dialect": engine.dialect.name})
