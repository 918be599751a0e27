"""Engine and session factory."""
from __future__ import annotations

from functools import lru_cache

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from care_calendar.core.config import settings


def enable_sqlite_savepoints(engine: Engine) -> Engine:
    """
    Let SQLAlchemy own BEGIN on pysqlite.

    The driver otherwise defers BEGIN until the first write, so a SAVEPOINT
    opened before it starts (and RELEASE commits) a transaction of its own.
    """

    @event.listens_for(engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


@lru_cache
def get_engine() -> Engine:
    """Create the engine lazily so importing the app never opens a connection."""
    if settings.database_url.startswith("sqlite"):
        engine = create_engine(
            settings.database_url,
            connect_args={"check_same_thread": False},
            pool_pre_ping=True,
            future=True,
        )
        return enable_sqlite_savepoints(engine)
    return create_engine(settings.database_url, pool_pre_ping=True, future=True)


@lru_cache
def get_session_factory() -> sessionmaker:
    return sessionmaker(bind=get_engine(), autoflush=False, autocommit=False, future=True)
