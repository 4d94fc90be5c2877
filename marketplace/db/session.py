"""Database session management."""
from typing import Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from marketplace.core.config import DatabaseSettings, settings


def build_engine(db_settings: Optional[DatabaseSettings] = None, **overrides) -> Engine:
    """
    Create an engine for the configured database.

    SQLite connections get pysqlite's implicit transaction handling turned off
    so that SAVEPOINTs behave, following the SQLAlchemy recipe.
    """
    db_settings = db_settings or settings.database
    url = overrides.pop("url", db_settings.DATABASE_URL)

    options = {
        "echo": db_settings.DB_ECHO,
        "pool_pre_ping": db_settings.DB_POOL_PRE_PING,
    }
    if not url.startswith("sqlite"):
        options["pool_recycle"] = db_settings.DB_POOL_RECYCLE
    options.update(overrides)

    engine = create_engine(url, **options)

    if url.startswith("sqlite"):
        _enable_sqlite_savepoints(engine)

    return engine


def _enable_sqlite_savepoints(engine: Engine) -> None:
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)

