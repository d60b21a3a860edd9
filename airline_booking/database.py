"""Database helpers for the booking engine."""
from __future__ import annotations

from contextlib import contextmanager
from typing import Dict, Iterator, Tuple

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import Settings
from .models import Base


WRITE_LOCK_OPTION = "sqlite_write_lock"


def _install_sqlite_transaction_hooks(engine: Engine, *, wal: bool = True) -> None:
    """Let write transactions take SQLite's write lock up front.

    pysqlite defers BEGIN until the first DML statement, which lets two
    writers race to upgrade their shared locks and fail with "database is
    locked". Connections opened with :data:`WRITE_LOCK_OPTION` issue BEGIN
    IMMEDIATE so writers queue on the busy timeout; every other transaction
    is a plain deferred BEGIN. In WAL mode those readers never block writers.
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record) -> None:
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        if wal:
            cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn) -> None:
        if conn.get_execution_options().get(WRITE_LOCK_OPTION):
            conn.exec_driver_sql("BEGIN IMMEDIATE")
        else:
            conn.exec_driver_sql("BEGIN")


def create_session_factory(
    db_url: str | None = None,
    *,
    settings: Settings | None = None,
    echo: bool | None = None,
    connect_args: Dict[str, object] | None = None,
) -> Tuple[Engine, sessionmaker[Session]]:
    """Return an engine/session factory pair configured for SQLite by default."""

    settings = settings or Settings()
    db_url = db_url or settings.db_url
    echo = settings.echo if echo is None else echo

    if db_url.startswith("sqlite"):
        final_connect_args: Dict[str, object] = {
            "check_same_thread": False,
            "timeout": settings.sqlite_timeout,
        }
        if connect_args:
            final_connect_args.update(connect_args)
    else:
        final_connect_args = connect_args or {}

    if db_url.endswith(":memory:"):
        engine = create_engine(
            db_url,
            echo=echo,
            connect_args=final_connect_args,
            poolclass=StaticPool,
        )
    else:
        engine = create_engine(
            db_url,
            echo=echo,
            connect_args=final_connect_args,
        )
    if engine.dialect.name == "sqlite":
        _install_sqlite_transaction_hooks(engine, wal=not db_url.endswith(":memory:"))
    session_factory = sessionmaker(bind=engine, expire_on_commit=False)
    return engine, session_factory


def init_db(db_url: str | None = None, *, settings: Settings | None = None) -> sessionmaker[Session]:
    """Create all tables and return a session factory."""

    engine, session_factory = create_session_factory(db_url, settings=settings)
    Base.metadata.create_all(engine)
    return session_factory


@contextmanager
def session_scope(session_factory: sessionmaker[Session]) -> Iterator[Session]:
    """Provide a write transaction around a series of operations.

    Read-only callers open a plain ``session_factory()`` session instead so
    they do not queue behind writers.
    """

    session = session_factory()
    try:
        session.connection(execution_options={WRITE_LOCK_OPTION: True})
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
