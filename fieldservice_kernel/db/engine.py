"""
Module: fieldservice_kernel.db.engine
Responsibility: Owns the process-wide engine and session factory, and the
    ``session_scope`` unit of work the workflow facade runs every call in.
Architecture position: Kernel > DB.  Imports db/base.py and logging only
    (create_tables / drop_tables import models so their tables register).

Invariants enforced:
    - PostgreSQL is the production backend: READ COMMITTED, pooled
      connections, and explicit SELECT ... FOR UPDATE on quotes, inventory
      items and equipment during approval.
    - SQLite runs local and test sessions.  It ignores FOR UPDATE, so the
      UNIQUE constraint on work_orders.quote_id is its only duplicate
      guard.  BEGIN is emitted by SQLAlchemy so SAVEPOINTs nest correctly.
    - ``session_scope`` commits exactly once on success and rolls back on
      any exception, which it re-raises.

Failure modes:
    - RuntimeError from every accessor until init_engine_from_url() ran.
    - Pool timeout when pool_size + max_overflow connections are checked out.
"""

import atexit
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from fieldservice_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None

_NOT_INITIALIZED = "Database not initialized; call init_engine_from_url() first."


def _is_memory_sqlite(database_url: str) -> bool:
    return ":memory:" in database_url or database_url.rstrip("/") in (
        "sqlite:", "sqlite+pysqlite:",
    )


def _create_sqlite_engine(database_url: str, echo: bool) -> Engine:
    """
    SQLite engine with working SAVEPOINTs.

    pysqlite opens transactions on its own and breaks nested ones, so its
    implicit handling is switched off and SQLAlchemy emits BEGIN itself.
    In-memory databases share one connection (StaticPool) so every session
    sees the same tables.
    """
    engine = create_engine(
        database_url,
        echo=echo,
        poolclass=StaticPool if _is_memory_sqlite(database_url) else None,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 20,
    max_overflow: int = 10,
    pool_pre_ping: bool = True,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
) -> Engine:
    """
    Create the engine and session factory, replacing any earlier ones.

    Args:
        database_url: ``postgresql://...`` (production) or ``sqlite...``.
        echo: Log every SQL statement.
        pool_size: Connections kept open (PostgreSQL only).
        max_overflow: Extra connections allowed under load (PostgreSQL only).
        pool_pre_ping: Test a pooled connection before handing it out.
        pool_timeout: Seconds to wait for a free connection.
        pool_recycle: Seconds after which a pooled connection is replaced.

    Returns:
        The new Engine.
    """
    global _engine, _SessionFactory

    if database_url.startswith("sqlite"):
        engine = _create_sqlite_engine(database_url, echo)
    else:
        engine = create_engine(
            database_url,
            echo=echo,
            poolclass=QueuePool,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=pool_pre_ping,
            pool_timeout=pool_timeout,
            pool_recycle=pool_recycle,
            isolation_level="READ COMMITTED",
        )

    _engine = engine
    _SessionFactory = sessionmaker(bind=engine, expire_on_commit=False)

    configure_logging()
    pooled = engine.dialect.name != "sqlite"
    logger.info(
        "engine_initialized",
        extra={
            "dialect": engine.dialect.name,
            "pool_size": pool_size if pooled else None,
            "max_overflow": max_overflow if pooled else None,
            "echo": echo,
        },
    )
    return engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    """
    The shared session factory.  Sessions do not expire objects on commit.

    Give each request (and each thread) its own session from it.
    """
    if _SessionFactory is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _SessionFactory


def get_session() -> Session:
    return get_session_factory()()


@contextmanager
def session_scope(
    factory: sessionmaker[Session] | None = None,
) -> Generator[Session, None, None]:
    """
    One transaction: commit on normal exit, rollback and re-raise on error.

    The session is always closed afterwards, so nothing yielded by the
    block should be an ORM instance the caller keeps.

    Args:
        factory: Where to get the session.  Defaults to the module factory.

    Usage:
        with session_scope(factory) as session:
            StockLedger(session).increment(item_id, 5)
    """
    session = factory() if factory is not None else get_session()
    try:
        yield session
        session.commit()
        logger.debug("transaction_committed")
    except Exception:
        session.rollback()
        logger.warning("transaction_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def create_tables() -> None:
    """Create every kernel table that does not exist yet."""
    from fieldservice_kernel.db.base import Base
    import fieldservice_kernel.models  # noqa: F401

    Base.metadata.create_all(get_engine())
    logger.info(
        "tables_created",
        extra={"table_count": len(Base.metadata.sorted_tables)},
    )


def drop_tables() -> None:
    """Drop every kernel table.  Test and local use only."""
    from fieldservice_kernel.db.base import Base
    import fieldservice_kernel.models  # noqa: F401

    Base.metadata.drop_all(get_engine())


def reset_engine() -> None:
    """Dispose the engine and forget the factory (test teardown)."""
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionFactory = None


@atexit.register
def _dispose_on_exit() -> None:
    if _engine is not None:
        _engine.dispose()


def is_postgres() -> bool:
    return _engine is not None and _engine.dialect.name == "postgresql"
