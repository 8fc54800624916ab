"""
Module: booking_kernel.db.engine
Responsibility: Owns the process-wide SQLAlchemy engine and session factory
    used by the booking services, and the commit-or-rollback session scope.
Architecture position: Kernel > DB.  create_tables/drop_tables import the
    models package so every booking table is registered on Base.metadata.

Invariants enforced:
    - SQLite URLs (tests, a single desk running locally) share one
      connection, so an in-memory database outlives individual sessions.
    - Any other URL gets a pre-pinged pool; pool options pass straight
      through to ``create_engine``.
    - session_scope() commits when the block succeeds and rolls back when it
      raises; services themselves only flush.

Failure modes:
    - RuntimeError when a session or the engine is requested before
      init_engine_from_url().
"""

import atexit
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from booking_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def init_engine_from_url(database_url: str, echo: bool = False, **pool_options: Any) -> Engine:
    """
    Create the engine for ``database_url``, replacing any earlier one.

    ``pool_options`` (pool_size, pool_recycle, ...) are ignored for SQLite.
    """
    global _engine, _session_factory
    reset_engine()

    backend = make_url(database_url).get_backend_name()
    if backend == "sqlite":
        engine = create_engine(
            database_url,
            echo=echo,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    else:
        engine = create_engine(
            database_url, echo=echo, pool_pre_ping=True, **pool_options
        )

    _engine = engine
    _session_factory = sessionmaker(bind=engine, expire_on_commit=False)

    configure_logging()
    logger.info("engine_initialized", extra={"backend": backend, "echo": echo})
    return engine


def _require() -> tuple[Engine, sessionmaker[Session]]:
    if _engine is None or _session_factory is None:
        raise RuntimeError("Database not initialized; call init_engine_from_url() first")
    return _engine, _session_factory


def get_engine() -> Engine:
    return _require()[0]


def get_session_factory() -> sessionmaker[Session]:
    return _require()[1]


def get_session() -> Session:
    return get_session_factory()()


@contextmanager
def session_scope() -> Iterator[Session]:
    """
    One unit of work: commit on success, roll back on any exception.

    Usage:
        with session_scope() as session:
            DraftService(session, actor_id, navigator).save("draft-1", wizard)
    """
    session = get_session()
    try:
        yield session
        session.commit()
        logger.debug("session_committed")
    except Exception:
        session.rollback()
        logger.warning("session_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def create_tables() -> None:
    from booking_kernel.db.base import Base
    import booking_kernel.models  # noqa: F401  registers the booking tables

    Base.metadata.create_all(get_engine())


def drop_tables() -> None:
    from booking_kernel.db.base import Base
    import booking_kernel.models  # noqa: F401

    Base.metadata.drop_all(get_engine())


def reset_engine() -> None:
    """Dispose the current engine, if any, and forget the session factory."""
    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None


atexit.register(reset_engine)
