"""Database session management and connection.

This module sets up SQLAlchemy engine and session factory.
"""

import logging

from sqlalchemy import create_engine, event
from sqlalchemy.exc import OperationalError, SQLAlchemyError, TimeoutError as PoolTimeoutError
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from contextlib import contextmanager
from typing import Generator

from ..config import settings
from ..domain.errors import InternalError, StorageFailureError
from .models import Base


logger = logging.getLogger(__name__)


def _use_immediate_transactions(engine: Engine) -> None:
    """
    Make every SQLite transaction take the write lock up front.

    pysqlite defers BEGIN until the first write, which lets two redemptions
    read the same state and then race for the lock. BEGIN IMMEDIATE
    serializes them instead.
    """
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_db_engine(url: str, echo: bool = False) -> Engine:
    """Create an engine for PostgreSQL or a file-backed SQLite database."""
    if url.startswith("sqlite"):
        engine = create_engine(
            url,
            echo=echo,
            connect_args={"check_same_thread": False, "timeout": 30},
        )
        if ":memory:" not in url:
            _use_immediate_transactions(engine)
        return engine

    return create_engine(
        url,
        echo=echo,
        pool_pre_ping=True,  # Verify connections before using them
        pool_size=5,
        max_overflow=10
    )


# Create database engine
engine = create_db_engine(settings.db_url, echo=settings.database_echo)

# Create session factory
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine
)


def get_db() -> Generator[Session, None, None]:
    """
    Dependency for FastAPI endpoints to get database session.

    Usage:
        @app.get("/example")
        def example(db: Session = Depends(get_db)):
            ...
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_db_context() -> Generator[Session, None, None]:
    """
    Context manager for database sessions.

    Usage:
        with get_db_context() as db:
            seats = crud.get_all_seats(db)
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables():
    """Create all database tables."""
    Base.metadata.create_all(bind=engine)


@contextmanager
def storage_errors(db: Session, action: str) -> Generator[None, None, None]:
    """
    Map driver failures inside the block onto domain errors.

    Lock or statement timeouts and exhausted pools become StorageFailureError
    (retryable); anything else SQLAlchemy raises becomes InternalError. The
    session is rolled back either way.
    """
    try:
        yield
    except (OperationalError, PoolTimeoutError):
        db.rollback()
        logger.warning("%s hit a storage failure", action, exc_info=True)
        raise StorageFailureError()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("%s failed", action)
        raise InternalError()
