"""
Relational store configuration and session management.
Uses SQLAlchemy 2.0 patterns.

The engine is built explicitly at startup (see rest_api.core.lifespan) and kept
on app.state, so tests can hand in their own engine.
"""

from collections.abc import Generator, Iterator
from contextlib import contextmanager

from fastapi import Request
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session

from shared.config.settings import settings


def create_db_engine(url: str | None = None, **overrides) -> Engine:
    """
    Create an engine with connection pooling and timeouts.

    SQLite URLs (used by the test-suite) get foreign keys switched on so
    ON DELETE CASCADE behaves like it does on MariaDB.
    """
    url = url or settings.database_url

    if url.startswith("sqlite"):
        engine = create_engine(
            url,
            connect_args={"check_same_thread": False},
            **overrides,
        )

        @event.listens_for(engine, "connect")
        def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine

    options = dict(
        pool_pre_ping=True,  # Verify connections before using
        pool_size=settings.sql_pool_size,
        max_overflow=settings.sql_max_overflow,
        pool_timeout=30,  # Wait max 30s for connection from pool
        pool_recycle=1800,  # Recycle connections after 30 minutes
        connect_args={"connect_timeout": 10},
        echo=False,
    )
    options.update(overrides)
    return create_engine(url, **options)


def create_session_factory(engine: Engine) -> sessionmaker:
    """Session factory bound to the given engine."""
    return sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
    )


def get_db(request: Request) -> Generator[Session, None, None]:
    """
    FastAPI dependency for database sessions.

    Usage:
        @router.get("/riders")
        def list_riders(db: Session = Depends(get_db)):
            ...

    The session is automatically closed after the request completes.
    """
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_db_context(session_factory: sessionmaker) -> Iterator[Session]:
    """
    Context manager for database sessions outside of FastAPI.

    Usage:
        with get_db_context(session_factory) as db:
            migrate_sql_to_mongo(db, mongo_db)
    """
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """
    Unit of work: commit when the block finishes, roll back on any error.

    Usage:
        with transaction(db):
            db.add(order)

    Raises the original exception after rolling back.
    """
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
