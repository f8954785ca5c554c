"""
Database connection management.

Builds the engine from settings (PostgreSQL in production, SQLite for local
development and tests) and hands out sessions to request handlers.
"""
from typing import Any, Dict, Iterator

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from core.config import settings
import logging

logger = logging.getLogger(__name__)

Base = declarative_base()


def on_connect(dbapi_conn, connection_record):
    """Set connection-level settings."""
    if type(dbapi_conn).__module__.startswith("sqlite3"):
        # SQLite ignores ON DELETE CASCADE unless told otherwise
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()
    logger.debug("New database connection established")


def build_engine(url: str) -> Engine:
    """
    Create an engine for the given URL.

    SQLite gets a single shared connection when in-memory so every session
    sees the same schema; other backends use a pre-pinged connection pool.
    """
    kwargs: Dict[str, Any] = {"echo": settings.DEBUG}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
    else:
        kwargs.update(
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_timeout=settings.DB_POOL_TIMEOUT,
            pool_recycle=settings.DB_POOL_RECYCLE,
            pool_pre_ping=True,
        )
    new_engine = create_engine(url, **kwargs)
    event.listen(new_engine, "connect", on_connect)
    return new_engine


engine = build_engine(settings.database_url)

# Session factory
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    expire_on_commit=False,  # Prevent lazy loading issues
)


def init_db(bind: Engine = None) -> None:
    """Create all tables that do not exist yet."""
    import models  # noqa: F401  (registers the mappers on Base)

    Base.metadata.create_all(bind=bind or engine)
    logger.info("Database schema ready")


def get_db() -> Iterator[Session]:
    """
    Dependency for FastAPI to get database session.

    Commits when the request succeeds, rolls back when it raises.
    """
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception as e:
        db.rollback()
        # Only log actual database errors, not HTTP exceptions
        from fastapi import HTTPException
        if not isinstance(e, HTTPException):
            logger.error(f"Database transaction error: {e}")
        raise
    finally:
        db.close()


def check_db_connection() -> bool:
    """
    Check if database connection is healthy.

    Returns:
        True if connection is healthy, False otherwise
    """
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database connection check failed: {e}")
        return False
