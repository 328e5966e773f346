import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import create_engine, text, bindparam, DateTime
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from app.core.config import get_settings
from app.core.errors import TransientStoreError

logger = logging.getLogger(__name__)

settings = get_settings()

# Timestamps are always bound with this type so SQLite (tests) stores them in one
# sortable format; PostgreSQL maps it to timestamptz.
TIMESTAMP = DateTime(timezone=True)

engine = None
SessionLocal = sessionmaker(autocommit=False, autoflush=False)


def init_engine(url: Optional[str] = None):
    """
    (Re)create the engine and bind the session factory to it.

    pool_size / max_overflow come from settings for PostgreSQL. An in-memory
    SQLite URL gets a StaticPool so every session sees the same database.
    """
    global engine
    url = url or settings.postgres_url

    if url.startswith("sqlite"):
        engine = create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            echo=settings.sql_echo
        )
    else:
        engine = create_engine(
            url,
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=True,
            echo=settings.sql_echo  # Log SQL queries when enabled
        )

    SessionLocal.configure(bind=engine)
    return engine


init_engine()


@contextmanager
def get_db_session():
    """
    Context manager for database sessions - one session is one transaction.
    Usage:
        with get_db_session() as db:
            db.execute(text("SELECT * FROM users"))

    Commits on success and rolls back on any error. Driver-level failures
    (lock or statement timeout, dropped connection) are re-raised as
    TransientStoreError; nothing has been committed when that happens.
    """
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except OperationalError as e:
        session.rollback()
        logger.error(f"Transaction rolled back after store failure: {e}")
        raise TransientStoreError("database temporarily unavailable") from e
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def check_database_connection() -> bool:
    """
    Test if the database is reachable.
    Returns True if connection successful, False otherwise.
    """
    try:
        with get_db_session() as db:
            result = db.execute(text("SELECT 1 as test"))
            row = result.fetchone()
            return row[0] == 1
    except Exception as e:
        logger.warning(f"Database connection failed: {e}")
        return False


# ============================================================
# DIALECT HELPERS
# Row locks and statement timeouts only exist on PostgreSQL; on SQLite
# (single writer) they compile to nothing.
# ============================================================

def dialect_name(db: Session) -> str:
    return db.get_bind().dialect.name


def lock_clause(db: Session, skip_locked: bool = False) -> str:
    """Row-lock suffix for a SELECT: FOR UPDATE [SKIP LOCKED]."""
    if dialect_name(db) != "postgresql":
        return ""
    return "FOR UPDATE SKIP LOCKED" if skip_locked else "FOR UPDATE"


def set_statement_timeout(db: Session, timeout_ms: int) -> None:
    """Bound every statement of the current transaction to timeout_ms."""
    if dialect_name(db) != "postgresql":
        return
    db.execute(text(f"SET LOCAL statement_timeout = {int(timeout_ms)}"))
    db.execute(text(f"SET LOCAL lock_timeout = {int(timeout_ms)}"))


def sql(statement: str, *timestamp_params: str, expanding: tuple = ()):
    """
    text() with the named parameters typed as timestamps, and the names in
    `expanding` bound as IN-lists.
    """
    clause = text(statement)
    params = [bindparam(name, type_=TIMESTAMP) for name in timestamp_params]
    params += [bindparam(name, expanding=True) for name in expanding]
    if params:
        clause = clause.bindparams(*params)
    return clause


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value):
    """
    Normalize a timestamp read back from the store to an aware UTC datetime.
    SQLite returns naive strings, PostgreSQL returns aware datetimes.
    """
    if value is None:
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
