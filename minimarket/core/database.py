from contextlib import contextmanager
import logging

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.orm import Session, sessionmaker, declarative_base
from .config import settings
from .exceptions import TransactionConflict, TransactionTimeout

logger = logging.getLogger(__name__)

# SQLSTATE codes surfaced as retryable errors
_CONFLICT_STATES = {"40001", "40P01"}  # serialization_failure, deadlock_detected
_TIMEOUT_STATES = {"55P03", "57014"}  # lock_not_available, query_canceled


def configure_sqlite(engine: Engine) -> Engine:
    """
    SQLite has no row locks: every transaction is opened with BEGIN IMMEDIATE
    so writers are serialized for the whole check-and-write.
    """
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        # Let SQLAlchemy emit BEGIN itself
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


def build_engine(url: str, **kwargs) -> Engine:
    connect_args = kwargs.pop("connect_args", {})
    if url.startswith("sqlite"):
        connect_args.setdefault("check_same_thread", False)
    elif url.startswith("postgresql"):
        connect_args.setdefault(
            "options",
            f"-c lock_timeout={settings.DB_LOCK_TIMEOUT_MS} "
            f"-c statement_timeout={settings.DB_STATEMENT_TIMEOUT_MS}",
        )
        kwargs.setdefault("pool_pre_ping", True)

    engine = create_engine(url, connect_args=connect_args, **kwargs)
    if url.startswith("sqlite"):
        configure_sqlite(engine)
    return engine


# Create engine
engine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG)

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for models
Base = declarative_base()

# Dependency for FastAPI
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _sqlstate(exc: DBAPIError):
    orig = getattr(exc, "orig", None)
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


@contextmanager
def transaction(db: Session):
    """
    Unit of work around one stock operation.

    Commits when the block finishes, rolls back on any error. Store-level
    contention is re-raised as a retryable TransactionTimeout/TransactionConflict.
    """
    try:
        yield db
        db.commit()
    except OperationalError as e:
        db.rollback()
        state = _sqlstate(e)
        logger.warning(f"Transaction aborted by the store (sqlstate={state}): {e.orig}")
        if state in _CONFLICT_STATES:
            raise TransactionConflict("Concurrent update conflict, retry the operation") from e
        if state in _TIMEOUT_STATES or "locked" in str(e.orig).lower():
            raise TransactionTimeout("Timed out waiting for a stock lock, retry the operation") from e
        raise
    except Exception:
        db.rollback()
        raise
