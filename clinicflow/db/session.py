"""
Process-wide database state.

The engine and session factory are built once by ``database.init()`` during
application startup and released by ``database.dispose()`` at shutdown. Request
handlers never touch the engine directly; they receive a session from ``get_db``.
"""

import logging
from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from clinicflow.core.config import settings

logger = logging.getLogger(__name__)


def enable_sqlite_write_lock(engine: Engine) -> None:
    """
    Start every SQLite transaction with ``BEGIN IMMEDIATE``.

    pysqlite normally defers BEGIN until the first write, which lets two
    bookings both read a free slot before either inserts. With the write lock
    taken at BEGIN, the overlap check and the insert run as one unit and a
    second writer waits (up to the driver's busy timeout) for the first to commit.
    """

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


class Database:
    def __init__(self) -> None:
        self.engine: Optional[Engine] = None
        self.SessionLocal: Optional[sessionmaker] = None

    @property
    def is_initialized(self) -> bool:
        return self.engine is not None

    def init(self, url: Optional[str] = None, **engine_kwargs) -> Engine:
        if self.engine is not None:
            return self.engine

        url = url or settings.SQLALCHEMY_DATABASE_URI
        is_sqlite = url.startswith("sqlite")
        if is_sqlite:
            engine_kwargs.setdefault("connect_args", {"check_same_thread": False})
        else:
            # PostgreSQL configuration with connection pooling
            engine_kwargs.setdefault("pool_size", settings.DB_POOL_SIZE)
            engine_kwargs.setdefault("max_overflow", settings.DB_MAX_OVERFLOW)
            engine_kwargs.setdefault("pool_recycle", 300)
            engine_kwargs.setdefault("pool_pre_ping", True)
            engine_kwargs.setdefault("pool_timeout", 45)

        self.engine = create_engine(url, echo=False, **engine_kwargs)
        if is_sqlite:
            enable_sqlite_write_lock(self.engine)
        self.SessionLocal = sessionmaker(
            autocommit=False, autoflush=False, expire_on_commit=False, bind=self.engine
        )
        logger.info(f"Database engine initialised for {self.engine.url.get_backend_name()}")
        return self.engine

    def dispose(self) -> None:
        if self.engine is None:
            return
        self.engine.dispose()
        self.engine = None
        self.SessionLocal = None
        logger.info("Database engine disposed")

    def session(self) -> Session:
        if self.SessionLocal is None:
            raise RuntimeError("Database is not initialised; call database.init() at startup")
        return self.SessionLocal()


database = Database()


def get_db() -> Generator[Session, None, None]:
    db = database.session()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@contextmanager
def get_db_session() -> Generator[Session, None, None]:
    """
    Session with commit-on-success and rollback-on-error, for scripts and
    startup checks that run outside a request.

    Usage:
        with get_db_session() as db:
            db.query(Model).all()
    """
    db = database.session()
    try:
        yield db
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Database session error: {e}")
        raise
    finally:
        db.close()
