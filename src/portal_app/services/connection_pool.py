"""
Connection pool management.

A single SQLAlchemy engine (and therefore a single connection pool) is created
lazily and shared for the lifetime of the process. Creation is single-flight:
concurrent first callers wait on a lock and all receive the same engine.
"""

import threading
import time
from contextlib import contextmanager
from typing import Callable, Generator, Optional

from loguru import logger
from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import URL, Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from src import config
from src.portal_app.errors import PortalError, StoreUnavailable
from src.portal_app.models.database import create_tables
from src.portal_app.services.credential_provider import CredentialBundle, CredentialProvider


def build_database_url(bundle: CredentialBundle) -> str:
    """Pick the database URL: explicit DATABASE_URL, bundle host, or local SQLite."""
    if config.DATABASE_URL:
        return config.DATABASE_URL
    if not bundle.host:
        config.DATA_DIR.mkdir(parents=True, exist_ok=True)
        return f"sqlite:///{config.DATABASE_PATH}"
    url = URL.create(
        drivername=config.DB_DRIVER,
        username=bundle.user or None,
        password=bundle.password or None,
        host=bundle.host,
        port=config.DB_PORT or None,
        database=bundle.database or None,
    )
    return url.render_as_string(hide_password=False)


def _engine_kwargs(url: str, timeout: float) -> dict:
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False, "timeout": timeout}}
        if url in {"sqlite:///:memory:", "sqlite://"}:
            # Keep one shared in-memory DB connection
            kwargs["poolclass"] = StaticPool
        return kwargs

    seconds = max(1, int(timeout))
    if url.startswith("postgresql"):
        connect_args = {
            "connect_timeout": seconds,
            "options": f"-c statement_timeout={int(timeout * 1000)}",
        }
    elif url.startswith("mysql"):
        connect_args = {"connect_timeout": seconds, "read_timeout": seconds}
    else:
        # pyodbc login timeout; the query timeout is set per connection
        connect_args = {"timeout": seconds}
    return {
        "connect_args": connect_args,
        "pool_timeout": timeout,
        "pool_pre_ping": True,
    }


_DEADLINE_KEY = "statement_deadline"


def install_statement_timeout(engine: Engine, timeout: float) -> Engine:
    """
    Bound each statement run on the engine's connections.

    pyodbc connections get their query timeout. SQLite has no statement
    timeout, so a progress handler interrupts any statement still running
    past its deadline. Postgres and MySQL are bounded through connect_args.
    """
    if engine.dialect.driver == "pyodbc":

        @event.listens_for(engine, "connect")
        def _set_query_timeout(dbapi_conn, connection_record):
            dbapi_conn.timeout = max(1, int(timeout))

    elif engine.dialect.name == "sqlite":

        @event.listens_for(engine, "connect")
        def _set_progress_handler(dbapi_conn, connection_record):
            info = connection_record.info

            def _past_deadline():
                deadline = info.get(_DEADLINE_KEY)
                return 1 if deadline is not None and time.monotonic() > deadline else 0

            dbapi_conn.set_progress_handler(_past_deadline, 1000)

        @event.listens_for(engine, "before_cursor_execute")
        def _start_deadline(conn, cursor, statement, parameters, context, executemany):
            conn.info[_DEADLINE_KEY] = time.monotonic() + timeout

        @event.listens_for(engine, "after_cursor_execute")
        def _clear_deadline(conn, cursor, statement, parameters, context, executemany):
            conn.info.pop(_DEADLINE_KEY, None)

        @event.listens_for(engine, "handle_error")
        def _clear_deadline_on_error(exception_context):
            if exception_context.connection is not None:
                exception_context.connection.info.pop(_DEADLINE_KEY, None)

    return engine


class ConnectionPoolManager:
    """Owns the process-wide engine and hands out sessions bound to it."""

    def __init__(
        self,
        credentials: Optional[CredentialProvider] = None,
        engine_factory: Optional[Callable[[], Engine]] = None,
        timeout_seconds: Optional[float] = None,
    ):
        self.credentials = credentials
        self.timeout_seconds = timeout_seconds or config.STORE_TIMEOUT_SECONDS
        self._engine_factory = engine_factory or self._create_engine
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None
        self._lock = threading.Lock()

    @property
    def initialized(self) -> bool:
        return self._engine is not None

    def _create_engine(self) -> Engine:
        bundle = self.credentials.resolve() if self.credentials else CredentialProvider().resolve()
        target_url = build_database_url(bundle)
        logger.info(
            f"Creating database engine for {bundle.host or 'local database'} "
            f"(credentials from {bundle.source})"
        )
        engine = create_engine(
            target_url, echo=False, **_engine_kwargs(target_url, self.timeout_seconds)
        )
        return install_statement_timeout(engine, self.timeout_seconds)

    def get_connection(self) -> Engine:
        """
        Return the shared engine, creating it and the schema on first use.

        Raises:
            StoreUnavailable: if the store cannot be reached at first acquisition
        """
        if self._engine is not None:
            return self._engine

        with self._lock:
            if self._engine is None:
                try:
                    engine = self._engine_factory()
                    with engine.connect() as conn:
                        conn.execute(text("SELECT 1"))
                    create_tables(engine)
                except Exception as e:
                    logger.error(f"Database connection failed: {type(e).__name__}: {e}")
                    raise StoreUnavailable() from e

                self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)
                self._engine = engine
                logger.info("Database connection pool ready")
        return self._engine

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """
        Get database session (context manager).
        Commits on success, rolls back on error, and turns storage failures
        into StoreUnavailable.
        """
        self.get_connection()
        db = self._session_factory()
        try:
            yield db
            db.commit()
        except PortalError:
            db.rollback()
            raise
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Storage operation failed: {type(e).__name__}: {e}")
            raise StoreUnavailable() from e
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def ping(self) -> bool:
        """Check the store is reachable."""
        try:
            engine = self.get_connection()
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except (StoreUnavailable, SQLAlchemyError) as e:
            logger.warning(f"Store health check failed: {e}")
            return False

    def dispose(self):
        """Release pooled connections."""
        with self._lock:
            if self._engine is not None:
                self._engine.dispose()
            self._engine = None
            self._session_factory = None
