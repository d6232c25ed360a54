"""
Database Service - Core Infrastructure Layer

Purpose
-------
Centralized SQLAlchemy engine and session management for dedicated-server
deployments that keep progression records in a database instead of (or in
addition to) the host's per-actor save data.

Responsibilities
----------------
- Initialize and manage a single Engine instance
- Provide context managers for read-only sessions and atomic transactions
- Enforce transaction discipline: automatic commit on success, rollback on exception
- Expose a health check for infrastructure monitoring
- Create the schema for every model registered on `Base.metadata`

Non-Responsibilities
--------------------
- Migrations (schema is created with `create_all`)
- Domain logic or progression rules

Architecture Notes
------------------
**Transaction Model**:
- `get_transaction()` is the primary interface for all state mutations
- Automatic commit on success, rollback on any exception
- Never manually call `session.commit()` inside repository code

**Synchronous engine**:
- The reward engine runs inside a single-threaded tick loop and a command
  handler that must complete atomically per actor, so it talks to the
  database with the plain (blocking) SQLAlchemy engine.
- In-memory SQLite (`sqlite://`) uses `StaticPool` so every session sees
  the same database; used by the integration tests.

Usage Example
-------------
>>> with DatabaseService.get_transaction() as session:
>>>     row = session.get(ProgressionRow, actor_id)
>>>     row.counter = 2500
>>>     # Automatic commit on exit

Error Handling
--------------
**DatabaseInitializationError** - engine creation failed or URL invalid.
**DatabaseNotInitializedError** - session requested before `initialize()`.
"""

from __future__ import annotations

import threading
import time
from contextlib import contextmanager
from typing import Any, Generator, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from src.core.config.config import Config
from src.core.database.base import Base
from src.core.logging.logger import get_logger

logger = get_logger(__name__)


# ============================================================================
# Exceptions
# ============================================================================


class DatabaseInitializationError(RuntimeError):
    """Raised when database engine initialization fails."""


class DatabaseNotInitializedError(RuntimeError):
    """Raised when database operations are attempted before initialization."""


# ============================================================================
# DatabaseService - Core Infrastructure
# ============================================================================


class DatabaseService:
    """
    Centralized engine and session management.

    Public API
    ----------
    - initialize() / shutdown()
    - get_session() -> read-only or manual transaction control
    - get_transaction() -> atomic write transaction (preferred)
    - health_check() -> fast database reachability check
    """

    _engine: Optional[Engine] = None
    _session_factory: Optional[sessionmaker[Session]] = None
    _url_scheme: str = "unknown"
    _init_lock = threading.Lock()

    # ========================================================================
    # Initialization & Shutdown
    # ========================================================================

    @classmethod
    def initialize(
        cls,
        url: Optional[str] = None,
        *,
        echo: Optional[bool] = None,
        create_schema: bool = True,
    ) -> None:
        """
        Initialize the engine and session factory (idempotent).

        Parameters
        ----------
        url:
            SQLAlchemy URL. Defaults to `Config.DATABASE_URL`.
        echo:
            Echo SQL statements. Defaults to `Config.DATABASE_ECHO`.
        create_schema:
            Run `Base.metadata.create_all` after the engine is created.

        Raises
        ------
        DatabaseInitializationError
            If the URL is missing or engine creation fails.
        """
        with cls._init_lock:
            if cls._engine is not None:
                logger.debug("DatabaseService already initialized; skipping")
                return

            database_url = url or getattr(Config, "DATABASE_URL", None)
            if not database_url or not isinstance(database_url, str):
                raise DatabaseInitializationError(
                    "DATABASE_URL must be configured as a non-empty string"
                )
            echo_flag = bool(Config.DATABASE_ECHO if echo is None else echo)

            engine_kwargs: dict[str, Any] = {"echo": echo_flag, "future": True}
            if database_url.startswith("sqlite"):
                engine_kwargs["connect_args"] = {"check_same_thread": False}
                if database_url in ("sqlite://", "sqlite:///:memory:"):
                    engine_kwargs["poolclass"] = StaticPool

            try:
                engine = create_engine(database_url, **engine_kwargs)
                if create_schema:
                    # Models register themselves on import.
                    import src.database.models  # noqa: F401

                    Base.metadata.create_all(engine)
            except SQLAlchemyError as exc:
                logger.error(
                    "DatabaseService initialization failed",
                    extra={"error": str(exc), "error_type": type(exc).__name__},
                    exc_info=True,
                )
                raise DatabaseInitializationError(
                    f"Database initialization failed: {exc}"
                ) from exc

            cls._engine = engine
            cls._session_factory = sessionmaker(
                bind=engine,
                class_=Session,
                expire_on_commit=False,
            )
            cls._url_scheme = database_url.split(":", 1)[0]

            logger.info(
                "DatabaseService initialized successfully",
                extra={
                    "url_scheme": cls._url_scheme,
                    "pool_class": type(engine.pool).__name__,
                    "schema_created": create_schema,
                },
            )

    @classmethod
    def shutdown(cls) -> None:
        """Dispose the engine. Safe to call multiple times."""
        with cls._init_lock:
            if cls._engine is None:
                logger.debug("DatabaseService not initialized; nothing to shutdown")
                return

            try:
                cls._engine.dispose()
                logger.info("DatabaseService shutdown complete")
            finally:
                cls._engine = None
                cls._session_factory = None
                cls._url_scheme = "unknown"

    @classmethod
    def is_initialized(cls) -> bool:
        return cls._engine is not None

    # ========================================================================
    # Health Check
    # ========================================================================

    @classmethod
    def health_check(cls) -> bool:
        """
        Run `SELECT 1`. Never raises; returns False when unreachable.
        """
        if cls._engine is None:
            logger.warning("Health check called on uninitialized DatabaseService")
            return False

        start = time.perf_counter()
        try:
            with cls._engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except (OperationalError, DBAPIError) as exc:
            logger.warning(
                "Database health check failed",
                extra={"error": str(exc), "error_type": type(exc).__name__},
            )
            return False
        finally:
            logger.debug(
                "Database health check completed",
                extra={"duration_ms": (time.perf_counter() - start) * 1000.0},
            )

    # ========================================================================
    # Session & Transaction Context Managers
    # ========================================================================

    @classmethod
    def _ensure_initialized(cls) -> sessionmaker[Session]:
        if cls._session_factory is None or cls._engine is None:
            logger.error("DatabaseService operation attempted before initialization")
            raise DatabaseNotInitializedError(
                "DatabaseService must be initialized before use. "
                "Call DatabaseService.initialize() during startup."
            )
        return cls._session_factory

    @classmethod
    @contextmanager
    def get_session(cls) -> Generator[Session, None, None]:
        """
        Create a session without automatic commit.

        For write operations, prefer `get_transaction()`.
        """
        factory = cls._ensure_initialized()

        start = time.perf_counter()
        session = factory()
        try:
            yield session
        finally:
            session.close()
            logger.debug(
                "Database session closed",
                extra={"duration_ms": (time.perf_counter() - start) * 1000.0},
            )

    @classmethod
    @contextmanager
    def get_transaction(cls) -> Generator[Session, None, None]:
        """
        Create a session wrapped in an atomic transaction.

        Commits on success; rolls back and re-raises on any exception.
        """
        factory = cls._ensure_initialized()

        start = time.perf_counter()
        session = factory()
        try:
            yield session
            session.commit()
            logger.debug(
                "Database transaction committed",
                extra={"duration_ms": (time.perf_counter() - start) * 1000.0},
            )
        except Exception as exc:
            session.rollback()
            logger.error(
                "Error in transaction; rolled back",
                extra={
                    "error": str(exc),
                    "error_type": type(exc).__name__,
                    "duration_ms": (time.perf_counter() - start) * 1000.0,
                },
                exc_info=True,
            )
            raise
        finally:
            session.close()
