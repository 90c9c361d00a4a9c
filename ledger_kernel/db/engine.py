"""
Module: ledger_kernel.db.engine
Responsibility: The injected storage handle.  ``LedgerStore`` owns one
    SQLAlchemy engine and session factory, hands out units of work with
    guaranteed commit-or-rollback, and retries transient storage conflicts
    with bounded backoff.
Architecture position: Kernel > DB.  May import from db/base.py.  Imports
    models only inside create_tables()/drop_tables() so metadata is complete.

Invariants enforced:
    - No module-level engine.  A store is built once per process and passed
      to whatever needs it.
    - Every unit of work either commits as a whole or rolls back as a whole,
      on every exit path.
    - Only transient storage conflicts are retried.  Business errors
      (LedgerError) propagate on the first failure.

Failure modes:
    - ConcurrencyError once a transient conflict outlives the retry budget.
    - Any non-transient DBAPIError propagates unchanged after rollback.

Backends:
    PostgreSQL (psycopg2, READ COMMITTED, QueuePool) in production.  SQLite
    is accepted so the whole ledger can run against an in-memory store in
    tests; file-backed SQLite is used where real concurrent writers matter.
"""

import time
from collections.abc import Callable, Generator
from contextlib import contextmanager
from typing import Any, TypeVar

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from ledger_kernel.exceptions import ConcurrencyError
from ledger_kernel.logging_config import get_logger

logger = get_logger("db.engine")

T = TypeVar("T")

# PostgreSQL SQLSTATEs worth another attempt:
# serialization_failure, deadlock_detected, lock_not_available
_TRANSIENT_SQLSTATES = frozenset({"40001", "40P01", "55P03"})

_TRANSIENT_MESSAGES = (
    "database is locked",
    "database table is locked",
    "deadlock detected",
    "could not serialize access",
    "lock timeout",
)


def is_transient_error(exc: DBAPIError) -> bool:
    """True when a DBAPI error is a lock/serialization conflict worth retrying."""
    if exc.connection_invalidated:
        return True
    pgcode = getattr(exc.orig, "pgcode", None)
    if pgcode in _TRANSIENT_SQLSTATES:
        return True
    message = str(exc.orig).lower()
    return any(fragment in message for fragment in _TRANSIENT_MESSAGES)


class LedgerStore:
    """
    Transactional storage handle for accounts, entries, lines and rates.

    Contract:
        ``unit_of_work()`` yields a Session.  Services flush but never commit;
        the unit of work commits on normal exit and rolls back on any
        exception before re-raising it.  ``run()`` adds bounded retry on
        transient conflicts around a whole unit of work.

    Non-goals:
        - Does NOT retry business-rule failures (e.g. double posting).
        - Does NOT hold any ledger state in process memory.
    """

    def __init__(
        self,
        engine: Engine,
        *,
        max_retries: int = 3,
        retry_backoff_seconds: float = 0.05,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._engine = engine
        self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)
        self._max_retries = max_retries
        self._retry_backoff_seconds = retry_backoff_seconds
        self._sleep = sleep

    # -----------------------------------------------------------------
    # Construction
    # -----------------------------------------------------------------

    @classmethod
    def from_url(
        cls,
        database_url: str,
        *,
        echo: bool = False,
        pool_size: int = 5,
        max_overflow: int = 10,
        pool_timeout: int = 30,
        busy_timeout_seconds: float = 30.0,
        max_retries: int = 3,
        retry_backoff_seconds: float = 0.05,
    ) -> "LedgerStore":
        """
        Build a store for a database URL.

        Args:
            database_url: ``postgresql://...`` or ``sqlite://...``.
            echo: Log all SQL statements.
            pool_size: PostgreSQL pool size.
            max_overflow: PostgreSQL connections beyond pool_size.
            pool_timeout: Seconds to wait for a pooled connection.
            busy_timeout_seconds: SQLite lock wait before "database is locked".
            max_retries: Extra attempts for transient conflicts.
            retry_backoff_seconds: Base delay, doubled on every retry.
        """
        url = make_url(database_url)
        kwargs: dict[str, Any] = {"echo": echo}

        if url.get_backend_name() == "sqlite":
            kwargs["connect_args"] = {
                "check_same_thread": False,
                "timeout": busy_timeout_seconds,
            }
            if url.database in (None, "", ":memory:"):
                # One shared connection, otherwise every session sees an empty DB
                kwargs["poolclass"] = StaticPool
        else:
            kwargs.update(
                poolclass=QueuePool,
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_timeout=pool_timeout,
                pool_pre_ping=True,
                pool_recycle=1800,
                isolation_level="READ COMMITTED",
            )

        engine = create_engine(url, **kwargs)
        if engine.dialect.name == "sqlite":
            event.listen(engine, "connect", _enable_sqlite_foreign_keys)

        logger.info(
            "engine_initialized",
            extra={
                "dialect": engine.dialect.name,
                "pool": type(engine.pool).__name__,
                "echo": echo,
            },
        )
        return cls(
            engine,
            max_retries=max_retries,
            retry_backoff_seconds=retry_backoff_seconds,
        )

    @classmethod
    def from_config(cls, config) -> "LedgerStore":
        """Build a store from a ``LedgerConfig``."""
        return cls.from_url(
            config.database_url,
            echo=config.echo_sql,
            pool_size=config.pool_size,
            max_overflow=config.max_overflow,
            busy_timeout_seconds=config.busy_timeout_seconds,
            max_retries=config.max_retries,
            retry_backoff_seconds=config.retry_backoff_seconds,
        )

    # -----------------------------------------------------------------
    # Accessors
    # -----------------------------------------------------------------

    @property
    def engine(self) -> Engine:
        return self._engine

    @property
    def dialect_name(self) -> str:
        return self._engine.dialect.name

    @property
    def max_retries(self) -> int:
        return self._max_retries

    def session(self) -> Session:
        """A bare session.  Prefer unit_of_work(); caller owns the lifecycle."""
        return self._session_factory()

    # -----------------------------------------------------------------
    # Unit of work
    # -----------------------------------------------------------------

    @contextmanager
    def unit_of_work(self) -> Generator[Session, None, None]:
        """
        Transactional scope around a series of operations.

        Postconditions:
            On normal exit the session is committed and closed.  On any
            exception it is rolled back and closed, and the exception is
            re-raised to the caller.

        Usage:
            with store.unit_of_work() as session:
                JournalService(session, ...).post(entry_id, actor_id)
        """
        session = self._session_factory()
        logger.debug("transaction_started")
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

    def run(
        self,
        operation: str,
        fn: Callable[[Session], T],
        *,
        retry: bool = True,
    ) -> T:
        """
        Execute ``fn(session)`` in its own unit of work.

        Transient conflicts (deadlock, serialization failure, SQLite busy)
        restart the whole unit of work up to ``max_retries`` times, sleeping
        ``retry_backoff_seconds * 2**n`` between attempts.

        Raises:
            ConcurrencyError: Transient conflicts outlived the retry budget.
            LedgerError: Business failures, raised on the first attempt.
        """
        attempts = self._max_retries + 1 if retry else 1
        for attempt in range(1, attempts + 1):
            try:
                with self.unit_of_work() as session:
                    return fn(session)
            except DBAPIError as exc:
                if not is_transient_error(exc):
                    raise
                if attempt >= attempts:
                    logger.error(
                        "transient_conflict_retries_exhausted",
                        extra={"operation": operation, "attempts": attempt},
                    )
                    raise ConcurrencyError(operation, attempt) from exc
                delay = self._retry_backoff_seconds * (2 ** (attempt - 1))
                logger.warning(
                    "transient_conflict_retry",
                    extra={
                        "operation": operation,
                        "attempt": attempt,
                        "delay_seconds": delay,
                    },
                )
                self._sleep(delay)
        raise AssertionError("unreachable")  # pragma: no cover

    # -----------------------------------------------------------------
    # Schema
    # -----------------------------------------------------------------

    def create_tables(self) -> None:
        """Create every ledger table (idempotent)."""
        from ledger_kernel.db.base import Base
        import ledger_kernel.models  # noqa: F401  registers all tables

        Base.metadata.create_all(self._engine)
        logger.info("tables_created", extra={"dialect": self.dialect_name})

    def drop_tables(self) -> None:
        """Drop every ledger table.  Tests and local resets only."""
        from ledger_kernel.db.base import Base
        import ledger_kernel.models  # noqa: F401

        Base.metadata.drop_all(self._engine)

    def dispose(self) -> None:
        """Release pooled connections."""
        self._engine.dispose()


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()
