"""Database Session Manager — atomic sessions with locking, timeouts, and error mapping.

Invariants:
    - Every session commits on clean exit and rolls back on ANY exception,
      including cancellation (no partial commits leak)
    - Each session is bounded by session_timeout_seconds -> LedgerTimeoutError
    - Read-write sessions serialize per account: SELECT ... FOR UPDATE on
      PostgreSQL, BEGIN IMMEDIATE on SQLite
    - All SQLAlchemy exceptions mapped to LedgerError subclasses (core/errors.py)
    - Only connection acquisition is retried; statements of an operation never are

Design Decisions:
    - Manager instance owned by the FastAPI app (app.state), not a module global:
      tests and scripts build their own manager around their own engine
    - SQLite recipe from the SQLAlchemy docs: disable the driver's implicit BEGIN
      and emit our own, so write sessions take the RESERVED lock up front
    - expire_on_commit=False: stores copy rows into frozen entities anyway
"""

import asyncio
import logging
import random
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncGenerator

from sqlalchemy import event, text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import (
    DBAPIError, IntegrityError, OperationalError, SQLAlchemyError,
    TimeoutError as PoolTimeoutError,
)
from sqlalchemy.ext.asyncio import (
    AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine,
)

from balance_service.core.domain_types import IsolationLevel, SessionMode
from balance_service.core.errors import (
    ConflictError, ErrorContext, LedgerError, LedgerTimeoutError,
    StoreUnavailableError,
)
from balance_service.infrastructure.account_store import SqlAlchemyAccountStore
from balance_service.infrastructure.hold_store import SqlAlchemyHoldStore
from balance_service.infrastructure.revenue_store import SqlAlchemyRevenueStore

logger = logging.getLogger(__name__)

_MODE_OPTION = "balance_service_mode"

# lock_not_available, query_canceled
_PG_TIMEOUT_STATES = {"55P03", "57014"}
# serialization_failure, deadlock_detected
_PG_CONFLICT_STATES = {"40001", "40P01"}


class SqlAlchemyAtomicSession:
    """AtomicSession over one AsyncSession; stores are bound at construction."""

    def __init__(self, db: AsyncSession):
        self._db = db
        self._finished = False
        self.accounts = SqlAlchemyAccountStore(db)
        self.holds = SqlAlchemyHoldStore(db)
        self.revenue = SqlAlchemyRevenueStore(db)

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    async def commit(self) -> None:
        if self._finished:
            return
        await self._db.commit()
        self._finished = True

    async def abort(self) -> None:
        if self._finished:
            return
        self._finished = True
        await self._db.rollback()


class DatabaseSessionManager:
    """Hands out atomic sessions with pooling, locking, rollback, and health checks."""

    def __init__(
        self,
        database_url: str,
        pool_size: int = 20,
        max_overflow: int = 10,
        pool_timeout_seconds: float = 5.0,
        isolation_level: IsolationLevel = IsolationLevel.READ_COMMITTED,
        session_timeout_seconds: float = 10.0,
        lock_timeout_ms: int = 5000,
        acquire_retries: int = 3,
        retry_base_delay_ms: int = 50,
        retry_max_delay_ms: int = 2000,
    ):
        self.is_sqlite = make_url(database_url).get_backend_name() == "sqlite"
        engine_kwargs: dict = {"pool_pre_ping": True}
        if self.is_sqlite:
            # sqlite3 busy timeout bounds the wait for BEGIN IMMEDIATE
            engine_kwargs["connect_args"] = {"timeout": lock_timeout_ms / 1000}
        else:
            engine_kwargs.update(
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_timeout=pool_timeout_seconds,
                pool_recycle=3600,
            )
        self.engine: AsyncEngine = create_async_engine(database_url, **engine_kwargs)
        if self.is_sqlite:
            _install_sqlite_begin_hooks(self.engine)
        self._session_factory = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False,
        )
        self.isolation_level = isolation_level
        self.session_timeout_seconds = session_timeout_seconds
        self.lock_timeout_ms = lock_timeout_ms
        self.acquire_retries = acquire_retries
        self.retry_base_delay_ms = retry_base_delay_ms
        self.retry_max_delay_ms = retry_max_delay_ms

    @asynccontextmanager
    async def begin(
        self,
        isolation: IsolationLevel | None = None,
        mode: SessionMode = SessionMode.READ_WRITE,
        operation: str = "unknown",
    ) -> AsyncGenerator[SqlAlchemyAtomicSession, None]:
        """Open an atomic session; commit on clean exit, roll back otherwise."""
        db = self._session_factory()
        atomic = SqlAlchemyAtomicSession(db)
        context = ErrorContext(operation=operation)
        try:
            await self._acquire(db, isolation or self.isolation_level, mode, operation)
            async with asyncio.timeout(self.session_timeout_seconds):
                yield atomic
                await atomic.commit()
        except TimeoutError:
            await atomic.abort()
            logger.error(
                f"Session timed out after {self.session_timeout_seconds}s",
                extra={"operation": operation, "error_code": "TIMEOUT"},
            )
            raise LedgerTimeoutError(operation, self.session_timeout_seconds, context)
        except LedgerError:
            await atomic.abort()
            raise
        except IntegrityError as e:
            await atomic.abort()
            logger.warning(f"DB integrity error: {e}", extra={"operation": operation})
            raise ConflictError("Integrity constraint violated", context)
        except (OperationalError, DBAPIError) as e:
            await atomic.abort()
            raise self._map_driver_error(e, operation, context)
        except SQLAlchemyError as e:
            await atomic.abort()
            logger.error(f"SQLAlchemy error: {e}", extra={"operation": operation})
            raise StoreUnavailableError("Database operation failed", "unknown", context)
        except BaseException:
            await atomic.abort()
            raise
        finally:
            await db.close()

    async def _acquire(
        self,
        db: AsyncSession,
        isolation: IsolationLevel,
        mode: SessionMode,
        operation: str,
    ) -> None:
        """Check out a connection and open the transaction, retrying transient failures."""
        options = self._execution_options(isolation, mode)
        for attempt in range(self.acquire_retries + 1):
            try:
                await db.connection(execution_options=options)
                if not self.is_sqlite:
                    await db.execute(
                        text(f"SET LOCAL lock_timeout = '{int(self.lock_timeout_ms)}ms'"),
                    )
                return
            except (OperationalError, DBAPIError, PoolTimeoutError, OSError) as e:
                await db.close()
                if _is_lock_timeout(e):
                    raise LedgerTimeoutError(
                        operation, self.lock_timeout_ms / 1000,
                        ErrorContext(operation=operation),
                    )
                if attempt >= self.acquire_retries:
                    logger.error(
                        f"Could not acquire DB session after {attempt + 1} attempts: {e}",
                        extra={"operation": operation, "attempt": attempt + 1},
                    )
                    raise StoreUnavailableError(
                        "Connection could not be acquired", "acquire",
                        ErrorContext(operation=operation),
                    )
                delay = self._backoff(attempt)
                logger.warning(
                    f"DB acquire failed, retry after {delay}ms: {e}",
                    extra={"operation": operation, "attempt": attempt + 1},
                )
                await asyncio.sleep(delay / 1000)

    def _execution_options(self, isolation: IsolationLevel, mode: SessionMode) -> dict:
        options: dict = {_MODE_OPTION: mode}
        if not self.is_sqlite:
            # SQLite transactions are always serializable
            options["isolation_level"] = isolation.value
            options["postgresql_readonly"] = mode == SessionMode.READ_ONLY
        return options

    def _map_driver_error(
        self, e: DBAPIError, operation: str, context: ErrorContext,
    ) -> LedgerError:
        if _is_lock_timeout(e):
            logger.error(
                f"Lock wait exceeded: {e}",
                extra={"operation": operation, "error_code": "TIMEOUT"},
            )
            return LedgerTimeoutError(operation, self.lock_timeout_ms / 1000, context)
        if _sqlstate(e) in _PG_CONFLICT_STATES:
            logger.warning(f"Concurrent update rejected: {e}", extra={"operation": operation})
            return ConflictError("Concurrent modification, retry the operation", context)
        logger.error(f"DB driver error: {e}", extra={"operation": operation})
        return StoreUnavailableError("Database driver error", "execute", context)

    def _backoff(self, attempt: int) -> int:
        """Exponential backoff with ±25% jitter."""
        delay = min(self.retry_max_delay_ms, (2 ** attempt) * self.retry_base_delay_ms)
        return int(delay * random.uniform(0.75, 1.25))  # nosec B311

    async def create_schema(self) -> None:
        """Create all tables (tests and local development; production uses Alembic)."""
        from balance_service.db.base import Base
        import balance_service.models  # noqa: F401

        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def health_check(self) -> bool:
        """Check database connectivity (for readiness probes)."""
        try:
            async with self.begin(mode=SessionMode.READ_ONLY, operation="health_check"):
                pass
            return True
        except Exception as e:
            logger.error(f"DB health check failed: {e}")
            return False

    async def dispose(self) -> None:
        await self.engine.dispose()


def _install_sqlite_begin_hooks(engine: AsyncEngine) -> None:
    """Take the write lock at BEGIN for read-write sessions on SQLite."""

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _emit_begin(conn):
        mode = conn.get_execution_options().get(_MODE_OPTION, SessionMode.READ_WRITE)
        if mode == SessionMode.READ_WRITE:
            conn.exec_driver_sql("BEGIN IMMEDIATE")
        else:
            conn.exec_driver_sql("BEGIN")


def _sqlstate(e: BaseException) -> str | None:
    orig = getattr(e, "orig", None)
    return getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)


def _is_lock_timeout(e: BaseException) -> bool:
    if _sqlstate(e) in _PG_TIMEOUT_STATES:
        return True
    return "database is locked" in str(getattr(e, "orig", e))
