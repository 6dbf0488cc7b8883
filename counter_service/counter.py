"""
Sequential claim-number allocator.

  - One durable row per counter name; every instance addresses the same row
  - Read-increment-persist is a single UPDATE ... RETURNING inside a transaction,
    so the database row lock serializes allocations across processes
  - An asyncio.Lock serializes callers inside one process
  - A number is handed out only after its transaction has committed
"""

import asyncio
import logging
import time
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from counter_service.config import settings
from counter_service.metrics import ALLOCATION_LATENCY, ALLOCATIONS, LAST_ISSUED
from counter_service.models import ClaimCounterState

logger = logging.getLogger(__name__)

_STORAGE_ERRORS = (SQLAlchemyError, OSError)

_INSERT_BY_DIALECT = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class CounterError(Exception):
    """Base class for claim counter errors."""


class StorageUnavailableError(CounterError):
    """Counter storage could not be read or written. Nothing was committed."""


class ConcurrencyViolationError(CounterError):
    """A number at or below one already issued came back from storage. Fatal."""


# ---------------------------------------------------------------------------
# Counter
# ---------------------------------------------------------------------------


class ClaimCounter:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        name: str = settings.counter_name,
        baseline: int = settings.claim_number_baseline,
    ) -> None:
        if baseline < 0:
            raise ValueError("baseline must be >= 0")
        self._session_factory = session_factory
        self.name = name
        self.baseline = baseline
        self._lock = asyncio.Lock()
        self._last_issued: int | None = None

    @property
    def last_issued(self) -> int | None:
        return self._last_issued

    def _seed_statement(self, session: AsyncSession):
        dialect = session.bind.dialect.name
        try:
            insert = _INSERT_BY_DIALECT[dialect]
        except KeyError:
            raise StorageUnavailableError(f"Unsupported counter storage dialect: {dialect}")
        return (
            insert(ClaimCounterState)
            .values(name=self.name, value=self.baseline, updated_at=datetime.utcnow())
            .on_conflict_do_nothing(index_elements=[ClaimCounterState.name])
        )

    async def _increment(self, session: AsyncSession) -> int | None:
        result = await session.execute(
            update(ClaimCounterState)
            .where(ClaimCounterState.name == self.name)
            .values(value=ClaimCounterState.value + 1, updated_at=datetime.utcnow())
            .returning(ClaimCounterState.value)
            .execution_options(synchronize_session=False)
        )
        return result.scalar_one_or_none()

    async def ensure_initialized(self) -> int:
        """Create the counter row at the baseline if it does not exist yet."""
        try:
            async with self._session_factory() as session:
                await session.execute(self._seed_statement(session))
                await session.commit()
                value = await session.scalar(
                    select(ClaimCounterState.value).where(ClaimCounterState.name == self.name)
                )
        except _STORAGE_ERRORS as exc:
            raise StorageUnavailableError(f"Could not initialise counter '{self.name}'") from exc

        logger.info("Claim counter ready", extra={"counter": self.name, "value": value})
        return value

    async def current_value(self) -> int:
        """Persisted value without allocating. The baseline if never used."""
        try:
            async with self._session_factory() as session:
                value = await session.scalar(
                    select(ClaimCounterState.value).where(ClaimCounterState.name == self.name)
                )
        except _STORAGE_ERRORS as exc:
            raise StorageUnavailableError(f"Could not read counter '{self.name}'") from exc
        return self.baseline if value is None else value

    async def allocate_next(self) -> int:
        """
        Return the next claim number.

        The new value is committed before it is returned. On any storage
        failure the transaction is rolled back, ``StorageUnavailableError`` is
        raised and ``last_issued`` is left untouched, so a retry gets the same
        number the failed call would have produced.
        """
        start = time.perf_counter()
        async with self._lock:
            try:
                async with self._session_factory() as session:
                    value = await self._increment(session)
                    if value is None:
                        # First use: seed the baseline, then increment in the same transaction
                        await session.execute(self._seed_statement(session))
                        value = await self._increment(session)
                    if value is None:
                        raise StorageUnavailableError(
                            f"Counter row '{self.name}' missing after initialisation"
                        )
                    await session.commit()
            except StorageUnavailableError:
                ALLOCATIONS.labels("storage_unavailable").inc()
                raise
            except _STORAGE_ERRORS as exc:
                ALLOCATIONS.labels("storage_unavailable").inc()
                logger.error(
                    "Claim counter storage unavailable",
                    extra={"counter": self.name, "error": str(exc)},
                )
                raise StorageUnavailableError(
                    f"Could not persist next value for counter '{self.name}'"
                ) from exc

            if self._last_issued is not None and value <= self._last_issued:
                ALLOCATIONS.labels("concurrency_violation").inc()
                logger.critical(
                    "Claim counter issued a non-increasing value",
                    extra={"counter": self.name, "value": value, "last_issued": self._last_issued},
                )
                raise ConcurrencyViolationError(
                    f"Counter '{self.name}' returned {value} after {self._last_issued}"
                )

            self._last_issued = value

        ALLOCATIONS.labels("issued").inc()
        ALLOCATION_LATENCY.observe(time.perf_counter() - start)
        LAST_ISSUED.set(value)
        return value
