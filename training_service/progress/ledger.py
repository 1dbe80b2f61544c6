"""Progress ledger: the durable set of completed topics per (user, course).

The ledger only ever grows. ``mark_completed`` is a set insert, so duplicate
or concurrent calls for the same key converge on the same state and a write
whose outcome is unknown can simply be issued again.
"""

import asyncio
from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Awaitable, Callable, Dict, FrozenSet, Set, Tuple, TypeVar

import structlog
from sqlalchemy import and_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception_type, stop_after_attempt, wait_exponential

from training_service.core.config import settings
from training_service.core.exceptions import LedgerUnavailable
from training_service.models.training import CompletedTopic

logger = structlog.get_logger()

T = TypeVar("T")


class ProgressLedger(ABC):
    """Storage contract for completed topics."""

    @abstractmethod
    async def mark_completed(self, user_id: str, course_id: str, topic_id: str) -> bool:
        """Add a topic to the completed set; True when it was not there yet."""

    @abstractmethod
    async def is_completed(self, user_id: str, course_id: str, topic_id: str) -> bool:
        ...

    @abstractmethod
    async def completed_topics(self, user_id: str, course_id: str) -> FrozenSet[str]:
        ...


class InMemoryProgressLedger(ProgressLedger):
    """Process-local ledger, partitioned by (user, course)."""

    def __init__(self):
        self._completed: Dict[Tuple[str, str], Set[str]] = defaultdict(set)

    async def mark_completed(self, user_id: str, course_id: str, topic_id: str) -> bool:
        partition = self._completed[(user_id, course_id)]
        if topic_id in partition:
            return False
        partition.add(topic_id)
        return True

    async def is_completed(self, user_id: str, course_id: str, topic_id: str) -> bool:
        return topic_id in self._completed.get((user_id, course_id), ())

    async def completed_topics(self, user_id: str, course_id: str) -> FrozenSet[str]:
        return frozenset(self._completed.get((user_id, course_id), ()))


def _log_retry(retry_state: RetryCallState):
    logger.warning(
        "Retrying progress ledger operation",
        attempt=retry_state.attempt_number,
        error=str(retry_state.outcome.exception()) if retry_state.outcome else None,
    )


def ledger_retrying() -> AsyncRetrying:
    """Retry policy for ledger I/O; only storage failures are retried."""
    return AsyncRetrying(
        retry=retry_if_exception_type(LedgerUnavailable),
        stop=stop_after_attempt(settings.LEDGER_RETRY_ATTEMPTS),
        wait=wait_exponential(multiplier=settings.LEDGER_RETRY_BACKOFF),
        before_sleep=_log_retry,
        reraise=True,
    )


class SqlProgressLedger(ProgressLedger):
    """Ledger stored in the ``training_completed_topics`` table."""

    def __init__(self, db: AsyncSession, timeout: float = None):
        self.db = db
        self.timeout = settings.LEDGER_WRITE_TIMEOUT if timeout is None else timeout

    async def mark_completed(self, user_id: str, course_id: str, topic_id: str) -> bool:
        inserted = await self._run(lambda: self._insert(user_id, course_id, topic_id))
        if inserted:
            logger.info("Topic completed", user_id=user_id, course_id=course_id, topic_id=topic_id)
        return inserted

    async def is_completed(self, user_id: str, course_id: str, topic_id: str) -> bool:
        async def query():
            result = await self.db.execute(
                select(CompletedTopic.id).where(
                    and_(
                        CompletedTopic.user_id == user_id,
                        CompletedTopic.course_id == course_id,
                        CompletedTopic.topic_id == topic_id
                    )
                )
            )
            return result.first() is not None

        return await self._run(query)

    async def completed_topics(self, user_id: str, course_id: str) -> FrozenSet[str]:
        async def query():
            result = await self.db.execute(
                select(CompletedTopic.topic_id).where(
                    and_(
                        CompletedTopic.user_id == user_id,
                        CompletedTopic.course_id == course_id
                    )
                )
            )
            return frozenset(result.scalars().all())

        return await self._run(query)

    async def _run(self, operation: Callable[[], Awaitable[T]]) -> T:
        async for attempt in ledger_retrying():
            with attempt:
                try:
                    return await asyncio.wait_for(operation(), timeout=self.timeout)
                except asyncio.TimeoutError:
                    await self.db.rollback()
                    raise LedgerUnavailable("Progress ledger timed out")
                except SQLAlchemyError as e:
                    logger.error("Progress ledger operation failed", error=str(e))
                    await self.db.rollback()
                    raise LedgerUnavailable("Progress ledger is unavailable")

    async def _insert(self, user_id: str, course_id: str, topic_id: str) -> bool:
        values = {"user_id": user_id, "course_id": course_id, "topic_id": topic_id}
        dialect = self.db.get_bind().dialect.name

        if dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert
        elif dialect == "sqlite":
            from sqlalchemy.dialects.sqlite import insert
        else:
            return await self._insert_checked(values)

        result = await self.db.execute(
            insert(CompletedTopic).values(**values).on_conflict_do_nothing(
                index_elements=["user_id", "course_id", "topic_id"]
            )
        )
        await self.db.commit()
        return result.rowcount == 1

    async def _insert_checked(self, values: Dict[str, str]) -> bool:
        """Insert for backends without ON CONFLICT; the unique constraint decides."""
        self.db.add(CompletedTopic(**values))
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            return False
        return True
