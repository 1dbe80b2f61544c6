"""Topic completion gate.

A topic moves ``NotStarted -> (Attempted)* -> Completed`` per user, and
``Completed`` is terminal. Only a pass decision writes to the ledger.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

import structlog

from training_service.catalog.shape import CourseShape
from training_service.core.exceptions import IncompleteAttempt, PredecessorIncomplete
from training_service.progress.grading_engine import AttemptScore
from training_service.progress.ledger import ProgressLedger

logger = structlog.get_logger()


class CompletionReason(str, Enum):
    """Why a completion request did not complete the topic."""
    PREDECESSOR_INCOMPLETE = "PredecessorIncomplete"
    SCORE_BELOW_THRESHOLD = "ScoreBelowThreshold"
    VIEWED_SIGNAL_REQUIRED = "ViewedSignalRequired"
    ATTEMPT_REQUIRED = "AttemptRequired"


@dataclass(frozen=True)
class CompletionResult:
    completed: bool
    reason: Optional[CompletionReason] = None
    newly_completed: bool = False
    score_percent: Optional[int] = None


class CompletionGate:
    """Decides whether a topic is completed and records passes."""

    def __init__(self, ledger: ProgressLedger):
        self.ledger = ledger

    async def attempt(
        self,
        user_id: str,
        shape: CourseShape,
        topic_id: str,
        attempt: Optional[AttemptScore] = None,
        viewed: bool = False,
    ) -> CompletionResult:
        """Evaluate one completion request.

        Raises ``IncompleteAttempt`` for a non-final attempt and
        ``PredecessorIncomplete`` when sequential progression blocks the
        topic. A failing score is reported through the result, not raised.
        """
        course_id = shape.course_id
        topic = shape.topic(topic_id)

        if await self.ledger.is_completed(user_id, course_id, topic_id):
            score = attempt.score_percent if attempt is not None else None
            return CompletionResult(completed=True, score_percent=score)

        if not topic.has_quiz:
            if not viewed:
                return CompletionResult(completed=False, reason=CompletionReason.VIEWED_SIGNAL_REQUIRED)
            passed = True
            score = None
        else:
            if attempt is None:
                return CompletionResult(completed=False, reason=CompletionReason.ATTEMPT_REQUIRED)
            if not attempt.is_final:
                raise IncompleteAttempt(
                    f"{attempt.total_count - attempt.answered_count} question(s) left unanswered",
                    topic_id=topic_id,
                    answered_count=attempt.answered_count,
                    total_count=attempt.total_count,
                )
            score = attempt.score_percent
            passed = score >= shape.course.pass_threshold

        # Predecessor state is read only after the attempt has been scored.
        await self._check_predecessor(user_id, shape, topic_id)

        if not passed:
            logger.info(
                "Topic attempt below threshold",
                user_id=user_id,
                course_id=course_id,
                topic_id=topic_id,
                score_percent=score,
                pass_threshold=shape.course.pass_threshold
            )
            return CompletionResult(
                completed=False,
                reason=CompletionReason.SCORE_BELOW_THRESHOLD,
                score_percent=score,
            )

        inserted = await self.ledger.mark_completed(user_id, course_id, topic_id)
        return CompletionResult(completed=True, newly_completed=inserted, score_percent=score)

    async def _check_predecessor(self, user_id: str, shape: CourseShape, topic_id: str):
        if not shape.course.sequential_progression:
            return

        predecessor = shape.predecessor_of(topic_id)
        if predecessor is None:
            return

        if not await self.ledger.is_completed(user_id, shape.course_id, predecessor):
            raise PredecessorIncomplete(
                "Complete earlier topics first",
                topic_id=topic_id,
                predecessor_id=predecessor,
            )
