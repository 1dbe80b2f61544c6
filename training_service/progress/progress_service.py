"""Training progress operations exposed to API callers."""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Mapping, Optional

import structlog
from sqlalchemy import and_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from training_service.catalog.catalog_client import ContentCatalog
from training_service.core.exceptions import AlreadyEnrolled, LedgerUnavailable, PredecessorIncomplete
from training_service.models.training import ENROLLMENT_ORDER, Enrollment, EnrollmentStatus
from training_service.progress.aggregation_engine import ProgressAggregator, ProgressSnapshot
from training_service.progress.completion_engine import CompletionGate, CompletionReason, CompletionResult
from training_service.progress.grading_engine import AttemptScore, GradeResult, grade_answer, score_attempt
from training_service.progress.ledger import ProgressLedger

logger = structlog.get_logger()


@dataclass(frozen=True)
class AnswerFeedback:
    result: GradeResult
    explanation: Optional[str] = None


class TrainingProgressService:
    """Grading, completion and progress for one request."""

    def __init__(self, db: AsyncSession, catalog: ContentCatalog, ledger: ProgressLedger):
        self.db = db
        self.catalog = catalog
        self.ledger = ledger
        self.gate = CompletionGate(ledger)

    async def grade_answer(
        self,
        course_id: str,
        topic_id: str,
        question_id: str,
        selected_option_index: int
    ) -> AnswerFeedback:
        """Grade one answer; nothing is recorded."""
        shape = await self.catalog.get_course_shape(course_id)
        question = shape.question(topic_id, question_id)
        return AnswerFeedback(result=grade_answer(question, selected_option_index), explanation=question.explanation)

    async def score_attempt(self, course_id: str, topic_id: str, answers: Mapping[str, int]) -> AttemptScore:
        shape = await self.catalog.get_course_shape(course_id)
        return score_attempt(shape.questions_for(topic_id), answers)

    async def attempt_completion(
        self,
        user_id: str,
        course_id: str,
        topic_id: str,
        answers: Optional[Mapping[str, int]] = None,
        viewed: bool = False,
    ) -> CompletionResult:
        """Try to complete a topic from a scored attempt or a viewed signal."""
        shape = await self.catalog.get_course_shape(course_id)
        questions = shape.questions_for(topic_id)
        attempt = score_attempt(questions, answers) if answers is not None else None

        try:
            result = await self.gate.attempt(user_id, shape, topic_id, attempt=attempt, viewed=viewed)
        except PredecessorIncomplete as e:
            logger.info(
                "Topic blocked by sequential progression",
                user_id=user_id,
                course_id=course_id,
                topic_id=topic_id,
                predecessor_id=e.context.get("predecessor_id")
            )
            score = attempt.score_percent if attempt is not None else None
            result = CompletionResult(
                completed=False,
                reason=CompletionReason.PREDECESSOR_INCOMPLETE,
                score_percent=score,
            )

        snapshot = None
        if result.completed:
            completed = await self.ledger.completed_topics(user_id, course_id)
            snapshot = ProgressAggregator(shape).snapshot(completed)
        await self._record_enrollment(user_id, course_id, snapshot)

        return result

    async def get_progress(self, user_id: str, course_id: str) -> ProgressSnapshot:
        """Progress derived from committed ledger rows and the current shape."""
        shape = await self.catalog.get_course_shape(course_id)
        completed = await self.ledger.completed_topics(user_id, course_id)
        return ProgressAggregator(shape).snapshot(completed)

    async def enroll(self, user_id: str, course_id: str) -> Enrollment:
        await self.catalog.get_course_shape(course_id)

        if await self._get_enrollment(user_id, course_id) is not None:
            raise AlreadyEnrolled("Already enrolled in this course", course_id=course_id)

        enrollment = Enrollment(user_id=user_id, course_id=course_id)
        self.db.add(enrollment)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise AlreadyEnrolled("Already enrolled in this course", course_id=course_id)
        except SQLAlchemyError as e:
            logger.error("Failed to create enrollment", error=str(e))
            await self.db.rollback()
            raise LedgerUnavailable("Failed to create enrollment")

        logger.info("User enrolled", user_id=user_id, course_id=course_id)
        return enrollment

    async def list_enrollments(self, user_id: str) -> List[Enrollment]:
        result = await self.db.execute(
            select(Enrollment)
            .where(Enrollment.user_id == user_id)
            .order_by(Enrollment.last_accessed_at.desc())
        )
        return list(result.scalars().all())

    async def _get_enrollment(self, user_id: str, course_id: str) -> Optional[Enrollment]:
        result = await self.db.execute(
            select(Enrollment).where(
                and_(
                    Enrollment.user_id == user_id,
                    Enrollment.course_id == course_id
                )
            )
        )
        return result.scalar_one_or_none()

    async def _record_enrollment(self, user_id: str, course_id: str, snapshot: Optional[ProgressSnapshot] = None):
        """Create the enrollment if missing, mark it accessed and move its status forward.

        Runs after the gate. Enrollment is bookkeeping, so a failed write is
        logged and never undoes or blocks a completion.
        """
        for _ in range(2):
            try:
                enrollment = await self._get_enrollment(user_id, course_id)
                if enrollment is None:
                    enrollment = Enrollment(
                        user_id=user_id,
                        course_id=course_id,
                        status=EnrollmentStatus.ENROLLED.value
                    )
                    self.db.add(enrollment)
                enrollment.last_accessed_at = datetime.utcnow()
                target = self._advance_status(enrollment, snapshot)
                await self.db.commit()
            except IntegrityError:
                # Created concurrently by another request
                await self.db.rollback()
                continue
            except SQLAlchemyError as e:
                logger.error("Failed to record enrollment", user_id=user_id, course_id=course_id, error=str(e))
                await self.db.rollback()
                return

            if target is not None:
                logger.info("Enrollment status changed", user_id=user_id, course_id=course_id, status=target)
            return

    @staticmethod
    def _advance_status(enrollment: Enrollment, snapshot: Optional[ProgressSnapshot]) -> Optional[str]:
        if snapshot is None:
            return None
        if snapshot.is_course_complete:
            target = EnrollmentStatus.COMPLETED.value
        elif snapshot.completed_topics > 0:
            target = EnrollmentStatus.IN_PROGRESS.value
        else:
            return None

        if ENROLLMENT_ORDER.index(target) <= ENROLLMENT_ORDER.index(enrollment.status):
            return None

        enrollment.status = target
        if target == EnrollmentStatus.COMPLETED.value:
            enrollment.completed_at = datetime.utcnow()
        return target
