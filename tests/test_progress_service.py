"""Tests for the training progress service against a SQLite ledger."""
import pytest
from sqlalchemy.exc import OperationalError

from training_service.core.exceptions import (
    AlreadyEnrolled,
    IncompleteAttempt,
    InvalidSelection,
    UnknownCourse,
    UnknownQuestion,
    UnknownTopic,
)
from training_service.models.training import EnrollmentStatus
from training_service.progress.completion_engine import CompletionReason


class TestScenario:
    async def test_view_fail_retry_complete(self, progress_service):
        viewed = await progress_service.attempt_completion("u1", "C", "T1", viewed=True)
        assert viewed.completed is True
        assert (await progress_service.get_progress("u1", "C")).course_completion_percent == 50

        answers = {"q1": 0, "q2": 0}
        score = await progress_service.score_attempt("C", "T2", answers)
        assert score.score_percent == 50
        failed = await progress_service.attempt_completion("u1", "C", "T2", answers=answers)
        assert failed.completed is False
        assert failed.reason is CompletionReason.SCORE_BELOW_THRESHOLD

        answers = {"q1": 0, "q2": 1}
        assert (await progress_service.score_attempt("C", "T2", answers)).score_percent == 100
        passed = await progress_service.attempt_completion("u1", "C", "T2", answers=answers)
        assert passed.completed is True

        progress = await progress_service.get_progress("u1", "C")
        assert progress.course_completion_percent == 100
        assert progress.certificate_eligible is True
        assert progress.completed_topic_ids == ["T1", "T2"]


class TestGrading:
    async def test_grade_returns_explanation(self, progress_service):
        feedback = await progress_service.grade_answer("C", "T2", "q2", 1)
        assert feedback.result.is_correct is True
        assert feedback.result.points_earned == 1
        assert feedback.explanation == "B is right"

    async def test_grade_errors(self, progress_service):
        with pytest.raises(InvalidSelection):
            await progress_service.grade_answer("C", "T2", "q1", 3)
        with pytest.raises(UnknownQuestion):
            await progress_service.grade_answer("C", "T1", "q1", 0)
        with pytest.raises(UnknownCourse):
            await progress_service.grade_answer("X", "T2", "q1", 0)

    async def test_quizless_topic_never_completes_from_attempt(self, progress_service):
        score = await progress_service.score_attempt("C", "T1", {})
        assert score.has_quiz is False
        result = await progress_service.attempt_completion("u1", "C", "T1", answers={})
        assert result.completed is False
        assert (await progress_service.get_progress("u1", "C")).completed_topic_ids == []

    async def test_partial_attempt_rejected(self, progress_service):
        with pytest.raises(IncompleteAttempt):
            await progress_service.attempt_completion("u1", "C", "T2", answers={"q1": 0})


class TestSequentialProgression:
    async def test_blocked_then_allowed(self, progress_service):
        blocked = await progress_service.attempt_completion("u1", "SEQ", "T2", viewed=True)
        assert blocked.completed is False
        assert blocked.reason is CompletionReason.PREDECESSOR_INCOMPLETE
        assert (await progress_service.get_progress("u1", "SEQ")).completed_topic_ids == []

        await progress_service.attempt_completion("u1", "SEQ", "T1", viewed=True)
        allowed = await progress_service.attempt_completion("u1", "SEQ", "T2", viewed=True)
        assert allowed.completed is True


class TestProgress:
    async def test_idempotent_completion(self, progress_service):
        for _ in range(3):
            await progress_service.attempt_completion("u1", "GRID", "A1", viewed=True)
        progress = await progress_service.get_progress("u1", "GRID")
        assert progress.completed_topic_ids == ["A1"]
        assert progress.course_completion_percent == 25
        assert progress.per_module_percent == {"M1": 50, "M2": 0}

    async def test_users_are_isolated(self, progress_service):
        await progress_service.attempt_completion("u1", "GRID", "A1", viewed=True)
        assert (await progress_service.get_progress("u2", "GRID")).course_completion_percent == 0

    async def test_unknown_ids(self, progress_service):
        with pytest.raises(UnknownCourse):
            await progress_service.get_progress("u1", "missing")
        with pytest.raises(UnknownTopic):
            await progress_service.attempt_completion("u1", "GRID", "Z9", viewed=True)


class TestEnrollment:
    async def test_enroll_once(self, progress_service):
        enrollment = await progress_service.enroll("u1", "GRID")
        assert enrollment.status == EnrollmentStatus.ENROLLED.value
        with pytest.raises(AlreadyEnrolled):
            await progress_service.enroll("u1", "GRID")

    async def test_enroll_unknown_course(self, progress_service):
        with pytest.raises(UnknownCourse):
            await progress_service.enroll("u1", "missing")

    async def test_status_follows_completion(self, progress_service):
        await progress_service.attempt_completion("u1", "GRID", "A1", viewed=True)
        [enrollment] = await progress_service.list_enrollments("u1")
        assert enrollment.status == EnrollmentStatus.IN_PROGRESS.value
        assert enrollment.completed_at is None

        for topic_id in ["A2", "B1", "B2"]:
            await progress_service.attempt_completion("u1", "GRID", topic_id, viewed=True)
        [enrollment] = await progress_service.list_enrollments("u1")
        assert enrollment.status == EnrollmentStatus.COMPLETED.value
        assert enrollment.completed_at is not None

    async def test_failed_attempt_still_enrolls(self, progress_service):
        await progress_service.attempt_completion("u1", "C", "T2", answers={"q1": 1, "q2": 0})
        [enrollment] = await progress_service.list_enrollments("u1")
        assert enrollment.course_id == "C"
        assert enrollment.status == EnrollmentStatus.ENROLLED.value

    async def test_incomplete_attempt_leaves_no_enrollment(self, progress_service):
        with pytest.raises(IncompleteAttempt):
            await progress_service.attempt_completion("u1", "C", "T2", answers={"q1": 0})
        assert await progress_service.list_enrollments("u1") == []

    async def test_enrollment_failure_does_not_block_completion(self, progress_service, monkeypatch):
        async def broken_lookup(user_id, course_id):
            raise OperationalError("SELECT", {}, Exception("database is locked"))

        monkeypatch.setattr(progress_service, "_get_enrollment", broken_lookup)
        result = await progress_service.attempt_completion("u1", "GRID", "A1", viewed=True)
        assert result.completed is True

        monkeypatch.undo()
        assert (await progress_service.get_progress("u1", "GRID")).completed_topic_ids == ["A1"]
        assert await progress_service.list_enrollments("u1") == []
