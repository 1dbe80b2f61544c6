"""Training progress endpoints."""

from typing import List
from fastapi import APIRouter, Depends, status

from training_service.core.dependencies import get_current_user, get_progress_service
from training_service.progress.progress_service import TrainingProgressService
from training_service.schemas.training import (
    AnswerSubmission, GradeResponse, AttemptSubmission, AttemptScoreResponse,
    CompletionRequest, CompletionResponse, ProgressResponse, EnrollmentResponse
)

router = APIRouter()


@router.post(
    "/courses/{course_id}/enroll",
    response_model=EnrollmentResponse,
    status_code=status.HTTP_201_CREATED
)
async def enroll_in_course(
    course_id: str,
    current_user: dict = Depends(get_current_user),
    service: TrainingProgressService = Depends(get_progress_service)
):
    """Enroll the current user in a course."""
    return await service.enroll(current_user["user_id"], course_id)


@router.get("/enrollments", response_model=List[EnrollmentResponse])
async def get_my_enrollments(
    current_user: dict = Depends(get_current_user),
    service: TrainingProgressService = Depends(get_progress_service)
):
    """List the current user's enrollments, most recently accessed first."""
    return await service.list_enrollments(current_user["user_id"])


@router.post(
    "/courses/{course_id}/topics/{topic_id}/questions/{question_id}/grade",
    response_model=GradeResponse
)
async def grade_answer(
    course_id: str,
    topic_id: str,
    question_id: str,
    submission: AnswerSubmission,
    current_user: dict = Depends(get_current_user),
    service: TrainingProgressService = Depends(get_progress_service)
):
    """Grade a single answer."""
    feedback = await service.grade_answer(course_id, topic_id, question_id, submission.selected_option_index)
    return GradeResponse(
        is_correct=feedback.result.is_correct,
        points_earned=feedback.result.points_earned,
        explanation=feedback.explanation
    )


@router.post("/courses/{course_id}/topics/{topic_id}/score", response_model=AttemptScoreResponse)
async def score_attempt(
    course_id: str,
    topic_id: str,
    submission: AttemptSubmission,
    current_user: dict = Depends(get_current_user),
    service: TrainingProgressService = Depends(get_progress_service)
):
    """Score a (possibly partial) quiz attempt for display."""
    score = await service.score_attempt(course_id, topic_id, submission.answers)
    return AttemptScoreResponse(
        score_percent=score.score_percent,
        has_quiz=score.has_quiz,
        is_final=score.is_final,
        answered_count=score.answered_count,
        total_count=score.total_count
    )


@router.post("/courses/{course_id}/topics/{topic_id}/complete", response_model=CompletionResponse)
async def attempt_completion(
    course_id: str,
    topic_id: str,
    request: CompletionRequest,
    current_user: dict = Depends(get_current_user),
    service: TrainingProgressService = Depends(get_progress_service)
):
    """Complete a topic from a final quiz attempt or a viewed signal."""
    result = await service.attempt_completion(
        current_user["user_id"],
        course_id,
        topic_id,
        answers=request.answers,
        viewed=request.viewed
    )
    return CompletionResponse(
        completed=result.completed,
        reason=result.reason.value if result.reason else None,
        score_percent=result.score_percent
    )


@router.get("/courses/{course_id}/progress", response_model=ProgressResponse)
async def get_progress(
    course_id: str,
    current_user: dict = Depends(get_current_user),
    service: TrainingProgressService = Depends(get_progress_service)
):
    """Get the current user's progress in a course."""
    snapshot = await service.get_progress(current_user["user_id"], course_id)
    return ProgressResponse(
        course_id=snapshot.course_id,
        completed_topic_ids=snapshot.completed_topic_ids,
        per_module_percent=snapshot.per_module_percent,
        modules=[
            {
                "module_id": module.module_id,
                "completed_topics": module.completed_topics,
                "total_topics": module.total_topics,
                "completion_percent": module.completion_percent
            }
            for module in snapshot.modules
        ],
        course_completion_percent=snapshot.course_completion_percent,
        is_course_complete=snapshot.is_course_complete,
        certificate_eligible=snapshot.certificate_eligible
    )
