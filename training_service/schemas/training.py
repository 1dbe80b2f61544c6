"""Request and response schemas for training endpoints."""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class AnswerSubmission(BaseModel):
    selected_option_index: int


class GradeResponse(BaseModel):
    is_correct: bool
    points_earned: int
    explanation: Optional[str] = None


class AttemptSubmission(BaseModel):
    """Answers keyed by quiz question id."""
    answers: Dict[str, int] = Field(default_factory=dict)


class AttemptScoreResponse(BaseModel):
    score_percent: Optional[int]
    has_quiz: bool
    is_final: bool
    answered_count: int
    total_count: int


class CompletionRequest(BaseModel):
    """Either a full set of quiz answers or an explicit viewed signal."""
    answers: Optional[Dict[str, int]] = None
    viewed: bool = False

    @model_validator(mode="after")
    def check_one_signal(self):
        if self.answers is None and not self.viewed:
            raise ValueError("provide quiz answers or viewed=true")
        if self.answers is not None and self.viewed:
            raise ValueError("provide either quiz answers or viewed=true, not both")
        return self


class CompletionResponse(BaseModel):
    completed: bool
    reason: Optional[str] = None
    score_percent: Optional[int] = None


class ModuleProgressResponse(BaseModel):
    module_id: str
    completed_topics: int
    total_topics: int
    completion_percent: int


class ProgressResponse(BaseModel):
    course_id: str
    completed_topic_ids: List[str]
    per_module_percent: Dict[str, int]
    modules: List[ModuleProgressResponse]
    course_completion_percent: int
    is_course_complete: bool
    certificate_eligible: bool


class EnrollmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    course_id: str
    status: str
    enrolled_at: Optional[datetime] = None
    last_accessed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
