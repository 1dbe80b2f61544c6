"""Content catalog payload schemas.

These mirror the course shape document served by the content service
(``GET /api/courses/{course_id}/shape``). Both snake_case and the content
service's camelCase field names are accepted.
"""

from typing import List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator


class QuizQuestionPayload(BaseModel):
    """Quiz question as authored."""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(validation_alias=AliasChoices("id", "_id"))
    options: List[str] = Field(min_length=2, max_length=6)
    correct_option_index: int = Field(
        ge=0, validation_alias=AliasChoices("correct_option_index", "correctAnswer")
    )
    points: int = Field(default=1, ge=1)
    explanation: Optional[str] = None
    is_active: bool = Field(default=True, validation_alias=AliasChoices("is_active", "isActive"))

    @model_validator(mode="after")
    def check_correct_index(self):
        if self.correct_option_index >= len(self.options):
            raise ValueError("correct answer index must be within options range")
        return self


class TopicPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(validation_alias=AliasChoices("id", "_id"))
    title: Optional[str] = None
    is_active: bool = Field(default=True, validation_alias=AliasChoices("is_active", "isActive"))
    questions: List[QuizQuestionPayload] = Field(
        default_factory=list, validation_alias=AliasChoices("questions", "quizzes")
    )


class ModulePayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(validation_alias=AliasChoices("id", "_id"))
    title: Optional[str] = None
    is_active: bool = Field(default=True, validation_alias=AliasChoices("is_active", "isActive"))
    topics: List[TopicPayload] = Field(default_factory=list)


class CoursePayload(BaseModel):
    """Full course shape: ordered modules, topics and questions."""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(validation_alias=AliasChoices("id", "_id"))
    title: Optional[str] = None
    pass_threshold: Optional[int] = Field(
        default=None,
        ge=0,
        le=100,
        validation_alias=AliasChoices("pass_threshold", "passThreshold", "minPassScore"),
    )
    sequential_progression: bool = Field(
        default=False,
        validation_alias=AliasChoices("sequential_progression", "sequentialProgression"),
    )
    certificate_enabled: bool = Field(
        default=False,
        validation_alias=AliasChoices("certificate_enabled", "certificateEnabled", "certificate"),
    )
    modules: List[ModulePayload] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_unique_ids(self):
        seen = set()
        for module in self.modules:
            ids = [module.id]
            for topic in module.topics:
                ids.append(topic.id)
                ids.extend(question.id for question in topic.questions)
            for identifier in ids:
                if identifier in seen:
                    raise ValueError(f"duplicate content identifier: {identifier}")
                seen.add(identifier)
        return self
