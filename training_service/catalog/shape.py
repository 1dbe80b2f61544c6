"""Course shape: the content hierarchy as an arena keyed by identifier."""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from training_service.core.exceptions import UnknownQuestion, UnknownTopic
from training_service.schemas.catalog import CoursePayload


@dataclass(frozen=True)
class QuizQuestion:
    id: str
    topic_id: str
    options: Tuple[str, ...]
    correct_option_index: int
    points: int = 1
    explanation: Optional[str] = None

    @property
    def option_count(self) -> int:
        return len(self.options)


@dataclass(frozen=True)
class Topic:
    id: str
    module_id: str
    question_ids: Tuple[str, ...] = ()
    title: Optional[str] = None

    @property
    def has_quiz(self) -> bool:
        return bool(self.question_ids)


@dataclass(frozen=True)
class Module:
    id: str
    course_id: str
    topic_ids: Tuple[str, ...] = ()
    title: Optional[str] = None


@dataclass(frozen=True)
class Course:
    id: str
    module_ids: Tuple[str, ...]
    pass_threshold: int
    sequential_progression: bool = False
    certificate_enabled: bool = False
    title: Optional[str] = None


@dataclass(frozen=True)
class CourseShape:
    """Read-only view of one course version.

    Ordering lives in the explicit id tuples on ``Course`` and ``Module``;
    the flattened topic order is precomputed so predecessor lookups are a
    dict access.
    """

    course: Course
    modules: Dict[str, Module]
    topics: Dict[str, Topic]
    questions: Dict[str, QuizQuestion]
    topic_order: Tuple[str, ...] = field(init=False)
    _positions: Dict[str, int] = field(init=False, repr=False)

    def __post_init__(self):
        order = tuple(
            topic_id
            for module_id in self.course.module_ids
            for topic_id in self.modules[module_id].topic_ids
        )
        object.__setattr__(self, "topic_order", order)
        object.__setattr__(self, "_positions", {topic_id: i for i, topic_id in enumerate(order)})

    @property
    def course_id(self) -> str:
        return self.course.id

    def topic(self, topic_id: str) -> Topic:
        try:
            return self.topics[topic_id]
        except KeyError:
            raise UnknownTopic(
                f"Topic {topic_id} is not part of course {self.course.id}",
                course_id=self.course.id,
                topic_id=topic_id,
            )

    def question(self, topic_id: str, question_id: str) -> QuizQuestion:
        topic = self.topic(topic_id)
        question = self.questions.get(question_id)
        if question is None or question.topic_id != topic.id:
            raise UnknownQuestion(
                f"Question {question_id} does not belong to topic {topic_id}",
                topic_id=topic_id,
                question_id=question_id,
            )
        return question

    def questions_for(self, topic_id: str) -> List[QuizQuestion]:
        """Questions of a topic in authored order."""
        return [self.questions[question_id] for question_id in self.topic(topic_id).question_ids]

    def predecessor_of(self, topic_id: str) -> Optional[str]:
        """Previous topic in course order, crossing module boundaries."""
        self.topic(topic_id)
        position = self._positions[topic_id]
        if position == 0:
            return None
        return self.topic_order[position - 1]

    def module_topics(self, module_id: str) -> Tuple[str, ...]:
        return self.modules[module_id].topic_ids


def build_course_shape(payload: CoursePayload, default_pass_threshold: int) -> CourseShape:
    """Build a shape from a validated payload, dropping inactive content."""
    modules: Dict[str, Module] = {}
    topics: Dict[str, Topic] = {}
    questions: Dict[str, QuizQuestion] = {}
    module_ids = []

    for module_payload in payload.modules:
        if not module_payload.is_active:
            continue
        topic_ids = []
        for topic_payload in module_payload.topics:
            if not topic_payload.is_active:
                continue
            question_ids = []
            for question_payload in topic_payload.questions:
                if not question_payload.is_active:
                    continue
                questions[question_payload.id] = QuizQuestion(
                    id=question_payload.id,
                    topic_id=topic_payload.id,
                    options=tuple(question_payload.options),
                    correct_option_index=question_payload.correct_option_index,
                    points=question_payload.points,
                    explanation=question_payload.explanation,
                )
                question_ids.append(question_payload.id)
            topics[topic_payload.id] = Topic(
                id=topic_payload.id,
                module_id=module_payload.id,
                question_ids=tuple(question_ids),
                title=topic_payload.title,
            )
            topic_ids.append(topic_payload.id)
        modules[module_payload.id] = Module(
            id=module_payload.id,
            course_id=payload.id,
            topic_ids=tuple(topic_ids),
            title=module_payload.title,
        )
        module_ids.append(module_payload.id)

    pass_threshold = payload.pass_threshold
    if pass_threshold is None:
        pass_threshold = default_pass_threshold

    course = Course(
        id=payload.id,
        module_ids=tuple(module_ids),
        pass_threshold=pass_threshold,
        sequential_progression=payload.sequential_progression,
        certificate_enabled=payload.certificate_enabled,
        title=payload.title,
    )
    return CourseShape(course=course, modules=modules, topics=topics, questions=questions)
