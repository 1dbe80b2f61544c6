"""Answer grading and quiz attempt scoring."""

from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

from training_service.catalog.shape import QuizQuestion
from training_service.core.exceptions import InvalidSelection, UnknownQuestion


@dataclass(frozen=True)
class GradeResult:
    is_correct: bool
    points_earned: int


@dataclass(frozen=True)
class AttemptScore:
    """Score of one pass over a topic's quiz.

    ``score_percent`` is ``None`` when the topic has no quiz. Only a final
    attempt (every question answered) may be used for completion.
    """

    has_quiz: bool
    answered_count: int
    total_count: int
    points_earned: int
    points_possible: int
    score_percent: Optional[int]

    @property
    def is_final(self) -> bool:
        return self.has_quiz and self.answered_count == self.total_count


def percent(numerator: int, denominator: int) -> int:
    """Whole percentage rounded half up; 0 for an empty denominator."""
    if denominator <= 0:
        return 0
    return (200 * numerator + denominator) // (2 * denominator)


def grade_answer(question: QuizQuestion, selected_option_index: int) -> GradeResult:
    """Grade a single answer."""
    if isinstance(selected_option_index, bool) or not 0 <= selected_option_index < question.option_count:
        raise InvalidSelection(
            f"Option {selected_option_index} is out of range for question {question.id}",
            question_id=question.id,
            option_count=question.option_count,
        )

    is_correct = selected_option_index == question.correct_option_index
    return GradeResult(is_correct=is_correct, points_earned=question.points if is_correct else 0)


def score_attempt(questions: Sequence[QuizQuestion], answers: Mapping[str, int]) -> AttemptScore:
    """Score answers against a topic's full question set.

    Unanswered questions earn nothing but still count towards the points
    possible.
    """
    if not questions:
        if answers:
            question_id = next(iter(answers))
            raise UnknownQuestion(f"Question {question_id} is not part of this quiz", question_id=question_id)
        return AttemptScore(
            has_quiz=False,
            answered_count=0,
            total_count=0,
            points_earned=0,
            points_possible=0,
            score_percent=None,
        )

    by_id = {question.id: question for question in questions}
    for question_id in answers:
        if question_id not in by_id:
            raise UnknownQuestion(f"Question {question_id} is not part of this quiz", question_id=question_id)

    earned = 0
    answered = 0
    for question in questions:
        if question.id not in answers:
            continue
        answered += 1
        earned += grade_answer(question, answers[question.id]).points_earned

    possible = sum(question.points for question in questions)
    return AttemptScore(
        has_quiz=True,
        answered_count=answered,
        total_count=len(questions),
        points_earned=earned,
        points_possible=possible,
        score_percent=percent(earned, possible),
    )
