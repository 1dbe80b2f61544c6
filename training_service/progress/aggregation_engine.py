"""Derived progress views over the ledger and the current course shape."""

from dataclasses import dataclass
from typing import AbstractSet, Dict, List

from training_service.catalog.shape import CourseShape
from training_service.progress.grading_engine import percent


def completion_percent(done: int, total: int) -> int:
    """Rounded completion percentage that only reads 100 when everything is done."""
    value = percent(done, total)
    if value == 100 and done < total:
        return 99
    return value


@dataclass(frozen=True)
class ModuleProgress:
    module_id: str
    completed_topics: int
    total_topics: int
    completion_percent: int


@dataclass(frozen=True)
class ProgressSnapshot:
    course_id: str
    completed_topic_ids: List[str]
    modules: List[ModuleProgress]
    completed_topics: int
    total_topics: int
    course_completion_percent: int
    is_course_complete: bool
    certificate_eligible: bool

    @property
    def per_module_percent(self) -> Dict[str, int]:
        return {module.module_id: module.completion_percent for module in self.modules}


class ProgressAggregator:
    """Computes completion percentages; nothing here is ever stored.

    Only topics in the current shape count. Ledger entries for topics that
    were removed from the catalog are ignored on both sides of the ratio.
    """

    def __init__(self, shape: CourseShape):
        self.shape = shape

    def module_progress(self, module_id: str, completed: AbstractSet[str]) -> ModuleProgress:
        topic_ids = self.shape.module_topics(module_id)
        done = sum(1 for topic_id in topic_ids if topic_id in completed)
        return ModuleProgress(
            module_id=module_id,
            completed_topics=done,
            total_topics=len(topic_ids),
            completion_percent=completion_percent(done, len(topic_ids)),
        )

    def module_completion_percent(self, module_id: str, completed: AbstractSet[str]) -> int:
        return self.module_progress(module_id, completed).completion_percent

    def course_completion_percent(self, completed: AbstractSet[str]) -> int:
        done, total = self._course_counts(completed)
        return completion_percent(done, total)

    def is_course_complete(self, completed: AbstractSet[str]) -> bool:
        done, total = self._course_counts(completed)
        return total > 0 and done == total

    def certificate_eligible(self, completed: AbstractSet[str]) -> bool:
        return self.is_course_complete(completed) and self.shape.course.certificate_enabled

    def snapshot(self, completed: AbstractSet[str]) -> ProgressSnapshot:
        done, total = self._course_counts(completed)
        is_complete = total > 0 and done == total
        return ProgressSnapshot(
            course_id=self.shape.course_id,
            completed_topic_ids=[topic_id for topic_id in self.shape.topic_order if topic_id in completed],
            modules=[self.module_progress(module_id, completed) for module_id in self.shape.course.module_ids],
            completed_topics=done,
            total_topics=total,
            course_completion_percent=completion_percent(done, total),
            is_course_complete=is_complete,
            certificate_eligible=is_complete and self.shape.course.certificate_enabled,
        )

    def _course_counts(self, completed: AbstractSet[str]):
        order = self.shape.topic_order
        return sum(1 for topic_id in order if topic_id in completed), len(order)
