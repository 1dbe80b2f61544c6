"""Data models for Training Progress Service."""

from training_service.models.training import Enrollment, EnrollmentStatus, CompletedTopic

__all__ = [
    "Enrollment",
    "EnrollmentStatus",
    "CompletedTopic",
]
