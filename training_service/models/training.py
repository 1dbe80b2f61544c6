"""Training enrollment and completion models."""

from datetime import datetime
from enum import Enum
from sqlalchemy import Column, String, Integer, DateTime, UniqueConstraint, Index

from training_service.core.database import Base


class EnrollmentStatus(str, Enum):
    """Enrollment lifecycle; only ever moves forward."""
    ENROLLED = "enrolled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


ENROLLMENT_ORDER = [
    EnrollmentStatus.ENROLLED.value,
    EnrollmentStatus.IN_PROGRESS.value,
    EnrollmentStatus.COMPLETED.value,
]


class Enrollment(Base):
    """A user's participation in a training course."""
    __tablename__ = "training_enrollments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False, index=True)
    course_id = Column(String(64), nullable=False, index=True)
    status = Column(String(32), nullable=False, default=EnrollmentStatus.ENROLLED.value)
    enrolled_at = Column(DateTime, default=datetime.utcnow)
    last_accessed_at = Column(DateTime, default=datetime.utcnow)
    completed_at = Column(DateTime)

    __table_args__ = (
        UniqueConstraint("user_id", "course_id", name="uq_enrollment_user_course"),
        Index("ix_enrollment_user_accessed", "user_id", "last_accessed_at"),
    )


class CompletedTopic(Base):
    """One member of a user's completed-topic set for a course."""
    __tablename__ = "training_completed_topics"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False)
    course_id = Column(String(64), nullable=False)
    topic_id = Column(String(64), nullable=False)
    completed_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("user_id", "course_id", "topic_id", name="uq_completed_topic"),
        Index("ix_completed_topic_user_course", "user_id", "course_id"),
    )
