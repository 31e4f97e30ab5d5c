"""
Class series model representing a recurring booking template.

A class series describes a weekly lesson (teacher, student, booth, weekdays,
time of day) from which concrete ClassSession rows are materialized by
ClassSeriesService. The series carries its own conflict policy and a
generation cursor (last_generated_through).
"""

from datetime import date as date_type, datetime, time
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy import String, TIMESTAMP, Date, Time, Integer, Index, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.constants import MAX_NOTES_LENGTH
from core.database import Base, JSONType
from shared_types.scheduling import ConflictReason, RESOURCE_CONFLICT_REASONS, SeriesStatus


# Booking overlaps mark the session CONFLICTED; availability mismatches only warn.
DEFAULT_MARK_AS_CONFLICTED: Dict[ConflictReason, bool] = {
    ConflictReason.TEACHER_CONFLICT: True,
    ConflictReason.STUDENT_CONFLICT: True,
    ConflictReason.BOOTH_CONFLICT: True,
    ConflictReason.TEACHER_UNAVAILABLE: False,
    ConflictReason.STUDENT_UNAVAILABLE: False,
    ConflictReason.TEACHER_WRONG_TIME: False,
    ConflictReason.STUDENT_WRONG_TIME: False,
    ConflictReason.NO_SHARED_AVAILABILITY: False,
}


class AllowOutsideAvailability(BaseModel):
    """Roles whose availability coverage is not checked."""
    model_config = ConfigDict(extra='forbid')

    teacher: bool = Field(default=False)
    student: bool = Field(default=False)


class ConflictPolicy(BaseModel):
    """Schema for the per-series conflict policy."""
    model_config = ConfigDict(extra='forbid')

    allow_outside_availability: AllowOutsideAvailability = Field(default_factory=AllowOutsideAvailability)
    mark_as_conflicted: Dict[ConflictReason, bool] = Field(default_factory=lambda: dict(DEFAULT_MARK_AS_CONFLICTED))

    @field_validator('mark_as_conflicted', mode='after')
    @classmethod
    def fill_missing_reasons(cls, v: Dict[ConflictReason, bool]) -> Dict[ConflictReason, bool]:
        """Give every reason an explicit value so lookups never miss."""
        normalized = dict(DEFAULT_MARK_AS_CONFLICTED)
        normalized.update(v)
        return normalized

    def is_hard(self, reason: ConflictReason) -> bool:
        """Whether a reason marks the session CONFLICTED rather than producing a warning."""
        if reason in RESOURCE_CONFLICT_REASONS:
            return True
        return self.mark_as_conflicted[reason]


class ClassSeries(Base):
    """
    Recurring class template.

    Only ClassSeriesService mutates last_generated_through and status; the
    cursor never moves backwards.
    """

    __tablename__ = "class_series"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    """Unique identifier for the series."""

    branch_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    """Branch the series belongs to; selects the vacation calendar."""

    teacher_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    """User id of the teacher."""

    student_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    """User id of the student."""

    booth_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    subject_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    class_type_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    days_of_week: Mapped[List[int]] = mapped_column(JSONType, nullable=False, default=list)
    """Weekdays the class takes place on (0=Monday, ..., 6=Sunday)."""

    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)

    duration: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    """Lesson length in minutes. Derived from start/end when null."""

    start_date: Mapped[date_type] = mapped_column(Date, nullable=False)
    end_date: Mapped[Optional[date_type]] = mapped_column(Date, nullable=True)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default=SeriesStatus.ACTIVE.value)
    """Valid values: 'ACTIVE', 'PAUSED', 'ENDED'."""

    last_generated_through: Mapped[Optional[date_type]] = mapped_column(Date, nullable=True)
    """Date up to and including which generation has been attempted."""

    conflict_policy: Mapped[Dict[str, Any]] = mapped_column(JSONType, nullable=False, default=dict)
    """JSON conflict policy, validated through ConflictPolicy."""

    notes: Mapped[Optional[str]] = mapped_column(String(MAX_NOTES_LENGTH), nullable=True)
    """Copied to every generated session."""

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)

    # Relationships
    sessions = relationship("ClassSession", back_populates="series")

    __table_args__ = (
        CheckConstraint(
            "status IN ('ACTIVE', 'PAUSED', 'ENDED')",
            name='check_class_series_status'
        ),
        CheckConstraint("start_time < end_time", name='check_class_series_time_range'),
        Index('idx_class_series_status_updated', 'status', 'updated_at'),
        Index('idx_class_series_branch', 'branch_id'),
    )

    @property
    def duration_minutes(self) -> int:
        """Lesson length in minutes, falling back to end - start."""
        if self.duration is not None:
            return self.duration
        start_minutes = self.start_time.hour * 60 + self.start_time.minute
        end_minutes = self.end_time.hour * 60 + self.end_time.minute
        return end_minutes - start_minutes

    def get_validated_conflict_policy(self) -> ConflictPolicy:
        """Get the conflict policy with schema validation."""
        return ConflictPolicy.model_validate(self.conflict_policy or {})

    def set_validated_conflict_policy(self, policy: ConflictPolicy) -> None:
        """Set the conflict policy with schema validation."""
        self.conflict_policy = policy.model_dump(mode='json')

    def __repr__(self) -> str:
        return (
            f"<ClassSeries(id={self.id}, days={self.days_of_week}, "
            f"{self.start_time}-{self.end_time}, status={self.status})>"
        )
