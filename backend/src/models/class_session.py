"""
Class session model representing one concrete, dated lesson.

Sessions generated from a series keep a back-reference to it; the unique
constraint on (series_id, date, start_time, end_time) is what turns a
concurrent double generation into a recoverable IntegrityError.
"""

from datetime import date as date_type, datetime, time
from typing import Optional

from sqlalchemy import String, TIMESTAMP, Boolean, Date, Time, Integer, ForeignKey, Index, CheckConstraint, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.constants import MAX_NOTES_LENGTH
from core.database import Base
from shared_types.scheduling import SessionStatus


class ClassSession(Base):
    """
    A materialized lesson occurrence.

    Status is CONFLICTED when a hard conflict was found at generation time.
    Cancellation is tracked separately so a session can be both CONFLICTED
    and cancelled.
    """

    __tablename__ = "class_sessions"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    series_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("class_series.id", ondelete="SET NULL"), nullable=True
    )
    """Originating series; null for one-off sessions."""

    branch_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    teacher_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    student_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    booth_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    subject_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    class_type_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    date: Mapped[date_type] = mapped_column(Date, nullable=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    duration: Mapped[int] = mapped_column(Integer, nullable=False)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default=SessionStatus.CONFIRMED.value)
    """Valid values: 'CONFIRMED', 'CONFLICTED'."""

    is_cancelled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    cancellation_reason: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    notes: Mapped[Optional[str]] = mapped_column(String(MAX_NOTES_LENGTH), nullable=True)

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)

    series = relationship("ClassSeries", back_populates="sessions")

    __table_args__ = (
        UniqueConstraint('series_id', 'date', 'start_time', 'end_time', name='uq_class_sessions_series_slot'),
        CheckConstraint(
            "status IN ('CONFIRMED', 'CONFLICTED')",
            name='check_class_session_status'
        ),
        CheckConstraint("start_time < end_time", name='check_class_session_time_range'),
        # Same-day overlap lookups filter by date plus one of the resources
        Index('idx_class_sessions_date_teacher', 'date', 'teacher_id'),
        Index('idx_class_sessions_date_student', 'date', 'student_id'),
        Index('idx_class_sessions_date_booth', 'date', 'booth_id'),
        Index('idx_class_sessions_series', 'series_id'),
    )

    def __repr__(self) -> str:
        return (
            f"<ClassSession(id={self.id}, series_id={self.series_id}, date={self.date}, "
            f"time={self.start_time}-{self.end_time}, status={self.status}, cancelled={self.is_cancelled})>"
        )
