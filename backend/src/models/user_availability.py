"""
User availability model for teacher and student free time.

One table holds three kinds of records:
- REGULAR: weekly pattern keyed by day_of_week
- EXCEPTION: a specific date whose records replace the weekly pattern
- ABSENCE: a specific date whose windows are always removed

Only APPROVED records take part in generation. Overlap rules between
records of the same scope are enforced where records are written.
"""

from datetime import date as date_type, datetime, time
from typing import Optional

from sqlalchemy import String, TIMESTAMP, Boolean, Date, Time, Integer, Index, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from core.constants import MAX_STRING_LENGTH
from core.database import Base
from shared_types.availability import AvailabilityStatus


class UserAvailability(Base):
    """
    A declared availability window (or absence) of a teacher or student.

    Either full_day is true or both start_time and end_time are set.
    """

    __tablename__ = "user_availability"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    user_id: Mapped[int] = mapped_column(Integer, nullable=False)
    """User the record belongs to (teacher or student)."""

    type: Mapped[str] = mapped_column(String(20), nullable=False)
    """Valid values: 'REGULAR', 'EXCEPTION', 'ABSENCE'."""

    status: Mapped[str] = mapped_column(String(20), nullable=False, default=AvailabilityStatus.PENDING.value)
    """Valid values: 'PENDING', 'APPROVED', 'REJECTED'."""

    day_of_week: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    """0=Monday ... 6=Sunday. Set for REGULAR records only."""

    date: Mapped[Optional[date_type]] = mapped_column(Date, nullable=True)
    """Set for EXCEPTION and ABSENCE records."""

    full_day: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    start_time: Mapped[Optional[time]] = mapped_column(Time, nullable=True)
    end_time: Mapped[Optional[time]] = mapped_column(Time, nullable=True)

    reason: Mapped[Optional[str]] = mapped_column(String(MAX_STRING_LENGTH), nullable=True)

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)

    __table_args__ = (
        CheckConstraint(
            "type IN ('REGULAR', 'EXCEPTION', 'ABSENCE')",
            name='check_user_availability_type'
        ),
        CheckConstraint(
            "status IN ('PENDING', 'APPROVED', 'REJECTED')",
            name='check_user_availability_status'
        ),
        CheckConstraint(
            "(type = 'REGULAR' AND day_of_week IS NOT NULL) OR (type != 'REGULAR' AND date IS NOT NULL)",
            name='check_user_availability_scope'
        ),
        CheckConstraint(
            "full_day OR (start_time IS NOT NULL AND end_time IS NOT NULL AND start_time < end_time)",
            name='check_user_availability_window'
        ),
        Index('idx_user_availability_user_type_date', 'user_id', 'type', 'date'),
        Index('idx_user_availability_user_type_day', 'user_id', 'type', 'day_of_week'),
    )

    @property
    def duration_minutes(self) -> Optional[int]:
        """Length of the window in minutes, or None for full-day records."""
        if self.full_day or self.start_time is None or self.end_time is None:
            return None
        start_minutes = self.start_time.hour * 60 + self.start_time.minute
        end_minutes = self.end_time.hour * 60 + self.end_time.minute
        return end_minutes - start_minutes

    def __repr__(self) -> str:
        scope = self.date if self.date is not None else f"weekday={self.day_of_week}"
        window = "full-day" if self.full_day else f"{self.start_time}-{self.end_time}"
        return f"<UserAvailability(user_id={self.user_id}, {self.type}/{self.status}, {scope}, {window})>"
