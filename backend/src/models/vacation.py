"""
Vacation model representing branch-level blackout dates.

Recurring vacations repeat every year; only their month/day components are
significant and the range may wrap the new year (Dec 20 - Jan 10).
"""

from datetime import date as date_type, datetime
from typing import Optional

from sqlalchemy import String, TIMESTAMP, Boolean, Date, Integer, Index, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column

from core.constants import MAX_STRING_LENGTH
from core.database import Base


class Vacation(Base):
    """A branch closure period. No session is generated on a vacation day."""

    __tablename__ = "vacations"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    branch_id: Mapped[int] = mapped_column(Integer, nullable=False)

    name: Mapped[str] = mapped_column(String(MAX_STRING_LENGTH), nullable=False, default="")

    start_date: Mapped[date_type] = mapped_column(Date, nullable=False)
    end_date: Mapped[date_type] = mapped_column(Date, nullable=False)

    is_recurring: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    notes: Mapped[Optional[str]] = mapped_column(String(MAX_STRING_LENGTH), nullable=True)

    created_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    updated_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)

    __table_args__ = (
        CheckConstraint("is_recurring OR start_date <= end_date", name='check_vacation_date_range'),
        Index('idx_vacations_branch', 'branch_id'),
    )

    def __repr__(self) -> str:
        return (
            f"<Vacation(id={self.id}, branch_id={self.branch_id}, {self.start_date}..{self.end_date}, "
            f"recurring={self.is_recurring})>"
        )
