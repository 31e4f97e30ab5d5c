"""
Vacation calendar service.

Decides whether a date is a branch closure day, for one-off ranges and for
ranges that recur every year by month/day.
"""

import logging
from datetime import date as date_type
from typing import Iterable, List

from sqlalchemy.orm import Session

from models import Vacation

logger = logging.getLogger(__name__)


def _month_day(d: date_type) -> int:
    """Month/day of a date as the number MMDD."""
    return d.month * 100 + d.day


class VacationService:
    """Service class for branch vacation lookups."""

    @staticmethod
    def get_branch_vacations(db: Session, branch_id: int) -> List[Vacation]:
        """Fetch every vacation of a branch."""
        return db.query(Vacation).filter(Vacation.branch_id == branch_id).all()

    @staticmethod
    def matches(vacation: Vacation, target_date: date_type) -> bool:
        """
        Check whether one vacation covers a date.

        One-off ranges compare full dates, inclusive on both ends. Recurring
        ranges compare MMDD only; when the start MMDD is after the end MMDD
        the range wraps the year boundary.
        """
        if not vacation.is_recurring:
            return vacation.start_date <= target_date <= vacation.end_date

        target = _month_day(target_date)
        start = _month_day(vacation.start_date)
        end = _month_day(vacation.end_date)
        if start <= end:
            return start <= target <= end
        return target >= start or target <= end

    @staticmethod
    def is_vacation_day(vacations: Iterable[Vacation], target_date: date_type) -> bool:
        """
        Check a date against pre-fetched vacations.

        Pure function - no database queries.
        """
        return any(VacationService.matches(v, target_date) for v in vacations)

    @staticmethod
    def is_branch_vacation_day(db: Session, branch_id: int, target_date: date_type) -> bool:
        """Check a date against a branch's vacation calendar."""
        vacations = VacationService.get_branch_vacations(db, branch_id)
        return VacationService.is_vacation_day(vacations, target_date)
