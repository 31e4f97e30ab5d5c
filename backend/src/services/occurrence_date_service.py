"""
Occurrence date generation for class series.

Computes the date window a generation run covers and expands a series'
weekday set into the concrete candidate dates inside it.
"""

import logging
from dataclasses import dataclass
from datetime import date as date_type, timedelta
from typing import Iterable, List, Optional

from fastapi import HTTPException, status

from utils.datetime_utils import add_months

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationWindow:
    """Closed date range [from_date, to_date] of one generation run."""
    from_date: date_type
    to_date: date_type

    @property
    def is_empty(self) -> bool:
        return self.from_date > self.to_date


class OccurrenceDateService:
    """Service class for candidate date computation."""

    @staticmethod
    def validate_days_of_week(days_of_week: Optional[Iterable[int]]) -> List[int]:
        """
        Validate a series' weekday set.

        Returns:
            Sorted, de-duplicated weekday numbers (0=Monday ... 6=Sunday)

        Raises:
            HTTPException: If the set is empty or holds values outside 0-6
        """
        days = list(days_of_week or [])
        if not days:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Series days_of_week is not configured"
            )
        invalid = [d for d in days if isinstance(d, bool) or not isinstance(d, int) or d < 0 or d > 6]
        if invalid:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Series days_of_week has invalid values: {invalid}"
            )
        return sorted(set(days))

    @staticmethod
    def window_start(
        start_date: date_type,
        last_generated_through: Optional[date_type],
        today: date_type
    ) -> date_type:
        """
        First date a run may generate.

        The day after the cursor (or the series start when there is no cursor),
        never earlier than the series start or today.
        """
        baseline = last_generated_through + timedelta(days=1) if last_generated_through else start_date
        return max(baseline, start_date, today)

    @staticmethod
    def is_exhausted(from_date: date_type, end_date: Optional[date_type]) -> bool:
        """Whether a series has nothing left to generate."""
        return end_date is not None and from_date > end_date

    @staticmethod
    def clamp_to_end(horizon_end: date_type, end_date: Optional[date_type]) -> date_type:
        """Bound a requested horizon by the series end date."""
        if end_date is not None and horizon_end > end_date:
            return end_date
        return horizon_end

    @staticmethod
    def month_window(
        start_date: date_type,
        end_date: Optional[date_type],
        last_generated_through: Optional[date_type],
        today: date_type,
        months: int
    ) -> GenerationWindow:
        """Window for an extension of `months` calendar months."""
        from_date = OccurrenceDateService.window_start(start_date, last_generated_through, today)
        to_date = OccurrenceDateService.clamp_to_end(add_months(from_date, months), end_date)
        return GenerationWindow(from_date, to_date)

    @staticmethod
    def lead_days_window(
        start_date: date_type,
        end_date: Optional[date_type],
        last_generated_through: Optional[date_type],
        today: date_type,
        lead_days: int
    ) -> GenerationWindow:
        """Window for rolling advance generation up to today + lead_days."""
        from_date = OccurrenceDateService.window_start(start_date, last_generated_through, today)
        to_date = OccurrenceDateService.clamp_to_end(today + timedelta(days=lead_days), end_date)
        return GenerationWindow(from_date, to_date)

    @staticmethod
    def generate_dates(days_of_week: Iterable[int], window: GenerationWindow) -> List[date_type]:
        """
        Every date in the window whose weekday is in the set, ascending.

        Pure function - no database queries.
        """
        weekdays = set(days_of_week)
        dates: List[date_type] = []
        current = window.from_date
        while current <= window.to_date:
            if current.weekday() in weekdays:
                dates.append(current)
            current += timedelta(days=1)
        return dates
