"""
Run-scoped memo for availability lookups.

One instance lives for a single series generation (or preview) run and is
passed explicitly to the classifier. It is never stored at module level, so a
later run always sees freshly approved or edited records.
"""

import logging
from datetime import date as date_type
from typing import Dict, List, Tuple

from sqlalchemy.orm import Session

from services.availability_service import AvailabilityService
from shared_types.availability import AbsenceWindows, Slot

logger = logging.getLogger(__name__)

CacheKey = Tuple[int, date_type]


class AvailabilityLookupCache:
    """
    Memoizes resolved slots and absence windows per (user_id, date).

    Entries are filled lazily on first access.
    """

    def __init__(self, db: Session):
        self.db = db
        self._slots: Dict[CacheKey, List[Slot]] = {}
        self._absences: Dict[CacheKey, AbsenceWindows] = {}
        self.hits = 0
        self.misses = 0

    def get_slots(self, user_id: int, target_date: date_type) -> List[Slot]:
        """Resolved free-time slots for a user on a date."""
        key = (user_id, target_date)
        if key in self._slots:
            self.hits += 1
            return self._slots[key]
        self.misses += 1
        slots = AvailabilityService.resolve_slots(self.db, user_id, target_date)
        self._slots[key] = slots
        return slots

    def get_absences(self, user_id: int, target_date: date_type) -> AbsenceWindows:
        """Approved absence windows for a user on a date."""
        key = (user_id, target_date)
        if key in self._absences:
            self.hits += 1
            return self._absences[key]
        self.misses += 1
        absences = AvailabilityService.get_absence_windows(self.db, user_id, target_date)
        self._absences[key] = absences
        return absences

    def has_absence_overlap(
        self,
        user_id: int,
        start_minute: int,
        end_minute: int,
        target_date: date_type
    ) -> bool:
        """Cached equivalent of AvailabilityService.has_absence_overlap."""
        absences = self.get_absences(user_id, target_date)
        return AvailabilityService.absence_overlaps(absences, start_minute, end_minute)

    def invalidate(self) -> None:
        """Drop every cached entry."""
        self._slots.clear()
        self._absences.clear()
        logger.debug("Availability lookup cache invalidated")
