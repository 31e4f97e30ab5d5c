"""
Availability service for resolving teacher and student free time.

Turns APPROVED UserAvailability records into minute-of-day slots for one
user on one date, and answers whether an approved absence touches a window.
PENDING and REJECTED records are never read.
"""

import logging
from datetime import date as date_type
from typing import Dict, Iterable, List

from sqlalchemy.orm import Session

from core.constants import FULL_DAY_SLOT_END_MINUTE
from models import UserAvailability
from shared_types.availability import AbsenceWindows, AvailabilityStatus, AvailabilityType, Slot
from utils.datetime_utils import minutes_to_hhmm, time_to_minutes
from utils.interval_set import merge_slots, overlaps, subtract_slots

logger = logging.getLogger(__name__)


class AvailabilityService:
    """
    Service class for availability resolution.

    Database helpers take the session explicitly; the pure helpers work on
    already-fetched records so callers can cache them.
    """

    @staticmethod
    def records_to_slots(records: Iterable[UserAvailability]) -> List[Slot]:
        """
        Convert availability records to slots.

        Full-day records become [0, FULL_DAY_SLOT_END_MINUTE]. Records without a
        complete time window are ignored.
        """
        slots: List[Slot] = []
        for record in records:
            if record.full_day:
                slots.append(Slot(0, FULL_DAY_SLOT_END_MINUTE))
            elif record.start_time is not None and record.end_time is not None:
                slots.append(Slot(time_to_minutes(record.start_time), time_to_minutes(record.end_time)))
        return slots

    @staticmethod
    def get_approved_records(
        db: Session,
        user_id: int,
        availability_type: AvailabilityType,
        target_date: date_type
    ) -> List[UserAvailability]:
        """
        Fetch APPROVED records of one kind that apply to a date.

        REGULAR records are matched by weekday, the other kinds by exact date.
        """
        query = db.query(UserAvailability).filter(
            UserAvailability.user_id == user_id,
            UserAvailability.type == availability_type.value,
            UserAvailability.status == AvailabilityStatus.APPROVED.value,
        )
        if availability_type == AvailabilityType.REGULAR:
            query = query.filter(UserAvailability.day_of_week == target_date.weekday())
        else:
            query = query.filter(UserAvailability.date == target_date)
        return query.order_by(UserAvailability.start_time).all()

    @staticmethod
    def get_absence_windows(db: Session, user_id: int, target_date: date_type) -> AbsenceWindows:
        """Collect the user's approved absences for a date."""
        absences = AvailabilityService.get_approved_records(
            db, user_id, AvailabilityType.ABSENCE, target_date
        )
        full_day = any(a.full_day for a in absences)
        return AbsenceWindows(
            full_day=full_day,
            slots=tuple(AvailabilityService.records_to_slots(a for a in absences if not a.full_day)),
        )

    @staticmethod
    def resolve_slots(db: Session, user_id: int, target_date: date_type) -> List[Slot]:
        """
        Compute a user's effective free time on a date.

        Approved EXCEPTION records for the date replace the weekly REGULAR
        pattern entirely; when there are none, the REGULAR records for the
        weekday are used. Approved ABSENCE windows are then subtracted.

        Returns:
            Sorted, merged slots (empty when the user is not available)
        """
        exceptions = AvailabilityService.get_approved_records(
            db, user_id, AvailabilityType.EXCEPTION, target_date
        )
        if exceptions:
            base = AvailabilityService.records_to_slots(exceptions)
        else:
            regular = AvailabilityService.get_approved_records(
                db, user_id, AvailabilityType.REGULAR, target_date
            )
            base = AvailabilityService.records_to_slots(regular)

        absences = AvailabilityService.get_approved_records(
            db, user_id, AvailabilityType.ABSENCE, target_date
        )
        return merge_slots(subtract_slots(base, AvailabilityService.records_to_slots(absences)))

    @staticmethod
    def absence_overlaps(absences: AbsenceWindows, start_minute: int, end_minute: int) -> bool:
        """
        Check whether absences touch [start_minute, end_minute).

        Pure function - no database queries. A full-day absence matches any window.
        """
        if absences.full_day:
            return True
        return any(
            overlaps(start_minute, end_minute, a.start_minute, a.end_minute)
            for a in absences.slots
        )

    @staticmethod
    def has_absence_overlap(
        db: Session,
        user_id: int,
        start_minute: int,
        end_minute: int,
        target_date: date_type
    ) -> bool:
        """
        Check whether an approved absence overlaps a window on a date.

        Independent of resolve_slots: an absence forces cancellation even when
        the policy ignores availability coverage.
        """
        absences = AvailabilityService.get_absence_windows(db, user_id, target_date)
        return AvailabilityService.absence_overlaps(absences, start_minute, end_minute)

    @staticmethod
    def format_slots(slots: Iterable[Slot]) -> List[Dict[str, str]]:
        """Format slots as HH:MM ranges for API responses."""
        return [
            {"start_time": minutes_to_hhmm(s.start_minute), "end_time": minutes_to_hhmm(s.end_minute)}
            for s in slots
        ]
