"""
Conflict classification for candidate class sessions.

For one candidate (date, start, end) of a series, collects every reason the
session collides with an existing booking or with declared availability,
routes each reason through the series' conflict policy (hard conflict vs.
soft warning), and decides whether an absence forces cancellation.
"""

import logging
from dataclasses import dataclass
from datetime import date as date_type
from typing import Iterable, List, Optional

from models import ClassSeries, ClassSession, ConflictPolicy
from services.availability_cache import AvailabilityLookupCache
from shared_types.scheduling import Classification, ConflictReason
from utils.datetime_utils import time_to_minutes
from utils.interval_set import covers, overlaps, pair_covers

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SeriesResources:
    """The people and booth a series books."""
    teacher_id: Optional[int] = None
    student_id: Optional[int] = None
    booth_id: Optional[int] = None

    @classmethod
    def from_series(cls, series: ClassSeries) -> "SeriesResources":
        return cls(teacher_id=series.teacher_id, student_id=series.student_id, booth_id=series.booth_id)

    @property
    def has_any(self) -> bool:
        return any(v is not None for v in (self.teacher_id, self.student_id, self.booth_id))


@dataclass(frozen=True)
class ExistingBooking:
    """A non-cancelled session already holding a resource on some date."""
    date: date_type
    start_minute: int
    end_minute: int
    teacher_id: Optional[int] = None
    student_id: Optional[int] = None
    booth_id: Optional[int] = None

    @classmethod
    def from_session(cls, session: ClassSession) -> "ExistingBooking":
        return cls(
            date=session.date,
            start_minute=time_to_minutes(session.start_time),
            end_minute=time_to_minutes(session.end_time),
            teacher_id=session.teacher_id,
            student_id=session.student_id,
            booth_id=session.booth_id,
        )


class ConflictClassifier:
    """
    Classifies candidate sessions of one series.

    Checks never short-circuit; one session can collect several reasons.
    """

    def __init__(self, resources: SeriesResources, policy: ConflictPolicy, cache: AvailabilityLookupCache):
        self.resources = resources
        self.policy = policy
        self.cache = cache

    def resource_overlap_reasons(
        self,
        start_minute: int,
        end_minute: int,
        bookings: Iterable[ExistingBooking]
    ) -> List[ConflictReason]:
        """
        Booth/teacher/student overlaps against same-day bookings.

        Each resource contributes at most one reason. These reasons are always hard.
        """
        booth = teacher = student = False
        for booking in bookings:
            if not overlaps(start_minute, end_minute, booking.start_minute, booking.end_minute):
                continue
            if self.resources.booth_id is not None and booking.booth_id == self.resources.booth_id:
                booth = True
            if self.resources.teacher_id is not None and booking.teacher_id == self.resources.teacher_id:
                teacher = True
            if self.resources.student_id is not None and booking.student_id == self.resources.student_id:
                student = True

        reasons: List[ConflictReason] = []
        if booth:
            reasons.append(ConflictReason.BOOTH_CONFLICT)
        if teacher:
            reasons.append(ConflictReason.TEACHER_CONFLICT)
        if student:
            reasons.append(ConflictReason.STUDENT_CONFLICT)
        return reasons

    def _route(self, reason: ConflictReason, result: Classification) -> None:
        if self.policy.is_hard(reason):
            result.hard_reasons.append(reason)
        else:
            result.soft_reasons.append(reason)

    def _coverage_reason(
        self,
        user_id: int,
        target_date: date_type,
        start_minute: int,
        end_minute: int,
        unavailable: ConflictReason,
        wrong_time: ConflictReason
    ) -> Optional[ConflictReason]:
        slots = self.cache.get_slots(user_id, target_date)
        if covers(slots, start_minute, end_minute):
            return None
        return unavailable if not slots else wrong_time

    def shared_availability_missing(self, target_date: date_type, start_minute: int, end_minute: int) -> bool:
        """
        Whether teacher and student each cover the window but no common slot does.

        Only evaluated when both exist and both have some free time that day;
        when only one side covers the window, the individual checks report it.
        """
        if self.resources.teacher_id is None or self.resources.student_id is None:
            return False
        teacher_slots = self.cache.get_slots(self.resources.teacher_id, target_date)
        student_slots = self.cache.get_slots(self.resources.student_id, target_date)
        if not teacher_slots or not student_slots:
            return False
        if not (covers(teacher_slots, start_minute, end_minute) and covers(student_slots, start_minute, end_minute)):
            return False
        return not pair_covers(teacher_slots, student_slots, start_minute, end_minute)

    def has_absence(self, target_date: date_type, start_minute: int, end_minute: int) -> bool:
        """Whether the teacher or the student has an approved absence overlapping the window."""
        for user_id in (self.resources.teacher_id, self.resources.student_id):
            if user_id is not None and self.cache.has_absence_overlap(user_id, start_minute, end_minute, target_date):
                return True
        return False

    def classify(
        self,
        target_date: date_type,
        start_minute: int,
        end_minute: int,
        bookings: Iterable[ExistingBooking]
    ) -> Classification:
        """
        Classify one candidate session.

        Args:
            target_date: Session date
            start_minute: Session start, minutes since midnight
            end_minute: Session end, minutes since midnight
            bookings: Existing non-cancelled bookings on the same date

        Returns:
            Classification with hard reasons, soft reasons and the absence flag
        """
        result = Classification()
        result.hard_reasons.extend(self.resource_overlap_reasons(start_minute, end_minute, bookings))

        allow_outside = self.policy.allow_outside_availability
        if self.resources.teacher_id is not None and not allow_outside.teacher:
            reason = self._coverage_reason(
                self.resources.teacher_id, target_date, start_minute, end_minute,
                ConflictReason.TEACHER_UNAVAILABLE, ConflictReason.TEACHER_WRONG_TIME
            )
            if reason is not None:
                self._route(reason, result)

        if self.resources.student_id is not None and not allow_outside.student:
            reason = self._coverage_reason(
                self.resources.student_id, target_date, start_minute, end_minute,
                ConflictReason.STUDENT_UNAVAILABLE, ConflictReason.STUDENT_WRONG_TIME
            )
            if reason is not None:
                self._route(reason, result)

        if self.shared_availability_missing(target_date, start_minute, end_minute):
            self._route(ConflictReason.NO_SHARED_AVAILABILITY, result)

        result.cancel_for_absence = self.has_absence(target_date, start_minute, end_minute)
        if result.hard_reasons or result.soft_reasons or result.cancel_for_absence:
            logger.debug(
                f"Classified {target_date}: hard={[r.value for r in result.hard_reasons]} "
                f"soft={[r.value for r in result.soft_reasons]} cancel={result.cancel_for_absence}"
            )
        return result
