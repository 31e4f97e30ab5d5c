"""
Class series generation service.

Materializes ClassSession rows from a recurring ClassSeries: computes the
generation window from the series cursor, drops branch vacation days, applies
per-date caller overrides, classifies every candidate against existing
bookings and availability, persists the sessions one by one and finally moves
the cursor forward.

Three entry points share the same pipeline:
- extend_series: caller-requested extension by N months, with overrides
- preview_extension: dry run of the extension, no writes
- advance_series / advance_active_series: rolling generation up to
  today + lead days, used by the daily scheduler
"""

import logging
from datetime import date as date_type, time
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from fastapi import HTTPException, status
from pydantic import ValidationError
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.constants import (
    MAX_EXTEND_MONTHS, MAX_PREVIEW_MONTHS, MIN_ADVANCE_LEAD_DAYS, MIN_EXTEND_MONTHS
)
from models import ClassSeries, ClassSession, ConflictPolicy
from services.availability_cache import AvailabilityLookupCache
from services.availability_service import AvailabilityService
from services.conflict_classifier import ConflictClassifier, ExistingBooking, SeriesResources
from services.occurrence_date_service import GenerationWindow, OccurrenceDateService
from services.vacation_service import VacationService
from shared_types.scheduling import (
    AdvanceResult, AdvanceSweepResult, CancellationReason, ConflictDetail, ConflictReason, ExtendResult,
    PreviewDate, PreviewFinding, PreviewResult, SeriesStatus, SessionAction, SessionOverride,
    SessionStatus, SkipReason, SkippedDate, SoftWarning
)
from utils.datetime_utils import format_date, school_today, time_to_minutes

logger = logging.getLogger(__name__)

# (db, class_type_id) -> True when the class type must not be generated as a series
SpecialClassTypeCheck = Callable[[Session, int], bool]

PAST_END_MESSAGE = "Series end_date is in the past; nothing to generate"
NO_MATCHING_DAYS_MESSAGE = "No matching days in range"


def _minutes_to_time(minutes: int) -> time:
    return time(minutes // 60, minutes % 60)


class ClassSeriesService:
    """Service class for class series generation."""

    @staticmethod
    def get_series(db: Session, series_id: int) -> ClassSeries:
        """
        Get a series by id.

        Raises:
            HTTPException: If the series does not exist
        """
        series = db.query(ClassSeries).filter(ClassSeries.id == series_id).first()
        if not series:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Series not found"
            )
        return series

    @staticmethod
    def _ensure_active(series: ClassSeries) -> None:
        if series.status != SeriesStatus.ACTIVE.value:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Series status is {series.status}; generation is disabled"
            )

    @staticmethod
    def _is_special(
        db: Session,
        series: ClassSeries,
        is_special_class_type: Optional[SpecialClassTypeCheck]
    ) -> bool:
        if is_special_class_type is None or series.class_type_id is None:
            return False
        return bool(is_special_class_type(db, series.class_type_id))

    @staticmethod
    def load_conflict_policy(series: ClassSeries) -> ConflictPolicy:
        """
        Validate the stored conflict policy of a series.

        Raises:
            HTTPException: If the stored policy JSON is malformed
        """
        try:
            return series.get_validated_conflict_policy()
        except ValidationError as e:
            logger.warning(f"Series {series.id} has an invalid conflict policy: {e}")
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Series conflict policy is invalid"
            )

    @staticmethod
    def _mark_ended(db: Session, series: ClassSeries) -> None:
        series.status = SeriesStatus.ENDED.value
        try:
            db.commit()
        except Exception:
            db.rollback()
            raise
        logger.info(f"Series {series.id} is past its end date {series.end_date}; marked ENDED")

    @staticmethod
    def index_overrides(overrides: Optional[Iterable[SessionOverride]]) -> Dict[date_type, SessionOverride]:
        """
        Index caller overrides by date, validating alternative times.

        A later override for the same date replaces an earlier one.

        Raises:
            HTTPException: If a USE_ALTERNATIVE override lacks a valid time range
        """
        indexed: Dict[date_type, SessionOverride] = {}
        for override in overrides or []:
            if override.action == SessionAction.USE_ALTERNATIVE:
                start = override.alternative_start_minute
                end = override.alternative_end_minute
                if start is None or end is None:
                    raise HTTPException(
                        status_code=status.HTTP_400_BAD_REQUEST,
                        detail=f"USE_ALTERNATIVE for {format_date(override.date)} requires alternative start and end times"
                    )
                if start >= end:
                    raise HTTPException(
                        status_code=status.HTTP_400_BAD_REQUEST,
                        detail=f"Alternative time for {format_date(override.date)} must end after it starts"
                    )
            indexed[override.date] = override
        return indexed

    @staticmethod
    def _split_vacation_dates(
        db: Session,
        branch_id: Optional[int],
        dates: List[date_type]
    ) -> Tuple[List[date_type], List[date_type]]:
        """Split candidate dates into (working days, vacation days)."""
        if branch_id is None:
            return list(dates), []
        vacations = VacationService.get_branch_vacations(db, branch_id)
        working: List[date_type] = []
        closed: List[date_type] = []
        for d in dates:
            if VacationService.is_vacation_day(vacations, d):
                closed.append(d)
            else:
                working.append(d)
        return working, closed

    @staticmethod
    def prefetch_bookings(
        db: Session,
        resources: SeriesResources,
        dates: List[date_type]
    ) -> Dict[date_type, List[ExistingBooking]]:
        """
        Load every non-cancelled session sharing a resource with the series on the given dates.

        One query for the whole run, grouped by date.
        """
        by_date: Dict[date_type, List[ExistingBooking]] = {}
        if not dates or not resources.has_any:
            return by_date

        resource_filters = []
        if resources.teacher_id is not None:
            resource_filters.append(ClassSession.teacher_id == resources.teacher_id)
        if resources.student_id is not None:
            resource_filters.append(ClassSession.student_id == resources.student_id)
        if resources.booth_id is not None:
            resource_filters.append(ClassSession.booth_id == resources.booth_id)

        sessions = db.query(ClassSession).filter(
            ClassSession.is_cancelled == False,  # noqa: E712
            ClassSession.date.in_(dates),
            or_(*resource_filters)
        ).all()

        for session in sessions:
            by_date.setdefault(session.date, []).append(ExistingBooking.from_session(session))
        return by_date

    @staticmethod
    def _advance_cursor(db: Session, series: ClassSeries, generated_through: date_type) -> None:
        """Move the cursor forward (never backwards) and end the series when it reaches end_date."""
        current = series.last_generated_through
        if current is None or generated_through > current:
            series.last_generated_through = generated_through
        cursor = series.last_generated_through
        if series.end_date is not None and cursor >= series.end_date:
            series.status = SeriesStatus.ENDED.value
            logger.info(f"Series {series.id} generated through its end date; marked ENDED")
        try:
            db.commit()
        except Exception:
            db.rollback()
            raise

    @staticmethod
    def _generate(
        db: Session,
        series: ClassSeries,
        days_of_week: List[int],
        window: GenerationWindow,
        overrides: Dict[date_type, SessionOverride]
    ) -> ExtendResult:
        """
        Run the generation pipeline over one window.

        Each session is committed on its own. A uniqueness violation on insert
        is recorded as a DB_CONSTRAINT skip; any other error rolls back the
        pending insert and propagates, leaving earlier sessions and the
        untouched cursor valid for a re-run.
        """
        candidates = OccurrenceDateService.generate_dates(days_of_week, window)
        result = ExtendResult(from_date=window.from_date, to_date=window.to_date, attempted=len(candidates))
        if not candidates:
            result.message = NO_MATCHING_DAYS_MESSAGE
            return result

        # Snapshot series values; a rollback below expires the ORM instance
        series_id = series.id
        resources = SeriesResources.from_series(series)
        policy = ClassSeriesService.load_conflict_policy(series)
        base_start = time_to_minutes(series.start_time)
        base_end = time_to_minutes(series.end_time)
        base_duration = series.duration_minutes
        template = {
            "series_id": series_id,
            "branch_id": series.branch_id,
            "teacher_id": resources.teacher_id,
            "student_id": resources.student_id,
            "booth_id": resources.booth_id,
            "subject_id": series.subject_id,
            "class_type_id": series.class_type_id,
            "notes": series.notes,
        }

        working, closed = ClassSeriesService._split_vacation_dates(db, series.branch_id, candidates)
        for d in closed:
            result.skipped_details.append(SkippedDate(date=format_date(d), reason=SkipReason.VACATION))
            logger.debug(f"Series {series_id}: {d} is a vacation day, skipped")

        bookings_by_date = ClassSeriesService.prefetch_bookings(db, resources, working)
        cache = AvailabilityLookupCache(db)
        classifier = ConflictClassifier(resources, policy, cache)

        for d in working:
            key = format_date(d)
            override = overrides.get(d)
            if override is not None and override.action == SessionAction.SKIP:
                result.skipped_details.append(SkippedDate(date=key, reason=SkipReason.USER_SKIP))
                logger.debug(f"Series {series_id}: {d} skipped by caller")
                continue

            day_bookings = bookings_by_date.setdefault(d, [])
            classification = classifier.classify(d, base_start, base_end, day_bookings)

            start_minute, end_minute, duration = base_start, base_end, base_duration
            if override is not None and override.action == SessionAction.USE_ALTERNATIVE:
                start_minute = override.alternative_start_minute
                end_minute = override.alternative_end_minute
                duration = end_minute - start_minute
                # Only booking overlaps are re-checked at the alternative time
                classification.hard_reasons = classifier.resource_overlap_reasons(
                    start_minute, end_minute, day_bookings
                )

            cancelled = classification.cancel_for_absence
            session = ClassSession(
                date=d,
                start_time=_minutes_to_time(start_minute),
                end_time=_minutes_to_time(end_minute),
                duration=duration,
                status=(SessionStatus.CONFLICTED if classification.is_conflicted else SessionStatus.CONFIRMED).value,
                is_cancelled=cancelled,
                cancellation_reason=CancellationReason.ADMIN_CANCELLED.value if cancelled else None,
                **template,
            )
            db.add(session)
            try:
                db.commit()
            except IntegrityError as e:
                db.rollback()
                logger.warning(f"Series {series_id}: session on {d} already exists, skipped: {e.orig}")
                result.skipped_details.append(SkippedDate(date=key, reason=SkipReason.DB_CONSTRAINT))
                continue
            except Exception:
                db.rollback()
                raise

            result.created_ids.append(session.id)
            if classification.hard_reasons:
                result.conflict_details.append(
                    ConflictDetail(date=key, reasons=list(classification.hard_reasons), cancelled=cancelled)
                )
            if classification.soft_reasons:
                result.soft_warnings.append(SoftWarning(date=key, reasons=list(classification.soft_reasons)))
            if cancelled:
                result.cancelled_dates.append(key)
            else:
                # Later candidates of this run must see this booking
                day_bookings.append(ExistingBooking(
                    date=d,
                    start_minute=start_minute,
                    end_minute=end_minute,
                    teacher_id=resources.teacher_id,
                    student_id=resources.student_id,
                    booth_id=resources.booth_id,
                ))

        # Cursor covers every attempted date, created or not
        ClassSeriesService._advance_cursor(db, series, candidates[-1])
        logger.debug(f"Series {series_id}: availability cache hits={cache.hits} misses={cache.misses}")
        return result

    @staticmethod
    def extend_series(
        db: Session,
        series_id: int,
        months: int = 1,
        session_overrides: Optional[Iterable[SessionOverride]] = None,
        today: Optional[date_type] = None,
        is_special_class_type: Optional[SpecialClassTypeCheck] = None
    ) -> ExtendResult:
        """
        Generate sessions for the next `months` calendar months of a series.

        Args:
            db: Database session
            series_id: Series to extend
            months: Horizon in calendar months (1-12)
            session_overrides: Per-date SKIP / FORCE_CREATE / USE_ALTERNATIVE overrides
            today: Business date; defaults to today in the school timezone
            is_special_class_type: Optional check rejecting special class types

        Returns:
            ExtendResult with created ids, skips, conflicts and soft warnings

        Raises:
            HTTPException: 404 if the series does not exist; 400 for configuration
                errors (inactive, special class type, bad weekdays, past end date,
                months out of range, malformed overrides)
        """
        if months < MIN_EXTEND_MONTHS or months > MAX_EXTEND_MONTHS:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"months must be between {MIN_EXTEND_MONTHS} and {MAX_EXTEND_MONTHS}"
            )
        overrides = ClassSeriesService.index_overrides(session_overrides)

        series = ClassSeriesService.get_series(db, series_id)
        ClassSeriesService._ensure_active(series)
        if ClassSeriesService._is_special(db, series, is_special_class_type):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Special class types cannot be generated from a series"
            )
        days_of_week = OccurrenceDateService.validate_days_of_week(series.days_of_week)

        today = today or school_today()
        window = OccurrenceDateService.month_window(
            series.start_date, series.end_date, series.last_generated_through, today, months
        )
        if OccurrenceDateService.is_exhausted(window.from_date, series.end_date):
            ClassSeriesService._mark_ended(db, series)
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=PAST_END_MESSAGE
            )

        result = ClassSeriesService._generate(db, series, days_of_week, window, overrides)
        logger.info(
            f"Extended series {series_id} over {window.from_date}..{window.to_date}: "
            f"created={result.created_count} skipped={result.skipped_count} "
            f"conflicts={result.conflict_count} warnings={len(result.soft_warnings)}"
        )
        return result

    @staticmethod
    def _preview_finding(
        key: str,
        reason: ConflictReason,
        policy: ConflictPolicy,
        teacher_slots: List[Dict[str, str]],
        student_slots: List[Dict[str, str]]
    ) -> PreviewFinding:
        return PreviewFinding(
            date=key,
            reason=reason,
            is_hard=policy.is_hard(reason),
            teacher_slots=teacher_slots,
            student_slots=student_slots,
        )

    @staticmethod
    def preview_extension(
        db: Session,
        series_id: int,
        months: int = 1,
        today: Optional[date_type] = None,
        is_special_class_type: Optional[SpecialClassTypeCheck] = None
    ) -> PreviewResult:
        """
        Dry run of extend_series.

        Uses the same window, vacation filter and classifier as the real
        extension, so both agree on every date. Nothing is written; a series
        past its end date yields an empty preview instead of being ended.
        """
        if months < MIN_EXTEND_MONTHS or months > MAX_PREVIEW_MONTHS:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"months must be between {MIN_EXTEND_MONTHS} and {MAX_PREVIEW_MONTHS}"
            )

        series = ClassSeriesService.get_series(db, series_id)
        ClassSeriesService._ensure_active(series)
        if ClassSeriesService._is_special(db, series, is_special_class_type):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Special class types cannot be generated from a series"
            )
        days_of_week = OccurrenceDateService.validate_days_of_week(series.days_of_week)

        today = today or school_today()
        window = OccurrenceDateService.month_window(
            series.start_date, series.end_date, series.last_generated_through, today, months
        )
        if OccurrenceDateService.is_exhausted(window.from_date, series.end_date):
            return PreviewResult(message=PAST_END_MESSAGE)

        candidates = OccurrenceDateService.generate_dates(days_of_week, window)
        if not candidates:
            return PreviewResult(message=NO_MATCHING_DAYS_MESSAGE)

        working, closed = ClassSeriesService._split_vacation_dates(db, series.branch_id, candidates)
        resources = SeriesResources.from_series(series)
        policy = ClassSeriesService.load_conflict_policy(series)
        start_minute = time_to_minutes(series.start_time)
        end_minute = time_to_minutes(series.end_time)

        bookings_by_date = ClassSeriesService.prefetch_bookings(db, resources, working)
        cache = AvailabilityLookupCache(db)
        classifier = ConflictClassifier(resources, policy, cache)

        result = PreviewResult(
            vacation_dates=[format_date(d) for d in closed],
            total_sessions=len(working),
        )
        for d in working:
            classification = classifier.classify(d, start_minute, end_minute, bookings_by_date.get(d, []))
            reasons = classification.hard_reasons + classification.soft_reasons
            if not reasons and not classification.cancel_for_absence:
                continue

            key = format_date(d)
            teacher_slots = (
                AvailabilityService.format_slots(cache.get_slots(resources.teacher_id, d))
                if resources.teacher_id is not None else []
            )
            student_slots = (
                AvailabilityService.format_slots(cache.get_slots(resources.student_id, d))
                if resources.student_id is not None else []
            )
            result.dates.append(PreviewDate(
                date=key,
                findings=[
                    ClassSeriesService._preview_finding(key, reason, policy, teacher_slots, student_slots)
                    for reason in reasons
                ],
                would_cancel=classification.cancel_for_absence,
            ))

        if result.sessions_with_conflicts:
            result.message = f"Found conflicts on {result.sessions_with_conflicts} of {result.total_sessions} dates"
        else:
            result.message = "No conflicts found"
        return result

    @staticmethod
    def advance_series(
        db: Session,
        series_id: int,
        lead_days: int,
        today: Optional[date_type] = None,
        is_special_class_type: Optional[SpecialClassTypeCheck] = None
    ) -> AdvanceResult:
        """
        Generate a series' sessions up to today + lead_days.

        Special class types are a no-op. A series already past its end date is
        marked ENDED and reports zero attempts.
        """
        lead_days = max(MIN_ADVANCE_LEAD_DAYS, lead_days)
        series = ClassSeriesService.get_series(db, series_id)
        ClassSeriesService._ensure_active(series)

        if ClassSeriesService._is_special(db, series, is_special_class_type):
            return AdvanceResult(
                series_id=series_id,
                from_date=format_date(series.start_date),
                to_date=format_date(series.last_generated_through or series.start_date),
            )

        days_of_week = OccurrenceDateService.validate_days_of_week(series.days_of_week)
        today = today or school_today()
        window = OccurrenceDateService.lead_days_window(
            series.start_date, series.end_date, series.last_generated_through, today, lead_days
        )
        if OccurrenceDateService.is_exhausted(window.from_date, series.end_date):
            ClassSeriesService._mark_ended(db, series)
            return AdvanceResult(
                series_id=series_id,
                from_date=format_date(window.from_date),
                to_date=format_date(window.to_date),
            )

        generated = ClassSeriesService._generate(db, series, days_of_week, window, {})
        conflicted = generated.conflict_count
        return AdvanceResult(
            series_id=series_id,
            from_date=format_date(window.from_date),
            to_date=format_date(window.to_date),
            attempted=generated.attempted,
            created_confirmed=generated.created_count - conflicted,
            created_conflicted=conflicted,
            skipped=generated.skipped_count,
        )

    @staticmethod
    def advance_active_series(
        db: Session,
        lead_days: int,
        today: Optional[date_type] = None,
        branch_id: Optional[int] = None,
        limit: Optional[int] = None,
        is_special_class_type: Optional[SpecialClassTypeCheck] = None
    ) -> AdvanceSweepResult:
        """
        Advance every ACTIVE series, least recently updated first.

        Series whose cursor already reaches the target date are counted as up
        to date. Configuration errors on one series are logged and counted;
        they never stop the sweep.
        """
        lead_days = max(MIN_ADVANCE_LEAD_DAYS, lead_days)
        today = today or school_today()

        query = db.query(ClassSeries).filter(ClassSeries.status == SeriesStatus.ACTIVE.value)
        if branch_id is not None:
            query = query.filter(ClassSeries.branch_id == branch_id)
        query = query.order_by(ClassSeries.updated_at.asc(), ClassSeries.id.asc())
        if limit is not None:
            query = query.limit(limit)

        # Plain tuples; per-session commits and rollbacks expire ORM instances
        targets = [
            (s.id, s.start_date, s.end_date, s.last_generated_through)
            for s in query.all()
        ]

        sweep = AdvanceSweepResult(lead_days=lead_days)
        for series_id, start_date, end_date, cursor in targets:
            sweep.processed += 1
            window = OccurrenceDateService.lead_days_window(start_date, end_date, cursor, today, lead_days)
            if cursor is not None and cursor >= window.to_date:
                sweep.up_to_date += 1
                continue

            try:
                advanced = ClassSeriesService.advance_series(
                    db, series_id, lead_days, today=today, is_special_class_type=is_special_class_type
                )
            except HTTPException as e:
                sweep.failed += 1
                logger.warning(f"Series {series_id} not advanced: {e.detail}")
                continue

            sweep.created_confirmed += advanced.created_confirmed
            sweep.created_conflicted += advanced.created_conflicted
            sweep.skipped += advanced.skipped
            sweep.details.append(advanced)

        logger.info(
            f"Advance sweep (lead_days={lead_days}): processed={sweep.processed} "
            f"up_to_date={sweep.up_to_date} failed={sweep.failed} "
            f"confirmed={sweep.created_confirmed} conflicted={sweep.created_conflicted} "
            f"skipped={sweep.skipped}"
        )
        return sweep
