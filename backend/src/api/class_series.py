# pyright: reportMissingTypeStubs=false
"""
Class series API endpoints.

Thin HTTP layer over ClassSeriesService: extending a series by N months,
previewing that extension, and running the rolling advance sweep on demand.
"""

import logging
from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field, field_validator, model_validator
from sqlalchemy.orm import Session

from core.config import SERIES_ADVANCE_LEAD_DAYS
from core.constants import (
    MAX_EXTEND_MONTHS, MAX_PREVIEW_MONTHS, MIN_ADVANCE_LEAD_DAYS, MIN_EXTEND_MONTHS
)
from core.database import get_db
from services.class_series_service import ClassSeriesService
from shared_types.scheduling import (
    AdvanceResult, AdvanceSweepResult, ConflictReason, ExtendResult, PreviewResult,
    SessionAction, SessionOverride, SkipReason
)
from utils.datetime_utils import format_date, parse_date_string, parse_time_string, time_to_minutes

logger = logging.getLogger(__name__)

router = APIRouter()


class SessionActionRequest(BaseModel):
    """Per-date override of an extension."""
    date: str
    action: SessionAction
    alternative_start_time: Optional[str] = None
    alternative_end_time: Optional[str] = None

    @field_validator('date')
    @classmethod
    def validate_date(cls, v: str) -> str:
        return format_date(parse_date_string(v))

    @field_validator('alternative_start_time', 'alternative_end_time')
    @classmethod
    def validate_time(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return parse_time_string(v).strftime('%H:%M')

    @model_validator(mode='after')
    def validate_alternative(self) -> 'SessionActionRequest':
        if self.action == SessionAction.USE_ALTERNATIVE:
            if not self.alternative_start_time or not self.alternative_end_time:
                raise ValueError("USE_ALTERNATIVE requires alternative_start_time and alternative_end_time")
            if self.alternative_start_time >= self.alternative_end_time:
                raise ValueError("alternative_end_time must be after alternative_start_time")
        return self

    def to_override(self) -> SessionOverride:
        start = end = None
        if self.alternative_start_time and self.alternative_end_time:
            start = time_to_minutes(parse_time_string(self.alternative_start_time))
            end = time_to_minutes(parse_time_string(self.alternative_end_time))
        return SessionOverride(
            date=parse_date_string(self.date),
            action=self.action,
            alternative_start_minute=start,
            alternative_end_minute=end,
        )


class ExtendSeriesRequest(BaseModel):
    """Request model for extending a series."""
    months: int = Field(default=1, ge=MIN_EXTEND_MONTHS, le=MAX_EXTEND_MONTHS)
    session_actions: List[SessionActionRequest] = Field(default_factory=list)


class SkippedDateResponse(BaseModel):
    date: str
    reason: SkipReason


class ConflictDetailResponse(BaseModel):
    date: str
    reasons: List[ConflictReason]
    cancelled: bool


class SoftWarningResponse(BaseModel):
    date: str
    reasons: List[ConflictReason]


class ExtendSeriesResponse(BaseModel):
    """Response model for a series extension."""
    created_count: int
    skipped_count: int
    conflict_count: int
    created_ids: List[int]
    skipped_details: List[SkippedDateResponse]
    conflict_details: List[ConflictDetailResponse]
    soft_warnings: List[SoftWarningResponse]
    cancelled_dates: List[str]
    from_date: Optional[str] = None
    to_date: Optional[str] = None
    message: Optional[str] = None

    @classmethod
    def from_result(cls, result: ExtendResult) -> 'ExtendSeriesResponse':
        return cls(
            created_count=result.created_count,
            skipped_count=result.skipped_count,
            conflict_count=result.conflict_count,
            created_ids=result.created_ids,
            skipped_details=[SkippedDateResponse(date=s.date, reason=s.reason) for s in result.skipped_details],
            conflict_details=[
                ConflictDetailResponse(date=c.date, reasons=c.reasons, cancelled=c.cancelled)
                for c in result.conflict_details
            ],
            soft_warnings=[SoftWarningResponse(date=w.date, reasons=w.reasons) for w in result.soft_warnings],
            cancelled_dates=result.cancelled_dates,
            from_date=format_date(result.from_date) if result.from_date else None,
            to_date=format_date(result.to_date) if result.to_date else None,
            message=result.message or None,
        )


class PreviewFindingResponse(BaseModel):
    reason: ConflictReason
    is_hard: bool
    teacher_slots: List[Dict[str, str]]
    student_slots: List[Dict[str, str]]


class PreviewDateResponse(BaseModel):
    date: str
    would_cancel: bool
    findings: List[PreviewFindingResponse]


class PreviewSummaryResponse(BaseModel):
    total_sessions: int
    sessions_with_conflicts: int
    valid_sessions: int


class ExtendPreviewResponse(BaseModel):
    """Response model for an extension preview."""
    dates: List[PreviewDateResponse]
    vacation_dates: List[str]
    summary: PreviewSummaryResponse
    requires_confirmation: bool
    message: str

    @classmethod
    def from_result(cls, result: PreviewResult) -> 'ExtendPreviewResponse':
        return cls(
            dates=[
                PreviewDateResponse(
                    date=d.date,
                    would_cancel=d.would_cancel,
                    findings=[
                        PreviewFindingResponse(
                            reason=f.reason,
                            is_hard=f.is_hard,
                            teacher_slots=f.teacher_slots,
                            student_slots=f.student_slots,
                        )
                        for f in d.findings
                    ],
                )
                for d in result.dates
            ],
            vacation_dates=result.vacation_dates,
            summary=PreviewSummaryResponse(
                total_sessions=result.total_sessions,
                sessions_with_conflicts=result.sessions_with_conflicts,
                valid_sessions=result.valid_sessions,
            ),
            requires_confirmation=result.requires_confirmation,
            message=result.message,
        )


class AdvanceDetailResponse(BaseModel):
    series_id: int
    from_date: Optional[str]
    to_date: Optional[str]
    attempted: int
    created_confirmed: int
    created_conflicted: int
    skipped: int

    @classmethod
    def from_result(cls, result: AdvanceResult) -> 'AdvanceDetailResponse':
        return cls(
            series_id=result.series_id,
            from_date=result.from_date,
            to_date=result.to_date,
            attempted=result.attempted,
            created_confirmed=result.created_confirmed,
            created_conflicted=result.created_conflicted,
            skipped=result.skipped,
        )


class AdvanceSweepResponse(BaseModel):
    """Response model for an advance sweep."""
    lead_days: int
    processed: int
    up_to_date: int
    failed: int
    created_confirmed: int
    created_conflicted: int
    skipped: int
    count: int
    details: List[AdvanceDetailResponse]

    @classmethod
    def from_result(cls, result: AdvanceSweepResult) -> 'AdvanceSweepResponse':
        return cls(
            lead_days=result.lead_days,
            processed=result.processed,
            up_to_date=result.up_to_date,
            failed=result.failed,
            created_confirmed=result.created_confirmed,
            created_conflicted=result.created_conflicted,
            skipped=result.skipped,
            count=len(result.details),
            details=[AdvanceDetailResponse.from_result(d) for d in result.details],
        )


@router.post("/advance", summary="Advance all active series")
async def advance_series(
    lead_days: int = Query(default=SERIES_ADVANCE_LEAD_DAYS, ge=MIN_ADVANCE_LEAD_DAYS),
    branch_id: Optional[int] = Query(default=None),
    limit: Optional[int] = Query(default=None, ge=1),
    db: Session = Depends(get_db)
) -> AdvanceSweepResponse:
    """
    Generate sessions for every ACTIVE series up to today + lead_days.

    Same sweep the daily scheduler runs.
    """
    try:
        sweep = ClassSeriesService.advance_active_series(
            db, lead_days, branch_id=branch_id, limit=limit
        )
        return AdvanceSweepResponse.from_result(sweep)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Failed to advance class series: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to advance class series"
        )


@router.post("/{series_id}/extend", summary="Extend a class series")
async def extend_series(
    series_id: int,
    request: ExtendSeriesRequest,
    db: Session = Depends(get_db)
) -> ExtendSeriesResponse:
    """
    Generate the next `months` of sessions for a series.

    Sessions with hard conflicts are still created, as CONFLICTED. Dates
    overlapping an approved absence are created already cancelled.
    """
    try:
        result = ClassSeriesService.extend_series(
            db,
            series_id,
            months=request.months,
            session_overrides=[action.to_override() for action in request.session_actions],
        )
        return ExtendSeriesResponse.from_result(result)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Failed to extend series {series_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to extend series"
        )


@router.get("/{series_id}/extend/preview", summary="Preview a class series extension")
async def preview_series_extension(
    series_id: int,
    months: int = Query(default=1, ge=MIN_EXTEND_MONTHS, le=MAX_PREVIEW_MONTHS),
    db: Session = Depends(get_db)
) -> ExtendPreviewResponse:
    """Report the conflicts an extension would produce, without creating anything."""
    try:
        result = ClassSeriesService.preview_extension(db, series_id, months=months)
        return ExtendPreviewResponse.from_result(result)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Failed to preview extension of series {series_id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to preview series extension"
        )
