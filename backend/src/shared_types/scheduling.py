"""
Shared types for class series generation.

Enumerations for series/session state, conflict reasons and per-date
outcomes, plus the result containers returned by ClassSeriesService.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Dict, List, Optional


class SeriesStatus(str, Enum):
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"
    ENDED = "ENDED"


class SessionStatus(str, Enum):
    CONFIRMED = "CONFIRMED"
    CONFLICTED = "CONFLICTED"


class CancellationReason(str, Enum):
    ADMIN_CANCELLED = "ADMIN_CANCELLED"


class ConflictReason(str, Enum):
    """Every reason the classifier can attach to a candidate occurrence."""
    BOOTH_CONFLICT = "BOOTH_CONFLICT"
    TEACHER_CONFLICT = "TEACHER_CONFLICT"
    STUDENT_CONFLICT = "STUDENT_CONFLICT"
    TEACHER_UNAVAILABLE = "TEACHER_UNAVAILABLE"
    TEACHER_WRONG_TIME = "TEACHER_WRONG_TIME"
    STUDENT_UNAVAILABLE = "STUDENT_UNAVAILABLE"
    STUDENT_WRONG_TIME = "STUDENT_WRONG_TIME"
    NO_SHARED_AVAILABILITY = "NO_SHARED_AVAILABILITY"


# Booking overlaps are always hard conflicts, whatever the policy says
RESOURCE_CONFLICT_REASONS = frozenset({
    ConflictReason.BOOTH_CONFLICT,
    ConflictReason.TEACHER_CONFLICT,
    ConflictReason.STUDENT_CONFLICT,
})


class SkipReason(str, Enum):
    VACATION = "VACATION"
    USER_SKIP = "USER_SKIP"
    DB_CONSTRAINT = "DB_CONSTRAINT"


class SessionAction(str, Enum):
    """Caller override for one candidate date."""
    SKIP = "SKIP"
    # Accepted for compatibility; behaves exactly like no override.
    FORCE_CREATE = "FORCE_CREATE"
    USE_ALTERNATIVE = "USE_ALTERNATIVE"


@dataclass
class SessionOverride:
    """Per-date override supplied by the caller of an extension."""
    date: date
    action: SessionAction
    alternative_start_minute: Optional[int] = None
    alternative_end_minute: Optional[int] = None


@dataclass
class Classification:
    """Outcome of classifying one candidate occurrence."""
    hard_reasons: List[ConflictReason] = field(default_factory=list)
    soft_reasons: List[ConflictReason] = field(default_factory=list)
    cancel_for_absence: bool = False

    @property
    def is_conflicted(self) -> bool:
        return bool(self.hard_reasons)


@dataclass
class SkippedDate:
    date: str
    reason: SkipReason


@dataclass
class ConflictDetail:
    date: str
    reasons: List[ConflictReason]
    cancelled: bool = False


@dataclass
class SoftWarning:
    date: str
    reasons: List[ConflictReason]


@dataclass
class ExtendResult:
    """Report of one extension run."""
    created_ids: List[int] = field(default_factory=list)
    skipped_details: List[SkippedDate] = field(default_factory=list)
    conflict_details: List[ConflictDetail] = field(default_factory=list)
    soft_warnings: List[SoftWarning] = field(default_factory=list)
    cancelled_dates: List[str] = field(default_factory=list)
    from_date: Optional[date] = None
    to_date: Optional[date] = None
    attempted: int = 0
    message: str = ""

    @property
    def created_count(self) -> int:
        return len(self.created_ids)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped_details)

    @property
    def conflict_count(self) -> int:
        return len(self.conflict_details)


@dataclass
class PreviewFinding:
    date: str
    reason: ConflictReason
    is_hard: bool
    teacher_slots: List[Dict[str, str]] = field(default_factory=list)
    student_slots: List[Dict[str, str]] = field(default_factory=list)


@dataclass
class PreviewDate:
    date: str
    findings: List[PreviewFinding] = field(default_factory=list)
    would_cancel: bool = False


@dataclass
class PreviewResult:
    dates: List[PreviewDate] = field(default_factory=list)
    vacation_dates: List[str] = field(default_factory=list)
    total_sessions: int = 0
    message: str = ""

    @property
    def sessions_with_conflicts(self) -> int:
        return sum(1 for d in self.dates if d.findings or d.would_cancel)

    @property
    def valid_sessions(self) -> int:
        return self.total_sessions - self.sessions_with_conflicts

    @property
    def requires_confirmation(self) -> bool:
        return self.sessions_with_conflicts > 0


@dataclass
class AdvanceResult:
    series_id: int
    from_date: Optional[str]
    to_date: Optional[str]
    attempted: int = 0
    created_confirmed: int = 0
    created_conflicted: int = 0
    skipped: int = 0


@dataclass
class AdvanceSweepResult:
    """Aggregated report of one advance sweep over active series."""
    lead_days: int
    processed: int = 0
    up_to_date: int = 0
    failed: int = 0
    created_confirmed: int = 0
    created_conflicted: int = 0
    skipped: int = 0
    details: List[AdvanceResult] = field(default_factory=list)
