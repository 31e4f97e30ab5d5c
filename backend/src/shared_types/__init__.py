"""
Shared type definitions for the class series backend.

This module contains dataclasses and enums that are used across multiple services.
"""

from shared_types.availability import AbsenceWindows, AvailabilityStatus, AvailabilityType, Slot
from shared_types.scheduling import (
    AdvanceResult, AdvanceSweepResult, CancellationReason, Classification, ConflictDetail, ConflictReason,
    ExtendResult, PreviewDate, PreviewFinding, PreviewResult, RESOURCE_CONFLICT_REASONS,
    SeriesStatus, SessionAction, SessionOverride, SessionStatus, SkipReason, SkippedDate,
    SoftWarning,
)

__all__ = [
    "AbsenceWindows",
    "AvailabilityStatus",
    "AvailabilityType",
    "Slot",
    "AdvanceResult",
    "AdvanceSweepResult",
    "CancellationReason",
    "Classification",
    "ConflictDetail",
    "ConflictReason",
    "ExtendResult",
    "PreviewDate",
    "PreviewFinding",
    "PreviewResult",
    "RESOURCE_CONFLICT_REASONS",
    "SeriesStatus",
    "SessionAction",
    "SessionOverride",
    "SessionStatus",
    "SkipReason",
    "SkippedDate",
    "SoftWarning",
]
