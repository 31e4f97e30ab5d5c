"""
Shared types for availability-related functionality.

Slots are minute-of-day intervals produced from availability records and
consumed by the interval algebra in utils.interval_set.
"""

from dataclasses import dataclass
from enum import Enum


class AvailabilityType(str, Enum):
    """Kind of a user availability record."""
    REGULAR = "REGULAR"  # Weekly pattern, keyed by weekday
    EXCEPTION = "EXCEPTION"  # Specific date, replaces REGULAR for that date
    ABSENCE = "ABSENCE"  # Specific date, always subtracted


class AvailabilityStatus(str, Enum):
    """Approval state of a user availability record."""
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


@dataclass(frozen=True)
class Slot:
    """
    A contiguous block of free time within one day.

    start_minute and end_minute are minutes since midnight, half-open [start, end).
    """
    start_minute: int
    end_minute: int

    def __post_init__(self) -> None:
        if self.start_minute > self.end_minute:
            raise ValueError(f"Slot start {self.start_minute} is after end {self.end_minute}")

    def to_dict(self) -> dict[str, int]:
        """Convert to dictionary format."""
        return {"start_minute": self.start_minute, "end_minute": self.end_minute}


@dataclass(frozen=True)
class AbsenceWindows:
    """Approved absences of one user on one date."""
    full_day: bool
    slots: tuple[Slot, ...] = ()
