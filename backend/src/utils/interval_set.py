"""
Minute-of-day interval algebra.

Pure functions over Slot sequences. Every function accepts unsorted,
possibly overlapping input and returns a new sorted list; inputs are never mutated.
"""

from typing import Iterable, List

from shared_types.availability import Slot


def merge_slots(slots: Iterable[Slot]) -> List[Slot]:
    """
    Coalesce overlapping or touching slots.

    Returns:
        Sorted, non-overlapping slots; empty input gives an empty list
    """
    ordered = sorted(slots, key=lambda s: (s.start_minute, s.end_minute))
    if not ordered:
        return []

    merged: List[Slot] = [ordered[0]]
    for current in ordered[1:]:
        last = merged[-1]
        if current.start_minute <= last.end_minute:
            merged[-1] = Slot(last.start_minute, max(last.end_minute, current.end_minute))
        else:
            merged.append(current)
    return merged


def subtract_slots(base: Iterable[Slot], remove: Iterable[Slot]) -> List[Slot]:
    """
    Remove every `remove` slot from `base`.

    An overlapped base slot is dropped, truncated on one side, or split in two
    when the removed slot lies strictly inside it.
    """
    remaining = merge_slots(base)
    removals = merge_slots(remove)
    if not remaining or not removals:
        return remaining

    for sub in removals:
        pieces: List[Slot] = []
        for b in remaining:
            if sub.end_minute <= b.start_minute or sub.start_minute >= b.end_minute:
                pieces.append(b)
                continue
            if sub.start_minute > b.start_minute:
                pieces.append(Slot(b.start_minute, sub.start_minute))
            if sub.end_minute < b.end_minute:
                pieces.append(Slot(sub.end_minute, b.end_minute))
        remaining = merge_slots(pieces)
        if not remaining:
            break
    return remaining


def covers(slots: Iterable[Slot], start_minute: int, end_minute: int) -> bool:
    """
    Check whether a single slot fully contains [start_minute, end_minute).

    The window is not stitched together from adjacent slots; callers pass
    merged slots when touching slots should count as one.
    """
    return any(s.start_minute <= start_minute and end_minute <= s.end_minute for s in slots)


def overlaps(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    """Half-open intersection test for [a_start, a_end) and [b_start, b_end)."""
    return a_start < b_end and b_start < a_end


def pair_covers(first: Iterable[Slot], second: Iterable[Slot], start_minute: int, end_minute: int) -> bool:
    """Check whether the intersection of some slot pair contains the whole window."""
    second_list = list(second)
    for a in first:
        for b in second_list:
            if (max(a.start_minute, b.start_minute) <= start_minute
                    and min(a.end_minute, b.end_minute) >= end_minute):
                return True
    return False
