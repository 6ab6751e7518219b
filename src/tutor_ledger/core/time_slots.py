'''
Overlap detection between clock-time ranges of a single day.
'''
from datetime import date
from typing import Iterable

from ..models.schedule import TimeRange
from ..models.lessons import Lesson
from ..common.exceptions import TimeSlotConflictError


def slots_overlap(first: TimeRange, second: TimeRange) -> bool:
    """
    Half-open comparison at minute resolution.
    Ranges that only touch (09:00-10:00 and 10:00-11:00) do not overlap.
    """
    return first.start_minutes < second.end_minutes and first.end_minutes > second.start_minutes


def has_conflict(candidate: TimeRange, busy: Iterable[TimeRange]) -> bool:
    return any(slots_overlap(candidate, slot) for slot in busy)


def find_conflicts(candidate: TimeRange, busy: Iterable[TimeRange]) -> list[TimeRange]:
    return [slot for slot in busy if slots_overlap(candidate, slot)]


def busy_slots_for_day(lessons: Iterable[Lesson], day: date, exclude_id=None) -> list[TimeRange]:
    """
    Returns the occupied slots of a day, sorted by start time.
    Cancelled lessons free their slot.
    """
    slots = [
        TimeRange(start_time=lesson.start_time, end_time=lesson.end_time)
        for lesson in lessons
        if lesson.date_time.date() == day
        and not lesson.is_cancelled
        and lesson.id != exclude_id
    ]
    return sorted(slots, key=lambda slot: slot.start_minutes)


def ensure_slot_free(candidate: TimeRange, busy: Iterable[TimeRange]):
    """Raises TimeSlotConflictError listing every busy slot the candidate overlaps."""
    conflicts = find_conflicts(candidate, busy)
    if conflicts:
        raise TimeSlotConflictError(
            candidate.start_time,
            candidate.end_time,
            [str(slot) for slot in conflicts]
        )
