'''
Read-only presentation adapters over the reconciled ledger:
the combined history list and calendar day/week rollups.
'''
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Optional

from ..models.lessons import Lesson, Prepayment, EventType
from ..models.calendar import HistoryEntry, CalendarDay, WeekTotals, CalendarRead
from ..models.schedule import clock_to_minutes
from ..common.config import settings
from .time_slots import busy_slots_for_day

PREPAYMENT_COLOR = "#E5E7EB"


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value >= 0x80000000 else value


def color_for_subject(name: Optional[str]) -> str:
    """
    Deterministic pastel color for a subject name, so the same subject keeps
    its color across the history list and the calendar.
    """
    if not name:
        return PREPAYMENT_COLOR

    hash_value = 0
    for char in name:
        hash_value = _to_int32(ord(char) + _to_int32(hash_value << 5) - hash_value)

    hue = abs(hash_value) % 360
    return f"hsl({hue}, 70%, 85%)"


def build_combined_history(lessons: Iterable[Lesson], prepayments: Iterable[Prepayment]) -> list[HistoryEntry]:
    """
    Merges lessons and prepayments, newest first.
    """
    entries = [
        HistoryEntry(
            entry_type="lesson",
            id=lesson.id,
            date_time=lesson.date_time,
            color=color_for_subject(lesson.subject_name),
            amount=Decimal(0) if lesson.event_type == EventType.PAID else lesson.payment_amount,
            subject_name=lesson.subject_name,
            start_time=lesson.start_time,
            end_time=lesson.end_time,
            event_type=lesson.event_type,
            is_cancelled=lesson.is_cancelled,
            has_passed=lesson.has_passed,
            remaining_prepayment=lesson.remaining_prepayment,
        )
        for lesson in lessons
    ]
    entries.extend(
        HistoryEntry(
            entry_type="prepayment",
            id=prepayment.id,
            date_time=prepayment.date_time,
            color=PREPAYMENT_COLOR,
            amount=prepayment.amount,
            description=prepayment.description,
        )
        for prepayment in prepayments
    )
    return sorted(entries, key=lambda entry: entry.date_time, reverse=True)


def week_start_for(day: date, first_day_of_week: int) -> date:
    return day - timedelta(days=(day.weekday() - first_day_of_week) % 7)


def _build_day(day: date, lessons: list[Lesson]) -> CalendarDay:
    day_lessons = sorted(
        (lesson for lesson in lessons if lesson.date_time.date() == day),
        key=lambda lesson: clock_to_minutes(lesson.start_time)
    )
    rollup = CalendarDay(
        day=day,
        lessons=day_lessons,
        busy_slots=[str(slot) for slot in busy_slots_for_day(day_lessons, day)],
    )
    for lesson in day_lessons:
        if lesson.is_cancelled:
            rollup.cancelled_count += 1
            continue
        rollup.lesson_count += 1
        rollup.total_amount += lesson.payment_amount
        if lesson.event_type == EventType.PAID:
            rollup.paid_count += 1
            rollup.paid_amount += lesson.payment_amount
        else:
            rollup.unpaid_count += 1
    return rollup


def build_calendar(
    lessons: Iterable[Lesson],
    start: date,
    end: date,
    first_day_of_week: Optional[int] = None
) -> CalendarRead:
    """
    Builds one rollup per day of [start, end] and the totals of every week
    touching that range. Weeks start on `first_day_of_week` (python weekday).
    """
    if end < start:
        raise ValueError(f"Calendar end {end} is before start {start}")
    if first_day_of_week is None:
        first_day_of_week = settings.FIRST_DAY_OF_WEEK

    all_lessons = list(lessons)
    days: list[CalendarDay] = []
    weeks: dict[date, WeekTotals] = {}

    day = start
    while day <= end:
        rollup = _build_day(day, all_lessons)
        days.append(rollup)

        week_start = week_start_for(day, first_day_of_week)
        totals = weeks.setdefault(
            week_start,
            WeekTotals(week_start=week_start, week_end=week_start + timedelta(days=6))
        )
        totals.lesson_count += rollup.lesson_count
        totals.paid_count += rollup.paid_count
        totals.unpaid_count += rollup.unpaid_count
        totals.total_amount += rollup.total_amount
        totals.paid_amount += rollup.paid_amount

        day += timedelta(days=1)

    return CalendarRead(start=start, end=end, days=days, weeks=list(weeks.values()))
