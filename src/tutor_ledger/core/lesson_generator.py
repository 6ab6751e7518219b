'''
This file is responsible to expand subjects' weekly schedules into dated lessons
'''
from datetime import date, datetime, time, timedelta
from typing import Iterable, Optional

from ..models.schedule import Subject, TimeRange, schedule_index
from ..models.lessons import Lesson, EventType
from ..models.finance import SkippedSubject
from ..common.logger import log

# (calendar day, subject name, start time)
LessonKey = tuple[date, str, str]


def lesson_key(lesson: Lesson) -> LessonKey:
    return (lesson.date_time.date(), lesson.subject_name, lesson.start_time)


def lesson_datetime(day: date, clock: str) -> datetime:
    hours, minutes = clock.split(":")
    return datetime.combine(day, time(int(hours), int(minutes)))


class LessonGenerator:
    """
    Generates the definitive list of lesson occurrences for a set of subjects.
    Existing records matching (day, subject, start time) keep their identity
    and are returned as refreshed copies, so regeneration never duplicates them.
    """
    def __init__(self):
        self.skipped_subjects: list[SkippedSubject] = []

    def generate(
        self,
        subjects: Iterable[Subject],
        existing: Iterable[Lesson],
        now: datetime
    ) -> list[Lesson]:
        """
        The main function. Returns one lesson per scheduled occurrence of every
        schedulable subject, in subject order, then day order, then the order of
        the day's time ranges.
        """
        self.skipped_subjects = []
        existing_index = self._index_existing(existing)
        generated: list[Lesson] = []

        for subject in subjects:
            reason = self._skip_reason(subject)
            if reason:
                self._skip(subject, reason)
                continue

            for day in self._iterate_days(subject.start_day, subject.end_day):
                schedule_day = subject.weekly_schedule.get(schedule_index(day))
                if schedule_day is None or not schedule_day.is_active:
                    continue

                for time_range in schedule_day.time_ranges:
                    if not time_range.is_complete:
                        continue
                    generated.append(
                        self._build_occurrence(subject, day, time_range, now, existing_index)
                    )

        log.info(
            f"Generated {len(generated)} lesson occurrences "
            f"({len(self.skipped_subjects)} subjects skipped)."
        )
        return generated

    def _index_existing(self, existing: Iterable[Lesson]) -> dict[LessonKey, Lesson]:
        """
        Generated records claim their slot before manual ones, so a manual
        lesson sharing a slot with a generated record is never re-priced.
        Within each group the first match wins.
        """
        lessons = list(existing)
        index: dict[LessonKey, Lesson] = {}
        for lesson in lessons:
            if lesson.is_auto_generated:
                index.setdefault(lesson_key(lesson), lesson)
        for lesson in lessons:
            if not lesson.is_auto_generated:
                index.setdefault(lesson_key(lesson), lesson)
        return index

    def _skip_reason(self, subject: Subject) -> Optional[str]:
        if not subject.name or not subject.name.strip():
            return "subject has no name"
        if subject.start_day is None or subject.end_day is None:
            return f"unparseable or missing dates ({subject.start_date!r}, {subject.end_date!r})"
        if not subject.has_active_schedule():
            return "no enabled weekday with time ranges"
        return None

    def _skip(self, subject: Subject, reason: str):
        log.warning(f"Skipping subject '{subject.name}' ({subject.id}): {reason}")
        self.skipped_subjects.append(SkippedSubject(subject_name=subject.name, reason=reason))

    @staticmethod
    def _iterate_days(start: date, end: date):
        """Closed interval: both endpoints are included."""
        day = start
        while day <= end:
            yield day
            day += timedelta(days=1)

    def _build_occurrence(
        self,
        subject: Subject,
        day: date,
        time_range: TimeRange,
        now: datetime,
        existing_index: dict[LessonKey, Lesson]
    ) -> Lesson:
        occurs_at = lesson_datetime(day, time_range.start_time)
        has_passed = occurs_at < now

        match = existing_index.get((day, subject.name, time_range.start_time))
        if match is not None:
            if (
                match.payment_amount != subject.price
                or match.event_name != subject.name
                or match.has_passed != has_passed
            ):
                return match.model_copy(update={
                    "payment_amount": subject.price,
                    "event_name": subject.name,
                    "has_passed": has_passed,
                })
            return match

        return Lesson(
            date_time=occurs_at,
            start_time=time_range.start_time,
            end_time=time_range.end_time,
            subject_name=subject.name,
            event_name=subject.name,
            payment_amount=subject.price,
            event_type=EventType.UNPAID,
            has_passed=has_passed,
            is_cancelled=False,
            is_auto_generated=True,
        )
