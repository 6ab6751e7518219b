'''
testing the schedule expansion into dated lessons
'''
import pytest
from datetime import datetime, date, timedelta
from decimal import Decimal

from tutor_ledger.core.lesson_generator import LessonGenerator, lesson_key
from tutor_ledger.models.schedule import Subject, ScheduleDay, TimeRange, schedule_index
from tutor_ledger.models.lessons import EventType
from tests.factories import SubjectFactory, LessonFactory, weekly
from tests.constants import (
    SUNDAY, MONDAY, WEDNESDAY, SATURDAY,
    TEST_FIRST_MONDAY, TEST_SECOND_MONDAY, TEST_NOW, TEST_SUBJECT_PRICE
)


class TestWeekdayConvention:
    """Schedule keys are Sunday-first: 0=Sunday, 1=Monday ... 6=Saturday."""

    def test_schedule_index_of_known_days(self):
        assert schedule_index(date(2024, 1, 7)) == SUNDAY
        assert schedule_index(date(2024, 1, 1)) == MONDAY
        assert schedule_index(date(2024, 1, 3)) == WEDNESDAY
        assert schedule_index(date(2024, 1, 6)) == SATURDAY

    @pytest.mark.parametrize("day_index", range(7))
    def test_each_schedule_slot_maps_to_one_weekday(self, lesson_generator: LessonGenerator, day_index: int):
        # 2024-01-07 is a Sunday, so index N falls on 2024-01-07 + N days
        subject = SubjectFactory(
            start_date="2024-01-07",
            end_date="2024-01-13",
            weekly_schedule=weekly({day_index: [("10:00", "11:00")]})
        )
        lessons = lesson_generator.generate([subject], [], TEST_NOW)

        assert len(lessons) == 1
        assert lessons[0].date_time.date() == date(2024, 1, 7) + timedelta(days=day_index)

    def test_monday_slot_generates_on_mondays(self, lesson_generator: LessonGenerator, math_subject: Subject):
        lessons = lesson_generator.generate([math_subject], [], TEST_NOW)
        assert all(lesson.date_time.weekday() == 0 for lesson in lessons)  # python Monday


class TestLessonGeneration:

    def test_math_example_generates_two_mondays(self, lesson_generator: LessonGenerator, math_subject: Subject):
        lessons = lesson_generator.generate([math_subject], [], TEST_NOW)

        assert [lesson.date_time for lesson in lessons] == [
            datetime(2024, 1, 1, 10, 0),
            datetime(2024, 1, 8, 10, 0),
        ]
        for lesson in lessons:
            assert lesson.subject_name == "Math"
            assert lesson.event_name == "Math"
            assert lesson.start_time == "10:00"
            assert lesson.end_time == "11:00"
            assert lesson.payment_amount == TEST_SUBJECT_PRICE
            assert lesson.event_type == EventType.UNPAID
            assert lesson.is_auto_generated is True
            assert lesson.is_cancelled is False
            assert lesson.remaining_prepayment is None
        assert lesson_generator.skipped_subjects == []

    def test_date_range_is_inclusive(self, lesson_generator: LessonGenerator):
        subject = SubjectFactory(start_date="2024-01-01", end_date="2024-01-01")
        lessons = lesson_generator.generate([subject], [], TEST_NOW)
        assert len(lessons) == 1
        assert lessons[0].date_time.date() == TEST_FIRST_MONDAY

    def test_datetime_strings_are_accepted_as_dates(self, lesson_generator: LessonGenerator):
        subject = SubjectFactory(start_date="2024-01-01T00:00:00", end_date="2024-01-08T23:59:00")
        lessons = lesson_generator.generate([subject], [], TEST_NOW)
        assert [lesson.date_time.date() for lesson in lessons] == [TEST_FIRST_MONDAY, TEST_SECOND_MONDAY]

    def test_has_passed_is_strict(self, lesson_generator: LessonGenerator, math_subject: Subject):
        at_first_lesson = datetime(2024, 1, 1, 10, 0)
        lessons = lesson_generator.generate([math_subject], [], at_first_lesson)
        assert [lesson.has_passed for lesson in lessons] == [False, False]

        a_minute_later = at_first_lesson + timedelta(minutes=1)
        lessons = lesson_generator.generate([math_subject], [], a_minute_later)
        assert [lesson.has_passed for lesson in lessons] == [True, False]

    def test_time_ranges_keep_array_order(self, lesson_generator: LessonGenerator):
        subject = SubjectFactory(
            start_date="2024-01-01",
            end_date="2024-01-01",
            weekly_schedule=weekly({MONDAY: [("14:00", "15:00"), ("09:00", "10:00")]})
        )
        lessons = lesson_generator.generate([subject], [], TEST_NOW)
        assert [lesson.start_time for lesson in lessons] == ["14:00", "09:00"]

    def test_incomplete_time_range_is_skipped(self, lesson_generator: LessonGenerator):
        schedule = {
            MONDAY: ScheduleDay(enabled=True, time_ranges=[
                TimeRange(start_time="10:00"),
                TimeRange(start_time="", end_time="12:00"),
                TimeRange(start_time="16:00", end_time="17:00"),
            ])
        }
        subject = SubjectFactory(weekly_schedule=schedule)
        lessons = lesson_generator.generate([subject], [], TEST_NOW)
        assert [lesson.start_time for lesson in lessons] == ["16:00", "16:00"]

    def test_disabled_day_generates_nothing(self, lesson_generator: LessonGenerator):
        schedule = weekly({MONDAY: [("10:00", "11:00")]})
        schedule[WEDNESDAY] = ScheduleDay(enabled=False, time_ranges=[TimeRange(start_time="10:00", end_time="11:00")])
        subject = SubjectFactory(weekly_schedule=schedule)

        lessons = lesson_generator.generate([subject], [], TEST_NOW)
        assert all(schedule_index(lesson.date_time.date()) == MONDAY for lesson in lessons)

    def test_multiple_subjects(self, lesson_generator: LessonGenerator, math_subject: Subject):
        physics = SubjectFactory(
            name="Physics",
            price=Decimal("1500"),
            weekly_schedule=weekly({WEDNESDAY: [("12:00", "13:30")]})
        )
        lessons = lesson_generator.generate([math_subject, physics], [], TEST_NOW)

        assert len(lessons) == 4
        assert [lesson.subject_name for lesson in lessons] == ["Math", "Math", "Physics", "Physics"]
        assert {lesson.payment_amount for lesson in lessons if lesson.subject_name == "Physics"} == {Decimal("1500")}


class TestSkippedSubjects:

    @pytest.mark.parametrize("overrides", [
        {"start_date": "not-a-date"},
        {"end_date": "2024-13-45"},
        {"start_date": None},
        {"end_date": ""},
        {"name": ""},
        {"name": "   "},
        {"weekly_schedule": {}},
        {"weekly_schedule": {MONDAY: ScheduleDay(enabled=True, time_ranges=[])}},
    ])
    def test_subject_is_skipped_not_raised(self, lesson_generator: LessonGenerator, overrides: dict):
        subject = SubjectFactory(**overrides)
        lessons = lesson_generator.generate([subject], [], TEST_NOW)

        assert lessons == []
        assert len(lesson_generator.skipped_subjects) == 1

    def test_skipped_subject_does_not_affect_others(self, lesson_generator: LessonGenerator, math_subject: Subject):
        broken = SubjectFactory(name="Broken", start_date="yesterday")
        lessons = lesson_generator.generate([broken, math_subject], [], TEST_NOW)

        assert len(lessons) == 2
        assert [s.subject_name for s in lesson_generator.skipped_subjects] == ["Broken"]
        assert "dates" in lesson_generator.skipped_subjects[0].reason

    def test_skipped_list_resets_between_runs(self, lesson_generator: LessonGenerator, math_subject: Subject):
        lesson_generator.generate([SubjectFactory(name="")], [], TEST_NOW)
        lesson_generator.generate([math_subject], [], TEST_NOW)
        assert lesson_generator.skipped_subjects == []


class TestRegeneration:

    def test_generation_is_idempotent(self, lesson_generator: LessonGenerator, math_subject: Subject):
        first = lesson_generator.generate([math_subject], [], TEST_NOW)
        second = lesson_generator.generate([math_subject], first, TEST_NOW)

        assert [lesson.id for lesson in second] == [lesson.id for lesson in first]
        assert {lesson_key(lesson) for lesson in second} == {lesson_key(lesson) for lesson in first}

    def test_unchanged_records_are_returned_as_is(self, lesson_generator: LessonGenerator, math_subject: Subject):
        first = lesson_generator.generate([math_subject], [], TEST_NOW)
        second = lesson_generator.generate([math_subject], first, TEST_NOW)
        assert all(new is old for new, old in zip(second, first))

    def test_price_change_updates_existing_records(self, lesson_generator: LessonGenerator, math_subject: Subject):
        first = lesson_generator.generate([math_subject], [], TEST_NOW)
        repriced = math_subject.model_copy(update={"price": Decimal("1200")})

        second = lesson_generator.generate([repriced], first, TEST_NOW)

        assert [lesson.id for lesson in second] == [lesson.id for lesson in first]
        assert all(lesson.payment_amount == Decimal("1200") for lesson in second)
        # the originals are untouched
        assert all(lesson.payment_amount == TEST_SUBJECT_PRICE for lesson in first)

    def test_has_passed_is_refreshed(self, lesson_generator: LessonGenerator, math_subject: Subject):
        early = lesson_generator.generate([math_subject], [], datetime(2023, 12, 1))
        assert not any(lesson.has_passed for lesson in early)

        later = lesson_generator.generate([math_subject], early, TEST_NOW)
        assert all(lesson.has_passed for lesson in later)
        assert [lesson.id for lesson in later] == [lesson.id for lesson in early]

    def test_cancellation_survives_regeneration(self, lesson_generator: LessonGenerator, math_subject: Subject):
        first = lesson_generator.generate([math_subject], [], TEST_NOW)
        cancelled = [first[0].model_copy(update={"is_cancelled": True}), first[1]]

        second = lesson_generator.generate([math_subject], cancelled, TEST_NOW)
        assert second[0].id == first[0].id
        assert second[0].is_cancelled is True
        assert second[1].is_cancelled is False

    def test_match_ignores_time_of_day_in_date_time(self, lesson_generator: LessonGenerator, math_subject: Subject):
        first = lesson_generator.generate([math_subject], [], TEST_NOW)
        # same calendar day, subject and start time, but a drifted instant
        drifted = [first[0].model_copy(update={"date_time": datetime(2024, 1, 1, 0, 0)}), first[1]]

        second = lesson_generator.generate([math_subject], drifted, TEST_NOW)
        assert [lesson.id for lesson in second] == [lesson.id for lesson in first]

    def test_generated_record_claims_slot_before_manual(self, lesson_generator: LessonGenerator, math_subject: Subject):
        first = lesson_generator.generate([math_subject], [], TEST_NOW)
        manual = LessonFactory(date_time=datetime(2024, 1, 1, 10, 0), payment_amount=Decimal("500"))

        # the manual lesson is listed first, the generated one still wins the match
        second = lesson_generator.generate([math_subject], [manual] + first, TEST_NOW)
        assert [lesson.id for lesson in second] == [lesson.id for lesson in first]
        assert manual.id not in {lesson.id for lesson in second}

    def test_unpadded_hour_matches_padded_slot(self, lesson_generator: LessonGenerator, math_subject: Subject):
        """Rewriting 9:00 as 09:00 is the same slot and keeps the records."""
        unpadded = math_subject.model_copy(update={"weekly_schedule": weekly({MONDAY: [("9:00", "10:00")]})})
        first = lesson_generator.generate([unpadded], [], TEST_NOW)
        assert all(lesson.start_time == "09:00" for lesson in first)

        cancelled = [first[0].model_copy(update={"is_cancelled": True}), first[1]]
        padded = math_subject.model_copy(update={"weekly_schedule": weekly({MONDAY: [("09:00", "10:00")]})})
        second = lesson_generator.generate([padded], cancelled, TEST_NOW)

        assert [lesson.id for lesson in second] == [lesson.id for lesson in first]
        assert second[0].is_cancelled is True

    def test_moved_time_creates_new_record(self, lesson_generator: LessonGenerator, math_subject: Subject):
        first = lesson_generator.generate([math_subject], [], TEST_NOW)
        moved = math_subject.model_copy(update={"weekly_schedule": weekly({MONDAY: [("12:00", "13:00")]})})

        second = lesson_generator.generate([moved], first, TEST_NOW)
        assert not {lesson.id for lesson in second} & {lesson.id for lesson in first}
        assert all(lesson.start_time == "12:00" for lesson in second)
