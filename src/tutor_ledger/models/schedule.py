'''
Subject & Weekly Schedule API Models
'''
from typing import Optional, Annotated
from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, StringConstraints, AfterValidator, field_validator, model_validator

# "HH:MM", 24-hour clock, leading zero optional for the hour
TIME_PATTERN = r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$"

def pad_clock(value: str) -> str:
    """Zero-pads the hour, so "9:00" and "09:00" name the same slot."""
    hours, minutes = value.split(":")
    return f"{int(hours):02d}:{minutes}"

ClockTime = Annotated[str, StringConstraints(pattern=TIME_PATTERN), AfterValidator(pad_clock)]

# Schedule keys follow the JS Date.getDay() numbering: 0=Sunday, 1=Monday ... 6=Saturday
SCHEDULE_DAY_NAMES = {
    0: "Воскресенье",
    1: "Понедельник",
    2: "Вторник",
    3: "Среда",
    4: "Четверг",
    5: "Пятница",
    6: "Суббота",
}


def clock_to_minutes(value: str) -> int:
    """Converts an 'HH:MM' string to minutes since midnight."""
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def schedule_index(day: date) -> int:
    """
    Maps a calendar day to its weekly schedule key.
    Python's weekday() is Monday-first (0=Mon), the schedule is Sunday-first (0=Sun).
    """
    return (day.weekday() + 1) % 7


def parse_calendar_date(value: Optional[str]) -> Optional[date]:
    """
    Parses an ISO date or datetime string into a calendar day.
    Returns None for missing or unparseable values instead of raising.
    """
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return parsed.date()


class TimeRange(BaseModel):
    """
    One start/end pair inside a schedule day.
    Either bound may be missing; such ranges are kept but never generate lessons.
    """
    start_time: Optional[ClockTime] = None
    end_time: Optional[ClockTime] = None

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def blank_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @model_validator(mode="after")
    def check_order(self) -> "TimeRange":
        if self.is_complete and clock_to_minutes(self.start_time) >= clock_to_minutes(self.end_time):
            raise ValueError(f"end_time {self.end_time} must be after start_time {self.start_time}")
        return self

    @property
    def is_complete(self) -> bool:
        return self.start_time is not None and self.end_time is not None

    @property
    def start_minutes(self) -> int:
        return clock_to_minutes(self.start_time)

    @property
    def end_minutes(self) -> int:
        return clock_to_minutes(self.end_time)

    def __str__(self) -> str:
        return f"{self.start_time}-{self.end_time}"


class ScheduleDay(BaseModel):
    enabled: bool = False
    time_ranges: list[TimeRange] = Field(default_factory=list)

    @property
    def is_active(self) -> bool:
        return self.enabled and len(self.time_ranges) > 0


class SubjectBase(BaseModel):
    """
    Fields shared by subject input and output models.
    """
    name: str = ""
    price: Decimal = Field(default=Decimal(0), ge=0)
    duration_minutes: Optional[int] = Field(None, gt=0)
    start_date: Optional[str] = Field(None, description="ISO date, e.g. '2024-01-01'. Unparseable dates skip the subject.")
    end_date: Optional[str] = Field(None, description="ISO date, inclusive.")
    weekly_schedule: dict[int, ScheduleDay] = Field(
        default_factory=dict,
        description="0=Sunday, 1=Monday ... 6=Saturday"
    )

    @field_validator("weekly_schedule")
    @classmethod
    def check_weekday_keys(cls, value: dict[int, ScheduleDay]) -> dict[int, ScheduleDay]:
        bad_keys = [key for key in value if not 0 <= key <= 6]
        if bad_keys:
            raise ValueError(f"weekday keys must be within 0..6, got {bad_keys}")
        return value

    @model_validator(mode="after")
    def check_date_range(self):
        start, end = self.start_day, self.end_day
        if start and end and start > end:
            raise ValueError(f"end_date {self.end_date} is before start_date {self.start_date}")
        return self

    @property
    def start_day(self) -> Optional[date]:
        return parse_calendar_date(self.start_date)

    @property
    def end_day(self) -> Optional[date]:
        return parse_calendar_date(self.end_date)

    def has_active_schedule(self) -> bool:
        return any(day.is_active for day in self.weekly_schedule.values())


class SubjectCreate(SubjectBase):
    """
    Validates the request body for adding or replacing a subject.
    """
    pass


class Subject(SubjectBase):
    """
    A recurring course with a weekly schedule, a price and a validity date range.
    """
    id: UUID = Field(default_factory=uuid4)
