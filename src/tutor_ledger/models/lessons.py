'''
Lesson & Prepayment API Models
'''
from typing import Optional, Annotated
from enum import Enum
from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, AfterValidator, model_validator

from .schedule import ClockTime, clock_to_minutes
from ..common.config import settings


def to_local_naive(value: datetime) -> datetime:
    """
    All ledger arithmetic happens on naive wall-clock datetimes.
    Aware values are shifted to UTC and stripped of their tzinfo.
    """
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value

LocalDateTime = Annotated[datetime, AfterValidator(to_local_naive)]


class EventType(str, Enum):
    UNPAID = "Не оплачено"
    PAID = "Оплачено"
    CANCELLED = "Отменено"


# --- 1. API Input Models (for POST/PUT) ---

class TimedRecord(BaseModel):
    """
    Base for anything carrying a start/end clock time on a single day.
    """
    start_time: ClockTime
    end_time: ClockTime

    @model_validator(mode="after")
    def check_time_order(self):
        if clock_to_minutes(self.start_time) >= clock_to_minutes(self.end_time):
            raise ValueError(f"end_time {self.end_time} must be after start_time {self.start_time}")
        return self


class LessonCreate(TimedRecord):
    """
    Validates the request body for adding a lesson manually.
    The lesson's date_time is the day of the lesson; its clock part is replaced by start_time.
    """
    date_time: LocalDateTime
    subject_name: str = Field(..., min_length=1)
    payment_amount: Decimal = Field(..., ge=0)


class PrepaymentCreate(BaseModel):
    """
    Validates the request body for registering a new prepayment.
    """
    amount: Decimal = Field(..., gt=0, le=settings.MAX_PREPAYMENT_AMOUNT)
    date_time: LocalDateTime
    description: Optional[str] = None


# --- 2. Ledger Records ---

class Lesson(TimedRecord):
    """
    One concrete dated occurrence, either generated from a subject's schedule
    or added manually. Records are never mutated; engines return updated copies.
    """
    id: UUID = Field(default_factory=uuid4)
    date_time: LocalDateTime
    subject_name: str
    event_name: str = ""
    payment_amount: Decimal = Field(..., ge=0)
    event_type: EventType = EventType.UNPAID
    has_passed: bool = False
    is_cancelled: bool = False
    is_auto_generated: bool = False
    remaining_prepayment: Optional[Decimal] = Field(None, description="Set by the ledger sweep only.")

    model_config = ConfigDict(frozen=True)


class Prepayment(PrepaymentCreate):
    id: UUID = Field(default_factory=uuid4)

    model_config = ConfigDict(frozen=True)
