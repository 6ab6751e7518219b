'''
Presentation API Models: combined history and calendar rollups
'''
from typing import Optional, Literal
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID
from pydantic import BaseModel, Field

from .lessons import EventType, Lesson


class HistoryEntry(BaseModel):
    """
    A lesson or a prepayment projected for the history list.
    """
    entry_type: Literal["lesson", "prepayment"]
    id: UUID
    date_time: datetime
    color: str
    amount: Decimal = Field(..., description="Prepayment amount, or the lesson price still owed (0 when paid).")

    # Lesson-only fields
    subject_name: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    event_type: Optional[EventType] = None
    is_cancelled: bool = False
    has_passed: Optional[bool] = None
    remaining_prepayment: Optional[Decimal] = None

    # Prepayment-only fields
    description: Optional[str] = None


class CalendarDay(BaseModel):
    day: date
    lessons: list[Lesson]
    busy_slots: list[str]
    lesson_count: int = 0
    paid_count: int = 0
    unpaid_count: int = 0
    cancelled_count: int = 0
    total_amount: Decimal = Decimal(0)
    paid_amount: Decimal = Decimal(0)


class WeekTotals(BaseModel):
    week_start: date
    week_end: date
    lesson_count: int = 0
    paid_count: int = 0
    unpaid_count: int = 0
    total_amount: Decimal = Decimal(0)
    paid_amount: Decimal = Decimal(0)


class CalendarRead(BaseModel):
    start: date
    end: date
    days: list[CalendarDay]
    weeks: list[WeekTotals]
