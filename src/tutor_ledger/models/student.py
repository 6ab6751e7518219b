'''
Student Workspace API Models
'''
from typing import Optional
from datetime import datetime
from decimal import Decimal
from uuid import UUID
from pydantic import BaseModel, Field, computed_field

from .schedule import Subject
from .lessons import Lesson, Prepayment
from .finance import Stats, SkippedSubject


class StudentCreate(BaseModel):
    """
    Validates the request body for opening a new student workspace.
    """
    name: str = Field(..., min_length=1)
    contact_person: Optional[str] = None
    comment: Optional[str] = None


class StudentRead(BaseModel):
    """
    The API model for a student workspace snapshot.
    """
    id: UUID
    name: str
    contact_person: Optional[str] = None
    comment: Optional[str] = None
    subjects: list[Subject]
    prepayments: list[Prepayment]
    history: list[Lesson]
    stats: Stats
    skipped_subjects: list[SkippedSubject]
    remaining_balance: Decimal
    recalculation_pending: bool
    last_recalculated_at: Optional[datetime] = None

    @computed_field
    @property
    def total_prepaid(self) -> Decimal:
        return sum((p.amount for p in self.prepayments), Decimal(0))


class StudentSummary(BaseModel):
    """
    A lean representation used for the student list.
    """
    id: UUID
    name: str
    subject_count: int
    stats: Stats
