'''
Ledger, Statistics & Reconciliation API Models
'''
from decimal import Decimal
from datetime import datetime
from pydantic import BaseModel, Field

from .schedule import Subject
from .lessons import Lesson, Prepayment, LocalDateTime


class Stats(BaseModel):
    """
    Totals folded over the non-cancelled lessons of a ledger.
    """
    total_lessons: int = 0
    total_amount: Decimal = Decimal(0)
    completed_lessons: int = 0
    paid_lessons: int = 0
    paid_amount: Decimal = Decimal(0)
    unpaid_lessons: int = 0
    unpaid_amount: Decimal = Decimal(0)
    debt: Decimal = Field(Decimal(0), description="Unpaid amount of lessons that have already passed.")


class SkippedSubject(BaseModel):
    """
    A subject the generator left out (bad dates, no name, empty schedule).
    This is a policy outcome, not an error.
    """
    subject_name: str
    reason: str


# --- Stateless Reconciliation (POST /reconcile) ---

class ReconcileRequest(BaseModel):
    subjects: list[Subject] = Field(default_factory=list)
    prepayments: list[Prepayment] = Field(default_factory=list)
    existing_lessons: list[Lesson] = Field(default_factory=list)
    now: LocalDateTime = Field(default_factory=datetime.now)


class ReconcileResponse(BaseModel):
    lessons: list[Lesson]
    stats: Stats
    skipped_subjects: list[SkippedSubject] = Field(default_factory=list)
    remaining_balance: Decimal = Field(
        Decimal(0),
        description="Balance after the sweep plus every prepayment dated after the last lesson."
    )
