'''
Student Workspace Service
Keeps each student's subjects, prepayments and reconciled history in memory
and triggers the ledger pipeline whenever they change.
'''
from typing import Annotated, Optional
from uuid import UUID, uuid4
from datetime import datetime, date

from fastapi import Depends, HTTPException, status

from ..core.debounce import ReconciliationScheduler
from ..core.time_slots import busy_slots_for_day, ensure_slot_free
from ..core.lesson_generator import lesson_datetime, lesson_key
from ..core.statistics import get_subject_stats
from ..core.calendar import build_combined_history, build_calendar
from ..models.schedule import Subject, SubjectCreate, TimeRange
from ..models.lessons import Lesson, LessonCreate, Prepayment, PrepaymentCreate
from ..models.finance import ReconcileResponse, Stats
from ..models.student import StudentCreate, StudentRead, StudentSummary
from ..models.calendar import HistoryEntry, CalendarRead
from ..common.exceptions import StudentNotFoundError, RecordNotFoundError, TimeSlotConflictError
from ..common.config import settings
from ..common.logger import log
from .ledger_service import LedgerService


class StudentWorkspace:
    """
    The mutable shell around one student's ledger. `snapshot` is only ever
    replaced as a whole, never edited in place.
    """
    def __init__(self, name: str, contact_person: Optional[str] = None, comment: Optional[str] = None):
        self.id: UUID = uuid4()
        self.name = name
        self.contact_person = contact_person
        self.comment = comment
        self.subjects: list[Subject] = []
        self.prepayments: list[Prepayment] = []
        self.snapshot = ReconcileResponse(lessons=[], stats=Stats())
        self.last_recalculated_at: Optional[datetime] = None
        self.scheduler = ReconciliationScheduler(
            delay=settings.RECALCULATION_DELAY_SECONDS,
            name=f"recalculation for student {self.id}"
        )

    @property
    def history(self) -> list[Lesson]:
        return self.snapshot.lessons

    def find_subject_index(self, subject_id: UUID) -> int:
        for index, subject in enumerate(self.subjects):
            if subject.id == subject_id:
                return index
        raise RecordNotFoundError(f"Subject {subject_id} not found for student {self.id}.")

    def find_prepayment_index(self, prepayment_id: UUID) -> int:
        for index, prepayment in enumerate(self.prepayments):
            if prepayment.id == prepayment_id:
                return index
        raise RecordNotFoundError(f"Prepayment {prepayment_id} not found for student {self.id}.")

    def find_lesson_index(self, lesson_id: UUID) -> int:
        for index, lesson in enumerate(self.history):
            if lesson.id == lesson_id:
                return index
        raise RecordNotFoundError(f"Lesson {lesson_id} not found for student {self.id}.")


class StudentStore:
    """
    In-memory registry of student workspaces. Workspaces never share state.
    """
    def __init__(self):
        self._workspaces: dict[UUID, StudentWorkspace] = {}

    def add(self, workspace: StudentWorkspace) -> StudentWorkspace:
        self._workspaces[workspace.id] = workspace
        return workspace

    def get(self, student_id: UUID) -> StudentWorkspace:
        workspace = self._workspaces.get(student_id)
        if workspace is None:
            raise StudentNotFoundError(f"Student {student_id} not found.")
        return workspace

    def remove(self, student_id: UUID) -> StudentWorkspace:
        workspace = self.get(student_id)
        workspace.scheduler.cancel()
        del self._workspaces[student_id]
        return workspace

    def all(self) -> list[StudentWorkspace]:
        return list(self._workspaces.values())

    def clear(self):
        for workspace in self._workspaces.values():
            workspace.scheduler.cancel()
        self._workspaces.clear()


# Create a single store instance shared by every request
student_store = StudentStore()

def get_student_store() -> StudentStore:
    """FastAPI dependency returning the process-wide store."""
    return student_store


class StudentService:
    """
    Service for managing student workspaces and their ledgers.
    Schedule edits trigger a debounced rebuild; prepayment, lesson and
    cancellation edits re-run the ledger sweep immediately.
    """
    def __init__(
        self,
        store: Annotated[StudentStore, Depends(get_student_store)],
        ledger_service: Annotated[LedgerService, Depends(LedgerService)]
    ):
        self.store = store
        self.ledger_service = ledger_service

    # --- 1. Internal Helpers ---

    def _get_workspace(self, student_id: UUID) -> StudentWorkspace:
        try:
            return self.store.get(student_id)
        except StudentNotFoundError as e:
            log.warning(f"Tried to access non-existent student id: {student_id}")
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    def _rebuild(self, workspace: StudentWorkspace) -> StudentWorkspace:
        """
        Runs the full pipeline and swaps the snapshot in. On failure the
        previous snapshot stays in place.
        """
        snapshot = self.ledger_service.rebuild(
            subjects=workspace.subjects,
            prepayments=workspace.prepayments,
            existing_lessons=workspace.history,
            now=datetime.now()
        )
        workspace.snapshot = snapshot
        workspace.last_recalculated_at = datetime.now()
        log.info(f"Rebuilt ledger for student {workspace.id}: {len(snapshot.lessons)} lessons.")
        return workspace

    def _reapply(self, workspace: StudentWorkspace, history: list[Lesson]) -> StudentWorkspace:
        """Re-runs the sweep over `history` and keeps the skipped-subject report."""
        snapshot = self.ledger_service.reapply_payments(history, workspace.prepayments)
        snapshot.skipped_subjects = workspace.snapshot.skipped_subjects
        workspace.snapshot = snapshot
        workspace.last_recalculated_at = datetime.now()
        return workspace

    def _check_slot(self, workspace: StudentWorkspace, data: LessonCreate, exclude_id: Optional[UUID] = None):
        """Rejects the lesson with 409 if it overlaps a non-cancelled lesson of that day."""
        day = data.date_time.date()
        candidate = TimeRange(start_time=data.start_time, end_time=data.end_time)
        try:
            ensure_slot_free(candidate, busy_slots_for_day(workspace.history, day, exclude_id=exclude_id))
        except TimeSlotConflictError as e:
            log.warning(f"Rejected lesson for student {workspace.id} on {day}: {e}")
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    def _schedule_rebuild(self, workspace: StudentWorkspace):
        workspace.scheduler.schedule(lambda: self._rebuild(workspace))

    def _to_read_model(self, workspace: StudentWorkspace) -> StudentRead:
        return StudentRead(
            id=workspace.id,
            name=workspace.name,
            contact_person=workspace.contact_person,
            comment=workspace.comment,
            subjects=workspace.subjects,
            prepayments=workspace.prepayments,
            history=workspace.history,
            stats=workspace.snapshot.stats,
            skipped_subjects=workspace.snapshot.skipped_subjects,
            remaining_balance=workspace.snapshot.remaining_balance,
            recalculation_pending=workspace.scheduler.is_pending,
            last_recalculated_at=workspace.last_recalculated_at
        )

    # --- 2. Students ---

    async def create_student(self, data: StudentCreate) -> StudentRead:
        workspace = self.store.add(
            StudentWorkspace(name=data.name, contact_person=data.contact_person, comment=data.comment)
        )
        log.info(f"Created student workspace {workspace.id} ('{workspace.name}').")
        return self._to_read_model(workspace)

    async def list_students(self) -> list[StudentSummary]:
        return [
            StudentSummary(
                id=workspace.id,
                name=workspace.name,
                subject_count=len(workspace.subjects),
                stats=workspace.snapshot.stats
            )
            for workspace in self.store.all()
        ]

    async def get_student(self, student_id: UUID) -> StudentRead:
        return self._to_read_model(self._get_workspace(student_id))

    async def delete_student(self, student_id: UUID):
        self._get_workspace(student_id)
        self.store.remove(student_id)
        log.info(f"Deleted student workspace {student_id}.")

    async def recalculate(self, student_id: UUID) -> StudentRead:
        """
        Synchronous rebuild. Supersedes any pending debounced run.
        """
        workspace = self._get_workspace(student_id)
        workspace.scheduler.cancel()
        try:
            self._rebuild(workspace)
        except Exception as e:
            log.error(f"Error recalculating student {student_id}: {e}", exc_info=True)
            raise
        return self._to_read_model(workspace)

    async def wait_for_recalculation(self, student_id: UUID) -> StudentRead:
        workspace = self._get_workspace(student_id)
        await workspace.scheduler.flush()
        return self._to_read_model(workspace)

    # --- 3. Subjects ---

    async def add_subject(self, student_id: UUID, data: SubjectCreate) -> Subject:
        workspace = self._get_workspace(student_id)
        subject = Subject(**data.model_dump())
        workspace.subjects = workspace.subjects + [subject]
        log.info(f"Added subject '{subject.name}' to student {student_id}.")
        self._schedule_rebuild(workspace)
        return subject

    async def update_subject(self, student_id: UUID, subject_id: UUID, data: SubjectCreate) -> Subject:
        workspace = self._get_workspace(student_id)
        try:
            index = workspace.find_subject_index(subject_id)
        except RecordNotFoundError as e:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

        subject = Subject(id=subject_id, **data.model_dump())
        subjects = list(workspace.subjects)
        subjects[index] = subject
        workspace.subjects = subjects
        log.info(f"Updated subject {subject_id} of student {student_id}.")
        self._schedule_rebuild(workspace)
        return subject

    async def remove_subject(self, student_id: UUID, subject_id: UUID):
        workspace = self._get_workspace(student_id)
        try:
            index = workspace.find_subject_index(subject_id)
        except RecordNotFoundError as e:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

        workspace.subjects = workspace.subjects[:index] + workspace.subjects[index + 1:]
        log.info(f"Removed subject {subject_id} from student {student_id}.")
        self._schedule_rebuild(workspace)

    # --- 4. Prepayments ---

    async def add_prepayment(self, student_id: UUID, data: PrepaymentCreate) -> Prepayment:
        workspace = self._get_workspace(student_id)
        prepayment = Prepayment(**data.model_dump())
        workspace.prepayments = workspace.prepayments + [prepayment]
        log.info(f"Registered prepayment {prepayment.amount} for student {student_id}.")
        self._reapply(workspace, workspace.history)
        return prepayment

    async def update_prepayment(self, student_id: UUID, prepayment_id: UUID, data: PrepaymentCreate) -> Prepayment:
        workspace = self._get_workspace(student_id)
        try:
            index = workspace.find_prepayment_index(prepayment_id)
        except RecordNotFoundError as e:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

        prepayment = Prepayment(id=prepayment_id, **data.model_dump())
        prepayments = list(workspace.prepayments)
        prepayments[index] = prepayment
        workspace.prepayments = prepayments
        log.info(f"Updated prepayment {prepayment_id} of student {student_id}.")
        self._reapply(workspace, workspace.history)
        return prepayment

    async def remove_prepayment(self, student_id: UUID, prepayment_id: UUID):
        workspace = self._get_workspace(student_id)
        try:
            index = workspace.find_prepayment_index(prepayment_id)
        except RecordNotFoundError as e:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

        workspace.prepayments = workspace.prepayments[:index] + workspace.prepayments[index + 1:]
        log.info(f"Removed prepayment {prepayment_id} from student {student_id}.")
        self._reapply(workspace, workspace.history)

    # --- 5. Lessons ---

    async def add_lesson(self, student_id: UUID, data: LessonCreate) -> Lesson:
        """
        Adds a manual lesson on data.date_time's day at data.start_time.
        Rejects the slot with 409 if it overlaps a non-cancelled lesson of that day.
        """
        workspace = self._get_workspace(student_id)
        self._check_slot(workspace, data)

        occurs_at = lesson_datetime(data.date_time.date(), data.start_time)
        lesson = Lesson(
            date_time=occurs_at,
            start_time=data.start_time,
            end_time=data.end_time,
            subject_name=data.subject_name,
            event_name=data.subject_name,
            payment_amount=data.payment_amount,
            has_passed=occurs_at < datetime.now(),
            is_auto_generated=False
        )
        self._reapply(workspace, workspace.history + [lesson])
        log.info(f"Added manual lesson {lesson.id} for student {student_id}.")
        return workspace.history[workspace.find_lesson_index(lesson.id)]

    async def update_lesson(self, student_id: UUID, lesson_id: UUID, data: LessonCreate) -> Lesson:
        """
        Moves or re-prices a lesson, keeping its id and cancellation flag.
        A generated lesson moved off its schedule slot becomes a manual one.
        """
        workspace = self._get_workspace(student_id)
        try:
            index = workspace.find_lesson_index(lesson_id)
        except RecordNotFoundError as e:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
        self._check_slot(workspace, data, exclude_id=lesson_id)

        current = workspace.history[index]
        occurs_at = lesson_datetime(data.date_time.date(), data.start_time)
        updated = current.model_copy(update={
            "date_time": occurs_at,
            "start_time": data.start_time,
            "end_time": data.end_time,
            "subject_name": data.subject_name,
            "event_name": data.subject_name,
            "payment_amount": data.payment_amount,
            "has_passed": occurs_at < datetime.now(),
        })
        if current.is_auto_generated and lesson_key(updated) != lesson_key(current):
            updated = updated.model_copy(update={"is_auto_generated": False})

        history = list(workspace.history)
        history[index] = updated
        self._reapply(workspace, history)
        log.info(f"Updated lesson {lesson_id} for student {student_id}.")
        return workspace.history[index]

    async def cancel_lesson(self, student_id: UUID, lesson_id: UUID) -> Lesson:
        workspace = self._get_workspace(student_id)
        try:
            index = workspace.find_lesson_index(lesson_id)
        except RecordNotFoundError as e:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

        history = list(workspace.history)
        history[index] = history[index].model_copy(update={"is_cancelled": True})
        self._reapply(workspace, history)
        log.info(f"Cancelled lesson {lesson_id} for student {student_id}.")
        return workspace.history[index]

    async def remove_lesson(self, student_id: UUID, lesson_id: UUID):
        """
        Removes a lesson from the history. An auto-generated lesson comes back
        on the next rebuild while its subject still schedules it.
        """
        workspace = self._get_workspace(student_id)
        try:
            index = workspace.find_lesson_index(lesson_id)
        except RecordNotFoundError as e:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

        self._reapply(workspace, workspace.history[:index] + workspace.history[index + 1:])
        log.info(f"Removed lesson {lesson_id} from student {student_id}.")

    # --- 6. Read Models ---

    async def get_history(self, student_id: UUID) -> list[HistoryEntry]:
        workspace = self._get_workspace(student_id)
        return build_combined_history(workspace.history, workspace.prepayments)

    async def get_stats(self, student_id: UUID) -> Stats:
        return self._get_workspace(student_id).snapshot.stats

    async def get_subject_stats(self, student_id: UUID, subject_name: str) -> Stats:
        workspace = self._get_workspace(student_id)
        return get_subject_stats(workspace.history, subject_name)

    async def get_calendar(self, student_id: UUID, start: date, end: date) -> CalendarRead:
        workspace = self._get_workspace(student_id)
        try:
            return build_calendar(workspace.history, start, end)
        except ValueError as e:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
