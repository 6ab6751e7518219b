'''
Ledger Service: the snapshot pipeline
subjects + prepayments -> generator -> ledger sweep -> statistics
'''
from datetime import datetime
from typing import Sequence, Optional

from ..core.lesson_generator import LessonGenerator
from ..core.ledger import reconcile, final_balance
from ..core.statistics import compute_stats
from ..models.schedule import Subject
from ..models.lessons import Lesson, Prepayment
from ..models.finance import ReconcileRequest, ReconcileResponse
from ..common.logger import log


class LedgerService:
    """
    Stateless service running the full reconciliation pipeline over one
    snapshot. Every call is independent; nothing is shared between calls.
    """
    def __init__(self):
        self.generator = LessonGenerator()

    def rebuild(
        self,
        subjects: Sequence[Subject],
        prepayments: Sequence[Prepayment],
        existing_lessons: Sequence[Lesson],
        now: Optional[datetime] = None
    ) -> ReconcileResponse:
        """
        Regenerates the scheduled occurrences, keeps manual lessons, and
        reconciles everything against the prepayments.

        Auto-generated records whose schedule slot no longer exists are dropped.
        Records matched by the generator keep their id and cancellation flag.
        """
        now = now or datetime.now()
        try:
            generated = self.generator.generate(subjects, existing_lessons, now)
            generated_ids = {lesson.id for lesson in generated}

            manual = [
                self._refresh_has_passed(lesson, now)
                for lesson in existing_lessons
                if not lesson.is_auto_generated and lesson.id not in generated_ids
            ]
            orphaned = sum(
                1 for lesson in existing_lessons
                if lesson.is_auto_generated and lesson.id not in generated_ids
            )
            if orphaned:
                log.info(f"Dropping {orphaned} auto-generated lessons no longer on any schedule.")

            # generated records go first on equal instants
            history = sorted(
                generated + manual,
                key=lambda lesson: (lesson.date_time, not lesson.is_auto_generated)
            )
            snapshot = self.reapply_payments(history, prepayments)
            snapshot.skipped_subjects = list(self.generator.skipped_subjects)
            return snapshot
        except Exception as e:
            log.error(f"Error rebuilding ledger snapshot: {e}", exc_info=True)
            raise

    def reapply_payments(
        self,
        history: Sequence[Lesson],
        prepayments: Sequence[Prepayment]
    ) -> ReconcileResponse:
        """
        Re-runs only the ledger sweep and statistics (used when prepayments or
        cancellations change but the schedule did not).
        """
        lessons = reconcile(history, prepayments)
        return ReconcileResponse(
            lessons=lessons,
            stats=compute_stats(lessons),
            remaining_balance=final_balance(lessons, prepayments),
        )

    def reconcile_request(self, request: ReconcileRequest) -> ReconcileResponse:
        """
        Handler for the stateless POST /reconcile endpoint. The request body has
        already been validated by pydantic at this point.
        """
        log.info(
            f"Reconciling snapshot: {len(request.subjects)} subjects, "
            f"{len(request.prepayments)} prepayments, {len(request.existing_lessons)} existing lessons."
        )
        return self.rebuild(
            subjects=request.subjects,
            prepayments=request.prepayments,
            existing_lessons=request.existing_lessons,
            now=request.now
        )

    @staticmethod
    def _refresh_has_passed(lesson: Lesson, now: datetime) -> Lesson:
        has_passed = lesson.date_time < now
        if lesson.has_passed == has_passed:
            return lesson
        return lesson.model_copy(update={"has_passed": has_passed})
