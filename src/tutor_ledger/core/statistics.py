'''
Totals derived from reconciled lessons
'''
from typing import Iterable

from ..models.lessons import Lesson, EventType
from ..models.finance import Stats


def compute_stats(lessons: Iterable[Lesson]) -> Stats:
    """
    Folds over non-cancelled lessons. Anything not marked Paid counts as unpaid.
    """
    stats = Stats()
    for lesson in lessons:
        if lesson.is_cancelled:
            continue

        stats.total_lessons += 1
        stats.total_amount += lesson.payment_amount

        if lesson.has_passed:
            stats.completed_lessons += 1

        if lesson.event_type == EventType.PAID:
            stats.paid_lessons += 1
            stats.paid_amount += lesson.payment_amount
        else:
            stats.unpaid_lessons += 1
            stats.unpaid_amount += lesson.payment_amount
            if lesson.has_passed:
                stats.debt += lesson.payment_amount

    return stats


def get_subject_stats(lessons: Iterable[Lesson], subject_name: str) -> Stats:
    return compute_stats(lesson for lesson in lessons if lesson.subject_name == subject_name)
