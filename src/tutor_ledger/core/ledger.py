'''
The prepayment ledger: a chronological forward sweep classifying lessons
as Paid / Unpaid / Cancelled against the accumulated prepayment balance.
'''
from decimal import Decimal
from typing import Sequence

from ..models.lessons import Lesson, Prepayment, EventType
from ..common.logger import log


def _sweep(lessons: Sequence[Lesson], prepayments: Sequence[Prepayment]) -> tuple[list[Lesson], Decimal, int]:
    """
    Runs the sweep over date-sorted copies of both streams.
    Returns the reconciled lessons (in input order), the final balance and how
    many prepayments were applied.
    """
    # sorted() is stable, ties keep their input order
    order = sorted(range(len(lessons)), key=lambda index: lessons[index].date_time)
    sorted_prepayments = sorted(prepayments, key=lambda prepayment: prepayment.date_time)

    balance = Decimal(0)
    cursor = 0
    reconciled: list[Lesson] = list(lessons)

    for index in order:
        lesson = lessons[index]
        # prepayments dated at the lesson's instant are applied first
        while cursor < len(sorted_prepayments) and sorted_prepayments[cursor].date_time <= lesson.date_time:
            balance += sorted_prepayments[cursor].amount
            log.debug(f"Applied prepayment {sorted_prepayments[cursor].amount} dated {sorted_prepayments[cursor].date_time}, balance {balance}")
            cursor += 1

        if lesson.is_cancelled:
            event_type = EventType.CANCELLED
        elif balance >= lesson.payment_amount:
            balance -= lesson.payment_amount
            event_type = EventType.PAID
        else:
            # all-or-nothing: an unpaid lesson leaves the balance untouched
            event_type = EventType.UNPAID

        log.debug(f"Lesson {lesson.date_time} '{lesson.subject_name}' ({lesson.payment_amount}) -> {event_type.name}, balance {balance}")
        reconciled[index] = lesson.model_copy(update={
            "event_type": event_type,
            "remaining_prepayment": balance,
        })

    return reconciled, balance, cursor


def reconcile(lessons: Sequence[Lesson], prepayments: Sequence[Prepayment]) -> list[Lesson]:
    """
    Classifies every lesson and records the balance left right after it.

    The result is a list of new records in the same order as `lessons`. Only
    date_time, payment_amount and is_cancelled are read; any event_type or
    remaining_prepayment already present on the inputs is recomputed.
    Prepayments dated after the last lesson are not applied in this pass.
    """
    if not lessons:
        return []

    reconciled, balance, applied = _sweep(lessons, prepayments)
    log.info(
        f"Reconciled {len(lessons)} lessons against {applied}/{len(prepayments)} prepayments. "
        f"Balance after last lesson: {balance}"
    )
    return reconciled


def final_balance(lessons: Sequence[Lesson], prepayments: Sequence[Prepayment]) -> Decimal:
    """
    The credit a payer holds: the balance at the end of the sweep plus every
    prepayment dated after the last lesson.
    """
    _, balance, applied = _sweep(lessons, prepayments)
    sorted_prepayments = sorted(prepayments, key=lambda prepayment: prepayment.date_time)
    return balance + sum((p.amount for p in sorted_prepayments[applied:]), Decimal(0))
