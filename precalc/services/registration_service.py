from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import IntEnum

from precalc.cache import DataCache, cache_key
from precalc.metrics import record_event
from precalc.models import Registration


logger = logging.getLogger(__name__)

PRECALC_COURSES = frozenset(
    {
        'M 117',
        'M 118',
        'M 124',
        'M 125',
        'M 126',
        'MATH 117',
        'MATH 118',
        'MATH 124',
        'MATH 125',
        'MATH 126',
    }
)

# Open-status codes that remove a registration from every pace computation.
DROPPED = 'D'
IGNORED = 'G'
CREDIT_BY_EXAM = 'OT'


class SchedulePhase(IntEnum):
    INCOMPLETE_COMPLETED = 0
    INCOMPLETE_OPEN = 1
    INCOMPLETE_UNOPENED = 2
    COMPLETED = 3
    OPEN = 4
    UNOPENED = 5


@dataclass
class PaceClassification:
    valid: bool
    registrations: list[Registration] = field(default_factory=list)
    phases: list[SchedulePhase] = field(default_factory=list)
    reason: str | None = None

    @property
    def pace(self) -> int:
        return len(self.registrations)


def is_precalc_course(course_id: str) -> bool:
    return course_id in PRECALC_COURSES


def is_dropped_or_ignored(reg: Registration) -> bool:
    return reg.open_status in (DROPPED, IGNORED)


def is_counted_toward_pace(reg: Registration) -> bool:
    if reg.synthetic or reg.instruction_type == CREDIT_BY_EXAM:
        return False
    if is_dropped_or_ignored(reg):
        return False
    return not reg.incomplete or reg.incomplete_counted


def pace_registrations(registrations: list[Registration]) -> list[Registration]:
    return [reg for reg in registrations if is_precalc_course(reg.course_id) and is_counted_toward_pace(reg)]


def get_term_registrations(data: DataCache, student_id: str, term_key: str) -> list[Registration]:
    def _load() -> list[Registration]:
        return (
            data.db.query(Registration)
            .filter(Registration.student_id == student_id, Registration.term_key == term_key)
            .order_by(Registration.id.asc())
            .all()
        )

    return data.get_or_load(cache_key('registrations', student_id, term_key), _load)


def get_pace_registrations(data: DataCache, student_id: str, term_key: str) -> list[Registration]:
    return pace_registrations(get_term_registrations(data, student_id, term_key))


def get_pace_registration(data: DataCache, student_id: str, course_id: str, term_key: str) -> Registration | None:
    for reg in get_pace_registrations(data, student_id, term_key):
        if reg.course_id == course_id:
            return reg
    return None


def natural_phase(reg: Registration) -> SchedulePhase:
    finished = reg.completed or reg.open_status == 'N'
    if reg.incomplete:
        if finished:
            return SchedulePhase.INCOMPLETE_COMPLETED
        if reg.open_status == 'Y':
            return SchedulePhase.INCOMPLETE_OPEN
        return SchedulePhase.INCOMPLETE_UNOPENED
    if finished:
        return SchedulePhase.COMPLETED
    if reg.open_status == 'Y':
        return SchedulePhase.OPEN
    return SchedulePhase.UNOPENED


def _has_dense_pace_order(regs: list[Registration]) -> bool:
    if any(reg.pace_order is None for reg in regs):
        return False
    for which in range(1, len(regs) + 1):
        if not any(reg.pace_order == which for reg in regs):
            return False
    return True


def sort_by_pace_order(regs: list[Registration]) -> list[Registration]:
    """Returns a copy of ``regs`` where pace order ``k`` sits at index ``k - 1``.

    Callers must have checked that the pace orders form a dense ``1..N`` set.
    """
    ordered = list(regs)
    for i in range(len(ordered)):
        if ordered[i].pace_order == i + 1:
            continue
        for j in range(i + 1, len(ordered)):
            if ordered[j].pace_order == i + 1:
                ordered[i], ordered[j] = ordered[j], ordered[i]
                break
    return ordered


def classify_registrations(registrations: list[Registration]) -> PaceClassification:
    """Filters ``registrations`` to those counted toward pace and validates their ordering.

    An invalid result is an "indeterminate pace": callers must show no
    milestones for it rather than guess.
    """
    regs = pace_registrations(registrations)
    if not regs:
        return PaceClassification(valid=True)

    if not _has_dense_pace_order(regs):
        return PaceClassification(valid=False, registrations=regs, reason='pace_order_not_dense')

    ordered = sort_by_pace_order(regs)
    phases: list[SchedulePhase] = []
    current = SchedulePhase.INCOMPLETE_COMPLETED
    for reg in ordered:
        phase = natural_phase(reg)
        if phase < current:
            return PaceClassification(valid=False, registrations=ordered, reason='phase_out_of_order')
        current = phase
        phases.append(phase)

    return PaceClassification(valid=True, registrations=ordered, phases=phases)


def classify_student(data: DataCache, student_id: str, term_key: str) -> PaceClassification:
    result = classify_registrations(get_term_registrations(data, student_id, term_key))
    if not result.valid:
        record_event('pace_indeterminate')
        logger.warning(
            'pace_order_invalid student_id=%s term=%s reason=%s',
            student_id,
            term_key,
            result.reason,
        )
    return result
