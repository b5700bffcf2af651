from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import IntEnum
from typing import Callable, Iterable

from precalc.cache import DataCache
from precalc.config import settings
from precalc.metrics import timed_service
from precalc.models import Course, HomeworkAttempt, MasteryAttempt, MasteryExam, Registration
from precalc.services.milestone_service import standard_milestone_date


logger = logging.getLogger(__name__)

DEFAULT_UNITS = 8
DEFAULT_STANDARDS_PER_UNIT = 3


class HomeworkStatus(IntEnum):
    NOT_ATTEMPTED = 0
    ATTEMPTED = 1
    PASSED = 2


class MasteryState(IntEnum):
    NOT_ATTEMPTED = 0
    ATTEMPTED = 1
    MASTERED_LATE = 2
    MASTERED_ON_TIME = 3

    @property
    def mastered(self) -> bool:
        return self >= MasteryState.MASTERED_LATE


@dataclass(frozen=True)
class StandardAttempt:
    unit: int
    objective: int
    passed: bool
    finished_at: datetime


@dataclass
class MasterySnapshot:
    homework_status: list[HomeworkStatus] = field(default_factory=list)
    mastery_status: list[MasteryState] = field(default_factory=list)
    mastered_first_half: int = 0
    mastered_second_half: int = 0
    pending_first_half: int = 0
    pending_second_half: int = 0
    score: int = 0

    @property
    def mastered(self) -> int:
        return self.mastered_first_half + self.mastered_second_half

    @property
    def pending(self) -> int:
        return self.pending_first_half + self.pending_second_half


def attributed_date(finished_at: datetime, grace_minutes: int) -> date:
    """Calendar day an attempt counts toward; work finished just after midnight belongs to the day before."""
    return (finished_at - timedelta(minutes=grace_minutes)).date()


def _index(unit: int, objective: int, units: int, standards: int) -> int | None:
    if unit < 1 or unit > units or objective < 1 or objective > standards:
        return None
    return (unit - 1) * standards + (objective - 1)


def fold_homework(
    attempts: Iterable[StandardAttempt],
    *,
    units: int = DEFAULT_UNITS,
    standards: int = DEFAULT_STANDARDS_PER_UNIT,
) -> list[HomeworkStatus]:
    status = [HomeworkStatus.NOT_ATTEMPTED] * (units * standards)
    for attempt in attempts:
        idx = _index(attempt.unit, attempt.objective, units, standards)
        if idx is None:
            continue
        outcome = HomeworkStatus.PASSED if attempt.passed else HomeworkStatus.ATTEMPTED
        status[idx] = max(status[idx], outcome)
    return status


def fold_mastery(
    attempts: Iterable[StandardAttempt],
    deadline_for: Callable[[int, int], date | None],
    *,
    units: int = DEFAULT_UNITS,
    standards: int = DEFAULT_STANDARDS_PER_UNIT,
    grace_minutes: int = 10,
) -> list[MasteryState]:
    status = [MasteryState.NOT_ATTEMPTED] * (units * standards)
    for attempt in attempts:
        idx = _index(attempt.unit, attempt.objective, units, standards)
        if idx is None:
            continue
        if not attempt.passed:
            outcome = MasteryState.ATTEMPTED
        else:
            deadline = deadline_for(attempt.unit, attempt.objective)
            finished = attributed_date(attempt.finished_at, grace_minutes)
            if deadline is None or finished <= deadline:
                outcome = MasteryState.MASTERED_ON_TIME
            else:
                outcome = MasteryState.MASTERED_LATE
        status[idx] = max(status[idx], outcome)
    return status


def summarize(
    homework: list[HomeworkStatus],
    mastery: list[MasteryState],
    *,
    points_on_time: int = 5,
    points_late: int = 4,
) -> MasterySnapshot:
    snapshot = MasterySnapshot(homework_status=list(homework), mastery_status=list(mastery))
    half = len(mastery) // 2
    for idx, state in enumerate(mastery):
        first_half = idx < half
        if state.mastered:
            if first_half:
                snapshot.mastered_first_half += 1
            else:
                snapshot.mastered_second_half += 1
        elif homework[idx] is HomeworkStatus.PASSED:
            if first_half:
                snapshot.pending_first_half += 1
            else:
                snapshot.pending_second_half += 1

        if state is MasteryState.MASTERED_ON_TIME:
            snapshot.score += points_on_time
        elif state is MasteryState.MASTERED_LATE:
            snapshot.score += points_late
    return snapshot


def load_homework_attempts(data: DataCache, student_id: str, course_id: str) -> list[StandardAttempt]:
    rows = (
        data.db.query(HomeworkAttempt)
        .filter(HomeworkAttempt.student_id == student_id, HomeworkAttempt.course_id == course_id)
        .order_by(HomeworkAttempt.finished_at.asc(), HomeworkAttempt.id.asc())
        .all()
    )
    return [StandardAttempt(row.unit, row.objective, bool(row.passed), row.finished_at) for row in rows]


def load_mastery_attempts(data: DataCache, student_id: str, course_id: str) -> list[StandardAttempt]:
    rows = (
        data.db.query(MasteryAttempt, MasteryExam)
        .join(MasteryExam, MasteryExam.exam_id == MasteryAttempt.exam_id)
        .filter(MasteryAttempt.student_id == student_id, MasteryExam.course_id == course_id)
        .order_by(MasteryAttempt.finished_at.asc(), MasteryAttempt.id.asc())
        .all()
    )
    return [StandardAttempt(exam.unit, exam.objective, bool(attempt.passed), attempt.finished_at) for attempt, exam in rows]


@timed_service('compute_mastery_status')
def compute_mastery_status(
    data: DataCache,
    student_id: str,
    course: Course,
    pace: int,
    track: str,
    registration: Registration,
) -> MasterySnapshot:
    units = int(course.units or DEFAULT_UNITS)
    standards = int(course.standards_per_unit or DEFAULT_STANDARDS_PER_UNIT)
    pace_index = registration.pace_order

    def _deadline(unit: int, objective: int) -> date | None:
        if pace_index is None:
            return None
        return standard_milestone_date(data, student_id, track, pace, pace_index, unit, objective)

    homework = fold_homework(load_homework_attempts(data, student_id, course.course_id), units=units, standards=standards)
    mastery = fold_mastery(
        load_mastery_attempts(data, student_id, course.course_id),
        _deadline,
        units=units,
        standards=standards,
        grace_minutes=settings.mastery_grace_minutes,
    )
    snapshot = summarize(homework, mastery, points_on_time=settings.points_on_time, points_late=settings.points_late)
    logger.debug(
        'mastery_status student_id=%s course=%s mastered=%s pending=%s score=%s',
        student_id,
        course.course_id,
        snapshot.mastered,
        snapshot.pending,
        snapshot.score,
    )
    return snapshot
