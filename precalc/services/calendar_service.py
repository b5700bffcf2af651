from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Any

from precalc.cache import DataCache
from precalc.models import MilestoneType, Registration
from precalc.services.catalog_service import get_active_term, get_course, get_holidays, get_term
from precalc.services.milestone_service import (
    EffectiveMilestone,
    deadline_milestones,
    effective_milestones,
    milestones_for_registration,
)
from precalc.services.pace_track_service import STATUS_NOT_REGISTERED, resolve_pace


logger = logging.getLogger(__name__)

NOT_REGISTERED_MESSAGE = 'You are not registered in any precalculus courses this semester.'
NO_DUE_DATES_MESSAGE = 'Unable to look up due dates for your combination of courses.'

MONTHS = (
    'January',
    'February',
    'March',
    'April',
    'May',
    'June',
    'July',
    'August',
    'September',
    'October',
    'November',
    'December',
)


def task_label(row: EffectiveMilestone) -> str:
    ms_type = row.ms_type
    if ms_type is MilestoneType.USERS_EXAM:
        return "User's Exam"
    if ms_type is MilestoneType.SKILLS_REVIEW:
        return 'Skills Review Exam'
    if ms_type.objective is not None:
        return f'Objective {row.unit}.{ms_type.objective}'
    if ms_type is MilestoneType.REVIEW_EXAM:
        return f'Unit {row.unit} Review Exam'
    if ms_type is MilestoneType.UNIT_EXAM:
        return f'Unit {row.unit} Exam'
    if ms_type is MilestoneType.FINAL_EXAM:
        return 'Final Exam'
    return ms_type.value


def week_bounds(earliest: date, latest: date) -> tuple[date, date]:
    """Widens [earliest, latest] to whole Sunday-to-Saturday weeks."""
    first = earliest - timedelta(days=(earliest.weekday() + 1) % 7)
    last = latest + timedelta(days=(5 - latest.weekday()) % 7)
    return first, last


def build_course_calendar(
    milestones: list[EffectiveMilestone],
    registration: Registration,
    holidays: set[date],
) -> dict[str, Any]:
    shown = deadline_milestones(milestones)
    if not shown:
        return {'earliest': None, 'latest': None, 'weeks': []}

    earliest = min(row.effective_date for row in shown)
    latest = max(row.effective_date for row in shown)
    first_day, last_day = week_bounds(earliest, latest)
    is_open = registration.open_status == 'Y'

    by_day: dict[date, list[EffectiveMilestone]] = {}
    for row in shown:
        by_day.setdefault(row.effective_date, []).append(row)

    weeks: list[list[dict[str, Any]]] = []
    active_month: int | None = None
    current = first_day
    while current <= last_day:
        week: list[dict[str, Any]] = []
        for _ in range(7):
            cell: dict[str, Any] = {'date': current.isoformat(), 'day': current.day, 'kind': 'day', 'month': None, 'tasks': []}
            weekend = current.weekday() >= 5
            if current < earliest or current > latest:
                cell['kind'] = 'filler'
            elif weekend:
                cell['kind'] = 'weekend'
            elif current in holidays:
                cell['kind'] = 'holiday'
            else:
                if active_month != current.month:
                    active_month = current.month
                    cell['month'] = MONTHS[current.month - 1]
                cell['tasks'] = [
                    {
                        'type': row.ms_type.value,
                        'unit': row.unit,
                        'label': task_label(row),
                        'open': is_open,
                        'extended': row.overridden,
                    }
                    for row in by_day.get(current, [])
                ]
            week.append(cell)
            current += timedelta(days=1)
        weeks.append(week)

    return {'earliest': earliest.isoformat(), 'latest': latest.isoformat(), 'weeks': weeks}


def get_student_calendar(data: DataCache, student_id: str, term_key: str | None = None) -> dict[str, Any]:
    term = get_term(data, term_key) if term_key else get_active_term(data)
    if term is None:
        return {'pace': 0, 'pace_track': None, 'message': NOT_REGISTERED_MESSAGE, 'courses': []}

    pace = resolve_pace(data, student_id, term.term_key)
    if pace.status == STATUS_NOT_REGISTERED:
        return {'pace': 0, 'pace_track': None, 'message': NOT_REGISTERED_MESSAGE, 'courses': []}

    milestones: list[EffectiveMilestone] = []
    if pace.has_milestones:
        milestones = effective_milestones(data, term.term_key, student_id, pace.pace, pace.pace_track)
    if not milestones:
        logger.info('calendar_no_milestones student_id=%s term=%s status=%s', student_id, term.term_key, pace.status)
        return {'pace': pace.pace, 'pace_track': pace.pace_track, 'message': NO_DUE_DATES_MESSAGE, 'courses': []}

    holidays = get_holidays(data, term)
    courses = []
    for reg in pace.classification.registrations:
        course = get_course(data, reg.course_id)
        calendar = build_course_calendar(milestones_for_registration(milestones, reg.pace_order), reg, holidays)
        courses.append(
            {
                'course_id': reg.course_id,
                'title': f'{course.label}: {course.name}' if course else reg.course_id.replace('M ', 'MATH '),
                'pace_order': reg.pace_order,
                **calendar,
            }
        )
    return {
        'pace': pace.pace,
        'pace_track': pace.pace_track,
        'message': f'You are on the {pace.pace} course, Track {pace.pace_track} schedule.',
        'courses': courses,
    }
