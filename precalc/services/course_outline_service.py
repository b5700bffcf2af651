from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any

from precalc.cache import DataCache
from precalc.config import settings
from precalc.core.time_provider import TimeProvider, default_time_provider
from precalc.services.calendar_service import NO_DUE_DATES_MESSAGE, NOT_REGISTERED_MESSAGE, task_label
from precalc.services.catalog_service import get_active_term
from precalc.services.extension_service import ALREADY_APPLIED, EXTENDABLE_TYPES, ExtensionPool, days_available
from precalc.services.milestone_service import deadline_milestones, effective_milestones, milestones_for_registration
from precalc.services.pace_track_service import STATUS_NOT_REGISTERED, resolve_pace
from precalc.services.registration_service import get_pace_registration


logger = logging.getLogger(__name__)


def _offer_window(pool: ExtensionPool) -> int:
    if pool is ExtensionPool.ACCOMMODATION:
        return settings.accommodation_offer_window_days
    return settings.free_offer_window_days


def get_course_outline(
    data: DataCache,
    student_id: str,
    course_id: str,
    *,
    time_provider: TimeProvider = default_time_provider,
) -> dict[str, Any] | None:
    """Deadlines for one course, with the extension offers the student can act on.

    Returns ``None`` when the student has no registration in the course.
    """
    term = get_active_term(data)
    if term is None:
        return None

    pace = resolve_pace(data, student_id, term.term_key)
    if pace.status == STATUS_NOT_REGISTERED:
        return {'course_id': course_id, 'pace': 0, 'pace_track': None, 'message': NOT_REGISTERED_MESSAGE, 'deadlines': []}

    registration = get_pace_registration(data, student_id, course_id, term.term_key)
    if registration is None:
        return None

    payload: dict[str, Any] = {
        'course_id': course_id,
        'pace': pace.pace,
        'pace_track': pace.pace_track,
        'pace_order': registration.pace_order,
        'message': None,
        'deadlines': [],
    }
    if not pace.has_milestones:
        payload['message'] = NO_DUE_DATES_MESSAGE
        return payload

    milestones = deadline_milestones(
        milestones_for_registration(
            effective_milestones(data, term.term_key, student_id, pace.pace, pace.pace_track),
            registration.pace_order,
        )
    )
    if not milestones:
        payload['message'] = NO_DUE_DATES_MESSAGE
        return payload

    today = time_provider.today()
    for row in milestones:
        item: dict[str, Any] = {
            'type': row.ms_type.value,
            'unit': row.unit,
            'pace_index': row.pace_index,
            'label': task_label(row),
            'due_date': row.effective_date.isoformat(),
            'original_date': row.term_date.isoformat(),
            'extensions': {},
        }
        if row.ms_type in EXTENDABLE_TYPES:
            for pool in ExtensionPool:
                days = days_available(
                    data,
                    student_id,
                    pace.pace_track,
                    pace.pace,
                    row.pace_index,
                    row.unit,
                    row.ms_type,
                    pool,
                    term_key=term.term_key,
                    time_provider=time_provider,
                )
                if days == ALREADY_APPLIED:
                    item['extensions'][pool.value] = {'status': 'applied', 'days': 0}
                elif days > 0 and row.effective_date < today + timedelta(days=_offer_window(pool)):
                    item['extensions'][pool.value] = {'status': 'offered', 'days': days}
        payload['deadlines'].append(item)
    return payload
