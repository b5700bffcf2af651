from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from precalc.cache import DataCache, get_data_cache
from precalc.core.router_guard import assert_student_scope, require_auth_user
from precalc.route_logging import EndpointNameRoute
from precalc.schemas import EffectiveMilestoneItem, PaceSummaryResponse
from precalc.services.calendar_service import NO_DUE_DATES_MESSAGE, NOT_REGISTERED_MESSAGE, get_student_calendar
from precalc.services.catalog_service import get_active_term
from precalc.services.course_outline_service import get_course_outline
from precalc.services.milestone_service import effective_milestones
from precalc.services.pace_track_service import STATUS_INDETERMINATE, STATUS_NOT_REGISTERED, resolve_pace


router = APIRouter(prefix='/api/pacing', tags=['Pacing'], route_class=EndpointNameRoute)


@router.get('/{student_id}', response_model=PaceSummaryResponse)
def pace_summary(
    student_id: str,
    user: dict = Depends(require_auth_user),
    data: DataCache = Depends(get_data_cache),
):
    assert_student_scope(user, student_id)
    term = get_active_term(data)
    if term is None:
        return PaceSummaryResponse(student_id=student_id, term_key=None, status='no_term', pace=0)

    result = resolve_pace(data, student_id, term.term_key)
    message = None
    if result.status == STATUS_NOT_REGISTERED:
        message = NOT_REGISTERED_MESSAGE
    elif result.status == STATUS_INDETERMINATE:
        message = NO_DUE_DATES_MESSAGE
    return PaceSummaryResponse(
        student_id=student_id,
        term_key=term.term_key,
        status=result.status,
        pace=result.pace,
        pace_track=result.pace_track,
        first_course=result.first_course,
        courses=[reg.course_id for reg in result.classification.registrations],
        message=message,
    )


@router.get('/{student_id}/milestones', response_model=list[EffectiveMilestoneItem])
def list_milestones(
    student_id: str,
    user: dict = Depends(require_auth_user),
    data: DataCache = Depends(get_data_cache),
):
    assert_student_scope(user, student_id)
    term = get_active_term(data)
    if term is None:
        return []
    result = resolve_pace(data, student_id, term.term_key)
    if not result.has_milestones:
        return []
    return [
        EffectiveMilestoneItem(
            pace_index=row.pace_index,
            unit=row.unit,
            ms_type=row.ms_type.value,
            term_date=row.term_date,
            effective_date=row.effective_date,
            override_reason=row.override_reason,
        )
        for row in effective_milestones(data, term.term_key, student_id, result.pace, result.pace_track)
    ]


@router.get('/{student_id}/calendar')
def student_calendar(
    student_id: str,
    user: dict = Depends(require_auth_user),
    data: DataCache = Depends(get_data_cache),
):
    assert_student_scope(user, student_id)
    return get_student_calendar(data, student_id)


@router.get('/{student_id}/outline/{course_id}')
def course_outline(
    student_id: str,
    course_id: str,
    user: dict = Depends(require_auth_user),
    data: DataCache = Depends(get_data_cache),
):
    assert_student_scope(user, student_id)
    payload = get_course_outline(data, student_id, course_id)
    if payload is None:
        raise HTTPException(status_code=404, detail='Registration not found')
    return payload
