from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from precalc.cache import DataCache, get_data_cache
from precalc.core.router_guard import assert_student_scope, require_auth_user
from precalc.route_logging import EndpointNameRoute
from precalc.schemas import MasteryStatusResponse
from precalc.services.catalog_service import get_active_term, get_course
from precalc.services.mastery_service import compute_mastery_status
from precalc.services.pace_track_service import resolve_pace
from precalc.services.registration_service import get_pace_registration


router = APIRouter(prefix='/api/mastery', tags=['Mastery'], route_class=EndpointNameRoute)


@router.get('/{student_id}/{course_id}', response_model=MasteryStatusResponse)
def mastery_status(
    student_id: str,
    course_id: str,
    user: dict = Depends(require_auth_user),
    data: DataCache = Depends(get_data_cache),
):
    assert_student_scope(user, student_id)
    course = get_course(data, course_id)
    if course is None:
        raise HTTPException(status_code=404, detail='Course not found')
    if not course.is_standards_based:
        raise HTTPException(status_code=400, detail='Course does not use standards-based grading')

    term = get_active_term(data)
    if term is None:
        raise HTTPException(status_code=404, detail='No active term')
    pace = resolve_pace(data, student_id, term.term_key)
    registration = get_pace_registration(data, student_id, course_id, term.term_key)
    if registration is None:
        raise HTTPException(status_code=404, detail='Registration not found')
    if not pace.has_milestones:
        raise HTTPException(status_code=409, detail='Unable to look up due dates for your combination of courses.')

    snapshot = compute_mastery_status(data, student_id, course, pace.pace, pace.pace_track, registration)
    return MasteryStatusResponse(
        student_id=student_id,
        course_id=course_id,
        pace=pace.pace,
        pace_track=pace.pace_track,
        homework_status=[state.name.lower() for state in snapshot.homework_status],
        mastery_status=[state.name.lower() for state in snapshot.mastery_status],
        mastered_first_half=snapshot.mastered_first_half,
        mastered_second_half=snapshot.mastered_second_half,
        pending_first_half=snapshot.pending_first_half,
        pending_second_half=snapshot.pending_second_half,
        score=snapshot.score,
    )
