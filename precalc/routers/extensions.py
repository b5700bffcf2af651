from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Form

from precalc.cache import DataCache, get_data_cache
from precalc.config import settings
from precalc.core.router_guard import is_effective_user, require_auth_user
from precalc.models import MilestoneType
from precalc.route_logging import EndpointNameRoute
from precalc.schemas import ExtensionResponse
from precalc.services.extension_service import EXTENDABLE_TYPES, ExtensionPool, ExtensionResult, apply_extension


logger = logging.getLogger(__name__)

router = APIRouter(prefix='/api/extensions', tags=['Extensions'], route_class=EndpointNameRoute)


def _failure_message(pool: ExtensionPool) -> str:
    return (
        f'We were unable to apply your {pool.value} extension. '
        f'Please send an email to {settings.support_email} to let us know of this issue.'
    )


def _exam_label(ms_type: MilestoneType, unit: int) -> str:
    if ms_type is MilestoneType.REVIEW_EXAM:
        return f'Unit {unit} Review Exam'
    if ms_type is MilestoneType.FINAL_EXAM:
        return 'Final Exam'
    return 'Exam'


def extension_message(pool: ExtensionPool, result: ExtensionResult, unit: int, ms_type: MilestoneType) -> str:
    if not result.ok:
        return _failure_message(pool)
    label = _exam_label(ms_type, unit)
    if pool is ExtensionPool.FREE:
        return f'Your free extension on the {label} has been applied.'
    if result.capped:
        return (
            f'You had an extension of {result.requested_days} days available for the {label} based on your '
            f'accommodation, but there were only {result.granted_days} days before the end of the term, so we moved '
            'your deadline to the end of the term. If you cannot finish the course by the end of the term, please '
            f'send an email to {settings.support_email} to discuss your situation.'
        )
    return f'Your accommodation extension on the {label} has been applied.'


def _failed(pool: ExtensionPool) -> ExtensionResponse:
    return ExtensionResponse(ok=False, outcome='invalid_request', message=_failure_message(pool))


def _handle_request(
    pool: ExtensionPool,
    user: dict,
    data: DataCache,
    *,
    stu: str,
    track: str,
    pace: str,
    index: str,
    unit: str,
    ms_type: str,
) -> ExtensionResponse:
    if not all(value.strip() for value in (stu, track, pace, index, unit, ms_type)):
        logger.warning('extension_missing_params pool=%s stu=%s', pool.value, stu)
        return _failed(pool)

    if not is_effective_user(user, stu):
        logger.warning(
            'extension_identity_mismatch pool=%s stu=%s effective_user=%s',
            pool.value,
            stu,
            user.get('user_id'),
        )
        return _failed(pool)

    try:
        pace_value = int(pace)
        index_value = int(index)
        unit_value = int(unit)
        type_value = MilestoneType(ms_type.strip().upper())
        if type_value not in EXTENDABLE_TYPES:
            raise ValueError(f'unsupported milestone type {type_value.value}')
        result = apply_extension(
            data,
            stu,
            track.strip(),
            pace_value,
            index_value,
            unit_value,
            type_value,
            pool,
        )
    except ValueError as exc:
        logger.warning('extension_invalid_params pool=%s stu=%s error=%s', pool.value, stu, exc)
        return _failed(pool)

    return ExtensionResponse(
        ok=result.ok,
        outcome=result.outcome,
        requested_days=result.requested_days,
        granted_days=result.granted_days,
        new_date=result.new_date,
        message=extension_message(pool, result, unit_value, type_value),
    )


@router.post('/accommodation', response_model=ExtensionResponse)
def request_accommodation_extension(
    stu: str = Form(default=''),
    track: str = Form(default=''),
    pace: str = Form(default=''),
    index: str = Form(default=''),
    unit: str = Form(default=''),
    type: str = Form(default=''),
    user: dict = Depends(require_auth_user),
    data: DataCache = Depends(get_data_cache),
):
    return _handle_request(
        ExtensionPool.ACCOMMODATION,
        user,
        data,
        stu=stu,
        track=track,
        pace=pace,
        index=index,
        unit=unit,
        ms_type=type,
    )


@router.post('/free', response_model=ExtensionResponse)
def request_free_extension(
    stu: str = Form(default=''),
    track: str = Form(default=''),
    pace: str = Form(default=''),
    index: str = Form(default=''),
    unit: str = Form(default=''),
    type: str = Form(default=''),
    user: dict = Depends(require_auth_user),
    data: DataCache = Depends(get_data_cache),
):
    return _handle_request(
        ExtensionPool.FREE,
        user,
        data,
        stu=stu,
        track=track,
        pace=pace,
        index=index,
        unit=unit,
        ms_type=type,
    )
