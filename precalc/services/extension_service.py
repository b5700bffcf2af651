from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum

from sqlalchemy import or_

from precalc.cache import DataCache, cache_key
from precalc.config import settings
from precalc.core.time_provider import TimeProvider, default_time_provider
from precalc.metrics import record_event, timed_service
from precalc.models import Accommodation, MilestoneType, OverrideReason, Term
from precalc.services.milestone_service import (
    MilestoneKey,
    effective_date,
    get_student_overrides,
    record_override,
)
from precalc.services.catalog_service import get_active_term, get_term


logger = logging.getLogger(__name__)

NOT_ELIGIBLE = -1
ALREADY_APPLIED = 0

EXTENDABLE_TYPES = frozenset({MilestoneType.REVIEW_EXAM, MilestoneType.FINAL_EXAM})


class ExtensionPool(str, Enum):
    ACCOMMODATION = 'accommodation'
    FREE = 'free'

    @property
    def reason(self) -> OverrideReason:
        if self is ExtensionPool.ACCOMMODATION:
            return OverrideReason.ACCOMMODATION
        return OverrideReason.FREE


@dataclass(frozen=True)
class ExtensionResult:
    ok: bool
    outcome: str
    requested_days: int = 0
    granted_days: int = 0
    new_date: date | None = None

    @property
    def capped(self) -> bool:
        return self.ok and self.granted_days < self.requested_days


def active_accommodation_days(data: DataCache, student_id: str, as_of: date) -> int:
    def _load() -> int:
        rows = (
            data.db.query(Accommodation)
            .filter(
                Accommodation.student_id == student_id,
                or_(Accommodation.start_date.is_(None), Accommodation.start_date <= as_of),
                or_(Accommodation.end_date.is_(None), Accommodation.end_date >= as_of),
            )
            .all()
        )
        return max((int(row.extension_days or 0) for row in rows), default=0)

    return data.get_or_load(cache_key('accommodation', student_id, as_of.isoformat()), _load)


def has_active_accommodation(data: DataCache, student_id: str, as_of: date) -> bool:
    return active_accommodation_days(data, student_id, as_of) > 0


def _resolve_term(data: DataCache, term_key: str | None) -> Term | None:
    if term_key:
        return get_term(data, term_key)
    return get_active_term(data)


def _require_extendable(ms_type: MilestoneType) -> None:
    if ms_type not in EXTENDABLE_TYPES:
        raise ValueError(f'extensions apply only to RE and FE milestones, not {ms_type.value}')


def pool_consumed(
    data: DataCache,
    *,
    student_id: str,
    term_key: str,
    pace: int,
    track: str,
    key: MilestoneKey,
    pool: ExtensionPool,
) -> bool:
    # A pool row is only ever written for a positive grant.
    rows = get_student_overrides(data, student_id, term_key, pace, track).get(key, [])
    return any(row.reason == pool.reason.value for row in rows)


def days_available(
    data: DataCache,
    student_id: str,
    track: str,
    pace: int,
    pace_index: int,
    unit: int,
    ms_type: MilestoneType,
    pool: ExtensionPool,
    *,
    term_key: str | None = None,
    time_provider: TimeProvider = default_time_provider,
) -> int:
    """Days this pool could still add to the milestone.

    Returns a positive day count, ``ALREADY_APPLIED`` (0) when this pool has
    already moved the deadline, or ``NOT_ELIGIBLE`` (-1) when the student does
    not qualify or the milestone cannot be found.
    """
    _require_extendable(ms_type)
    term = _resolve_term(data, term_key)
    if term is None:
        return NOT_ELIGIBLE

    key = MilestoneKey(pace_index=pace_index, unit=unit, ms_type=ms_type)
    if effective_date(data, term.term_key, student_id, pace, track, key) is None:
        return NOT_ELIGIBLE

    if pool_consumed(data, student_id=student_id, term_key=term.term_key, pace=pace, track=track, key=key, pool=pool):
        return ALREADY_APPLIED

    if pool is ExtensionPool.ACCOMMODATION:
        days = active_accommodation_days(data, student_id, time_provider.today())
    else:
        days = settings.free_extension_days
    return days if days > 0 else NOT_ELIGIBLE


def _finish(pool: ExtensionPool, result: ExtensionResult) -> ExtensionResult:
    record_event(f'extension_{pool.value}_{result.outcome}')
    return result


@timed_service('apply_extension')
def apply_extension(
    data: DataCache,
    student_id: str,
    track: str,
    pace: int,
    pace_index: int,
    unit: int,
    ms_type: MilestoneType,
    pool: ExtensionPool,
    *,
    term_key: str | None = None,
    time_provider: TimeProvider = default_time_provider,
) -> ExtensionResult:
    """Moves the student's deadline forward by the days the pool allows, at most once per pool.

    The new deadline never passes the last day of the term; when it would, the
    grant is cut to the days remaining and the result reports both amounts.
    """
    available = days_available(
        data,
        student_id,
        track,
        pace,
        pace_index,
        unit,
        ms_type,
        pool,
        term_key=term_key,
        time_provider=time_provider,
    )
    if available == ALREADY_APPLIED:
        return _finish(pool, ExtensionResult(ok=False, outcome='already_applied'))
    if available < 0:
        return _finish(pool, ExtensionResult(ok=False, outcome='not_eligible'))

    term = _resolve_term(data, term_key)
    key = MilestoneKey(pace_index=pace_index, unit=unit, ms_type=ms_type)
    current = effective_date(data, term.term_key, student_id, pace, track, key)
    remaining = (term.end_date - current).days
    granted = min(available, max(0, remaining))
    if granted <= 0:
        logger.info('extension_term_ended student_id=%s pool=%s key=%s', student_id, pool.value, key)
        return _finish(pool, ExtensionResult(ok=False, outcome='term_ended', requested_days=available))

    new_date = current + timedelta(days=granted)
    record_override(
        data,
        student_id=student_id,
        term_key=term.term_key,
        pace=pace,
        track=track,
        key=key,
        new_date=new_date,
        reason=pool.reason,
        time_provider=time_provider,
    )
    outcome = 'capped' if granted < available else 'applied'
    logger.info(
        'extension_applied student_id=%s pool=%s key=%s requested=%s granted=%s',
        student_id,
        pool.value,
        key,
        available,
        granted,
    )
    return _finish(
        pool,
        ExtensionResult(ok=True, outcome=outcome, requested_days=available, granted_days=granted, new_date=new_date),
    )
