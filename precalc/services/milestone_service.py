from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date

from precalc.cache import DataCache, cache_key
from precalc.core.time_provider import TimeProvider, default_time_provider
from precalc.models import (
    Milestone,
    MilestoneType,
    OverrideReason,
    StandardMilestone,
    StandardMilestoneType,
    StudentMilestone,
    StudentStandardMilestone,
)


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MilestoneKey:
    pace_index: int
    unit: int
    ms_type: MilestoneType


@dataclass(frozen=True)
class EffectiveMilestone:
    key: MilestoneKey
    term_date: date
    effective_date: date
    override_reason: str | None = None

    @property
    def pace_index(self) -> int:
        return self.key.pace_index

    @property
    def unit(self) -> int:
        return self.key.unit

    @property
    def ms_type(self) -> MilestoneType:
        return self.key.ms_type

    @property
    def overridden(self) -> bool:
        return self.override_reason is not None


def _parse_type(raw: str) -> MilestoneType | None:
    try:
        return MilestoneType(raw)
    except ValueError:
        logger.warning('milestone_unknown_type ms_type=%s', raw)
        return None


def milestone_key(row: Milestone | StudentMilestone) -> MilestoneKey | None:
    ms_type = _parse_type(row.ms_type)
    if ms_type is None:
        return None
    return MilestoneKey(pace_index=row.pace_index, unit=row.unit, ms_type=ms_type)


def _student_prefix(student_id: str) -> str:
    return cache_key('student_milestones', student_id)


def resolve_milestones(data: DataCache, term_key: str, pace: int, track: str) -> list[Milestone]:
    """Term-wide milestones for an exact (term, pace, track), ordered by slot, unit and date."""

    def _load() -> list[Milestone]:
        rows = (
            data.db.query(Milestone)
            .filter(
                Milestone.term_key == term_key,
                Milestone.pace == pace,
                Milestone.pace_track == track,
            )
            .order_by(Milestone.pace_index.asc(), Milestone.unit.asc(), Milestone.ms_date.asc(), Milestone.id.asc())
            .all()
        )
        seen: set[MilestoneKey] = set()
        result: list[Milestone] = []
        for row in rows:
            key = milestone_key(row)
            if key is None:
                continue
            if key in seen:
                logger.warning('milestone_duplicate_key term=%s pace=%s track=%s key=%s', term_key, pace, track, key)
                continue
            seen.add(key)
            result.append(row)
        return result

    return data.get_or_load(cache_key('milestones', term_key, pace, track), _load)


def get_student_overrides(
    data: DataCache,
    student_id: str,
    term_key: str,
    pace: int,
    track: str,
) -> dict[MilestoneKey, list[StudentMilestone]]:
    def _load() -> dict[MilestoneKey, list[StudentMilestone]]:
        rows = (
            data.db.query(StudentMilestone)
            .filter(
                StudentMilestone.student_id == student_id,
                StudentMilestone.term_key == term_key,
                StudentMilestone.pace == pace,
                StudentMilestone.pace_track == track,
            )
            .order_by(StudentMilestone.id.asc())
            .all()
        )
        by_key: dict[MilestoneKey, list[StudentMilestone]] = {}
        for row in rows:
            key = milestone_key(row)
            if key is not None:
                by_key.setdefault(key, []).append(row)
        return by_key

    return data.get_or_load(cache_key(_student_prefix(student_id), term_key, pace, track), _load)


def find_milestone(data: DataCache, term_key: str, pace: int, track: str, key: MilestoneKey) -> Milestone | None:
    for row in resolve_milestones(data, term_key, pace, track):
        if milestone_key(row) == key:
            return row
    return None


def latest_override(
    data: DataCache,
    student_id: str,
    term_key: str,
    pace: int,
    track: str,
    key: MilestoneKey,
) -> StudentMilestone | None:
    rows = get_student_overrides(data, student_id, term_key, pace, track).get(key, [])
    return rows[-1] if rows else None


def effective_date(
    data: DataCache,
    term_key: str,
    student_id: str,
    pace: int,
    track: str,
    key: MilestoneKey,
) -> date | None:
    override = latest_override(data, student_id, term_key, pace, track, key)
    if override is not None:
        return override.ms_date
    row = find_milestone(data, term_key, pace, track, key)
    return row.ms_date if row else None


def effective_milestones(
    data: DataCache,
    term_key: str,
    student_id: str,
    pace: int,
    track: str,
) -> list[EffectiveMilestone]:
    overrides = get_student_overrides(data, student_id, term_key, pace, track)
    result: list[EffectiveMilestone] = []
    for row in resolve_milestones(data, term_key, pace, track):
        key = milestone_key(row)
        rows = overrides.get(key, [])
        if rows:
            latest = rows[-1]
            result.append(EffectiveMilestone(key=key, term_date=row.ms_date, effective_date=latest.ms_date, override_reason=latest.reason))
        else:
            result.append(EffectiveMilestone(key=key, term_date=row.ms_date, effective_date=row.ms_date))
    return result


def slot_matches(pace_index: int, pace_order: int) -> bool:
    # Slot 0 holds course-independent items that belong with the first course.
    if pace_order == 1:
        return pace_index in (0, 1)
    return pace_index == pace_order


def milestones_for_registration(milestones: list[EffectiveMilestone], pace_order: int) -> list[EffectiveMilestone]:
    return [row for row in milestones if slot_matches(row.pace_index, pace_order)]


def milestones_for_component(
    milestones: list[EffectiveMilestone],
    pace_order: int,
    unit: int,
    ms_type: MilestoneType,
) -> list[EffectiveMilestone]:
    return [
        row
        for row in milestones_for_registration(milestones, pace_order)
        if row.unit == unit and row.ms_type is ms_type
    ]


def deadline_milestones(milestones: list[EffectiveMilestone]) -> list[EffectiveMilestone]:
    return [row for row in milestones if row.ms_type.is_deadline]


def record_override(
    data: DataCache,
    *,
    student_id: str,
    term_key: str,
    pace: int,
    track: str,
    key: MilestoneKey,
    new_date: date,
    reason: OverrideReason,
    time_provider: TimeProvider = default_time_provider,
) -> StudentMilestone:
    row = StudentMilestone(
        student_id=student_id,
        term_key=term_key,
        pace=pace,
        pace_track=track,
        pace_index=key.pace_index,
        unit=key.unit,
        ms_type=key.ms_type.value,
        ms_date=new_date,
        reason=reason.value,
        created_at=time_provider.wall_clock(),
    )
    data.db.add(row)
    data.db.commit()
    data.db.refresh(row)
    data.invalidate_prefix(_student_prefix(student_id))
    logger.info(
        'milestone_override_recorded student_id=%s key=%s date=%s reason=%s',
        student_id,
        key,
        new_date.isoformat(),
        reason.value,
    )
    return row


def standard_milestone_date(
    data: DataCache,
    student_id: str,
    track: str,
    pace: int,
    pace_index: int,
    unit: int,
    objective: int,
    ms_type: StandardMilestoneType = StandardMilestoneType.MASTERY,
) -> date | None:
    def _load_term() -> dict[tuple[int, int, int, str], date]:
        rows = (
            data.db.query(StandardMilestone)
            .filter(StandardMilestone.pace_track == track, StandardMilestone.pace == pace)
            .all()
        )
        return {(row.pace_index, row.unit, row.objective, row.ms_type): row.ms_date for row in rows}

    def _load_student() -> dict[tuple[int, int, int, str], date]:
        rows = (
            data.db.query(StudentStandardMilestone)
            .filter(
                StudentStandardMilestone.student_id == student_id,
                StudentStandardMilestone.pace_track == track,
                StudentStandardMilestone.pace == pace,
            )
            .order_by(StudentStandardMilestone.id.asc())
            .all()
        )
        return {(row.pace_index, row.unit, row.objective, row.ms_type): row.ms_date for row in rows}

    term_dates = data.get_or_load(cache_key('standard_milestones', track, pace), _load_term)
    student_dates = data.get_or_load(cache_key(_student_prefix(student_id), 'standard', track, pace), _load_student)
    lookup = (pace_index, unit, objective, ms_type.value)
    if lookup in student_dates:
        return student_dates[lookup]
    return term_dates.get(lookup)
