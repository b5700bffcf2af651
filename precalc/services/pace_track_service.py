from __future__ import annotations

import logging
from dataclasses import dataclass

from precalc.cache import DataCache, cache_key
from precalc.models import PaceTrackRule, Registration, StudentTerm
from precalc.services.registration_service import (
    CREDIT_BY_EXAM,
    PaceClassification,
    classify_student,
    get_term_registrations,
    is_counted_toward_pace,
    is_dropped_or_ignored,
    is_precalc_course,
    pace_registrations,
)
from precalc.services.catalog_service import get_active_term


logger = logging.getLogger(__name__)

DEFAULT_TRACK = 'A'
LATE_START_SECTIONS = frozenset({'002'})
IN_PERSON_SECTIONS = frozenset({'003', '004', '005', '006', '007'})
STATUS_OK = 'ok'
STATUS_NOT_REGISTERED = 'not_registered'
STATUS_INDETERMINATE = 'indeterminate'


@dataclass
class PaceResult:
    status: str
    classification: PaceClassification
    pace: int = 0
    pace_track: str | None = None
    first_course: str | None = None

    @property
    def has_milestones(self) -> bool:
        return self.status == STATUS_OK


def determine_pace(registrations: list[Registration]) -> int:
    return len(pace_registrations(registrations))


def _is_candidate(reg: Registration) -> bool:
    return is_precalc_course(reg.course_id) and not reg.synthetic and reg.instruction_type != CREDIT_BY_EXAM


def pace_section_registration(registrations: list[Registration]) -> Registration | None:
    """Picks the registration whose section decides the track.

    Regular registrations win, then counted incompletes, then (as a last
    resort) the final non-counted incomplete.
    """
    candidates = [reg for reg in registrations if _is_candidate(reg)]
    for reg in candidates:
        if not reg.incomplete and not is_dropped_or_ignored(reg):
            return reg
    for reg in candidates:
        if reg.incomplete and reg.incomplete_counted:
            return reg
    chosen = None
    for reg in candidates:
        if reg.incomplete and not reg.incomplete_counted and not is_dropped_or_ignored(reg):
            chosen = reg
    return chosen


def _counts_course(registrations: list[Registration], course_ids: set[str]) -> bool:
    return any(reg.course_id in course_ids and is_counted_toward_pace(reg) for reg in registrations)


def builtin_pace_track(registrations: list[Registration], pace: int) -> str:
    section_reg = pace_section_registration(registrations)
    section = section_reg.section if section_reg else None

    if section in LATE_START_SECTIONS:
        return 'C'
    if section in IN_PERSON_SECTIONS:
        return 'E' if _counts_course(registrations, {'MATH 125', 'MATH 126'}) else 'D'
    if pace == 2:
        return 'A' if _counts_course(registrations, {'M 125', 'MATH 125'}) else 'B'
    if pace == 1:
        return 'A' if _counts_course(registrations, {'M 117', 'M 124', 'MATH 117', 'MATH 124'}) else 'B'
    return DEFAULT_TRACK


def _split_values(raw: str, sep: str) -> list[str]:
    return [item.strip() for item in raw.split(sep) if item.strip()]


def criteria_matches(criteria: str, ordered_courses: list[str], registrations: list[Registration], section: str | None) -> bool:
    for clause in _split_values(criteria or '', ';'):
        name, _, value = clause.partition('=')
        name = name.strip().lower()
        if name == 'courses':
            if _split_values(value, ',') != ordered_courses:
                return False
        elif name == 'includes':
            if not _counts_course(registrations, set(_split_values(value, '|'))):
                return False
        elif name == 'sections':
            if section not in set(_split_values(value, '|')):
                return False
        else:
            logger.warning('pace_track_rule_unknown_clause clause=%s', clause)
            return False
    return True


def match_pace_track_rule(
    rules: list[PaceTrackRule],
    registrations: list[Registration],
    ordered: list[Registration],
    pace: int,
) -> str | None:
    section_reg = pace_section_registration(registrations)
    section = section_reg.section if section_reg else None
    subterm = (section_reg.subterm or '') if section_reg else ''
    ordered_courses = [reg.course_id for reg in ordered]

    for rule in rules:
        if rule.pace != pace:
            continue
        if rule.subterm not in ('', '*') and rule.subterm != subterm:
            continue
        if criteria_matches(rule.criteria, ordered_courses, registrations, section):
            return rule.pace_track
    return None


def get_pace_track_rules(data: DataCache, term_key: str) -> list[PaceTrackRule]:
    def _load() -> list[PaceTrackRule]:
        return (
            data.db.query(PaceTrackRule)
            .filter(PaceTrackRule.term_key == term_key)
            .order_by(PaceTrackRule.id.asc())
            .all()
        )

    return data.get_or_load(cache_key('pace_track_rules', term_key), _load)


def determine_pace_track(
    registrations: list[Registration],
    pace: int,
    *,
    ordered: list[Registration] | None = None,
    rules: list[PaceTrackRule] | None = None,
) -> str:
    """Resolves the track letter for ``pace``.

    The term's rule table is consulted first (first matching rule wins). With
    no rule table, or no matching rule, the section-based track assignment
    applies, and its own fallback is track "A".
    """
    if pace <= 0:
        return DEFAULT_TRACK
    if rules:
        matched = match_pace_track_rule(rules, registrations, ordered or pace_registrations(registrations), pace)
        if matched:
            return matched
        logger.info('pace_track_rule_miss pace=%s falling_back=builtin', pace)
    return builtin_pace_track(registrations, pace)


def _course_number(course_id: str) -> str:
    for prefix in ('MATH ', 'M '):
        if course_id.startswith(prefix):
            return course_id[len(prefix):]
    return course_id


def _lowest_course(regs: list[Registration]) -> str | None:
    if not regs:
        return None
    return min(regs, key=lambda reg: _course_number(reg.course_id)).course_id


def determine_first_course(registrations: list[Registration]) -> str | None:
    counted = pace_registrations(registrations)
    open_regs = [reg for reg in counted if reg.open_status == 'Y']
    not_open = [reg for reg in counted if reg.open_status != 'Y']

    first = None
    if open_regs:
        for reg in open_regs:
            if reg.pace_order == 1:
                return reg.course_id
        ordered = [reg for reg in open_regs if reg.pace_order is not None]
        if ordered:
            first = min(ordered, key=lambda reg: reg.pace_order).course_id
        else:
            first = _lowest_course(open_regs)
    else:
        satisfied = [reg for reg in not_open if reg.prereq_satisfied in ('Y', 'P')]
        first = _lowest_course(satisfied) or _lowest_course(not_open)

    if first is None:
        for reg in registrations:
            if reg.incomplete and not reg.incomplete_counted:
                first = reg.course_id
    return first


def resolve_pace(data: DataCache, student_id: str, term_key: str) -> PaceResult:
    classification = classify_student(data, student_id, term_key)
    if classification.pace == 0:
        return PaceResult(status=STATUS_NOT_REGISTERED, classification=classification)
    if not classification.valid:
        return PaceResult(status=STATUS_INDETERMINATE, classification=classification, pace=classification.pace)

    registrations = get_term_registrations(data, student_id, term_key)
    track = determine_pace_track(
        registrations,
        classification.pace,
        ordered=classification.registrations,
        rules=get_pace_track_rules(data, term_key),
    )
    return PaceResult(
        status=STATUS_OK,
        classification=classification,
        pace=classification.pace,
        pace_track=track,
        first_course=determine_first_course(registrations),
    )


def update_student_term(data: DataCache, student_id: str, *, term_key: str | None = None) -> StudentTerm | None:
    """Keeps the stored pace, track and first course in step with ``resolve_pace``.

    A row is only kept while the student's pace resolves cleanly; students who
    dropped to pace 0 or whose ordering is indeterminate lose their row.
    """
    if term_key is None:
        term = get_active_term(data)
        if term is None:
            return None
        term_key = term.term_key

    result = resolve_pace(data, student_id, term_key)
    existing = (
        data.db.query(StudentTerm)
        .filter(StudentTerm.student_id == student_id, StudentTerm.term_key == term_key)
        .first()
    )

    if result.status != STATUS_OK:
        if existing is not None:
            logger.info('student_term_delete student_id=%s term=%s status=%s', student_id, term_key, result.status)
            data.db.delete(existing)
            data.db.commit()
        return None

    first = result.first_course or ''
    if existing is None:
        existing = StudentTerm(
            student_id=student_id,
            term_key=term_key,
            pace=result.pace,
            pace_track=result.pace_track,
            first_course=first,
        )
        data.db.add(existing)
        logger.info('student_term_insert student_id=%s pace=%s track=%s first=%s', student_id, result.pace, result.pace_track, first)
    elif (existing.pace, existing.pace_track, existing.first_course) != (result.pace, result.pace_track, first):
        existing.pace = result.pace
        existing.pace_track = result.pace_track
        existing.first_course = first
        logger.info('student_term_update student_id=%s pace=%s track=%s first=%s', student_id, result.pace, result.pace_track, first)
    data.db.commit()
    data.db.refresh(existing)
    return existing


def refresh_student_terms(data: DataCache, term_key: str | None = None) -> dict[str, int]:
    """Runs ``update_student_term`` for every student registered in, or stored for, the term."""
    if term_key is None:
        term = get_active_term(data)
        if term is None:
            return {'kept': 0, 'removed': 0, 'skipped': 0}
        term_key = term.term_key

    registered = {row[0] for row in data.db.query(Registration.student_id).filter(Registration.term_key == term_key)}
    stored = {row[0] for row in data.db.query(StudentTerm.student_id).filter(StudentTerm.term_key == term_key)}

    counts = {'kept': 0, 'removed': 0, 'skipped': 0}
    for student_id in sorted(registered | stored):
        if update_student_term(data, student_id, term_key=term_key) is not None:
            counts['kept'] += 1
        elif student_id in stored:
            counts['removed'] += 1
        else:
            counts['skipped'] += 1
    logger.info(
        'student_terms_refreshed term=%s kept=%s removed=%s skipped=%s',
        term_key,
        counts['kept'],
        counts['removed'],
        counts['skipped'],
    )
    return counts
