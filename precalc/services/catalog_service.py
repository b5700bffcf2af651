from __future__ import annotations

from datetime import date

from precalc.cache import DataCache, cache_key
from precalc.models import CampusCalendar, Course, Term


HOLIDAY = 'holiday'


def get_active_term(data: DataCache) -> Term | None:
    def _load() -> Term | None:
        return data.db.query(Term).filter(Term.active.is_(True)).order_by(Term.id.desc()).first()

    return data.get_or_load(cache_key('term', 'active'), _load)


def get_term(data: DataCache, term_key: str) -> Term | None:
    def _load() -> Term | None:
        return data.db.query(Term).filter(Term.term_key == term_key).first()

    return data.get_or_load(cache_key('term', term_key), _load)


def get_holidays(data: DataCache, term: Term) -> set[date]:
    def _load() -> set[date]:
        rows = (
            data.db.query(CampusCalendar)
            .filter(
                CampusCalendar.campus_date >= term.start_date,
                CampusCalendar.campus_date <= term.end_date,
            )
            .all()
        )
        return {row.campus_date for row in rows if (row.description or '').strip().lower() == HOLIDAY}

    return data.get_or_load(cache_key('holidays', term.term_key), _load)


def get_course(data: DataCache, course_id: str) -> Course | None:
    def _load() -> Course | None:
        return data.db.query(Course).filter(Course.course_id == course_id).first()

    return data.get_or_load(cache_key('course', course_id), _load)
