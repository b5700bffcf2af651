from datetime import date, timedelta
from pathlib import Path
import sys


# Ensure imports work when running this file directly: `python scripts/init_db.py`.
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from precalc.core.time_provider import default_time_provider
from precalc.db import Base, SessionLocal, engine
from precalc.models import Accommodation, Course, Milestone, MilestoneType, Registration, Term


TERM_KEY = 'SP99'
COURSES = (
    ('M 117', 'MATH 117', 'College Algebra in Context I'),
    ('M 118', 'MATH 118', 'College Algebra in Context II'),
    ('M 124', 'MATH 124', 'Logarithmic and Exponential Functions'),
    ('M 125', 'MATH 125', 'Numerical Trigonometry'),
    ('M 126', 'MATH 126', 'Analytic Trigonometry'),
)
UNIT_TYPES = (
    MilestoneType.HOMEWORK_1,
    MilestoneType.HOMEWORK_2,
    MilestoneType.HOMEWORK_3,
    MilestoneType.REVIEW_EXAM,
    MilestoneType.UNIT_EXAM,
)


def _weekday(day: date) -> date:
    while day.weekday() >= 5:
        day += timedelta(days=1)
    return day


def track_a_milestones(pace: int, start: date) -> list[Milestone]:
    """One milestone per weekday, course after course, with the final exam closing each course."""
    rows = []
    due = start
    for pace_index in range(1, pace + 1):
        for unit in range(1, 5):
            for ms_type in UNIT_TYPES:
                due = _weekday(due)
                rows.append(Milestone(term_key=TERM_KEY, pace=pace, pace_track='A', pace_index=pace_index, unit=unit, ms_type=ms_type.value, ms_date=due))
                due += timedelta(days=1)
        due = _weekday(due)
        rows.append(Milestone(term_key=TERM_KEY, pace=pace, pace_track='A', pace_index=pace_index, unit=5, ms_type=MilestoneType.FINAL_EXAM.value, ms_date=due))
        due += timedelta(days=3)
    return rows


Base.metadata.create_all(bind=engine)

db = SessionLocal()
try:
    if not db.query(Term).first():
        today = default_time_provider.today()
        start = today - timedelta(days=today.weekday())
        db.add(Term(term_key=TERM_KEY, name='Demo Term', start_date=start, end_date=start + timedelta(days=110), active=True))
        for course_id, label, name in COURSES:
            db.add(Course(course_id=course_id, label=label, name=name, is_standards_based=course_id != 'M 117'))
        for pace in (1, 2, 3):
            db.add_all(track_a_milestones(pace, start))

        db.add_all(
            [
                Registration(student_id='888888888', course_id='M 117', term_key=TERM_KEY, pace_order=1, open_status='Y'),
                Registration(student_id='888888888', course_id='M 125', term_key=TERM_KEY, pace_order=2),
                Accommodation(student_id='888888888', extension_days=3),
            ]
        )
        db.commit()
finally:
    db.close()

print('DB initialized with sample data.')
