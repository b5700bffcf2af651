import tempfile
import unittest
from datetime import date, datetime
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from precalc.cache import DataCache
from precalc.db import Base
from precalc.models import Course, HomeworkAttempt, MasteryAttempt, MasteryExam, Registration, StandardMilestone, StudentStandardMilestone
from precalc.services.mastery_service import (
    HomeworkStatus,
    MasteryState,
    StandardAttempt,
    attributed_date,
    compute_mastery_status,
    fold_homework,
    fold_mastery,
    summarize,
)


DEADLINE = date(2021, 2, 1)
ON_TIME = datetime(2021, 1, 31, 12, 0)
LATE = datetime(2021, 2, 3, 12, 0)


def _fixed_deadline(unit, objective):
    return DEADLINE


def _standards(count):
    return [(unit, objective) for unit in range(1, 9) for objective in range(1, 4)][:count]


class MasteryFoldTests(unittest.TestCase):
    def test_grace_period_credits_previous_day(self):
        self.assertEqual(attributed_date(datetime(2021, 2, 2, 0, 5), 10), date(2021, 2, 1))
        self.assertEqual(attributed_date(datetime(2021, 2, 2, 0, 15), 10), date(2021, 2, 2))

    def test_score_counts_on_time_and_late(self):
        standards = _standards(18)
        attempts = [StandardAttempt(unit, obj, True, ON_TIME) for unit, obj in standards[:10]]
        attempts += [StandardAttempt(unit, obj, True, LATE) for unit, obj in standards[10:]]

        snapshot = summarize(fold_homework([]), fold_mastery(attempts, _fixed_deadline))
        self.assertEqual(snapshot.score, 82)
        self.assertEqual(snapshot.mastered, 18)
        self.assertEqual((snapshot.mastered_first_half, snapshot.mastered_second_half), (12, 6))

        reversed_snapshot = summarize(fold_homework([]), fold_mastery(list(reversed(attempts)), _fixed_deadline))
        self.assertEqual(reversed_snapshot.score, 82)
        self.assertEqual(reversed_snapshot.mastery_status, snapshot.mastery_status)

    def test_score_by_course_half(self):
        standards = _standards(24)
        attempts = [StandardAttempt(unit, obj, True, ON_TIME) for unit, obj in standards[:10]]
        attempts += [StandardAttempt(unit, obj, True, LATE) for unit, obj in standards[12:20]]

        snapshot = summarize(fold_homework([]), fold_mastery(attempts, _fixed_deadline))
        self.assertEqual((snapshot.mastered_first_half, snapshot.mastered_second_half), (10, 8))
        self.assertEqual(snapshot.score, 82)

    def test_best_outcome_sticks(self):
        attempts = [
            StandardAttempt(1, 1, True, ON_TIME),
            StandardAttempt(1, 1, True, LATE),
            StandardAttempt(1, 1, False, LATE),
            StandardAttempt(1, 2, False, ON_TIME),
            StandardAttempt(1, 2, True, LATE),
            StandardAttempt(1, 3, False, ON_TIME),
        ]
        status = fold_mastery(attempts, _fixed_deadline)
        self.assertEqual(status[0], MasteryState.MASTERED_ON_TIME)
        self.assertEqual(status[1], MasteryState.MASTERED_LATE)
        self.assertEqual(status[2], MasteryState.ATTEMPTED)
        self.assertEqual(status[3], MasteryState.NOT_ATTEMPTED)

    def test_missing_deadline_counts_as_on_time(self):
        status = fold_mastery([StandardAttempt(2, 1, True, LATE)], lambda unit, objective: None)
        self.assertEqual(status[3], MasteryState.MASTERED_ON_TIME)

    def test_out_of_range_standards_are_ignored(self):
        attempts = [StandardAttempt(9, 1, True, ON_TIME), StandardAttempt(1, 4, True, ON_TIME)]
        self.assertEqual(set(fold_mastery(attempts, _fixed_deadline)), {MasteryState.NOT_ATTEMPTED})
        self.assertEqual(set(fold_homework(attempts)), {HomeworkStatus.NOT_ATTEMPTED})

    def test_pending_counts_passed_homework_without_mastery(self):
        homework = fold_homework(
            [
                StandardAttempt(1, 1, True, ON_TIME),
                StandardAttempt(1, 2, True, ON_TIME),
                StandardAttempt(1, 3, False, ON_TIME),
                StandardAttempt(6, 1, True, ON_TIME),
            ]
        )
        mastery = fold_mastery([StandardAttempt(1, 1, True, ON_TIME)], _fixed_deadline)
        snapshot = summarize(homework, mastery)
        self.assertEqual(homework[2], HomeworkStatus.ATTEMPTED)
        self.assertEqual((snapshot.pending_first_half, snapshot.pending_second_half), (1, 1))
        self.assertEqual(snapshot.mastered_first_half, 1)
        self.assertEqual(snapshot.score, 5)


class ComputeMasteryStatusTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls._tmpdir = tempfile.TemporaryDirectory()
        db_path = Path(cls._tmpdir.name) / 'test_mastery.db'
        cls._engine = create_engine(f"sqlite:///{db_path}", connect_args={'check_same_thread': False})
        cls._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=cls._engine)
        Base.metadata.create_all(bind=cls._engine)

    @classmethod
    def tearDownClass(cls):
        cls._engine.dispose()
        cls._tmpdir.cleanup()

    def setUp(self):
        db = self._session_factory()
        try:
            for table in (
                MasteryAttempt,
                MasteryExam,
                HomeworkAttempt,
                StudentStandardMilestone,
                StandardMilestone,
                Registration,
                Course,
            ):
                db.query(table).delete()
            db.add_all(
                [
                    Course(course_id='M 125', label='MATH 125', name='Numerical Trigonometry', is_standards_based=True),
                    Registration(student_id='888888888', course_id='M 125', term_key='SP21', pace_order=2, open_status='Y'),
                    StandardMilestone(pace_track='A', pace=2, pace_index=2, unit=1, objective=1, ms_type='MA', ms_date=date(2021, 2, 1)),
                    StandardMilestone(pace_track='A', pace=2, pace_index=2, unit=1, objective=2, ms_type='MA', ms_date=date(2021, 2, 1)),
                    StudentStandardMilestone(
                        student_id='888888888',
                        pace_track='A',
                        pace=2,
                        pace_index=2,
                        unit=1,
                        objective=2,
                        ms_type='MA',
                        ms_date=date(2021, 2, 5),
                    ),
                    MasteryExam(exam_id='25110ME', course_id='M 125', unit=1, objective=1),
                    MasteryExam(exam_id='25120ME', course_id='M 125', unit=1, objective=2),
                    MasteryExam(exam_id='25130ME', course_id='M 125', unit=1, objective=3),
                    HomeworkAttempt(student_id='888888888', course_id='M 125', unit=1, objective=3, passed=True, finished_at=ON_TIME),
                ]
            )
            db.add_all(
                [
                    MasteryAttempt(serial_number=1, exam_id='25110ME', student_id='888888888', finished_at=LATE, passed=True),
                    MasteryAttempt(serial_number=2, exam_id='25120ME', student_id='888888888', finished_at=LATE, passed=True),
                    MasteryAttempt(serial_number=3, exam_id='25130ME', student_id='888888888', finished_at=LATE, passed=False),
                ]
            )
            db.commit()
        finally:
            db.close()

    def test_student_deadline_override_and_pending_work(self):
        db = self._session_factory()
        try:
            data = DataCache(db=db)
            course = db.query(Course).filter(Course.course_id == 'M 125').one()
            registration = db.query(Registration).one()
            snapshot = compute_mastery_status(data, '888888888', course, 2, 'A', registration)

            self.assertEqual(snapshot.mastery_status[0], MasteryState.MASTERED_LATE)
            self.assertEqual(snapshot.mastery_status[1], MasteryState.MASTERED_ON_TIME)
            self.assertEqual(snapshot.mastery_status[2], MasteryState.ATTEMPTED)
            self.assertEqual(snapshot.pending_first_half, 1)
            self.assertEqual(snapshot.score, 9)
        finally:
            db.close()


if __name__ == '__main__':
    unittest.main()
