import tempfile
import unittest
from datetime import date
from pathlib import Path

from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from precalc.config import settings
from precalc.db import Base, get_db
from precalc.models import Accommodation, Course, Milestone, Registration, StudentMilestone, Term
from precalc.routers import extensions, mastery, pacing
from precalc.services.session_service import issue_session_token


STUDENT = '888888888'


class ExtensionRouterTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls._tmpdir = tempfile.TemporaryDirectory()
        db_path = Path(cls._tmpdir.name) / 'test_extension_router.db'
        cls._engine = create_engine(f"sqlite:///{db_path}", connect_args={'check_same_thread': False})
        cls._session_factory = sessionmaker(autocommit=False, autoflush=False, bind=cls._engine)
        Base.metadata.create_all(bind=cls._engine)

        app = FastAPI()
        app.include_router(extensions.router)
        app.include_router(pacing.router)
        app.include_router(mastery.router)

        def override_get_db():
            db = cls._session_factory()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = override_get_db
        cls.client = TestClient(app)

    @classmethod
    def tearDownClass(cls):
        cls.client.close()
        cls._engine.dispose()
        cls._tmpdir.cleanup()

    def setUp(self):
        db = self._session_factory()
        try:
            for table in (StudentMilestone, Accommodation, Milestone, Registration, Course, Term):
                db.query(table).delete()
            db.add_all(
                [
                    Term(term_key='SP21', name='Spring 2021', start_date=date(2021, 1, 4), end_date=date(2021, 5, 10), active=True),
                    Course(course_id='M 117', label='MATH 117', name='College Algebra in Context I', is_standards_based=False),
                    Course(course_id='M 125', label='MATH 125', name='Numerical Trigonometry', is_standards_based=True),
                    Registration(student_id=STUDENT, course_id='M 117', term_key='SP21', pace_order=1, open_status='Y'),
                    Registration(student_id=STUDENT, course_id='M 125', term_key='SP21', pace_order=2),
                    Milestone(term_key='SP21', pace=2, pace_track='A', pace_index=1, unit=1, ms_type='RE', ms_date=date(2021, 1, 5)),
                    Milestone(term_key='SP21', pace=2, pace_track='A', pace_index=2, unit=4, ms_type='RE', ms_date=date(2021, 5, 8)),
                    Accommodation(student_id=STUDENT, extension_days=3),
                ]
            )
            db.commit()
        finally:
            db.close()

    def _headers(self, user_id=STUDENT, role='student') -> dict:
        return {'Authorization': f'Bearer {issue_session_token(user_id, role)}'}

    def _form(self, **overrides) -> dict:
        form = {'stu': STUDENT, 'track': 'A', 'pace': '2', 'index': '1', 'unit': '1', 'type': 'RE'}
        form.update(overrides)
        return form

    def _override_count(self) -> int:
        db = self._session_factory()
        try:
            return db.query(StudentMilestone).count()
        finally:
            db.close()

    def _failure(self, pool: str) -> str:
        return (
            f'We were unable to apply your {pool} extension. '
            f'Please send an email to {settings.support_email} to let us know of this issue.'
        )

    def test_requires_session(self):
        response = self.client.post('/api/extensions/free', data=self._form())
        self.assertEqual(response.status_code, 401)

    def test_accommodation_extension_applied(self):
        response = self.client.post('/api/extensions/accommodation', data=self._form(), headers=self._headers())
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertTrue(body['ok'])
        self.assertEqual(body['new_date'], '2021-01-08')
        self.assertEqual(body['message'], 'Your accommodation extension on the Unit 1 Review Exam has been applied.')

    def test_free_extension_applied_once(self):
        first = self.client.post('/api/extensions/free', data=self._form(), headers=self._headers()).json()
        self.assertEqual(first['message'], 'Your free extension on the Unit 1 Review Exam has been applied.')
        second = self.client.post('/api/extensions/free', data=self._form(), headers=self._headers()).json()
        self.assertFalse(second['ok'])
        self.assertEqual(second['outcome'], 'already_applied')
        self.assertEqual(second['message'], self._failure('free'))
        self.assertEqual(self._override_count(), 1)

    def test_capped_accommodation_message(self):
        response = self.client.post(
            '/api/extensions/accommodation',
            data=self._form(index='2', unit='4'),
            headers=self._headers(),
        )
        body = response.json()
        self.assertEqual(body['outcome'], 'capped')
        self.assertEqual(body['new_date'], '2021-05-10')
        self.assertTrue(body['message'].startswith('You had an extension of 3 days available'))
        self.assertIn('only 2 days before the end of the term', body['message'])

    def test_identity_mismatch_is_refused(self):
        response = self.client.post('/api/extensions/free', data=self._form(), headers=self._headers(user_id='999999999'))
        body = response.json()
        self.assertFalse(body['ok'])
        self.assertEqual(body['message'], self._failure('free'))
        self.assertEqual(self._override_count(), 0)

    def test_malformed_fields_are_refused(self):
        for form in (
            self._form(pace='two'),
            self._form(unit=''),
            self._form(type='UE'),
            self._form(type='XX'),
        ):
            body = self.client.post('/api/extensions/accommodation', data=form, headers=self._headers()).json()
            self.assertFalse(body['ok'])
            self.assertEqual(body['message'], self._failure('accommodation'))
        self.assertEqual(self._override_count(), 0)

    def test_expired_accommodation_is_refused(self):
        db = self._session_factory()
        try:
            db.query(Accommodation).update({'start_date': date(2000, 1, 1), 'end_date': date(2000, 2, 1)})
            db.commit()
        finally:
            db.close()
        body = self.client.post('/api/extensions/accommodation', data=self._form(), headers=self._headers()).json()
        self.assertEqual(body['outcome'], 'not_eligible')
        self.assertEqual(body['message'], self._failure('accommodation'))

    def test_pacing_summary_scope(self):
        own = self.client.get(f'/api/pacing/{STUDENT}', headers=self._headers())
        self.assertEqual(own.status_code, 200)
        self.assertEqual(own.json()['pace_track'], 'A')
        self.assertEqual(own.json()['courses'], ['M 117', 'M 125'])

        other = self.client.get(f'/api/pacing/{STUDENT}', headers=self._headers(user_id='999999999'))
        self.assertEqual(other.status_code, 403)

        admin = self.client.get(f'/api/pacing/{STUDENT}', headers=self._headers(user_id='admin1', role='admin'))
        self.assertEqual(admin.status_code, 200)

    def test_milestones_list_reflects_extension(self):
        self.client.post('/api/extensions/free', data=self._form(), headers=self._headers())
        rows = self.client.get(f'/api/pacing/{STUDENT}/milestones', headers=self._headers()).json()
        review = rows[0]
        self.assertEqual((review['term_date'], review['effective_date']), ('2021-01-05', '2021-01-07'))
        self.assertEqual(review['override_reason'], 'free')

    def test_outline_for_unknown_course_is_404(self):
        response = self.client.get(f'/api/pacing/{STUDENT}/outline/M 126', headers=self._headers())
        self.assertEqual(response.status_code, 404)

    def test_mastery_requires_standards_based_course(self):
        response = self.client.get(f'/api/mastery/{STUDENT}/M 117', headers=self._headers())
        self.assertEqual(response.status_code, 400)
        response = self.client.get(f'/api/mastery/{STUDENT}/M 125', headers=self._headers())
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['score'], 0)
        self.assertEqual(len(response.json()['mastery_status']), 24)


if __name__ == '__main__':
    unittest.main()
