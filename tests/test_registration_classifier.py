import unittest

from precalc.models import Registration
from precalc.services.registration_service import (
    SchedulePhase,
    classify_registrations,
    is_counted_toward_pace,
    natural_phase,
    sort_by_pace_order,
)


def _reg(course_id='M 117', **overrides):
    values = {
        'student_id': '888888888',
        'course_id': course_id,
        'term_key': 'SP21',
        'section': '001',
        'subterm': '',
        'pace_order': None,
        'open_status': None,
        'completed': False,
        'incomplete': False,
        'incomplete_counted': False,
        'synthetic': False,
        'instruction_type': '',
        'prereq_satisfied': 'N',
    }
    values.update(overrides)
    return Registration(**values)


class RegistrationFilterTests(unittest.TestCase):
    def test_excluded_registrations_do_not_count(self):
        self.assertFalse(is_counted_toward_pace(_reg(synthetic=True)))
        self.assertFalse(is_counted_toward_pace(_reg(instruction_type='OT')))
        self.assertFalse(is_counted_toward_pace(_reg(open_status='D')))
        self.assertFalse(is_counted_toward_pace(_reg(open_status='G')))
        self.assertFalse(is_counted_toward_pace(_reg(incomplete=True, incomplete_counted=False)))

    def test_regular_and_counted_incomplete_registrations_count(self):
        self.assertTrue(is_counted_toward_pace(_reg()))
        self.assertTrue(is_counted_toward_pace(_reg(incomplete=True, incomplete_counted=True)))

    def test_natural_phase_orders_incompletes_first(self):
        self.assertEqual(natural_phase(_reg(incomplete=True, completed=True)), SchedulePhase.INCOMPLETE_COMPLETED)
        self.assertEqual(natural_phase(_reg(incomplete=True, open_status='Y')), SchedulePhase.INCOMPLETE_OPEN)
        self.assertEqual(natural_phase(_reg(incomplete=True)), SchedulePhase.INCOMPLETE_UNOPENED)
        self.assertEqual(natural_phase(_reg(open_status='N')), SchedulePhase.COMPLETED)
        self.assertEqual(natural_phase(_reg(open_status='Y')), SchedulePhase.OPEN)
        self.assertEqual(natural_phase(_reg()), SchedulePhase.UNOPENED)


class ClassifyRegistrationsTests(unittest.TestCase):
    def test_no_registrations_is_valid_with_zero_pace(self):
        result = classify_registrations([])
        self.assertTrue(result.valid)
        self.assertEqual(result.pace, 0)

    def test_non_precalc_courses_are_ignored(self):
        result = classify_registrations([_reg('MATH 160', pace_order=1)])
        self.assertTrue(result.valid)
        self.assertEqual(result.pace, 0)

    def test_orders_by_pace_order(self):
        regs = [
            _reg('M 125', pace_order=3),
            _reg('M 117', pace_order=1, open_status='Y'),
            _reg('M 118', pace_order=2),
        ]
        result = classify_registrations(regs)
        self.assertTrue(result.valid)
        self.assertEqual([reg.course_id for reg in result.registrations], ['M 117', 'M 118', 'M 125'])
        self.assertEqual(result.phases, [SchedulePhase.OPEN, SchedulePhase.UNOPENED, SchedulePhase.UNOPENED])
        self.assertEqual(result.pace, 3)

    def test_gap_in_pace_order_is_indeterminate(self):
        result = classify_registrations([_reg('M 117', pace_order=1), _reg('M 118', pace_order=3)])
        self.assertFalse(result.valid)
        self.assertEqual(result.reason, 'pace_order_not_dense')

    def test_duplicate_pace_order_is_indeterminate(self):
        result = classify_registrations([_reg('M 117', pace_order=1), _reg('M 118', pace_order=1)])
        self.assertFalse(result.valid)
        self.assertEqual(result.reason, 'pace_order_not_dense')

    def test_missing_pace_order_is_indeterminate(self):
        result = classify_registrations([_reg('M 117', pace_order=1), _reg('M 118')])
        self.assertFalse(result.valid)
        self.assertEqual(result.reason, 'pace_order_not_dense')

    def test_completed_course_after_open_course_is_indeterminate(self):
        regs = [
            _reg('M 117', pace_order=1, open_status='Y'),
            _reg('M 118', pace_order=2, completed=True),
        ]
        result = classify_registrations(regs)
        self.assertFalse(result.valid)
        self.assertEqual(result.reason, 'phase_out_of_order')

    def test_incomplete_then_completed_then_open_is_valid(self):
        regs = [
            _reg('M 124', pace_order=3, open_status='Y'),
            _reg('M 117', pace_order=1, incomplete=True, incomplete_counted=True, open_status='Y'),
            _reg('M 118', pace_order=2, completed=True),
        ]
        result = classify_registrations(regs)
        self.assertTrue(result.valid)
        self.assertEqual(
            result.phases,
            [SchedulePhase.INCOMPLETE_OPEN, SchedulePhase.COMPLETED, SchedulePhase.OPEN],
        )

    def test_dropped_course_does_not_break_ordering(self):
        regs = [
            _reg('M 117', pace_order=1, open_status='Y'),
            _reg('M 118', pace_order=2, open_status='D'),
        ]
        result = classify_registrations(regs)
        self.assertTrue(result.valid)
        self.assertEqual(result.pace, 1)

    def test_sort_by_pace_order_does_not_mutate_input(self):
        regs = [_reg('M 118', pace_order=2), _reg('M 117', pace_order=1)]
        ordered = sort_by_pace_order(regs)
        self.assertEqual([reg.course_id for reg in ordered], ['M 117', 'M 118'])
        self.assertEqual([reg.course_id for reg in regs], ['M 118', 'M 117'])


if __name__ == '__main__':
    unittest.main()
