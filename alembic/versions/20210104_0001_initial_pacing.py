"""initial pacing tables

Revision ID: 20210104_0001
Revises: 
Create Date: 2021-01-04 00:01:00
"""

from alembic import op
import sqlalchemy as sa


revision = '20210104_0001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'terms',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('term_key', sa.String(length=8), nullable=False),
        sa.Column('name', sa.String(length=40), nullable=False, server_default=''),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('active', sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.create_index('ix_terms_id', 'terms', ['id'])
    op.create_index('ix_terms_term_key', 'terms', ['term_key'], unique=True)
    op.create_index('ix_terms_active', 'terms', ['active'])

    op.create_table(
        'courses',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('course_id', sa.String(length=10), nullable=False),
        sa.Column('label', sa.String(length=20), nullable=False, server_default=''),
        sa.Column('name', sa.String(length=120), nullable=False, server_default=''),
        sa.Column('is_standards_based', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('units', sa.Integer(), nullable=False, server_default='8'),
        sa.Column('standards_per_unit', sa.Integer(), nullable=False, server_default='3'),
    )
    op.create_index('ix_courses_id', 'courses', ['id'])
    op.create_index('ix_courses_course_id', 'courses', ['course_id'], unique=True)

    op.create_table(
        'registrations',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('student_id', sa.String(length=9), nullable=False),
        sa.Column('course_id', sa.String(length=10), nullable=False),
        sa.Column('section', sa.String(length=4), nullable=False, server_default='001'),
        sa.Column('term_key', sa.String(length=8), nullable=False),
        sa.Column('subterm', sa.String(length=8), nullable=False, server_default=''),
        sa.Column('pace_order', sa.Integer(), nullable=True),
        sa.Column('open_status', sa.String(length=1), nullable=True),
        sa.Column('completed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('incomplete', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('incomplete_term_key', sa.String(length=8), nullable=True),
        sa.Column('incomplete_counted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('incomplete_deadline', sa.Date(), nullable=True),
        sa.Column('synthetic', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('instruction_type', sa.String(length=2), nullable=False, server_default=''),
        sa.Column('prereq_satisfied', sa.String(length=1), nullable=False, server_default='N'),
        sa.UniqueConstraint('student_id', 'course_id', 'term_key', name='uq_registrations_student_course_term'),
    )
    op.create_index('ix_registrations_id', 'registrations', ['id'])
    op.create_index('ix_registrations_student_id', 'registrations', ['student_id'])
    op.create_index('ix_registrations_course_id', 'registrations', ['course_id'])
    op.create_index('ix_registrations_term_key', 'registrations', ['term_key'])
    op.create_index('ix_registrations_student_term', 'registrations', ['student_id', 'term_key'])

    op.create_table(
        'student_terms',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('student_id', sa.String(length=9), nullable=False),
        sa.Column('term_key', sa.String(length=8), nullable=False),
        sa.Column('pace', sa.Integer(), nullable=False),
        sa.Column('pace_track', sa.String(length=2), nullable=False),
        sa.Column('first_course', sa.String(length=10), nullable=False),
        sa.UniqueConstraint('student_id', 'term_key', name='uq_student_terms_student_term'),
    )
    op.create_index('ix_student_terms_id', 'student_terms', ['id'])
    op.create_index('ix_student_terms_student_id', 'student_terms', ['student_id'])
    op.create_index('ix_student_terms_term_key', 'student_terms', ['term_key'])

    op.create_table(
        'pace_track_rules',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('term_key', sa.String(length=8), nullable=False),
        sa.Column('subterm', sa.String(length=8), nullable=False, server_default=''),
        sa.Column('pace', sa.Integer(), nullable=False),
        sa.Column('pace_track', sa.String(length=2), nullable=False),
        sa.Column('criteria', sa.String(length=200), nullable=False, server_default=''),
    )
    op.create_index('ix_pace_track_rules_id', 'pace_track_rules', ['id'])
    op.create_index('ix_pace_track_rules_term_pace', 'pace_track_rules', ['term_key', 'pace'])

    op.create_table(
        'milestones',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('term_key', sa.String(length=8), nullable=False),
        sa.Column('pace', sa.Integer(), nullable=False),
        sa.Column('pace_track', sa.String(length=2), nullable=False),
        sa.Column('pace_index', sa.Integer(), nullable=False),
        sa.Column('unit', sa.Integer(), nullable=False),
        sa.Column('ms_type', sa.String(length=2), nullable=False),
        sa.Column('ms_date', sa.Date(), nullable=False),
        sa.Column('attempts_allowed', sa.Integer(), nullable=True),
        sa.UniqueConstraint('term_key', 'pace', 'pace_track', 'pace_index', 'unit', 'ms_type', name='uq_milestones_key'),
    )
    op.create_index('ix_milestones_id', 'milestones', ['id'])
    op.create_index('ix_milestones_term_pace_track', 'milestones', ['term_key', 'pace', 'pace_track'])

    op.create_table(
        'student_milestones',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('student_id', sa.String(length=9), nullable=False),
        sa.Column('term_key', sa.String(length=8), nullable=False),
        sa.Column('pace', sa.Integer(), nullable=False),
        sa.Column('pace_track', sa.String(length=2), nullable=False),
        sa.Column('pace_index', sa.Integer(), nullable=False),
        sa.Column('unit', sa.Integer(), nullable=False),
        sa.Column('ms_type', sa.String(length=2), nullable=False),
        sa.Column('ms_date', sa.Date(), nullable=False),
        sa.Column('reason', sa.String(length=20), nullable=False, server_default='appeal'),
        sa.Column('attempts_allowed', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_student_milestones_id', 'student_milestones', ['id'])
    op.create_index('ix_student_milestones_reason', 'student_milestones', ['reason'])
    op.create_index('ix_student_milestones_student_term', 'student_milestones', ['student_id', 'term_key'])

    op.create_table(
        'standard_milestones',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('pace_track', sa.String(length=2), nullable=False),
        sa.Column('pace', sa.Integer(), nullable=False),
        sa.Column('pace_index', sa.Integer(), nullable=False),
        sa.Column('unit', sa.Integer(), nullable=False),
        sa.Column('objective', sa.Integer(), nullable=False),
        sa.Column('ms_type', sa.String(length=2), nullable=False, server_default='MA'),
        sa.Column('ms_date', sa.Date(), nullable=False),
        sa.UniqueConstraint('pace_track', 'pace', 'pace_index', 'unit', 'objective', 'ms_type', name='uq_standard_milestones_key'),
    )
    op.create_index('ix_standard_milestones_id', 'standard_milestones', ['id'])

    op.create_table(
        'student_standard_milestones',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('student_id', sa.String(length=9), nullable=False),
        sa.Column('pace_track', sa.String(length=2), nullable=False),
        sa.Column('pace', sa.Integer(), nullable=False),
        sa.Column('pace_index', sa.Integer(), nullable=False),
        sa.Column('unit', sa.Integer(), nullable=False),
        sa.Column('objective', sa.Integer(), nullable=False),
        sa.Column('ms_type', sa.String(length=2), nullable=False, server_default='MA'),
        sa.Column('ms_date', sa.Date(), nullable=False),
    )
    op.create_index('ix_student_standard_milestones_id', 'student_standard_milestones', ['id'])
    op.create_index(
        'ix_student_standard_milestones_student',
        'student_standard_milestones',
        ['student_id', 'pace_track', 'pace'],
    )

    op.create_table(
        'homework_attempts',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('student_id', sa.String(length=9), nullable=False),
        sa.Column('course_id', sa.String(length=10), nullable=False),
        sa.Column('unit', sa.Integer(), nullable=False),
        sa.Column('objective', sa.Integer(), nullable=False),
        sa.Column('passed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('finished_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_homework_attempts_id', 'homework_attempts', ['id'])
    op.create_index('ix_homework_attempts_student_id', 'homework_attempts', ['student_id'])
    op.create_index('ix_homework_attempts_course_id', 'homework_attempts', ['course_id'])

    op.create_table(
        'mastery_exams',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('exam_id', sa.String(length=20), nullable=False),
        sa.Column('course_id', sa.String(length=10), nullable=False),
        sa.Column('unit', sa.Integer(), nullable=False),
        sa.Column('objective', sa.Integer(), nullable=False),
    )
    op.create_index('ix_mastery_exams_id', 'mastery_exams', ['id'])
    op.create_index('ix_mastery_exams_exam_id', 'mastery_exams', ['exam_id'], unique=True)
    op.create_index('ix_mastery_exams_course_id', 'mastery_exams', ['course_id'])

    op.create_table(
        'mastery_attempts',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('serial_number', sa.Integer(), nullable=False),
        sa.Column('exam_id', sa.String(length=20), nullable=False),
        sa.Column('student_id', sa.String(length=9), nullable=False),
        sa.Column('started_at', sa.DateTime(), nullable=True),
        sa.Column('finished_at', sa.DateTime(), nullable=False),
        sa.Column('passed', sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.create_index('ix_mastery_attempts_id', 'mastery_attempts', ['id'])
    op.create_index('ix_mastery_attempts_serial_number', 'mastery_attempts', ['serial_number'])
    op.create_index('ix_mastery_attempts_exam_id', 'mastery_attempts', ['exam_id'])
    op.create_index('ix_mastery_attempts_student_id', 'mastery_attempts', ['student_id'])

    op.create_table(
        'accommodations',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('student_id', sa.String(length=9), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=True),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('extension_days', sa.Integer(), nullable=False, server_default='0'),
    )
    op.create_index('ix_accommodations_id', 'accommodations', ['id'])
    op.create_index('ix_accommodations_student_id', 'accommodations', ['student_id'])

    op.create_table(
        'campus_calendar',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('campus_date', sa.Date(), nullable=False),
        sa.Column('description', sa.String(length=40), nullable=False, server_default='holiday'),
    )
    op.create_index('ix_campus_calendar_id', 'campus_calendar', ['id'])
    op.create_index('ix_campus_calendar_campus_date', 'campus_calendar', ['campus_date'])


def downgrade() -> None:
    for table in (
        'campus_calendar',
        'accommodations',
        'mastery_attempts',
        'mastery_exams',
        'homework_attempts',
        'student_standard_milestones',
        'standard_milestones',
        'student_milestones',
        'milestones',
        'pace_track_rules',
        'student_terms',
        'registrations',
        'courses',
        'terms',
    ):
        op.drop_table(table)
