from datetime import date, datetime
from enum import Enum

from sqlalchemy import Boolean, Date, DateTime, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from precalc.db import Base


class Role(str, Enum):
    ADMIN = 'admin'
    STUDENT = 'student'


class MilestoneType(str, Enum):
    SKILLS_REVIEW = 'SR'
    HOMEWORK_1 = 'H1'
    HOMEWORK_2 = 'H2'
    HOMEWORK_3 = 'H3'
    HOMEWORK_4 = 'H4'
    HOMEWORK_5 = 'H5'
    REVIEW_EXAM = 'RE'
    UNIT_EXAM = 'UE'
    FINAL_EXAM = 'FE'
    FINAL_LAST_TRY = 'F1'
    USERS_EXAM = 'US'

    @property
    def is_deadline(self) -> bool:
        return self is not MilestoneType.FINAL_LAST_TRY

    @property
    def objective(self) -> int | None:
        if self.value.startswith('H'):
            return int(self.value[1:])
        return None


class StandardMilestoneType(str, Enum):
    OPEN = 'OP'
    MASTERY = 'MA'


class OverrideReason(str, Enum):
    ACCOMMODATION = 'accommodation'
    FREE = 'free'
    APPEAL = 'appeal'


class Term(Base):
    __tablename__ = 'terms'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    term_key: Mapped[str] = mapped_column(String(8), unique=True, index=True)
    name: Mapped[str] = mapped_column(String(40), default='')
    start_date: Mapped[date] = mapped_column(Date)
    end_date: Mapped[date] = mapped_column(Date)
    active: Mapped[bool] = mapped_column(Boolean, default=False, index=True)


class Course(Base):
    __tablename__ = 'courses'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    course_id: Mapped[str] = mapped_column(String(10), unique=True, index=True)
    label: Mapped[str] = mapped_column(String(20), default='')
    name: Mapped[str] = mapped_column(String(120), default='')
    is_standards_based: Mapped[bool] = mapped_column(Boolean, default=False)
    units: Mapped[int] = mapped_column(Integer, default=8)
    standards_per_unit: Mapped[int] = mapped_column(Integer, default=3)


class Registration(Base):
    __tablename__ = 'registrations'
    __table_args__ = (
        UniqueConstraint('student_id', 'course_id', 'term_key', name='uq_registrations_student_course_term'),
        Index('ix_registrations_student_term', 'student_id', 'term_key'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    student_id: Mapped[str] = mapped_column(String(9), index=True)
    course_id: Mapped[str] = mapped_column(String(10), index=True)
    section: Mapped[str] = mapped_column(String(4), default='001')
    term_key: Mapped[str] = mapped_column(String(8), index=True)
    subterm: Mapped[str] = mapped_column(String(8), default='')
    pace_order: Mapped[int | None] = mapped_column(Integer, nullable=True)
    open_status: Mapped[str | None] = mapped_column(String(1), nullable=True)
    completed: Mapped[bool] = mapped_column(Boolean, default=False)
    incomplete: Mapped[bool] = mapped_column(Boolean, default=False)
    incomplete_term_key: Mapped[str | None] = mapped_column(String(8), nullable=True)
    incomplete_counted: Mapped[bool] = mapped_column(Boolean, default=False)
    incomplete_deadline: Mapped[date | None] = mapped_column(Date, nullable=True)
    synthetic: Mapped[bool] = mapped_column(Boolean, default=False)
    instruction_type: Mapped[str] = mapped_column(String(2), default='')
    prereq_satisfied: Mapped[str] = mapped_column(String(1), default='N')


class StudentTerm(Base):
    __tablename__ = 'student_terms'
    __table_args__ = (
        UniqueConstraint('student_id', 'term_key', name='uq_student_terms_student_term'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    student_id: Mapped[str] = mapped_column(String(9), index=True)
    term_key: Mapped[str] = mapped_column(String(8), index=True)
    pace: Mapped[int] = mapped_column(Integer)
    pace_track: Mapped[str] = mapped_column(String(2))
    first_course: Mapped[str] = mapped_column(String(10))


class PaceTrackRule(Base):
    __tablename__ = 'pace_track_rules'
    __table_args__ = (
        Index('ix_pace_track_rules_term_pace', 'term_key', 'pace'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    term_key: Mapped[str] = mapped_column(String(8))
    subterm: Mapped[str] = mapped_column(String(8), default='')
    pace: Mapped[int] = mapped_column(Integer)
    pace_track: Mapped[str] = mapped_column(String(2))
    criteria: Mapped[str] = mapped_column(String(200), default='')


class Milestone(Base):
    __tablename__ = 'milestones'
    __table_args__ = (
        UniqueConstraint('term_key', 'pace', 'pace_track', 'pace_index', 'unit', 'ms_type', name='uq_milestones_key'),
        Index('ix_milestones_term_pace_track', 'term_key', 'pace', 'pace_track'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    term_key: Mapped[str] = mapped_column(String(8))
    pace: Mapped[int] = mapped_column(Integer)
    pace_track: Mapped[str] = mapped_column(String(2))
    pace_index: Mapped[int] = mapped_column(Integer)
    unit: Mapped[int] = mapped_column(Integer)
    ms_type: Mapped[str] = mapped_column(String(2))
    ms_date: Mapped[date] = mapped_column(Date)
    attempts_allowed: Mapped[int | None] = mapped_column(Integer, nullable=True)


class StudentMilestone(Base):
    __tablename__ = 'student_milestones'
    __table_args__ = (
        Index('ix_student_milestones_student_term', 'student_id', 'term_key'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    student_id: Mapped[str] = mapped_column(String(9))
    term_key: Mapped[str] = mapped_column(String(8))
    pace: Mapped[int] = mapped_column(Integer)
    pace_track: Mapped[str] = mapped_column(String(2))
    pace_index: Mapped[int] = mapped_column(Integer)
    unit: Mapped[int] = mapped_column(Integer)
    ms_type: Mapped[str] = mapped_column(String(2))
    ms_date: Mapped[date] = mapped_column(Date)
    reason: Mapped[str] = mapped_column(String(20), default=OverrideReason.APPEAL.value, index=True)
    attempts_allowed: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)


class StandardMilestone(Base):
    __tablename__ = 'standard_milestones'
    __table_args__ = (
        UniqueConstraint('pace_track', 'pace', 'pace_index', 'unit', 'objective', 'ms_type', name='uq_standard_milestones_key'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    pace_track: Mapped[str] = mapped_column(String(2))
    pace: Mapped[int] = mapped_column(Integer)
    pace_index: Mapped[int] = mapped_column(Integer)
    unit: Mapped[int] = mapped_column(Integer)
    objective: Mapped[int] = mapped_column(Integer)
    ms_type: Mapped[str] = mapped_column(String(2), default=StandardMilestoneType.MASTERY.value)
    ms_date: Mapped[date] = mapped_column(Date)


class StudentStandardMilestone(Base):
    __tablename__ = 'student_standard_milestones'
    __table_args__ = (
        Index('ix_student_standard_milestones_student', 'student_id', 'pace_track', 'pace'),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    student_id: Mapped[str] = mapped_column(String(9))
    pace_track: Mapped[str] = mapped_column(String(2))
    pace: Mapped[int] = mapped_column(Integer)
    pace_index: Mapped[int] = mapped_column(Integer)
    unit: Mapped[int] = mapped_column(Integer)
    objective: Mapped[int] = mapped_column(Integer)
    ms_type: Mapped[str] = mapped_column(String(2), default=StandardMilestoneType.MASTERY.value)
    ms_date: Mapped[date] = mapped_column(Date)


class HomeworkAttempt(Base):
    __tablename__ = 'homework_attempts'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    student_id: Mapped[str] = mapped_column(String(9), index=True)
    course_id: Mapped[str] = mapped_column(String(10), index=True)
    unit: Mapped[int] = mapped_column(Integer)
    objective: Mapped[int] = mapped_column(Integer)
    passed: Mapped[bool] = mapped_column(Boolean, default=False)
    finished_at: Mapped[datetime] = mapped_column(DateTime)


class MasteryExam(Base):
    __tablename__ = 'mastery_exams'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    exam_id: Mapped[str] = mapped_column(String(20), unique=True, index=True)
    course_id: Mapped[str] = mapped_column(String(10), index=True)
    unit: Mapped[int] = mapped_column(Integer)
    objective: Mapped[int] = mapped_column(Integer)


class MasteryAttempt(Base):
    __tablename__ = 'mastery_attempts'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    serial_number: Mapped[int] = mapped_column(Integer, index=True)
    exam_id: Mapped[str] = mapped_column(String(20), index=True)
    student_id: Mapped[str] = mapped_column(String(9), index=True)
    started_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    finished_at: Mapped[datetime] = mapped_column(DateTime)
    passed: Mapped[bool] = mapped_column(Boolean, default=False)


class Accommodation(Base):
    __tablename__ = 'accommodations'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    student_id: Mapped[str] = mapped_column(String(9), index=True)
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    extension_days: Mapped[int] = mapped_column(Integer, default=0)


class CampusCalendar(Base):
    __tablename__ = 'campus_calendar'

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    campus_date: Mapped[date] = mapped_column(Date, index=True)
    description: Mapped[str] = mapped_column(String(40), default='holiday')
