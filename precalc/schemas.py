from datetime import date
from typing import Literal

from pydantic import BaseModel


class PaceSummaryResponse(BaseModel):
    student_id: str
    term_key: str | None
    status: Literal['ok', 'not_registered', 'indeterminate', 'no_term']
    pace: int
    pace_track: str | None = None
    first_course: str | None = None
    courses: list[str] = []
    message: str | None = None


class EffectiveMilestoneItem(BaseModel):
    pace_index: int
    unit: int
    ms_type: str
    term_date: date
    effective_date: date
    override_reason: str | None = None


class ExtensionResponse(BaseModel):
    ok: bool
    outcome: str
    requested_days: int = 0
    granted_days: int = 0
    new_date: date | None = None
    message: str


class MasteryStatusResponse(BaseModel):
    student_id: str
    course_id: str
    pace: int
    pace_track: str
    homework_status: list[str]
    mastery_status: list[str]
    mastered_first_half: int
    mastered_second_half: int
    pending_first_half: int
    pending_second_half: int
    score: int
