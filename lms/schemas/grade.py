from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from lms.models.enums import SubmissionStatus
from lms.schemas.base import ORMModel, Page


class GradeEntry(ORMModel):
    id: int
    assignment_id: int
    assignment_title: str
    assignment_description: Optional[str] = None
    course_id: int
    course_title: str
    score: Optional[float] = None
    feedback: Optional[str] = None
    graded_at: Optional[datetime] = None
    is_late: bool
    status: SubmissionStatus
    points_weight: float


class CourseTotal(ORMModel):
    course_id: int
    course_title: str
    total_score: Optional[float] = None
    assignments_count: int
    graded_count: int


class GradeReport(Page):
    assignments: List[GradeEntry]
    course_totals: List[CourseTotal]
