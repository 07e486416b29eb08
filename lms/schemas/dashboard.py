from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import Field

from lms.models.enums import CourseStatus
from lms.schemas.base import ORMModel


class CourseProgress(ORMModel):
    course_id: int
    course_title: str
    completed_assignments: int
    total_assignments: int
    progress_percentage: int
    status: CourseStatus


class UpcomingAssignment(ORMModel):
    id: int
    title: str
    course_id: int
    course_title: str
    due_date: datetime
    status: str
    is_late: bool = False


class FeedbackSummary(ORMModel):
    id: int
    assignment_id: int
    assignment_title: str
    course_id: int
    course_title: str
    feedback: Optional[str] = None
    score: Optional[float] = None
    graded_at: Optional[datetime] = None


class AssignmentSubmissionStatus(ORMModel):
    assignment_id: int
    assignment_title: str
    course_id: int
    course_title: str
    submission_id: Optional[int] = None
    status: str
    is_late: bool = False
    score: Optional[float] = None
    submitted_at: Optional[datetime] = None


class LearnerDashboard(ORMModel):
    enrolled_courses: List[CourseProgress] = Field(default_factory=list)
    upcoming_assignments: List[UpcomingAssignment] = Field(default_factory=list)
    recent_feedback: List[FeedbackSummary] = Field(default_factory=list)
    all_assignments_status: List[AssignmentSubmissionStatus] = Field(default_factory=list)


class InstructorCourse(ORMModel):
    id: int
    title: str
    status: CourseStatus
    enrollment_count: int
    assignment_count: int
    created_at: datetime


class RecentSubmission(ORMModel):
    id: int
    assignment_id: int
    assignment_title: str
    course_id: int
    course_title: str
    student_name: str
    submitted_at: datetime
    status: str
    is_late: bool = False


class InstructorDashboard(ORMModel):
    courses: List[InstructorCourse] = Field(default_factory=list)
    pending_grading_count: int = 0
    recent_submissions: List[RecentSubmission] = Field(default_factory=list)


class OperatorDashboard(ORMModel):
    courses_by_status: Dict[str, int] = Field(default_factory=dict)
    reports_by_status: Dict[str, int] = Field(default_factory=dict)
    active_categories: int = 0
    active_difficulties: int = 0
