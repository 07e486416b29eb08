"""Import all models so SQLAlchemy metadata is fully registered."""

from lms.db.base import Base

from lms.models.assignment import Assignment
from lms.models.audit import ActivityLog
from lms.models.course import Category, Course, Difficulty
from lms.models.enrollment import Enrollment
from lms.models.enums import (
    AssignmentStatus,
    CourseStatus,
    EnrollmentStatus,
    GradeAction,
    ReportAction,
    ReportStatus,
    ReportTargetType,
    Role,
    SubmissionStatus,
)
from lms.models.report import Report
from lms.models.submission import Submission
from lms.models.user import User

__all__ = [
    "Base",
    "ActivityLog",
    "Assignment",
    "AssignmentStatus",
    "Category",
    "Course",
    "CourseStatus",
    "Difficulty",
    "Enrollment",
    "EnrollmentStatus",
    "GradeAction",
    "Report",
    "ReportAction",
    "ReportStatus",
    "ReportTargetType",
    "Role",
    "Submission",
    "SubmissionStatus",
    "User",
]
