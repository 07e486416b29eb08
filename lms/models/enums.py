from __future__ import annotations

import enum


class Role(str, enum.Enum):
    LEARNER = "learner"
    INSTRUCTOR = "instructor"
    OPERATOR = "operator"


class CourseStatus(str, enum.Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class EnrollmentStatus(str, enum.Enum):
    ACTIVE = "active"
    CANCELLED = "cancelled"


class AssignmentStatus(str, enum.Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    CLOSED = "closed"


class SubmissionStatus(str, enum.Enum):
    SUBMITTED = "submitted"
    GRADED = "graded"
    RESUBMISSION_REQUIRED = "resubmission_required"


# Not stored; reported for assignments the learner has not submitted yet.
NOT_SUBMITTED = "not_submitted"


class GradeAction(str, enum.Enum):
    GRADE = "grade"
    RESUBMISSION_REQUIRED = "resubmission_required"


class ReportTargetType(str, enum.Enum):
    COURSE = "course"
    ASSIGNMENT = "assignment"
    SUBMISSION = "submission"
    USER = "user"


class ReportStatus(str, enum.Enum):
    RECEIVED = "received"
    INVESTIGATING = "investigating"
    RESOLVED = "resolved"


class ReportAction(str, enum.Enum):
    RESOLVE = "resolve"
    ESCALATE = "escalate"
    DISMISS = "dismiss"
    CONTACT_USER = "contact_user"
