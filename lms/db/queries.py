"""Soft-delete aware lookups shared by every read path."""
from __future__ import annotations

from typing import Optional

from sqlalchemy.orm import Query, Session

from lms.models.assignment import Assignment
from lms.models.course import Course
from lms.models.enrollment import Enrollment
from lms.models.enums import AssignmentStatus, EnrollmentStatus


COUNTED_ASSIGNMENT_STATUSES = (AssignmentStatus.PUBLISHED, AssignmentStatus.CLOSED)


def active_courses(db: Session) -> Query:
    return db.query(Course).filter(Course.not_deleted())


def active_assignments(db: Session) -> Query:
    # Assignments of a deleted course are hidden along with it.
    return (
        db.query(Assignment)
        .join(Course, Course.id == Assignment.course_id)
        .filter(Assignment.not_deleted(), Course.not_deleted())
    )


def visible_assignments(db: Session) -> Query:
    """Assignments a learner can see and that count toward grades."""
    return active_assignments(db).filter(Assignment.status.in_(COUNTED_ASSIGNMENT_STATUSES))


def get_active_course(db: Session, course_id: int) -> Optional[Course]:
    return active_courses(db).filter(Course.id == course_id).first()


def get_active_assignment(db: Session, assignment_id: int) -> Optional[Assignment]:
    return active_assignments(db).filter(Assignment.id == assignment_id).first()


def active_enrollments(db: Session, user_id: int) -> Query:
    """Active enrollments of a learner in courses that still exist."""
    return (
        db.query(Enrollment)
        .join(Course, Course.id == Enrollment.course_id)
        .filter(
            Enrollment.user_id == user_id,
            Enrollment.status == EnrollmentStatus.ACTIVE,
            Course.not_deleted(),
        )
    )


def has_active_enrollment(db: Session, course_id: int, user_id: int) -> bool:
    return active_enrollments(db, user_id).filter(Enrollment.course_id == course_id).first() is not None
