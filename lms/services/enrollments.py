from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from lms.core import rbac
from lms.core.errors import ApiError, ErrorCode
from lms.db.base import utcnow
from lms.db.queries import active_enrollments
from lms.models.course import Course
from lms.models.enrollment import Enrollment
from lms.models.enums import CourseStatus, EnrollmentStatus, Role
from lms.models.user import User
from lms.services.activity import log_activity
from lms.services.courses import require_course

logger = logging.getLogger("lms.enrollments")


def enroll(db: Session, *, course_id: int, user: User) -> Enrollment:
    rbac.require_roles(user, [Role.LEARNER])
    course = require_course(db, course_id)
    if course.status != CourseStatus.PUBLISHED:
        raise ApiError.validation(ErrorCode.COURSE_NOT_PUBLISHED, "Course is not open for enrollment")

    enrollment = (
        db.query(Enrollment)
        .filter(Enrollment.course_id == course.id, Enrollment.user_id == user.id)
        .first()
    )
    if enrollment and enrollment.status == EnrollmentStatus.ACTIVE:
        raise ApiError.conflict(ErrorCode.DUPLICATE_ENROLLMENT, "Already enrolled in this course")

    if enrollment:
        enrollment.status = EnrollmentStatus.ACTIVE
        enrollment.enrolled_at = utcnow()
        activity_type = "ENROLLMENT_REACTIVATED"
    else:
        enrollment = Enrollment(course_id=course.id, user_id=user.id, status=EnrollmentStatus.ACTIVE)
        activity_type = "ENROLLMENT_CREATED"
    db.add(enrollment)
    db.flush()

    log_activity(
        db,
        actor_user_id=user.id,
        activity_type=activity_type,
        entity_type="enrollment",
        entity_id=enrollment.id,
        payload={"course_id": course.id},
    )
    logger.info("enrolled", extra={"course_id": course.id, "user_id": user.id})
    return enrollment


def cancel_enrollment(db: Session, *, enrollment_id: int, user: User) -> Enrollment:
    enrollment = db.get(Enrollment, enrollment_id)
    if not enrollment or enrollment.status != EnrollmentStatus.ACTIVE:
        raise ApiError.not_found(ErrorCode.ENROLLMENT_NOT_FOUND, "Enrollment not found")
    if enrollment.user_id != user.id:
        raise ApiError.forbidden("Only the enrolled learner can cancel this enrollment")

    enrollment.status = EnrollmentStatus.CANCELLED
    db.add(enrollment)
    db.flush()
    log_activity(
        db,
        actor_user_id=user.id,
        activity_type="ENROLLMENT_CANCELLED",
        entity_type="enrollment",
        entity_id=enrollment.id,
        payload={"course_id": enrollment.course_id},
    )
    return enrollment


def list_my_enrollments(db: Session, *, user: User) -> list[tuple[Enrollment, Course]]:
    return (
        active_enrollments(db, user.id)
        .add_entity(Course)
        .order_by(Enrollment.enrolled_at.desc())
        .all()
    )
