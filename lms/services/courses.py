from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from lms.core import rbac
from lms.core.errors import ApiError, ErrorCode
from lms.db.base import utcnow
from lms.db.queries import active_courses, get_active_course
from lms.models.course import Category, Course, Difficulty
from lms.models.enrollment import Enrollment
from lms.models.enums import CourseStatus, EnrollmentStatus, Role
from lms.models.user import User
from lms.schemas.course import CourseCreate, CourseUpdate
from lms.services.activity import log_activity
from lms.utils.transitions import can_transition_course

logger = logging.getLogger("lms.courses")

SORT_NEWEST = "newest"
SORT_POPULAR = "popular"


def require_course(db: Session, course_id: int) -> Course:
    course = get_active_course(db, course_id)
    if not course:
        raise ApiError.not_found(ErrorCode.COURSE_NOT_FOUND, "Course not found")
    return course


def require_owned_course(db: Session, course_id: int, user: User) -> Course:
    course = require_course(db, course_id)
    rbac.require_owner(user, course.owner_id)
    return course


def enrollment_counts(db: Session, course_ids: list[int]) -> dict[int, int]:
    if not course_ids:
        return {}
    rows = (
        db.query(Enrollment.course_id, func.count(Enrollment.id))
        .filter(Enrollment.course_id.in_(course_ids), Enrollment.status == EnrollmentStatus.ACTIVE)
        .group_by(Enrollment.course_id)
        .all()
    )
    return {course_id: count for course_id, count in rows}


def _validate_metadata(db: Session, category_id: Optional[int], difficulty_id: Optional[int]) -> None:
    if category_id is not None:
        category = db.get(Category, category_id)
        if not category or not category.is_active:
            raise ApiError.validation(
                ErrorCode.INVALID_INPUT,
                "Unknown or inactive category",
                [{"field": "categoryId", "message": "not found"}],
            )
    if difficulty_id is not None:
        difficulty = db.get(Difficulty, difficulty_id)
        if not difficulty or not difficulty.is_active:
            raise ApiError.validation(
                ErrorCode.INVALID_INPUT,
                "Unknown or inactive difficulty",
                [{"field": "difficultyId", "message": "not found"}],
            )


def list_catalog(
    db: Session,
    *,
    search: Optional[str] = None,
    category_id: Optional[int] = None,
    difficulty_id: Optional[int] = None,
    sort: str = SORT_NEWEST,
    page: int = 1,
    limit: int = 20,
) -> tuple[list[Course], int, dict[int, int]]:
    query = active_courses(db).filter(Course.status == CourseStatus.PUBLISHED)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(Course.title.ilike(pattern), Course.description.ilike(pattern)))
    if category_id is not None:
        query = query.filter(Course.category_id == category_id)
    if difficulty_id is not None:
        query = query.filter(Course.difficulty_id == difficulty_id)

    total = query.count()

    if sort == SORT_POPULAR:
        active_count = (
            db.query(Enrollment.course_id, func.count(Enrollment.id).label("enrolled"))
            .filter(Enrollment.status == EnrollmentStatus.ACTIVE)
            .group_by(Enrollment.course_id)
            .subquery()
        )
        query = query.outerjoin(active_count, active_count.c.course_id == Course.id).order_by(
            func.coalesce(active_count.c.enrolled, 0).desc(),
            Course.created_at.desc(),
        )
    else:
        query = query.order_by(Course.created_at.desc(), Course.id.desc())

    courses = query.offset((page - 1) * limit).limit(limit).all()
    return courses, total, enrollment_counts(db, [c.id for c in courses])


def create_course(db: Session, *, payload: CourseCreate, user: User) -> Course:
    rbac.require_roles(user, [Role.INSTRUCTOR])
    _validate_metadata(db, payload.category_id, payload.difficulty_id)
    course = Course(
        owner_id=user.id,
        title=payload.title.strip(),
        description=payload.description,
        category_id=payload.category_id,
        difficulty_id=payload.difficulty_id,
        status=CourseStatus.DRAFT,
    )
    db.add(course)
    db.flush()
    log_activity(
        db,
        actor_user_id=user.id,
        activity_type="COURSE_CREATED",
        entity_type="course",
        entity_id=course.id,
        message=f"Course created: {course.title}",
    )
    return course


def update_course(db: Session, *, course_id: int, payload: CourseUpdate, user: User) -> Course:
    course = require_owned_course(db, course_id, user)
    changes = payload.model_dump(exclude_unset=True)
    _validate_metadata(db, changes.get("category_id"), changes.get("difficulty_id"))
    for field, value in changes.items():
        if field == "title":
            if value is None:
                continue
            value = value.strip()
        setattr(course, field, value)
    db.add(course)
    db.flush()
    log_activity(
        db,
        actor_user_id=user.id,
        activity_type="COURSE_UPDATED",
        entity_type="course",
        entity_id=course.id,
        payload={"fields": sorted(changes)},
    )
    return course


def change_course_status(db: Session, *, course_id: int, new_status: CourseStatus, user: User) -> Course:
    course = require_owned_course(db, course_id, user)
    current = course.status
    if not can_transition_course(current, new_status):
        raise ApiError.validation(
            ErrorCode.INVALID_COURSE_STATUS_TRANSITION,
            f"Cannot change course status from {current.value} to {new_status.value}",
            {"currentStatus": current.value, "requestedStatus": new_status.value},
        )

    now = utcnow()
    course.status = new_status
    if new_status == CourseStatus.PUBLISHED and course.published_at is None:
        course.published_at = now
    if new_status == CourseStatus.ARCHIVED:
        course.archived_at = now
    db.add(course)
    db.flush()
    log_activity(
        db,
        actor_user_id=user.id,
        activity_type="COURSE_STATUS_CHANGED",
        entity_type="course",
        entity_id=course.id,
        payload={"from": current.value, "to": new_status.value},
    )
    logger.info(
        "course_status_changed",
        extra={"course_id": course.id, "user_id": user.id},
    )
    return course


def delete_course(db: Session, *, course_id: int, user: User) -> Course:
    course = require_owned_course(db, course_id, user)
    course.mark_deleted()
    db.add(course)
    db.flush()
    log_activity(
        db,
        actor_user_id=user.id,
        activity_type="COURSE_DELETED",
        entity_type="course",
        entity_id=course.id,
    )
    return course
