from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import func, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from lms.core import rbac
from lms.core.errors import ApiError, ErrorCode
from lms.db.queries import COUNTED_ASSIGNMENT_STATUSES, active_assignments, get_active_assignment, has_active_enrollment
from lms.models.assignment import Assignment
from lms.models.course import Course
from lms.models.enums import AssignmentStatus, Role, SubmissionStatus
from lms.models.submission import Submission
from lms.models.user import User
from lms.schemas.assignment import AssignmentCreate, AssignmentStats, AssignmentUpdate
from lms.services.activity import log_activity
from lms.services.courses import require_course, require_owned_course
from lms.utils.dates import ensure_tz, is_past_due, resolve_now
from lms.utils.transitions import can_transition_assignment

logger = logging.getLogger("lms.assignments")

DEFAULT_WEIGHT_EPSILON = 1e-9


def _weight_of_others(db: Session, course_id: int, exclude_id: Optional[int] = None) -> float:
    query = db.query(func.coalesce(func.sum(Assignment.points_weight), 0.0)).filter(
        Assignment.course_id == course_id,
        Assignment.not_deleted(),
    )
    if exclude_id is not None:
        query = query.filter(Assignment.id != exclude_id)
    return float(query.scalar() or 0.0)


def check_weight_budget(
    db: Session,
    *,
    course_id: int,
    requested_weight: float,
    exclude_id: Optional[int] = None,
    epsilon: float = DEFAULT_WEIGHT_EPSILON,
) -> None:
    """Reject a weight that would push the course total past 1.0."""
    used = _weight_of_others(db, course_id, exclude_id)
    if used + requested_weight > 1.0 + epsilon:
        available = round(max(0.0, 1.0 - used), 4)
        logger.info(
            "weight_budget_exceeded",
            extra={"course_id": course_id, "error_code": ErrorCode.ASSIGNMENT_WEIGHT_EXCEEDED},
        )
        raise ApiError.validation(
            ErrorCode.ASSIGNMENT_WEIGHT_EXCEEDED,
            f"Assignment weight exceeds the remaining course budget ({available * 100:g}% available)",
            {"availableWeight": available, "requestedWeight": requested_weight},
        )


def _has_graded_submissions(db: Session, assignment_id: int) -> bool:
    return (
        db.query(Submission.id)
        .filter(Submission.assignment_id == assignment_id, Submission.status == SubmissionStatus.GRADED)
        .first()
        is not None
    )


def require_assignment(db: Session, assignment_id: int) -> Assignment:
    assignment = get_active_assignment(db, assignment_id)
    if not assignment:
        raise ApiError.not_found(ErrorCode.ASSIGNMENT_NOT_FOUND, "Assignment not found")
    return assignment


def require_owned_assignment(db: Session, assignment_id: int, user: User) -> Assignment:
    assignment = require_assignment(db, assignment_id)
    rbac.require_owner(user, assignment.course.owner_id)
    return assignment


def get_visible_assignment(db: Session, *, assignment_id: int, user: User) -> Assignment:
    assignment = require_assignment(db, assignment_id)
    course = assignment.course
    if user.id == course.owner_id or rbac.user_has_role(user, Role.OPERATOR):
        return assignment
    if not has_active_enrollment(db, course.id, user.id):
        raise ApiError.forbidden("Not enrolled in this course")
    if assignment.status not in COUNTED_ASSIGNMENT_STATUSES:
        raise ApiError.not_found(ErrorCode.ASSIGNMENT_NOT_FOUND, "Assignment not found")
    return assignment


def list_course_assignments(db: Session, *, course_id: int, user: User) -> list[Assignment]:
    course = require_course(db, course_id)
    query = active_assignments(db).filter(Assignment.course_id == course.id)
    if user.id != course.owner_id and not rbac.user_has_role(user, Role.OPERATOR):
        if not has_active_enrollment(db, course.id, user.id):
            raise ApiError.forbidden("Not enrolled in this course")
        query = query.filter(Assignment.status.in_(COUNTED_ASSIGNMENT_STATUSES))
    return query.order_by(Assignment.due_date.asc(), Assignment.id.asc()).all()


def create_assignment(
    db: Session,
    *,
    course_id: int,
    payload: AssignmentCreate,
    user: User,
    epsilon: float = DEFAULT_WEIGHT_EPSILON,
) -> Assignment:
    course: Course = require_owned_course(db, course_id, user)
    check_weight_budget(db, course_id=course.id, requested_weight=payload.points_weight, epsilon=epsilon)

    assignment = Assignment(
        course_id=course.id,
        title=payload.title.strip(),
        description=payload.description,
        due_date=ensure_tz(payload.due_date),
        points_weight=payload.points_weight,
        allow_late=payload.allow_late,
        allow_resubmission=payload.allow_resubmission,
        status=AssignmentStatus.DRAFT,
    )
    db.add(assignment)
    db.flush()
    log_activity(
        db,
        actor_user_id=user.id,
        activity_type="ASSIGNMENT_CREATED",
        entity_type="assignment",
        entity_id=assignment.id,
        message=f"Assignment created: {assignment.title}",
        payload={"course_id": course.id, "points_weight": assignment.points_weight},
    )
    logger.info("assignment_created", extra={"assignment_id": assignment.id, "course_id": course.id})
    return assignment


def update_assignment(
    db: Session,
    *,
    assignment_id: int,
    payload: AssignmentUpdate,
    user: User,
    epsilon: float = DEFAULT_WEIGHT_EPSILON,
) -> Assignment:
    assignment = require_owned_assignment(db, assignment_id, user)
    changes = payload.model_dump(exclude_unset=True)

    weight = changes.get("points_weight")
    if weight is not None and weight != assignment.points_weight:
        check_weight_budget(
            db,
            course_id=assignment.course_id,
            requested_weight=weight,
            exclude_id=assignment.id,
            epsilon=epsilon,
        )

    for field, value in changes.items():
        if value is None and field in {"title", "due_date", "points_weight", "allow_late", "allow_resubmission"}:
            continue
        if field == "due_date":
            value = ensure_tz(value)
        if field == "title":
            value = value.strip()
        setattr(assignment, field, value)
    db.add(assignment)
    db.flush()
    log_activity(
        db,
        actor_user_id=user.id,
        activity_type="ASSIGNMENT_UPDATED",
        entity_type="assignment",
        entity_id=assignment.id,
        payload={"fields": sorted(changes)},
    )
    return assignment


def change_assignment_status(
    db: Session,
    *,
    assignment_id: int,
    new_status: AssignmentStatus,
    user: User,
    now: Optional[datetime] = None,
) -> Assignment:
    assignment = require_owned_assignment(db, assignment_id, user)
    current = assignment.status
    details = {"currentStatus": current.value, "requestedStatus": new_status.value}

    graded = current == AssignmentStatus.CLOSED and _has_graded_submissions(db, assignment.id)
    if not can_transition_assignment(current, new_status, has_graded_submissions=graded):
        message = f"Cannot change assignment status from {current.value} to {new_status.value}"
        if graded:
            message += " after grading has started"
        logger.info(
            "invalid_status_transition",
            extra={"assignment_id": assignment.id, "error_code": ErrorCode.INVALID_STATUS_TRANSITION},
        )
        raise ApiError.validation(ErrorCode.INVALID_STATUS_TRANSITION, message, details)

    now = resolve_now(now)
    if new_status == AssignmentStatus.PUBLISHED and not assignment.allow_late and is_past_due(assignment.due_date, now):
        raise ApiError.validation(
            ErrorCode.ASSIGNMENT_PAST_DEADLINE,
            "Cannot publish an assignment whose due date has passed",
            {"dueDate": ensure_tz(assignment.due_date).isoformat()},
        )

    assignment.status = new_status
    if new_status == AssignmentStatus.PUBLISHED and assignment.published_at is None:
        assignment.published_at = now
    if new_status == AssignmentStatus.CLOSED:
        assignment.closed_at = now
    db.add(assignment)
    db.flush()

    log_activity(
        db,
        actor_user_id=user.id,
        activity_type="ASSIGNMENT_STATUS_CHANGED",
        entity_type="assignment",
        entity_id=assignment.id,
        payload={"from": current.value, "to": new_status.value},
    )
    logger.info(
        "assignment_status_changed",
        extra={"assignment_id": assignment.id, "course_id": assignment.course_id, "user_id": user.id},
    )
    return assignment


def delete_assignment(db: Session, *, assignment_id: int, user: User) -> Assignment:
    assignment = require_owned_assignment(db, assignment_id, user)
    assignment.mark_deleted()
    db.add(assignment)
    db.flush()
    log_activity(
        db,
        actor_user_id=user.id,
        activity_type="ASSIGNMENT_DELETED",
        entity_type="assignment",
        entity_id=assignment.id,
    )
    return assignment


def assignment_stats(db: Session, *, assignment_id: int, user: User) -> AssignmentStats:
    assignment = require_owned_assignment(db, assignment_id, user)
    rows = (
        db.query(Submission.status, Submission.is_late, Submission.score)
        .filter(Submission.assignment_id == assignment.id)
        .all()
    )
    graded_scores = [score for status, _, score in rows if status == SubmissionStatus.GRADED]
    return AssignmentStats(
        assignment_id=assignment.id,
        total=len(rows),
        graded=len(graded_scores),
        pending=sum(1 for status, _, _ in rows if status != SubmissionStatus.GRADED),
        late=sum(1 for _, is_late, _ in rows if is_late),
        resubmission_required=sum(1 for status, _, _ in rows if status == SubmissionStatus.RESUBMISSION_REQUIRED),
        average_score=round(sum(graded_scores) / len(graded_scores), 2) if graded_scores else None,
    )


def close_expired_assignments(db: Session, now: Optional[datetime] = None) -> int:
    """Close every published, past-due assignment that does not accept late work.

    Runs as one conditional UPDATE, so a second run with no intervening change
    closes nothing. Commits on success and rolls back entirely on failure.
    """
    now = resolve_now(now)
    stmt = (
        update(Assignment)
        .where(
            Assignment.status == AssignmentStatus.PUBLISHED,
            Assignment.due_date < now,
            Assignment.allow_late.is_(False),
            Assignment.not_deleted(),
        )
        .values(status=AssignmentStatus.CLOSED, closed_at=now, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    try:
        closed = db.execute(stmt).rowcount or 0
        if closed:
            log_activity(
                db,
                actor_user_id=None,
                activity_type="ASSIGNMENTS_AUTO_CLOSED",
                entity_type="assignment",
                message=f"Closed {closed} expired assignment(s)",
                payload={"closed": closed, "ran_at": now.isoformat()},
            )
        db.commit()
        # Bulk UPDATE bypasses the identity map.
        db.expire_all()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("close_expired_failed")
        raise

    logger.info("close_expired_completed", extra={"closed": closed})
    return closed
