from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from lms.core import rbac
from lms.core.errors import ApiError, ErrorCode
from lms.db.queries import get_active_assignment, has_active_enrollment
from lms.models.assignment import Assignment
from lms.models.enums import AssignmentStatus, GradeAction, SubmissionStatus
from lms.models.submission import Submission
from lms.models.user import User
from lms.schemas.submission import GradeRequest, SubmissionCreate
from lms.services.activity import log_activity
from lms.services.assignments import require_assignment, require_owned_assignment
from lms.utils.dates import is_past_due, resolve_now
from lms.utils.transitions import next_submission_status

logger = logging.getLogger("lms.submissions")

MIN_SCORE = 0.0
MAX_SCORE = 100.0


def _already_exists() -> ApiError:
    return ApiError.validation(
        ErrorCode.SUBMISSION_ALREADY_EXISTS,
        "A submission already exists for this assignment",
    )


def _state_conflict(submission_id: int, observed: SubmissionStatus) -> ApiError:
    logger.warning(
        "submission_state_conflict",
        extra={"submission_id": submission_id, "error_code": ErrorCode.SUBMISSION_STATE_CONFLICT},
    )
    return ApiError.conflict(
        ErrorCode.SUBMISSION_STATE_CONFLICT,
        "Submission changed while the request was processed; reload and retry",
        {"expectedStatus": observed.value},
    )


def _guarded_update(db: Session, submission: Submission, observed: SubmissionStatus, **values) -> Submission:
    """Write ``values`` only if the row still has the status seen during validation."""
    stmt = (
        update(Submission)
        .where(Submission.id == submission.id, Submission.status == observed)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if db.execute(stmt).rowcount != 1:
        db.rollback()
        raise _state_conflict(submission.id, observed)
    db.refresh(submission)
    return submission


def _check_submittable(assignment: Assignment, now: datetime) -> bool:
    """Validate assignment state; returns whether the attempt is late."""
    if assignment.status == AssignmentStatus.CLOSED:
        raise ApiError.validation(ErrorCode.ASSIGNMENT_CLOSED, "Assignment is closed for submissions")
    if assignment.status != AssignmentStatus.PUBLISHED:
        raise ApiError.validation(ErrorCode.ASSIGNMENT_NOT_PUBLISHED, "Assignment is not published")

    late = is_past_due(assignment.due_date, now)
    if late and not assignment.allow_late:
        raise ApiError.validation(
            ErrorCode.SUBMISSION_PAST_DUE_DATE,
            "The due date has passed and late submissions are not accepted",
        )
    return late


def submit_assignment(
    db: Session,
    *,
    assignment_id: int,
    payload: SubmissionCreate,
    user: User,
    now: Optional[datetime] = None,
) -> tuple[Submission, bool]:
    """Create or resubmit the learner's submission.

    Returns the submission and whether a new row was inserted.
    """
    assignment = require_assignment(db, assignment_id)
    if not has_active_enrollment(db, assignment.course_id, user.id):
        logger.warning(
            "submit_not_enrolled",
            extra={"assignment_id": assignment.id, "user_id": user.id, "error_code": ErrorCode.INSUFFICIENT_PERMISSIONS},
        )
        raise ApiError.forbidden("Not enrolled in this course")

    now = resolve_now(now)
    is_late = _check_submittable(assignment, now)
    content = payload.content
    link = str(payload.link) if payload.link else None

    existing = (
        db.query(Submission)
        .filter(Submission.assignment_id == assignment.id, Submission.user_id == user.id)
        .first()
    )

    if existing is None:
        submission = Submission(
            assignment_id=assignment.id,
            user_id=user.id,
            content=content,
            link=link,
            status=SubmissionStatus.SUBMITTED,
            is_late=is_late,
            submitted_at=now,
        )
        db.add(submission)
        try:
            db.flush()
        except IntegrityError:
            # Lost the race against a concurrent first submission.
            db.rollback()
            raise _already_exists()
        log_activity(
            db,
            actor_user_id=user.id,
            activity_type="SUBMISSION_CREATED",
            entity_type="submission",
            entity_id=submission.id,
            payload={"assignment_id": assignment.id, "is_late": is_late},
        )
        logger.info(
            "submission_created",
            extra={"submission_id": submission.id, "assignment_id": assignment.id, "user_id": user.id},
        )
        return submission, True

    observed = existing.status
    next_status = next_submission_status(observed, submit=True, allow_resubmission=assignment.allow_resubmission)
    if next_status is None:
        raise _already_exists()

    submission = _guarded_update(
        db,
        existing,
        observed,
        content=content,
        link=link,
        status=next_status,
        score=None,
        graded_at=None,
        is_late=is_late,
        submitted_at=now,
        updated_at=now,
    )
    log_activity(
        db,
        actor_user_id=user.id,
        activity_type="SUBMISSION_RESUBMITTED",
        entity_type="submission",
        entity_id=submission.id,
        payload={"assignment_id": assignment.id, "previous_status": observed.value, "is_late": is_late},
    )
    logger.info(
        "submission_resubmitted",
        extra={"submission_id": submission.id, "assignment_id": assignment.id, "user_id": user.id},
    )
    return submission, False


def _require_submission(db: Session, submission_id: int) -> Submission:
    submission = db.get(Submission, submission_id)
    if not submission or get_active_assignment(db, submission.assignment_id) is None:
        raise ApiError.not_found(ErrorCode.SUBMISSION_NOT_FOUND, "Submission not found")
    return submission


def _validate_grade(payload: GradeRequest) -> tuple[Optional[float], str]:
    feedback = (payload.feedback or "").strip()
    if payload.action == GradeAction.GRADE:
        if payload.score is None or not (MIN_SCORE <= payload.score <= MAX_SCORE):
            raise ApiError.validation(
                ErrorCode.INVALID_SCORE_RANGE,
                "Score must be between 0 and 100",
                [{"field": "score", "message": "must be between 0 and 100"}],
            )
        if not feedback:
            raise ApiError.validation(
                ErrorCode.MISSING_FEEDBACK,
                "Feedback is required when grading",
                [{"field": "feedback", "message": "required"}],
            )
        return float(payload.score), feedback

    if not feedback:
        raise ApiError.validation(
            ErrorCode.MISSING_FEEDBACK,
            "Feedback is required when requesting a resubmission",
            [{"field": "feedback", "message": "required"}],
        )
    return None, feedback


def grade_submission(
    db: Session,
    *,
    submission_id: int,
    payload: GradeRequest,
    user: User,
    now: Optional[datetime] = None,
) -> Submission:
    submission = _require_submission(db, submission_id)
    assignment = require_assignment(db, submission.assignment_id)
    if user.id != assignment.course.owner_id:
        logger.warning(
            "grade_denied",
            extra={
                "submission_id": submission.id,
                "user_id": user.id,
                "error_code": ErrorCode.INSUFFICIENT_PERMISSIONS,
            },
        )
        raise ApiError.forbidden("Only the course instructor can grade this submission")

    score, feedback = _validate_grade(payload)
    observed = submission.status
    next_status = next_submission_status(observed, grade_action=payload.action)
    if next_status is None:
        raise ApiError.validation(ErrorCode.INVALID_STATUS_TRANSITION, "Submission cannot be graded")

    now = resolve_now(now)
    submission = _guarded_update(
        db,
        submission,
        observed,
        status=next_status,
        score=score,
        feedback=feedback,
        graded_at=now,
        updated_at=now,
    )
    log_activity(
        db,
        actor_user_id=user.id,
        activity_type="SUBMISSION_GRADED" if next_status == SubmissionStatus.GRADED else "RESUBMISSION_REQUESTED",
        entity_type="submission",
        entity_id=submission.id,
        payload={"assignment_id": assignment.id, "previous_status": observed.value, "score": score},
    )
    logger.info(
        "submission_graded",
        extra={"submission_id": submission.id, "assignment_id": assignment.id, "user_id": user.id},
    )
    return submission


def get_submission(db: Session, *, submission_id: int, user: User) -> Submission:
    submission = _require_submission(db, submission_id)
    if submission.user_id == user.id:
        return submission
    owner_id = submission.assignment.course.owner_id
    rbac.require_owner(user, owner_id, "Not allowed to view this submission")
    return submission


def list_submissions(
    db: Session,
    *,
    assignment_id: int,
    user: User,
    limit: int = 20,
    offset: int = 0,
) -> tuple[list[tuple[Submission, User]], int]:
    assignment = require_owned_assignment(db, assignment_id, user)
    query = (
        db.query(Submission, User)
        .join(User, User.id == Submission.user_id)
        .filter(Submission.assignment_id == assignment.id)
    )
    total = query.count()
    rows = (
        query.order_by(Submission.submitted_at.desc(), Submission.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return rows, total
