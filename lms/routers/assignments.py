from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from lms.core import rbac
from lms.core.deps import get_current_user
from lms.core.observability import record_sweep
from lms.core.settings import Settings, get_settings
from lms.db.session import get_db
from lms.models.enums import Role
from lms.models.user import User
from lms.schemas.assignment import (
    AssignmentCreate,
    AssignmentRead,
    AssignmentStats,
    AssignmentStatusUpdate,
    AssignmentUpdate,
    CloseExpiredResult,
)
from lms.schemas.submission import SubmissionCreate, SubmissionListItem, SubmissionPage, SubmissionRead
from lms.services import assignments as assignment_service
from lms.services import submissions as submission_service
from lms.utils.dates import resolve_now

router = APIRouter(prefix="/api", tags=["assignments"])


@router.get("/courses/{course_id}/assignments", response_model=List[AssignmentRead])
def list_assignments(
    course_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> List[AssignmentRead]:
    assignments = assignment_service.list_course_assignments(db, course_id=course_id, user=current_user)
    return [AssignmentRead.model_validate(a) for a in assignments]


@router.post(
    "/courses/{course_id}/assignments",
    response_model=AssignmentRead,
    status_code=status.HTTP_201_CREATED,
)
def create_assignment(
    course_id: int,
    assignment_in: AssignmentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
) -> AssignmentRead:
    assignment = assignment_service.create_assignment(
        db,
        course_id=course_id,
        payload=assignment_in,
        user=current_user,
        epsilon=settings.weight_epsilon,
    )
    db.commit()
    db.refresh(assignment)
    return AssignmentRead.model_validate(assignment)


@router.post("/assignments/close-expired", response_model=CloseExpiredResult)
def close_expired(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> CloseExpiredResult:
    """Close overdue assignments; intended for an external scheduler."""
    rbac.require_roles(current_user, [Role.OPERATOR])
    now = resolve_now()
    closed = assignment_service.close_expired_assignments(db, now=now)
    record_sweep(closed)
    return CloseExpiredResult(closed=closed, ran_at=now)


@router.get("/assignments/{assignment_id}", response_model=AssignmentRead)
def get_assignment(
    assignment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> AssignmentRead:
    assignment = assignment_service.get_visible_assignment(db, assignment_id=assignment_id, user=current_user)
    return AssignmentRead.model_validate(assignment)


@router.put("/assignments/{assignment_id}", response_model=AssignmentRead)
def update_assignment(
    assignment_id: int,
    assignment_in: AssignmentUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
) -> AssignmentRead:
    assignment = assignment_service.update_assignment(
        db,
        assignment_id=assignment_id,
        payload=assignment_in,
        user=current_user,
        epsilon=settings.weight_epsilon,
    )
    db.commit()
    db.refresh(assignment)
    return AssignmentRead.model_validate(assignment)


@router.patch("/assignments/{assignment_id}/status", response_model=AssignmentRead)
def change_assignment_status(
    assignment_id: int,
    status_in: AssignmentStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> AssignmentRead:
    assignment = assignment_service.change_assignment_status(
        db, assignment_id=assignment_id, new_status=status_in.status, user=current_user
    )
    db.commit()
    db.refresh(assignment)
    return AssignmentRead.model_validate(assignment)


@router.delete("/assignments/{assignment_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_assignment(
    assignment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Response:
    assignment_service.delete_assignment(db, assignment_id=assignment_id, user=current_user)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/assignments/{assignment_id}/stats", response_model=AssignmentStats)
def assignment_stats(
    assignment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> AssignmentStats:
    return assignment_service.assignment_stats(db, assignment_id=assignment_id, user=current_user)


@router.post("/assignments/{assignment_id}/submit", response_model=SubmissionRead)
def submit_assignment(
    assignment_id: int,
    submission_in: SubmissionCreate,
    response: Response,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> SubmissionRead:
    submission, created = submission_service.submit_assignment(
        db, assignment_id=assignment_id, payload=submission_in, user=current_user
    )
    db.commit()
    db.refresh(submission)
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return SubmissionRead.model_validate(submission)


@router.get("/assignments/{assignment_id}/submissions", response_model=SubmissionPage)
def list_submissions(
    assignment_id: int,
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> SubmissionPage:
    rows, total = submission_service.list_submissions(
        db, assignment_id=assignment_id, user=current_user, limit=limit, offset=offset
    )
    return SubmissionPage(
        submissions=[
            SubmissionListItem(
                **SubmissionRead.model_validate(submission).model_dump(),
                learner_name=learner.display_name,
            )
            for submission, learner in rows
        ],
        total=total,
        limit=limit,
        offset=offset,
    )
