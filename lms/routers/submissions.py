from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from lms.core.deps import get_current_user
from lms.db.session import get_db
from lms.models.user import User
from lms.schemas.submission import GradeRequest, SubmissionRead
from lms.services.submissions import get_submission, grade_submission

router = APIRouter(prefix="/api/submissions", tags=["submissions"])


@router.get("/{submission_id}", response_model=SubmissionRead)
def read_submission(
    submission_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> SubmissionRead:
    return SubmissionRead.model_validate(get_submission(db, submission_id=submission_id, user=current_user))


@router.put("/{submission_id}/grade", response_model=SubmissionRead)
def grade(
    submission_id: int,
    grade_in: GradeRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> SubmissionRead:
    """Grade a submission or send it back for resubmission."""
    submission = grade_submission(db, submission_id=submission_id, payload=grade_in, user=current_user)
    db.commit()
    db.refresh(submission)
    return SubmissionRead.model_validate(submission)
