from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from lms.core.deps import get_current_user
from lms.db.session import get_db
from lms.models.user import User
from lms.schemas.grade import GradeReport
from lms.services.grading import learner_grade_report

router = APIRouter(prefix="/api/grades", tags=["grades"])


@router.get("", response_model=GradeReport)
def my_grades(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    course_id: Optional[int] = Query(None, alias="courseId"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> GradeReport:
    return learner_grade_report(db, user=current_user, limit=limit, offset=offset, course_id=course_id)
