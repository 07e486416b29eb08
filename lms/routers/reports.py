from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from lms.core.deps import get_current_user
from lms.db.session import get_db
from lms.models.user import User
from lms.schemas.operator import ReportCreate, ReportRead
from lms.services.operator import create_report

router = APIRouter(prefix="/api/reports", tags=["reports"])


@router.post("", response_model=ReportRead, status_code=status.HTTP_201_CREATED)
def file_report(
    report_in: ReportCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ReportRead:
    report = create_report(db, payload=report_in, user=current_user)
    db.commit()
    db.refresh(report)
    return ReportRead.model_validate(report)
