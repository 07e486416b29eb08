from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from lms.core.deps import get_current_user
from lms.core.settings import Settings, get_settings
from lms.db.session import get_db
from lms.models.user import User
from lms.schemas.dashboard import InstructorDashboard, LearnerDashboard, OperatorDashboard
from lms.services import dashboard as dashboard_service

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


@router.get("/learner", response_model=LearnerDashboard)
def learner(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
) -> LearnerDashboard:
    return dashboard_service.learner_dashboard(
        db,
        user=current_user,
        upcoming_days=settings.upcoming_window_days,
        feedback_limit=settings.recent_feedback_limit,
    )


@router.get("/instructor", response_model=InstructorDashboard)
def instructor(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
) -> InstructorDashboard:
    return dashboard_service.instructor_dashboard(
        db,
        user=current_user,
        recent_limit=settings.recent_submissions_limit,
    )


@router.get("/operator", response_model=OperatorDashboard)
def operator(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> OperatorDashboard:
    return dashboard_service.operator_dashboard(db, user=current_user)
