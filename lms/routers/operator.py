from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from lms.core.deps import get_current_user
from lms.db.session import get_db
from lms.models.course import Category, Difficulty
from lms.models.enums import ReportStatus, ReportTargetType
from lms.models.user import User
from lms.schemas.operator import (
    CategoryRead,
    DifficultyCreate,
    DifficultyRead,
    DifficultyUpdate,
    MetadataCreate,
    MetadataUpdate,
    ReportActionRequest,
    ReportPage,
    ReportRead,
    ReportStatusUpdate,
)
from lms.services import operator as operator_service

router = APIRouter(prefix="/api/operator", tags=["operator"])


@router.get("/categories", response_model=List[CategoryRead])
def list_categories(
    is_active: Optional[bool] = Query(None, alias="isActive"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> List[CategoryRead]:
    items = operator_service.list_metadata(db, Category, user=current_user, is_active=is_active)
    return [CategoryRead.model_validate(item) for item in items]


@router.post("/categories", response_model=CategoryRead, status_code=status.HTTP_201_CREATED)
def create_category(
    category_in: MetadataCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> CategoryRead:
    category = operator_service.create_metadata(db, Category, payload=category_in, user=current_user)
    db.commit()
    db.refresh(category)
    return CategoryRead.model_validate(category)


@router.patch("/categories/{category_id}", response_model=CategoryRead)
def update_category(
    category_id: int,
    category_in: MetadataUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> CategoryRead:
    category = operator_service.update_metadata(
        db, Category, item_id=category_id, payload=category_in, user=current_user
    )
    db.commit()
    db.refresh(category)
    return CategoryRead.model_validate(category)


@router.delete("/categories/{category_id}", response_model=CategoryRead)
def deactivate_category(
    category_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> CategoryRead:
    category = operator_service.deactivate_metadata(db, Category, item_id=category_id, user=current_user)
    db.commit()
    db.refresh(category)
    return CategoryRead.model_validate(category)


@router.get("/difficulties", response_model=List[DifficultyRead])
def list_difficulties(
    is_active: Optional[bool] = Query(None, alias="isActive"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> List[DifficultyRead]:
    items = operator_service.list_metadata(db, Difficulty, user=current_user, is_active=is_active)
    return [DifficultyRead.model_validate(item) for item in items]


@router.post("/difficulties", response_model=DifficultyRead, status_code=status.HTTP_201_CREATED)
def create_difficulty(
    difficulty_in: DifficultyCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> DifficultyRead:
    difficulty = operator_service.create_metadata(db, Difficulty, payload=difficulty_in, user=current_user)
    db.commit()
    db.refresh(difficulty)
    return DifficultyRead.model_validate(difficulty)


@router.patch("/difficulties/{difficulty_id}", response_model=DifficultyRead)
def update_difficulty(
    difficulty_id: int,
    difficulty_in: DifficultyUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> DifficultyRead:
    difficulty = operator_service.update_metadata(
        db, Difficulty, item_id=difficulty_id, payload=difficulty_in, user=current_user
    )
    db.commit()
    db.refresh(difficulty)
    return DifficultyRead.model_validate(difficulty)


@router.delete("/difficulties/{difficulty_id}", response_model=DifficultyRead)
def deactivate_difficulty(
    difficulty_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> DifficultyRead:
    difficulty = operator_service.deactivate_metadata(db, Difficulty, item_id=difficulty_id, user=current_user)
    db.commit()
    db.refresh(difficulty)
    return DifficultyRead.model_validate(difficulty)


@router.get("/reports", response_model=ReportPage)
def list_reports(
    target_type: Optional[ReportTargetType] = Query(None, alias="targetType"),
    status_filter: Optional[ReportStatus] = Query(None, alias="status"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ReportPage:
    reports, total = operator_service.list_reports(
        db,
        user=current_user,
        target_type=target_type,
        status_filter=status_filter,
        limit=limit,
        offset=offset,
    )
    return ReportPage(
        reports=[ReportRead.model_validate(report) for report in reports],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/reports/{report_id}", response_model=ReportRead)
def get_report(
    report_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ReportRead:
    return ReportRead.model_validate(operator_service.get_report(db, report_id=report_id, user=current_user))


@router.patch("/reports/{report_id}/status", response_model=ReportRead)
def change_report_status(
    report_id: int,
    status_in: ReportStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ReportRead:
    report = operator_service.change_report_status(
        db, report_id=report_id, new_status=status_in.status, user=current_user
    )
    db.commit()
    db.refresh(report)
    return ReportRead.model_validate(report)


@router.post("/reports/{report_id}/actions", response_model=ReportRead)
def report_action(
    report_id: int,
    action_in: ReportActionRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ReportRead:
    report = operator_service.apply_report_action(
        db, report_id=report_id, action=action_in.action, note=action_in.note, user=current_user
    )
    db.commit()
    db.refresh(report)
    return ReportRead.model_validate(report)
