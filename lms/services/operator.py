from __future__ import annotations

import logging
from typing import Optional, Type, Union

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from lms.core import rbac
from lms.core.errors import ApiError, ErrorCode
from lms.db.base import utcnow
from lms.models.course import Category, Difficulty
from lms.models.enums import ReportAction, ReportStatus, ReportTargetType, Role
from lms.models.report import Report
from lms.models.user import User
from lms.schemas.operator import MetadataCreate, MetadataUpdate, ReportCreate
from lms.services.activity import log_activity
from lms.utils.transitions import REPORT_ACTION_STATUS, can_transition_report

logger = logging.getLogger("lms.operator")

MetadataModel = Union[Category, Difficulty]


def _require_operator(user: User) -> None:
    rbac.require_roles(user, [Role.OPERATOR])


def _entity_name(model: Type[MetadataModel]) -> str:
    return "category" if model is Category else "difficulty"


def list_metadata(db: Session, model: Type[MetadataModel], *, user: User, is_active: Optional[bool] = None):
    _require_operator(user)
    query = db.query(model)
    if is_active is not None:
        query = query.filter(model.is_active.is_(is_active))
    if model is Difficulty:
        query = query.order_by(Difficulty.sort_order.asc(), Difficulty.name.asc())
    else:
        query = query.order_by(model.name.asc())
    return query.all()


def _require_metadata(db: Session, model: Type[MetadataModel], item_id: int) -> MetadataModel:
    item = db.get(model, item_id)
    if not item:
        raise ApiError.not_found(ErrorCode.METADATA_NOT_FOUND, f"{_entity_name(model).capitalize()} not found")
    return item


def _ensure_unique_name(db: Session, model: Type[MetadataModel], name: str, exclude_id: Optional[int] = None) -> None:
    query = db.query(model).filter(model.name == name)
    if exclude_id is not None:
        query = query.filter(model.id != exclude_id)
    if query.first():
        raise ApiError.conflict(
            ErrorCode.DUPLICATE_METADATA,
            f"A {_entity_name(model)} named '{name}' already exists",
        )


def create_metadata(db: Session, model: Type[MetadataModel], *, payload: MetadataCreate, user: User) -> MetadataModel:
    _require_operator(user)
    data = payload.model_dump()
    data["name"] = data["name"].strip()
    _ensure_unique_name(db, model, data["name"])
    item = model(**data)
    db.add(item)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        raise ApiError.conflict(ErrorCode.DUPLICATE_METADATA, f"A {_entity_name(model)} with this name already exists")
    log_activity(
        db,
        actor_user_id=user.id,
        activity_type=f"{_entity_name(model).upper()}_CREATED",
        entity_type=_entity_name(model),
        entity_id=item.id,
        message=item.name,
    )
    return item


def update_metadata(
    db: Session,
    model: Type[MetadataModel],
    *,
    item_id: int,
    payload: MetadataUpdate,
    user: User,
) -> MetadataModel:
    _require_operator(user)
    item = _require_metadata(db, model, item_id)
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("name"):
        changes["name"] = changes["name"].strip()
        _ensure_unique_name(db, model, changes["name"], exclude_id=item.id)
    for field, value in changes.items():
        if value is None and field in {"name", "is_active", "sort_order"}:
            continue
        setattr(item, field, value)
    db.add(item)
    db.flush()
    log_activity(
        db,
        actor_user_id=user.id,
        activity_type=f"{_entity_name(model).upper()}_UPDATED",
        entity_type=_entity_name(model),
        entity_id=item.id,
        payload={"fields": sorted(changes)},
    )
    return item


def deactivate_metadata(db: Session, model: Type[MetadataModel], *, item_id: int, user: User) -> MetadataModel:
    _require_operator(user)
    item = _require_metadata(db, model, item_id)
    item.is_active = False
    db.add(item)
    db.flush()
    log_activity(
        db,
        actor_user_id=user.id,
        activity_type=f"{_entity_name(model).upper()}_DEACTIVATED",
        entity_type=_entity_name(model),
        entity_id=item.id,
    )
    return item


def create_report(db: Session, *, payload: ReportCreate, user: User) -> Report:
    report = Report(
        reporter_id=user.id,
        target_type=payload.target_type,
        target_id=payload.target_id,
        reason=payload.reason.strip(),
        content=payload.content,
        status=ReportStatus.RECEIVED,
    )
    db.add(report)
    db.flush()
    log_activity(
        db,
        actor_user_id=user.id,
        activity_type="REPORT_CREATED",
        entity_type="report",
        entity_id=report.id,
        payload={"target_type": report.target_type.value, "target_id": report.target_id},
    )
    return report


def list_reports(
    db: Session,
    *,
    user: User,
    target_type: Optional[ReportTargetType] = None,
    status_filter: Optional[ReportStatus] = None,
    limit: int = 20,
    offset: int = 0,
) -> tuple[list[Report], int]:
    _require_operator(user)
    query = db.query(Report)
    if target_type is not None:
        query = query.filter(Report.target_type == target_type)
    if status_filter is not None:
        query = query.filter(Report.status == status_filter)
    total = query.count()
    reports = query.order_by(Report.created_at.desc(), Report.id.desc()).offset(offset).limit(limit).all()
    return reports, total


def get_report(db: Session, *, report_id: int, user: User) -> Report:
    _require_operator(user)
    report = db.get(Report, report_id)
    if not report:
        raise ApiError.not_found(ErrorCode.REPORT_NOT_FOUND, "Report not found")
    return report


def _apply_report_status(report: Report, new_status: ReportStatus, user: User) -> None:
    report.status = new_status
    if new_status == ReportStatus.RESOLVED:
        report.resolved_at = utcnow()
        report.resolved_by = user.id
    else:
        report.resolved_at = None
        report.resolved_by = None


def change_report_status(db: Session, *, report_id: int, new_status: ReportStatus, user: User) -> Report:
    report = get_report(db, report_id=report_id, user=user)
    current = report.status
    if not can_transition_report(current, new_status):
        raise ApiError.validation(
            ErrorCode.INVALID_REPORT_STATUS_TRANSITION,
            f"Cannot change report status from {current.value} to {new_status.value}",
            {"currentStatus": current.value, "requestedStatus": new_status.value},
        )
    _apply_report_status(report, new_status, user)
    db.add(report)
    db.flush()
    log_activity(
        db,
        actor_user_id=user.id,
        activity_type="REPORT_STATUS_CHANGED",
        entity_type="report",
        entity_id=report.id,
        payload={"from": current.value, "to": new_status.value},
    )
    return report


def apply_report_action(
    db: Session,
    *,
    report_id: int,
    action: ReportAction,
    user: User,
    note: Optional[str] = None,
) -> Report:
    report = get_report(db, report_id=report_id, user=user)
    current = report.status
    target = REPORT_ACTION_STATUS[action]
    if current != target:
        if not can_transition_report(current, target):
            raise ApiError.validation(
                ErrorCode.INVALID_REPORT_STATUS_TRANSITION,
                f"Action {action.value} is not available for a {current.value} report",
                {"currentStatus": current.value, "action": action.value},
            )
        _apply_report_status(report, target, user)
    db.add(report)
    db.flush()
    log_activity(
        db,
        actor_user_id=user.id,
        activity_type=f"REPORT_{action.value.upper()}",
        entity_type="report",
        entity_id=report.id,
        message=note,
        payload={"from": current.value, "to": target.value},
    )
    logger.info("report_action", extra={"user_id": user.id})
    return report
