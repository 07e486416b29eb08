from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from lms.models.enums import ReportAction, ReportStatus, ReportTargetType
from lms.schemas.base import ORMModel, Page


class MetadataCreate(ORMModel):
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)


class MetadataUpdate(ORMModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    is_active: Optional[bool] = None


class CategoryRead(ORMModel):
    id: int
    name: str
    description: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class DifficultyCreate(MetadataCreate):
    sort_order: int = 0


class DifficultyUpdate(MetadataUpdate):
    sort_order: Optional[int] = None


class DifficultyRead(CategoryRead):
    sort_order: int


class ReportCreate(ORMModel):
    target_type: ReportTargetType
    target_id: int
    reason: str = Field(min_length=1, max_length=255)
    content: Optional[str] = None


class ReportRead(ORMModel):
    id: int
    reporter_id: int
    target_type: ReportTargetType
    target_id: int
    reason: str
    content: Optional[str] = None
    status: ReportStatus
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[int] = None
    created_at: datetime
    updated_at: datetime


class ReportPage(Page):
    reports: List[ReportRead]


class ReportStatusUpdate(ORMModel):
    status: ReportStatus


class ReportActionRequest(ORMModel):
    action: ReportAction
    note: Optional[str] = None
