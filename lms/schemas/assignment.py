from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import Field

from lms.models.enums import AssignmentStatus
from lms.schemas.base import ORMModel


class AssignmentCreate(ORMModel):
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    due_date: datetime
    points_weight: float = Field(ge=0, le=1)
    allow_late: bool = False
    allow_resubmission: bool = False


class AssignmentUpdate(ORMModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    due_date: Optional[datetime] = None
    points_weight: Optional[float] = Field(default=None, ge=0, le=1)
    allow_late: Optional[bool] = None
    allow_resubmission: Optional[bool] = None


class AssignmentStatusUpdate(ORMModel):
    status: AssignmentStatus


class AssignmentRead(ORMModel):
    id: int
    course_id: int
    title: str
    description: Optional[str] = None
    due_date: datetime
    points_weight: float
    status: AssignmentStatus
    allow_late: bool
    allow_resubmission: bool
    published_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class AssignmentStats(ORMModel):
    assignment_id: int
    total: int = 0
    graded: int = 0
    pending: int = 0
    late: int = 0
    resubmission_required: int = 0
    average_score: Optional[float] = None


class CloseExpiredResult(ORMModel):
    closed: int
    ran_at: datetime
