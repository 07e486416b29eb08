from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from lms.models.enums import CourseStatus, EnrollmentStatus
from lms.schemas.base import ORMModel


class CourseCreate(ORMModel):
    title: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    category_id: Optional[int] = None
    difficulty_id: Optional[int] = None


class CourseUpdate(ORMModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    category_id: Optional[int] = None
    difficulty_id: Optional[int] = None


class CourseStatusUpdate(ORMModel):
    status: CourseStatus


class CourseRead(ORMModel):
    id: int
    owner_id: int
    title: str
    description: Optional[str] = None
    status: CourseStatus
    category_id: Optional[int] = None
    difficulty_id: Optional[int] = None
    enrollment_count: int = 0
    published_at: Optional[datetime] = None
    archived_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class CourseDetail(CourseRead):
    instructor_name: Optional[str] = None
    category_name: Optional[str] = None
    difficulty_name: Optional[str] = None
    is_enrolled: bool = False


class CourseListResponse(ORMModel):
    courses: List[CourseRead]
    total: int
    page: int
    limit: int


class EnrollmentRead(ORMModel):
    id: int
    course_id: int
    user_id: int
    status: EnrollmentStatus
    enrolled_at: datetime
    created_at: datetime
    updated_at: datetime


class MyEnrollmentRead(EnrollmentRead):
    course_title: str
    course_status: CourseStatus
