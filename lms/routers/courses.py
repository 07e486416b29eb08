from __future__ import annotations

from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from lms.core.deps import get_current_user
from lms.db.session import get_db
from lms.models.course import Course
from lms.models.enrollment import Enrollment
from lms.models.enums import EnrollmentStatus
from lms.models.user import User
from lms.schemas.course import (
    CourseCreate,
    CourseDetail,
    CourseListResponse,
    CourseRead,
    CourseStatusUpdate,
    CourseUpdate,
    EnrollmentRead,
)
from lms.services import courses as course_service
from lms.services.enrollments import enroll

router = APIRouter(prefix="/api/courses", tags=["courses"])


def _course_read(db: Session, course: Course) -> CourseRead:
    count = course_service.enrollment_counts(db, [course.id]).get(course.id, 0)
    return CourseRead.model_validate(course).model_copy(update={"enrollment_count": count})


@router.get("", response_model=CourseListResponse)
def list_courses(
    search: Optional[str] = Query(None, max_length=200),
    category_id: Optional[int] = Query(None, alias="categoryId"),
    difficulty_id: Optional[int] = Query(None, alias="difficultyId"),
    sort: Literal["newest", "popular"] = Query("newest"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> CourseListResponse:
    courses, total, counts = course_service.list_catalog(
        db,
        search=search,
        category_id=category_id,
        difficulty_id=difficulty_id,
        sort=sort,
        page=page,
        limit=limit,
    )
    return CourseListResponse(
        courses=[
            CourseRead.model_validate(course).model_copy(update={"enrollment_count": counts.get(course.id, 0)})
            for course in courses
        ],
        total=total,
        page=page,
        limit=limit,
    )


@router.get("/{course_id}", response_model=CourseDetail)
def get_course(
    course_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> CourseDetail:
    course = course_service.require_course(db, course_id)
    is_enrolled = (
        db.query(Enrollment.id)
        .filter(
            Enrollment.course_id == course.id,
            Enrollment.user_id == current_user.id,
            Enrollment.status == EnrollmentStatus.ACTIVE,
        )
        .first()
        is not None
    )
    base = _course_read(db, course)
    return CourseDetail(
        **base.model_dump(),
        instructor_name=course.owner.display_name if course.owner else None,
        category_name=course.category.name if course.category else None,
        difficulty_name=course.difficulty.name if course.difficulty else None,
        is_enrolled=is_enrolled,
    )


@router.post("", response_model=CourseRead, status_code=status.HTTP_201_CREATED)
def create_course(
    course_in: CourseCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> CourseRead:
    course = course_service.create_course(db, payload=course_in, user=current_user)
    db.commit()
    db.refresh(course)
    return _course_read(db, course)


@router.put("/{course_id}", response_model=CourseRead)
def update_course(
    course_id: int,
    course_in: CourseUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> CourseRead:
    course = course_service.update_course(db, course_id=course_id, payload=course_in, user=current_user)
    db.commit()
    db.refresh(course)
    return _course_read(db, course)


@router.patch("/{course_id}/status", response_model=CourseRead)
def change_course_status(
    course_id: int,
    status_in: CourseStatusUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> CourseRead:
    course = course_service.change_course_status(
        db, course_id=course_id, new_status=status_in.status, user=current_user
    )
    db.commit()
    db.refresh(course)
    return _course_read(db, course)


@router.delete("/{course_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_course(
    course_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Response:
    course_service.delete_course(db, course_id=course_id, user=current_user)
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{course_id}/enroll", response_model=EnrollmentRead, status_code=status.HTTP_201_CREATED)
def enroll_in_course(
    course_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> EnrollmentRead:
    enrollment = enroll(db, course_id=course_id, user=current_user)
    db.commit()
    db.refresh(enrollment)
    return EnrollmentRead.model_validate(enrollment)
