from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from lms.core.deps import get_current_user
from lms.db.session import get_db
from lms.models.user import User
from lms.schemas.course import EnrollmentRead, MyEnrollmentRead
from lms.services.enrollments import cancel_enrollment, list_my_enrollments

router = APIRouter(prefix="/api/enrollments", tags=["enrollments"])


@router.get("/me", response_model=List[MyEnrollmentRead])
def my_enrollments(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> List[MyEnrollmentRead]:
    return [
        MyEnrollmentRead(
            **EnrollmentRead.model_validate(enrollment).model_dump(),
            course_title=course.title,
            course_status=course.status,
        )
        for enrollment, course in list_my_enrollments(db, user=current_user)
    ]


@router.delete("/{enrollment_id}", response_model=EnrollmentRead)
def cancel(
    enrollment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> EnrollmentRead:
    enrollment = cancel_enrollment(db, enrollment_id=enrollment_id, user=current_user)
    db.commit()
    db.refresh(enrollment)
    return EnrollmentRead.model_validate(enrollment)
