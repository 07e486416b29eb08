from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.orm import Session

from lms.models.assignment import Assignment
from lms.models.course import Course
from lms.models.enrollment import Enrollment
from lms.models.enums import AssignmentStatus, CourseStatus, EnrollmentStatus, Role, SubmissionStatus
from lms.models.submission import Submission
from lms.models.user import User


def utc(days: float = 0, hours: float = 0) -> datetime:
    return datetime.now(timezone.utc) + timedelta(days=days, hours=hours)


def make_user(db: Session, email: str, role: Role, full_name: str) -> User:
    user = User(email=email, full_name=full_name, role=role, is_active=True)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_course(
    db: Session,
    owner: User,
    *,
    title: str = "Intro to Testing",
    status: CourseStatus = CourseStatus.PUBLISHED,
) -> Course:
    course = Course(owner_id=owner.id, title=title, description="A course", status=status)
    db.add(course)
    db.commit()
    db.refresh(course)
    return course


def make_assignment(
    db: Session,
    course: Course,
    *,
    title: str = "Homework",
    weight: float = 0.2,
    status: AssignmentStatus = AssignmentStatus.PUBLISHED,
    due_date: Optional[datetime] = None,
    allow_late: bool = False,
    allow_resubmission: bool = False,
) -> Assignment:
    assignment = Assignment(
        course_id=course.id,
        title=title,
        description=f"{title} description",
        due_date=due_date or utc(days=7),
        points_weight=weight,
        status=status,
        allow_late=allow_late,
        allow_resubmission=allow_resubmission,
    )
    db.add(assignment)
    db.commit()
    db.refresh(assignment)
    return assignment


def enroll_user(db: Session, course: Course, user: User) -> Enrollment:
    enrollment = Enrollment(course_id=course.id, user_id=user.id, status=EnrollmentStatus.ACTIVE)
    db.add(enrollment)
    db.commit()
    db.refresh(enrollment)
    return enrollment


def make_submission(
    db: Session,
    assignment: Assignment,
    user: User,
    *,
    status: SubmissionStatus = SubmissionStatus.SUBMITTED,
    score: Optional[float] = None,
    feedback: Optional[str] = None,
    graded_at: Optional[datetime] = None,
) -> Submission:
    submission = Submission(
        assignment_id=assignment.id,
        user_id=user.id,
        content="My answer",
        status=status,
        score=score,
        feedback=feedback,
        graded_at=graded_at or (utc() if status == SubmissionStatus.GRADED else None),
    )
    db.add(submission)
    db.commit()
    db.refresh(submission)
    return submission
