from __future__ import annotations

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from lms.core import rbac
from lms.db.queries import active_assignments, active_courses, active_enrollments, visible_assignments
from lms.models.assignment import Assignment
from lms.models.course import Category, Course, Difficulty
from lms.models.enums import NOT_SUBMITTED, CourseStatus, ReportStatus, Role, SubmissionStatus
from lms.models.report import Report
from lms.models.submission import Submission
from lms.models.user import User
from lms.schemas.dashboard import (
    AssignmentSubmissionStatus,
    CourseProgress,
    FeedbackSummary,
    InstructorCourse,
    InstructorDashboard,
    LearnerDashboard,
    OperatorDashboard,
    RecentSubmission,
    UpcomingAssignment,
)
from lms.services.courses import enrollment_counts
from lms.utils.dates import ensure_tz, is_due_within, resolve_now


def completion_percentage(graded: int, total: int) -> int:
    if total <= 0:
        return 0
    value = Decimal(graded) * Decimal(100) / Decimal(total)
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def learner_dashboard(
    db: Session,
    *,
    user: User,
    now: Optional[datetime] = None,
    upcoming_days: int = 3,
    feedback_limit: int = 5,
) -> LearnerDashboard:
    rbac.require_roles(user, [Role.LEARNER])
    now = resolve_now(now)

    courses = [course for _, course in active_enrollments(db, user.id).add_entity(Course).all()]
    if not courses:
        return LearnerDashboard()
    courses_by_id = {course.id: course for course in courses}

    assignments = (
        visible_assignments(db)
        .filter(Assignment.course_id.in_(list(courses_by_id)))
        .order_by(Assignment.due_date.asc(), Assignment.id.asc())
        .all()
    )
    submissions = (
        db.query(Submission)
        .filter(
            Submission.user_id == user.id,
            Submission.assignment_id.in_([assignment.id for assignment in assignments]),
        )
        .all()
    )
    by_assignment = {submission.assignment_id: submission for submission in submissions}

    enrolled_courses = []
    for course in courses:
        course_assignments = [a for a in assignments if a.course_id == course.id]
        graded = sum(
            1
            for a in course_assignments
            if a.id in by_assignment and by_assignment[a.id].status == SubmissionStatus.GRADED
        )
        enrolled_courses.append(
            CourseProgress(
                course_id=course.id,
                course_title=course.title,
                completed_assignments=graded,
                total_assignments=len(course_assignments),
                progress_percentage=completion_percentage(graded, len(course_assignments)),
                status=course.status,
            )
        )

    upcoming = []
    all_status = []
    for assignment in assignments:
        course = courses_by_id[assignment.course_id]
        submission = by_assignment.get(assignment.id)
        status = submission.status.value if submission else NOT_SUBMITTED
        is_late = bool(submission and submission.is_late)
        if is_due_within(assignment.due_date, upcoming_days, now):
            upcoming.append(
                UpcomingAssignment(
                    id=assignment.id,
                    title=assignment.title,
                    course_id=course.id,
                    course_title=course.title,
                    due_date=ensure_tz(assignment.due_date),
                    status=status,
                    is_late=is_late,
                )
            )
        all_status.append(
            AssignmentSubmissionStatus(
                assignment_id=assignment.id,
                assignment_title=assignment.title,
                course_id=course.id,
                course_title=course.title,
                submission_id=submission.id if submission else None,
                status=status,
                is_late=is_late,
                score=submission.score if submission else None,
                submitted_at=submission.submitted_at if submission else None,
            )
        )

    assignments_by_id = {assignment.id: assignment for assignment in assignments}
    graded_submissions = sorted(
        (s for s in submissions if s.status == SubmissionStatus.GRADED and s.graded_at is not None),
        key=lambda s: ensure_tz(s.graded_at),
        reverse=True,
    )
    recent_feedback = []
    for submission in graded_submissions[:feedback_limit]:
        assignment = assignments_by_id[submission.assignment_id]
        course = courses_by_id[assignment.course_id]
        recent_feedback.append(
            FeedbackSummary(
                id=submission.id,
                assignment_id=assignment.id,
                assignment_title=assignment.title,
                course_id=course.id,
                course_title=course.title,
                feedback=submission.feedback,
                score=submission.score,
                graded_at=submission.graded_at,
            )
        )

    return LearnerDashboard(
        enrolled_courses=enrolled_courses,
        upcoming_assignments=upcoming,
        recent_feedback=recent_feedback,
        all_assignments_status=all_status,
    )


def instructor_dashboard(db: Session, *, user: User, recent_limit: int = 10) -> InstructorDashboard:
    rbac.require_roles(user, [Role.INSTRUCTOR])

    courses = (
        active_courses(db)
        .filter(Course.owner_id == user.id)
        .order_by(Course.created_at.desc(), Course.id.desc())
        .all()
    )
    if not courses:
        return InstructorDashboard()
    course_ids = [course.id for course in courses]

    enrolled = enrollment_counts(db, course_ids)
    assignment_counts = dict(
        active_assignments(db)
        .filter(Assignment.course_id.in_(course_ids))
        .with_entities(Assignment.course_id, func.count(Assignment.id))
        .group_by(Assignment.course_id)
        .all()
    )

    owned_submissions = (
        db.query(Submission)
        .join(Assignment, Assignment.id == Submission.assignment_id)
        .join(Course, Course.id == Assignment.course_id)
        .filter(Course.id.in_(course_ids), Assignment.not_deleted())
    )
    pending = owned_submissions.filter(Submission.status != SubmissionStatus.GRADED).count()

    recent_rows = (
        owned_submissions.join(User, User.id == Submission.user_id)
        .with_entities(Submission, Assignment, Course, User)
        .order_by(Submission.submitted_at.desc(), Submission.id.desc())
        .limit(recent_limit)
        .all()
    )

    return InstructorDashboard(
        courses=[
            InstructorCourse(
                id=course.id,
                title=course.title,
                status=course.status,
                enrollment_count=enrolled.get(course.id, 0),
                assignment_count=assignment_counts.get(course.id, 0),
                created_at=course.created_at,
            )
            for course in courses
        ],
        pending_grading_count=pending,
        recent_submissions=[
            RecentSubmission(
                id=submission.id,
                assignment_id=assignment.id,
                assignment_title=assignment.title,
                course_id=course.id,
                course_title=course.title,
                student_name=learner.display_name,
                submitted_at=submission.submitted_at,
                status=submission.status.value,
                is_late=submission.is_late,
            )
            for submission, assignment, course, learner in recent_rows
        ],
    )


def operator_dashboard(db: Session, *, user: User) -> OperatorDashboard:
    rbac.require_roles(user, [Role.OPERATOR])

    courses_by_status = {status.value: 0 for status in CourseStatus}
    for status, count in (
        active_courses(db).with_entities(Course.status, func.count(Course.id)).group_by(Course.status).all()
    ):
        courses_by_status[status.value] = count

    reports_by_status = {status.value: 0 for status in ReportStatus}
    for status, count in db.query(Report.status, func.count(Report.id)).group_by(Report.status).all():
        reports_by_status[status.value] = count

    return OperatorDashboard(
        courses_by_status=courses_by_status,
        reports_by_status=reports_by_status,
        active_categories=db.query(Category).filter(Category.is_active.is_(True)).count(),
        active_difficulties=db.query(Difficulty).filter(Difficulty.is_active.is_(True)).count(),
    )
