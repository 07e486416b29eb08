"""Weighted course totals and the learner grade report.

A course total is ``sum(score * points_weight)`` over the learner's graded
submissions. Weights are fixed at course-design time and never renormalised, so
a course whose weights sum below 1.0 leaves the remainder unfilled. ``None``
means no grade data yet and is distinct from a genuine total of ``0``.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from lms.core import rbac
from lms.db.queries import active_enrollments, visible_assignments
from lms.models.assignment import Assignment
from lms.models.course import Course
from lms.models.enums import Role, SubmissionStatus
from lms.models.submission import Submission
from lms.models.user import User
from lms.schemas.grade import CourseTotal, GradeEntry, GradeReport

TWOPLACES = Decimal("0.01")


def _q(value: Decimal) -> Decimal:
    return value.quantize(TWOPLACES, rounding=ROUND_HALF_UP)


@dataclass
class CourseTotalResult:
    total_score: Optional[float]
    graded_count: int
    assignments_count: int


def compute_course_total(
    assignments: Iterable[Assignment],
    submissions: Iterable[Submission],
) -> CourseTotalResult:
    """Weighted total of one learner in one course.

    ``assignments`` are the course's counted assignments; ``submissions`` the
    learner's rows, of which only graded ones with a score contribute.
    """
    weights = {assignment.id: assignment.points_weight for assignment in assignments}
    total = Decimal("0")
    graded = 0
    for submission in submissions:
        if submission.assignment_id not in weights:
            continue
        if submission.status != SubmissionStatus.GRADED or submission.score is None:
            continue
        total += Decimal(str(submission.score)) * Decimal(str(weights[submission.assignment_id]))
        graded += 1

    return CourseTotalResult(
        total_score=float(_q(total)) if graded else None,
        graded_count=graded,
        assignments_count=len(weights),
    )


def learner_grade_report(
    db: Session,
    *,
    user: User,
    limit: int = 20,
    offset: int = 0,
    course_id: Optional[int] = None,
) -> GradeReport:
    rbac.require_roles(user, [Role.LEARNER])

    enrollments = active_enrollments(db, user.id)
    if course_id is not None:
        enrollments = enrollments.filter(Course.id == course_id)
    courses = [course for _, course in enrollments.add_entity(Course).order_by(Course.title.asc()).all()]
    course_ids = [course.id for course in courses]

    assignments: list[Assignment] = []
    submissions: list[Submission] = []
    if course_ids:
        assignments = (
            visible_assignments(db)
            .filter(Assignment.course_id.in_(course_ids))
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
    course_titles = {course.id: course.title for course in courses}

    course_totals = []
    for course in courses:
        course_assignments = [a for a in assignments if a.course_id == course.id]
        course_submissions = [by_assignment[a.id] for a in course_assignments if a.id in by_assignment]
        result = compute_course_total(course_assignments, course_submissions)
        course_totals.append(
            CourseTotal(
                course_id=course.id,
                course_title=course.title,
                total_score=result.total_score,
                assignments_count=result.assignments_count,
                graded_count=result.graded_count,
            )
        )

    entries = []
    for assignment in assignments:
        submission = by_assignment.get(assignment.id)
        if submission is None:
            continue
        entries.append(
            GradeEntry(
                id=submission.id,
                assignment_id=assignment.id,
                assignment_title=assignment.title,
                assignment_description=assignment.description,
                course_id=assignment.course_id,
                course_title=course_titles[assignment.course_id],
                score=submission.score,
                feedback=submission.feedback,
                graded_at=submission.graded_at,
                is_late=submission.is_late,
                status=submission.status,
                points_weight=assignment.points_weight,
            )
        )

    return GradeReport(
        assignments=entries[offset : offset + limit],
        course_totals=course_totals,
        total=len(entries),
        limit=limit,
        offset=offset,
    )
