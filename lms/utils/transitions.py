"""Status transition tables.

Each entity gets one pure function deciding whether ``current -> requested``
is reachable. Services call these before touching the database and translate a
``False``/``None`` answer into the matching error code.
"""
from __future__ import annotations

from typing import Optional

from lms.models.enums import (
    AssignmentStatus,
    CourseStatus,
    GradeAction,
    ReportAction,
    ReportStatus,
    SubmissionStatus,
)


ASSIGNMENT_TRANSITIONS: dict[AssignmentStatus, frozenset[AssignmentStatus]] = {
    AssignmentStatus.DRAFT: frozenset({AssignmentStatus.PUBLISHED, AssignmentStatus.CLOSED}),
    AssignmentStatus.PUBLISHED: frozenset({AssignmentStatus.DRAFT, AssignmentStatus.CLOSED}),
    # Only while no submission is graded.
    AssignmentStatus.CLOSED: frozenset({AssignmentStatus.DRAFT, AssignmentStatus.PUBLISHED}),
}

COURSE_TRANSITIONS: dict[CourseStatus, frozenset[CourseStatus]] = {
    CourseStatus.DRAFT: frozenset({CourseStatus.PUBLISHED}),
    CourseStatus.PUBLISHED: frozenset({CourseStatus.ARCHIVED, CourseStatus.DRAFT}),
    CourseStatus.ARCHIVED: frozenset({CourseStatus.PUBLISHED}),
}

REPORT_TRANSITIONS: dict[ReportStatus, frozenset[ReportStatus]] = {
    ReportStatus.RECEIVED: frozenset({ReportStatus.INVESTIGATING, ReportStatus.RESOLVED}),
    ReportStatus.INVESTIGATING: frozenset({ReportStatus.RESOLVED}),
    ReportStatus.RESOLVED: frozenset({ReportStatus.RECEIVED, ReportStatus.INVESTIGATING}),
}

REPORT_ACTION_STATUS: dict[ReportAction, ReportStatus] = {
    ReportAction.RESOLVE: ReportStatus.RESOLVED,
    ReportAction.DISMISS: ReportStatus.RESOLVED,
    ReportAction.ESCALATE: ReportStatus.INVESTIGATING,
    ReportAction.CONTACT_USER: ReportStatus.INVESTIGATING,
}


def can_transition_assignment(
    current: AssignmentStatus,
    requested: AssignmentStatus,
    *,
    has_graded_submissions: bool = False,
) -> bool:
    if requested not in ASSIGNMENT_TRANSITIONS.get(current, frozenset()):
        return False
    if current == AssignmentStatus.CLOSED and has_graded_submissions:
        return False
    return True


def can_transition_course(current: CourseStatus, requested: CourseStatus) -> bool:
    return requested in COURSE_TRANSITIONS.get(current, frozenset())


def can_transition_report(current: ReportStatus, requested: ReportStatus) -> bool:
    return requested in REPORT_TRANSITIONS.get(current, frozenset())


def next_submission_status(
    current: Optional[SubmissionStatus],
    *,
    submit: bool = False,
    grade_action: Optional[GradeAction] = None,
    allow_resubmission: bool = False,
) -> Optional[SubmissionStatus]:
    """Next submission status, or ``None`` when the move is not allowed.

    ``current`` is ``None`` for a learner who has not submitted yet. Exactly one
    of ``submit`` and ``grade_action`` describes the requested move.
    """
    if submit:
        if current is None or current == SubmissionStatus.RESUBMISSION_REQUIRED:
            return SubmissionStatus.SUBMITTED
        if allow_resubmission:
            return SubmissionStatus.SUBMITTED
        return None

    if grade_action is None or current is None:
        return None
    if grade_action == GradeAction.GRADE:
        return SubmissionStatus.GRADED
    if grade_action == GradeAction.RESUBMISSION_REQUIRED:
        return SubmissionStatus.RESUBMISSION_REQUIRED
    return None
