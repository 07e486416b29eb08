"""Tests for weighted course totals and the learner grade report."""
from types import SimpleNamespace

import pytest

from lms.models.enums import AssignmentStatus, CourseStatus, SubmissionStatus
from lms.services.grading import compute_course_total
from tests.factories import enroll_user, make_assignment, make_course, make_submission


def _assignment(assignment_id, weight):
    return SimpleNamespace(id=assignment_id, points_weight=weight)


def _submission(assignment_id, status, score=None):
    return SimpleNamespace(assignment_id=assignment_id, status=status, score=score)


def test_total_is_none_without_graded_work():
    result = compute_course_total(
        [_assignment(1, 0.5), _assignment(2, 0.5)],
        [_submission(1, SubmissionStatus.SUBMITTED)],
    )
    assert result.total_score is None
    assert result.graded_count == 0
    assert result.assignments_count == 2


def test_single_zero_grade_is_not_none():
    result = compute_course_total(
        [_assignment(1, 0.3), _assignment(2, 0.7)],
        [_submission(1, SubmissionStatus.GRADED, 0)],
    )
    assert result.total_score == 0.0
    assert result.graded_count == 1


def test_weights_are_not_renormalised():
    result = compute_course_total(
        [_assignment(1, 0.2), _assignment(2, 0.2), _assignment(3, 0.2)],
        [
            _submission(1, SubmissionStatus.GRADED, 100),
            _submission(2, SubmissionStatus.GRADED, 90),
            _submission(3, SubmissionStatus.RESUBMISSION_REQUIRED),
        ],
    )
    assert result.total_score == pytest.approx(38.0)
    assert result.graded_count == 2


def test_total_rounds_to_two_places():
    result = compute_course_total([_assignment(1, 0.333)], [_submission(1, SubmissionStatus.GRADED, 87.5)])
    # 87.5 * 0.333 = 29.1375
    assert result.total_score == 29.14


def test_grade_report_api(client, db, auth, instructor, learner, other_learner):
    course = make_course(db, instructor, title="Algorithms")
    enroll_user(db, course, learner)
    first = make_assignment(db, course, title="Sorting", weight=0.4)
    second = make_assignment(db, course, title="Graphs", weight=0.6)
    make_assignment(db, course, title="Hidden draft", weight=0.0, status=AssignmentStatus.DRAFT)
    make_submission(db, first, learner, status=SubmissionStatus.GRADED, score=95, feedback="Great job")
    make_submission(db, second, learner)
    make_submission(db, second, other_learner, status=SubmissionStatus.GRADED, score=10, feedback="Other")

    response = client.get("/api/grades", headers=auth(learner))
    assert response.status_code == 200, response.text
    payload = response.json()

    assert payload["total"] == 2
    assert [entry["assignmentTitle"] for entry in payload["assignments"]] == ["Sorting", "Graphs"]
    graded = payload["assignments"][0]
    assert graded["score"] == 95
    assert graded["pointsWeight"] == 0.4

    (total,) = payload["courseTotals"]
    assert total["courseTitle"] == "Algorithms"
    assert total["totalScore"] == 38.0
    assert total["gradedCount"] == 1
    assert total["assignmentsCount"] == 2


def test_grade_report_pagination_and_course_filter(client, db, auth, instructor, learner):
    course_a = make_course(db, instructor, title="A")
    course_b = make_course(db, instructor, title="B")
    for course in (course_a, course_b):
        enroll_user(db, course, learner)
        for index in range(3):
            assignment = make_assignment(db, course, title=f"{course.title}{index}", weight=0.1)
            make_submission(db, assignment, learner)

    response = client.get("/api/grades?limit=2&offset=1", headers=auth(learner))
    payload = response.json()
    assert payload["total"] == 6
    assert len(payload["assignments"]) == 2
    assert payload["limit"] == 2 and payload["offset"] == 1
    assert len(payload["courseTotals"]) == 2
    assert all(total["totalScore"] is None for total in payload["courseTotals"])

    response = client.get(f"/api/grades?courseId={course_b.id}", headers=auth(learner))
    payload = response.json()
    assert {entry["courseId"] for entry in payload["assignments"]} == {course_b.id}
    assert [total["courseId"] for total in payload["courseTotals"]] == [course_b.id]


def test_grade_report_skips_deleted_course(client, db, auth, instructor, learner):
    course = make_course(db, instructor, status=CourseStatus.PUBLISHED)
    enroll_user(db, course, learner)
    assignment = make_assignment(db, course)
    make_submission(db, assignment, learner, status=SubmissionStatus.GRADED, score=80, feedback="ok")
    course.mark_deleted()
    db.commit()

    payload = client.get("/api/grades", headers=auth(learner)).json()
    assert payload["assignments"] == []
    assert payload["courseTotals"] == []


def test_grade_report_is_learner_only(client, auth, instructor):
    response = client.get("/api/grades", headers=auth(instructor))
    assert response.status_code == 403
    assert response.json()["error"]["code"] == "INSUFFICIENT_PERMISSIONS"


def test_graded_score_flows_into_course_total(client, db, auth, instructor, learner):
    course = make_course(db, instructor, title="Statistics")
    enroll_user(db, course, learner)
    assignment = make_assignment(db, course, title="Regression", weight=0.3)
    make_assignment(db, course, title="Sampling", weight=0.5)

    submitted = client.post(
        f"/api/assignments/{assignment.id}/submit",
        json={"content": "Least squares"},
        headers=auth(learner),
    )
    assert submitted.status_code == 201
    graded = client.put(
        f"/api/submissions/{submitted.json()['id']}/grade",
        json={"score": 95, "feedback": "Excellent"},
        headers=auth(instructor),
    )
    assert graded.status_code == 200

    payload = client.get("/api/grades", headers=auth(learner)).json()
    (total,) = payload["courseTotals"]
    assert total["totalScore"] == 28.5
    assert total["gradedCount"] == 1
    assert total["assignmentsCount"] == 2
    (entry,) = payload["assignments"]
    assert entry["score"] == 95
    assert entry["feedback"] == "Excellent"
