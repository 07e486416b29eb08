"""Submitting, resubmitting and grading."""
import pytest
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from lms.core.errors import ApiError
from lms.models.enums import AssignmentStatus, GradeAction, SubmissionStatus
from lms.models.submission import Submission
from lms.schemas.submission import GradeRequest
from lms.services.submissions import grade_submission
from tests.factories import enroll_user, make_assignment, make_submission, utc


@pytest.fixture()
def enrolled(db, course, learner):
    return enroll_user(db, course, learner)


def _submit(client, auth, user, assignment_id, content="My answer", **extra):
    body = {"content": content}
    body.update(extra)
    return client.post(f"/api/assignments/{assignment_id}/submit", json=body, headers=auth(user))


def _grade(client, auth, user, submission_id, **body):
    return client.put(f"/api/submissions/{submission_id}/grade", json=body, headers=auth(user))


def test_first_submission_created(client, db, auth, learner, course, enrolled):
    assignment = make_assignment(db, course)

    response = _submit(client, auth, learner, assignment.id, link="https://example.com/repo")
    assert response.status_code == 201, response.text
    payload = response.json()
    assert payload["status"] == "submitted"
    assert payload["isLate"] is False
    assert payload["score"] is None
    assert payload["link"] == "https://example.com/repo"


def test_second_submission_rejected_without_resubmission(client, db, auth, learner, course, enrolled):
    assignment = make_assignment(db, course)
    assert _submit(client, auth, learner, assignment.id).status_code == 201

    response = _submit(client, auth, learner, assignment.id, content="Again")
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "SUBMISSION_ALREADY_EXISTS"


def test_allow_resubmission_updates_the_same_row(client, db, auth, learner, course, enrolled):
    assignment = make_assignment(db, course, allow_resubmission=True)
    first = _submit(client, auth, learner, assignment.id).json()

    response = _submit(client, auth, learner, assignment.id, content="Improved")
    assert response.status_code == 200
    assert response.json()["id"] == first["id"]
    assert response.json()["content"] == "Improved"
    assert db.query(Submission).count() == 1


def test_resubmission_requested_flow(client, db, auth, instructor, learner, course, enrolled):
    assignment = make_assignment(db, course)
    submission_id = _submit(client, auth, learner, assignment.id).json()["id"]

    response = _grade(client, auth, instructor, submission_id, action="resubmission_required", feedback="Add tests")
    assert response.status_code == 200, response.text
    assert response.json()["status"] == "resubmission_required"
    assert response.json()["score"] is None

    response = _submit(client, auth, learner, assignment.id, content="Now with tests")
    assert response.status_code == 200
    payload = response.json()
    assert payload["id"] == submission_id
    assert payload["status"] == "submitted"
    assert payload["feedback"] == "Add tests"

    response = _grade(client, auth, instructor, submission_id, score=88, feedback="Much better")
    assert response.json()["status"] == "graded"
    assert response.json()["score"] == 88
    assert response.json()["gradedAt"] is not None


def test_late_submission_rejected_unless_allowed(client, db, auth, learner, course, enrolled):
    strict = make_assignment(db, course, weight=0.1, due_date=utc(hours=-1))
    response = _submit(client, auth, learner, strict.id)
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "SUBMISSION_PAST_DUE_DATE"

    lenient = make_assignment(db, course, weight=0.1, due_date=utc(hours=-1), allow_late=True)
    response = _submit(client, auth, learner, lenient.id)
    assert response.status_code == 201
    assert response.json()["isLate"] is True


def test_closed_and_draft_assignments_refuse_submissions(client, db, auth, learner, course, enrolled):
    closed = make_assignment(db, course, weight=0.1, status=AssignmentStatus.CLOSED)
    draft = make_assignment(db, course, weight=0.1, status=AssignmentStatus.DRAFT)

    assert _submit(client, auth, learner, closed.id).json()["error"]["code"] == "ASSIGNMENT_CLOSED"
    assert _submit(client, auth, learner, draft.id).json()["error"]["code"] == "ASSIGNMENT_NOT_PUBLISHED"


def test_unenrolled_learner_cannot_submit(client, db, auth, other_learner, course):
    assignment = make_assignment(db, course)
    response = _submit(client, auth, other_learner, assignment.id)
    assert response.status_code == 403


def test_empty_content_is_invalid_input(client, db, auth, learner, course, enrolled):
    assignment = make_assignment(db, course)
    response = _submit(client, auth, learner, assignment.id, content="")
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_INPUT"


def test_grade_validation_order(client, db, auth, instructor, learner, course):
    assignment = make_assignment(db, course)
    submission = make_submission(db, assignment, learner)

    response = _grade(client, auth, instructor, submission.id, score=150)
    assert response.json()["error"]["code"] == "INVALID_SCORE_RANGE"

    response = _grade(client, auth, instructor, submission.id, score=-1, feedback="Nope")
    assert response.json()["error"]["code"] == "INVALID_SCORE_RANGE"

    response = _grade(client, auth, instructor, submission.id, score=90, feedback="   ")
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "MISSING_FEEDBACK"

    response = _grade(client, auth, instructor, submission.id, action="resubmission_required")
    assert response.json()["error"]["code"] == "MISSING_FEEDBACK"


def test_boundary_scores_accepted(client, db, auth, instructor, learner, other_learner, course):
    assignment = make_assignment(db, course)
    low = make_submission(db, assignment, learner)
    high = make_submission(db, assignment, other_learner)

    assert _grade(client, auth, instructor, low.id, score=0, feedback="Empty").json()["score"] == 0
    assert _grade(client, auth, instructor, high.id, score=100, feedback="Perfect").json()["score"] == 100


def test_only_course_owner_grades(client, db, auth, other_instructor, learner, course):
    assignment = make_assignment(db, course)
    submission = make_submission(db, assignment, learner)

    for user in (other_instructor, learner):
        response = _grade(client, auth, user, submission.id, score=50, feedback="x")
        assert response.status_code == 403


def test_submission_visibility(client, db, auth, instructor, other_instructor, learner, other_learner, course):
    assignment = make_assignment(db, course)
    submission = make_submission(db, assignment, learner)

    assert client.get(f"/api/submissions/{submission.id}", headers=auth(learner)).status_code == 200
    assert client.get(f"/api/submissions/{submission.id}", headers=auth(instructor)).status_code == 200
    assert client.get(f"/api/submissions/{submission.id}", headers=auth(other_learner)).status_code == 403
    assert client.get(f"/api/submissions/{submission.id}", headers=auth(other_instructor)).status_code == 403

    response = client.get("/api/submissions/9999", headers=auth(instructor))
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "SUBMISSION_NOT_FOUND"


def test_instructor_lists_submissions_with_learner_names(client, db, auth, instructor, other_instructor, learner, course):
    assignment = make_assignment(db, course)
    make_submission(db, assignment, learner)

    response = client.get(f"/api/assignments/{assignment.id}/submissions", headers=auth(instructor))
    payload = response.json()
    assert payload["total"] == 1
    assert payload["submissions"][0]["learnerName"] == "Lin Learner"

    response = client.get(f"/api/assignments/{assignment.id}/submissions", headers=auth(other_instructor))
    assert response.status_code == 403


def test_stale_grade_write_conflicts(db, instructor, learner, course):
    assignment = make_assignment(db, course)
    submission = make_submission(db, assignment, learner)

    # Another writer grades the row behind this session's back.
    db.execute(
        update(Submission)
        .where(Submission.id == submission.id)
        .values(status=SubmissionStatus.GRADED, score=60, feedback="First", graded_at=utc())
        .execution_options(synchronize_session=False)
    )
    db.commit()
    assert submission.status == SubmissionStatus.SUBMITTED

    with pytest.raises(ApiError) as excinfo:
        grade_submission(
            db,
            submission_id=submission.id,
            payload=GradeRequest(score=90, feedback="Second", action=GradeAction.GRADE),
            user=instructor,
        )
    assert excinfo.value.status_code == 409
    assert excinfo.value.code == "SUBMISSION_STATE_CONFLICT"

    db.refresh(submission)
    assert submission.score == 60
    assert submission.feedback == "First"


def test_score_requires_graded_status(db, learner, course):
    assignment = make_assignment(db, course)
    db.add(
        Submission(
            assignment_id=assignment.id,
            user_id=learner.id,
            content="x",
            status=SubmissionStatus.SUBMITTED,
            score=50,
        )
    )
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()


def test_one_row_per_learner_and_assignment(db, learner, course):
    assignment = make_assignment(db, course)
    make_submission(db, assignment, learner)
    db.add(Submission(assignment_id=assignment.id, user_id=learner.id, content="dup"))
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()


def test_link_must_be_a_url(client, db, auth, learner, course, enrolled):
    assignment = make_assignment(db, course)

    response = _submit(client, auth, learner, assignment.id, link="not a url")
    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "INVALID_INPUT"
    assert error["details"][0]["field"] == "link"

    response = _submit(client, auth, learner, assignment.id, link="")
    assert response.status_code == 201
    assert response.json()["link"] is None


def test_whitespace_only_content_rejected(client, db, auth, learner, course, enrolled):
    assignment = make_assignment(db, course)
    response = _submit(client, auth, learner, assignment.id, content="   ")
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_INPUT"
    assert db.query(Submission).count() == 0


def test_resubmission_after_due_date_recomputes_lateness(client, db, auth, instructor, learner, course, enrolled):
    lenient = make_assignment(db, course, weight=0.1, allow_late=True)
    strict = make_assignment(db, course, weight=0.1)
    lenient_id = _submit(client, auth, learner, lenient.id).json()["id"]
    strict_id = _submit(client, auth, learner, strict.id).json()["id"]
    for submission_id in (lenient_id, strict_id):
        _grade(client, auth, instructor, submission_id, action="resubmission_required", feedback="Redo")

    for assignment in (lenient, strict):
        assignment.due_date = utc(hours=-1)
    db.commit()

    response = _submit(client, auth, learner, lenient.id, content="Late fix")
    assert response.status_code == 200
    assert response.json()["id"] == lenient_id
    assert response.json()["isLate"] is True

    response = _submit(client, auth, learner, strict.id, content="Late fix")
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "SUBMISSION_PAST_DUE_DATE"


def test_regrading_overwrites_score_and_feedback(client, db, auth, instructor, learner, course):
    assignment = make_assignment(db, course)
    submission = make_submission(db, assignment, learner)

    first = _grade(client, auth, instructor, submission.id, score=70, feedback="Needs polish").json()
    second = _grade(client, auth, instructor, submission.id, score=85, feedback="Polished").json()

    assert second["id"] == first["id"]
    assert second["status"] == "graded"
    assert second["score"] == 85
    assert second["feedback"] == "Polished"
