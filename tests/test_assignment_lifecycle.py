"""Assignment creation, weight budget, status transitions and the expiry sweep."""
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from lms.models import Base
from lms.models.assignment import Assignment
from lms.models.enums import AssignmentStatus, Role, SubmissionStatus
from lms.scripts.close_expired_assignments import run_sweep
from lms.services.assignments import close_expired_assignments
from tests.factories import enroll_user, make_assignment, make_course, make_submission, make_user, utc


def _assignment_body(title="Essay", weight=0.5, **extra):
    body = {"title": title, "dueDate": utc(days=5).isoformat(), "pointsWeight": weight}
    body.update(extra)
    return body


def test_instructor_creates_draft_assignment(client, auth, instructor, course):
    response = client.post(
        f"/api/courses/{course.id}/assignments",
        json=_assignment_body(allowLate=True),
        headers=auth(instructor),
    )
    assert response.status_code == 201, response.text
    payload = response.json()
    assert payload["status"] == "draft"
    assert payload["pointsWeight"] == 0.5
    assert payload["allowLate"] is True
    assert payload["allowResubmission"] is False


def test_weight_budget_reports_available_weight(client, auth, instructor, course):
    first = client.post(f"/api/courses/{course.id}/assignments", json=_assignment_body(), headers=auth(instructor))
    assert first.status_code == 201

    response = client.post(
        f"/api/courses/{course.id}/assignments",
        json=_assignment_body(title="Project", weight=0.6),
        headers=auth(instructor),
    )
    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "ASSIGNMENT_WEIGHT_EXCEEDED"
    assert error["details"]["availableWeight"] == 0.5
    assert error["details"]["requestedWeight"] == 0.6


def test_weight_budget_allows_exact_fill_and_excludes_self_on_update(client, db, auth, instructor, course):
    make_assignment(db, course, weight=0.3)
    make_assignment(db, course, weight=0.3)
    last = make_assignment(db, course, weight=0.3)

    # Filling the budget to exactly 1.0 is allowed.
    response = client.put(f"/api/assignments/{last.id}", json={"pointsWeight": 0.4}, headers=auth(instructor))
    assert response.status_code == 200

    response = client.put(f"/api/assignments/{last.id}", json={"pointsWeight": 0.41}, headers=auth(instructor))
    assert response.status_code == 400
    assert response.json()["error"]["details"]["availableWeight"] == 0.4


def test_deleted_assignments_release_their_weight(client, db, auth, instructor, course):
    old = make_assignment(db, course, weight=0.9)
    assert client.delete(f"/api/assignments/{old.id}", headers=auth(instructor)).status_code == 204

    response = client.post(
        f"/api/courses/{course.id}/assignments",
        json=_assignment_body(weight=1.0),
        headers=auth(instructor),
    )
    assert response.status_code == 201
    assert client.get(f"/api/assignments/{old.id}", headers=auth(instructor)).status_code == 404


def test_weight_out_of_range_is_invalid_input(client, auth, instructor, course):
    response = client.post(
        f"/api/courses/{course.id}/assignments",
        json=_assignment_body(weight=1.5),
        headers=auth(instructor),
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_INPUT"


def test_only_course_owner_manages_assignments(client, db, auth, other_instructor, learner, course):
    response = client.post(f"/api/courses/{course.id}/assignments", json=_assignment_body(), headers=auth(other_instructor))
    assert response.status_code == 403
    assert response.json()["error"]["code"] == "INSUFFICIENT_PERMISSIONS"

    assignment = make_assignment(db, course)
    response = client.patch(
        f"/api/assignments/{assignment.id}/status",
        json={"status": "closed"},
        headers=auth(learner),
    )
    assert response.status_code == 403


def test_publish_and_close_stamp_timestamps(client, db, auth, instructor, course):
    assignment = make_assignment(db, course, status=AssignmentStatus.DRAFT)

    published = client.patch(
        f"/api/assignments/{assignment.id}/status", json={"status": "published"}, headers=auth(instructor)
    )
    assert published.status_code == 200, published.text
    assert published.json()["publishedAt"] is not None

    closed = client.patch(f"/api/assignments/{assignment.id}/status", json={"status": "closed"}, headers=auth(instructor))
    assert closed.json()["status"] == "closed"
    assert closed.json()["closedAt"] is not None

    # No graded work yet, so the instructor may reopen.
    reopened = client.patch(
        f"/api/assignments/{assignment.id}/status", json={"status": "published"}, headers=auth(instructor)
    )
    assert reopened.status_code == 200


def test_same_status_transition_rejected(client, db, auth, instructor, course):
    assignment = make_assignment(db, course)
    response = client.patch(
        f"/api/assignments/{assignment.id}/status", json={"status": "published"}, headers=auth(instructor)
    )
    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "INVALID_STATUS_TRANSITION"
    assert error["details"] == {"currentStatus": "published", "requestedStatus": "published"}


def test_closed_assignment_with_grades_cannot_reopen(client, db, auth, instructor, learner, course):
    assignment = make_assignment(db, course, status=AssignmentStatus.CLOSED)
    make_submission(db, assignment, learner, status=SubmissionStatus.GRADED, score=70, feedback="Fine")

    for target in ("published", "draft"):
        response = client.patch(
            f"/api/assignments/{assignment.id}/status", json={"status": target}, headers=auth(instructor)
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_STATUS_TRANSITION"


def test_cannot_publish_past_deadline_without_late_window(client, db, auth, instructor, course):
    strict = make_assignment(db, course, status=AssignmentStatus.DRAFT, due_date=utc(days=-1))
    response = client.patch(f"/api/assignments/{strict.id}/status", json={"status": "published"}, headers=auth(instructor))
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "ASSIGNMENT_PAST_DEADLINE"

    lenient = make_assignment(db, course, status=AssignmentStatus.DRAFT, due_date=utc(days=-1), allow_late=True)
    response = client.patch(
        f"/api/assignments/{lenient.id}/status", json={"status": "published"}, headers=auth(instructor)
    )
    assert response.status_code == 200


def test_learner_sees_only_published_and_closed(client, db, auth, instructor, learner, other_learner, course):
    make_assignment(db, course, title="Draft", weight=0.1, status=AssignmentStatus.DRAFT)
    make_assignment(db, course, title="Open", weight=0.1)
    make_assignment(db, course, title="Done", weight=0.1, status=AssignmentStatus.CLOSED, due_date=utc(days=-2))
    enroll_user(db, course, learner)

    titles = [a["title"] for a in client.get(f"/api/courses/{course.id}/assignments", headers=auth(learner)).json()]
    assert titles == ["Done", "Open"]

    owner_view = client.get(f"/api/courses/{course.id}/assignments", headers=auth(instructor)).json()
    assert len(owner_view) == 3

    response = client.get(f"/api/courses/{course.id}/assignments", headers=auth(other_learner))
    assert response.status_code == 403


def test_assignment_stats(client, db, auth, instructor, learner, other_learner, course):
    assignment = make_assignment(db, course)
    make_submission(db, assignment, learner, status=SubmissionStatus.GRADED, score=80, feedback="Good")
    make_submission(db, assignment, other_learner, status=SubmissionStatus.RESUBMISSION_REQUIRED, feedback="Redo")

    stats = client.get(f"/api/assignments/{assignment.id}/stats", headers=auth(instructor)).json()
    assert stats["total"] == 2
    assert stats["graded"] == 1
    assert stats["pending"] == 1
    assert stats["resubmissionRequired"] == 1
    assert stats["averageScore"] == 80.0


def test_close_expired_is_idempotent(db, course):
    expired = make_assignment(db, course, title="Expired", weight=0.1, due_date=utc(days=-1))
    late_ok = make_assignment(db, course, title="Late ok", weight=0.1, due_date=utc(days=-1), allow_late=True)
    future = make_assignment(db, course, title="Future", weight=0.1, due_date=utc(days=1))
    draft = make_assignment(db, course, title="Draft", weight=0.1, due_date=utc(days=-1), status=AssignmentStatus.DRAFT)

    assert close_expired_assignments(db) == 1
    assert close_expired_assignments(db) == 0

    statuses = {a.title: db.get(Assignment, a.id).status for a in (expired, late_ok, future, draft)}
    assert statuses == {
        "Expired": AssignmentStatus.CLOSED,
        "Late ok": AssignmentStatus.PUBLISHED,
        "Future": AssignmentStatus.PUBLISHED,
        "Draft": AssignmentStatus.DRAFT,
    }
    assert db.get(Assignment, expired.id).closed_at is not None


def test_close_expired_endpoint_is_operator_only(client, db, auth, instructor, operator_user, course):
    make_assignment(db, course, due_date=utc(hours=-1))

    assert client.post("/api/assignments/close-expired", headers=auth(instructor)).status_code == 403

    response = client.post("/api/assignments/close-expired", headers=auth(operator_user))
    assert response.status_code == 200
    assert response.json()["closed"] == 1
    assert "ranAt" in response.json()


def test_sweep_script_runs_against_its_own_session():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)
    try:
        with factory() as setup:
            owner = make_user(setup, "sweep@example.com", Role.INSTRUCTOR, "Sweep Owner")
            course = make_course(setup, owner)
            make_assignment(setup, course, due_date=utc(days=-3))

        assert run_sweep(factory) == 1
        assert run_sweep(factory) == 0
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()
