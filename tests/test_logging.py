import json
import logging

import pytest

from lms.core.logging import JsonFormatter
from lms.services.assignments import close_expired_assignments
from tests.factories import make_assignment, utc


class _Capture(logging.Handler):
    def __init__(self) -> None:
        super().__init__(level=logging.DEBUG)
        self.setFormatter(JsonFormatter())
        self.lines: list[dict] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.lines.append(json.loads(self.format(record)))


@pytest.fixture()
def capture():
    attached: list = []

    def _attach(name: str) -> _Capture:
        logger = logging.getLogger(name)
        handler = _Capture()
        previous = logger.level
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
        attached.append((logger, handler, previous))
        return handler

    yield _attach
    for logger, handler, previous in attached:
        logger.removeHandler(handler)
        logger.setLevel(previous)


def test_extra_fields_reach_the_json_line():
    record = logging.LogRecord("lms.submissions", logging.INFO, __file__, 1, "submission_graded", None, None)
    record.submission_id = 7
    record.previous_status = "submitted"

    line = json.loads(JsonFormatter().format(record))
    assert line["message"] == "submission_graded"
    assert line["logger"] == "lms.submissions"
    assert line["submission_id"] == 7
    assert line["previous_status"] == "submitted"
    assert "pathname" not in line
    assert "args" not in line


def test_sweep_log_carries_closed_count(db, course, capture):
    handler = capture("lms.assignments")
    make_assignment(db, course, due_date=utc(days=-1))

    assert close_expired_assignments(db) == 1

    (completed,) = [line for line in handler.lines if line["message"] == "close_expired_completed"]
    assert completed["closed"] == 1
    assert completed["level"] == "INFO"


def test_request_line_has_request_id_and_user(client, auth, learner, capture):
    handler = capture("lms.request")
    client.get("/api/courses", headers={**auth(learner), "X-Request-Id": "req-123"})

    (line,) = [line for line in handler.lines if line["message"] == "request"]
    assert line["request_id"] == "req-123"
    assert line["user_id"] == learner.id
    assert line["status_code"] == 200
    assert line["path"] == "/api/courses"
