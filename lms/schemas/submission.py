from __future__ import annotations

from datetime import datetime
from typing import Annotated, List, Optional

from pydantic import AnyHttpUrl, StringConstraints, field_validator

from lms.models.enums import GradeAction, SubmissionStatus
from lms.schemas.base import ORMModel, Page

MAX_LINK_LENGTH = 2048


class SubmissionCreate(ORMModel):
    content: Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
    link: Optional[AnyHttpUrl] = None

    @field_validator("link", mode="before")
    @classmethod
    def check_link(cls, value):
        if isinstance(value, str):
            value = value.strip()
            if not value:
                return None
            if len(value) > MAX_LINK_LENGTH:
                raise ValueError(f"link must be at most {MAX_LINK_LENGTH} characters")
        return value


class GradeRequest(ORMModel):
    # Range and feedback rules are checked in the service so they map to
    # INVALID_SCORE_RANGE / MISSING_FEEDBACK rather than a generic 400.
    score: Optional[float] = None
    feedback: Optional[str] = None
    action: GradeAction = GradeAction.GRADE


class SubmissionRead(ORMModel):
    id: int
    assignment_id: int
    user_id: int
    content: str
    link: Optional[str] = None
    status: SubmissionStatus
    is_late: bool
    score: Optional[float] = None
    feedback: Optional[str] = None
    submitted_at: datetime
    graded_at: Optional[datetime] = None
    updated_at: datetime


class SubmissionListItem(SubmissionRead):
    learner_name: str


class SubmissionPage(Page):
    submissions: List[SubmissionListItem]
