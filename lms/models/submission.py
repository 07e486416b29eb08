from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, DateTime, Float, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lms.db.base import Base, IDMixin, TimestampMixin, utcnow, value_enum
from lms.models.enums import SubmissionStatus


class Submission(IDMixin, TimestampMixin, Base):
    __tablename__ = "submissions"
    __table_args__ = (
        # Resubmissions update this row; a second row per learner is never inserted.
        UniqueConstraint("assignment_id", "user_id", name="uq_submissions_assignment_user"),
        CheckConstraint("score IS NULL OR (score >= 0 AND score <= 100)", name="score_range"),
        CheckConstraint(
            "(status = 'graded' AND score IS NOT NULL) OR (status <> 'graded' AND score IS NULL)",
            name="score_iff_graded",
        ),
    )

    assignment_id: Mapped[int] = mapped_column(
        ForeignKey("assignments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    link: Mapped[Optional[str]] = mapped_column(String(2048), nullable=True)
    status: Mapped[SubmissionStatus] = mapped_column(
        value_enum(SubmissionStatus, "submission_status"),
        default=SubmissionStatus.SUBMITTED,
        nullable=False,
        index=True,
    )
    is_late: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    score: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    feedback: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    submitted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    graded_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True, index=True)

    assignment: Mapped["Assignment"] = relationship(back_populates="submissions")
    user: Mapped["User"] = relationship(back_populates="submissions")
