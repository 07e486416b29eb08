from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy import Boolean, CheckConstraint, DateTime, Float, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lms.db.base import Base, IDMixin, SoftDeleteMixin, TimestampMixin, value_enum
from lms.models.enums import AssignmentStatus


class Assignment(IDMixin, TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "assignments"
    __table_args__ = (
        CheckConstraint("points_weight >= 0 AND points_weight <= 1", name="points_weight_range"),
    )

    course_id: Mapped[int] = mapped_column(ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    due_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    # Fraction of the course grade, 0.0 - 1.0.
    points_weight: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    status: Mapped[AssignmentStatus] = mapped_column(
        value_enum(AssignmentStatus, "assignment_status"),
        default=AssignmentStatus.DRAFT,
        nullable=False,
        index=True,
    )
    allow_late: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    allow_resubmission: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    published_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    closed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    course: Mapped["Course"] = relationship(back_populates="assignments")
    submissions: Mapped[List["Submission"]] = relationship(back_populates="assignment")
