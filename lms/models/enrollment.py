from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lms.db.base import Base, IDMixin, TimestampMixin, utcnow, value_enum
from lms.models.enums import EnrollmentStatus


class Enrollment(IDMixin, TimestampMixin, Base):
    __tablename__ = "enrollments"
    __table_args__ = (
        # One row per learner and course; cancelling flips status, re-enrolling reactivates it.
        UniqueConstraint("course_id", "user_id", name="uq_enrollments_course_user"),
    )

    course_id: Mapped[int] = mapped_column(ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    status: Mapped[EnrollmentStatus] = mapped_column(
        value_enum(EnrollmentStatus, "enrollment_status"),
        default=EnrollmentStatus.ACTIVE,
        nullable=False,
        index=True,
    )
    enrolled_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    course: Mapped["Course"] = relationship(back_populates="enrollments")
    user: Mapped["User"] = relationship(back_populates="enrollments")
