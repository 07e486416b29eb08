from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lms.db.base import Base, IDMixin, TimestampMixin, value_enum
from lms.models.enums import ReportStatus, ReportTargetType


class Report(IDMixin, TimestampMixin, Base):
    __tablename__ = "reports"

    reporter_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    target_type: Mapped[ReportTargetType] = mapped_column(
        value_enum(ReportTargetType, "report_target_type"),
        nullable=False,
        index=True,
    )
    target_id: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[str] = mapped_column(String(255), nullable=False)
    content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[ReportStatus] = mapped_column(
        value_enum(ReportStatus, "report_status"),
        default=ReportStatus.RECEIVED,
        nullable=False,
        index=True,
    )
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    resolved_by: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id"), nullable=True)

    reporter: Mapped["User"] = relationship(foreign_keys=[reporter_id])
    resolver: Mapped[Optional["User"]] = relationship(foreign_keys=[resolved_by])
