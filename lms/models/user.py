from __future__ import annotations

from typing import List, Optional

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from lms.db.base import Base, IDMixin, TimestampMixin, value_enum
from lms.models.enums import Role


class User(IDMixin, TimestampMixin, Base):
    __tablename__ = "users"

    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    full_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    role: Mapped[Role] = mapped_column(
        value_enum(Role, "role"),
        default=Role.LEARNER,
        nullable=False,
        index=True,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)

    courses_owned: Mapped[List["Course"]] = relationship(back_populates="owner")
    enrollments: Mapped[List["Enrollment"]] = relationship(back_populates="user")
    submissions: Mapped[List["Submission"]] = relationship(back_populates="user")

    @property
    def display_name(self) -> str:
        return self.full_name or self.email
