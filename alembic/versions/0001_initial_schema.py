"""Initial coursework schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


role_enum = postgresql.ENUM("learner", "instructor", "operator", name="role", create_type=False)
course_status_enum = postgresql.ENUM("draft", "published", "archived", name="course_status", create_type=False)
enrollment_status_enum = postgresql.ENUM("active", "cancelled", name="enrollment_status", create_type=False)
assignment_status_enum = postgresql.ENUM(
    "draft",
    "published",
    "closed",
    name="assignment_status",
    create_type=False,
)
submission_status_enum = postgresql.ENUM(
    "submitted",
    "graded",
    "resubmission_required",
    name="submission_status",
    create_type=False,
)
report_target_type_enum = postgresql.ENUM(
    "course",
    "assignment",
    "submission",
    "user",
    name="report_target_type",
    create_type=False,
)
report_status_enum = postgresql.ENUM(
    "received",
    "investigating",
    "resolved",
    name="report_status",
    create_type=False,
)

ALL_ENUMS = (
    role_enum,
    course_status_enum,
    enrollment_status_enum,
    assignment_status_enum,
    submission_status_enum,
    report_target_type_enum,
    report_status_enum,
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    bind = op.get_bind()
    for enum_type in ALL_ENUMS:
        enum_type.create(bind, checkfirst=True)

    op.create_table(
        "users",
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("full_name", sa.String(length=255), nullable=True),
        sa.Column("role", role_enum, nullable=False, server_default="learner"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index("ix_users_id", "users", ["id"], unique=False)
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_role", "users", ["role"], unique=False)
    op.create_index("ix_users_is_active", "users", ["is_active"], unique=False)

    op.create_table(
        "categories",
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("description", sa.String(length=500), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.UniqueConstraint("name", name="uq_categories_name"),
    )
    op.create_index("ix_categories_id", "categories", ["id"], unique=False)
    op.create_index("ix_categories_is_active", "categories", ["is_active"], unique=False)

    op.create_table(
        "difficulties",
        sa.Column("name", sa.String(length=50), nullable=False),
        sa.Column("description", sa.String(length=500), nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.UniqueConstraint("name", name="uq_difficulties_name"),
    )
    op.create_index("ix_difficulties_id", "difficulties", ["id"], unique=False)
    op.create_index("ix_difficulties_is_active", "difficulties", ["is_active"], unique=False)

    op.create_table(
        "courses",
        sa.Column("owner_id", sa.Integer(), sa.ForeignKey("users.id", name="fk_courses_owner_id_users"), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", course_status_enum, nullable=False, server_default="draft"),
        sa.Column(
            "category_id",
            sa.Integer(),
            sa.ForeignKey("categories.id", name="fk_courses_category_id_categories"),
            nullable=True,
        ),
        sa.Column(
            "difficulty_id",
            sa.Integer(),
            sa.ForeignKey("difficulties.id", name="fk_courses_difficulty_id_difficulties"),
            nullable=True,
        ),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("archived_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_courses_id", "courses", ["id"], unique=False)
    op.create_index("ix_courses_owner_id", "courses", ["owner_id"], unique=False)
    op.create_index("ix_courses_status", "courses", ["status"], unique=False)
    op.create_index("ix_courses_category_id", "courses", ["category_id"], unique=False)
    op.create_index("ix_courses_difficulty_id", "courses", ["difficulty_id"], unique=False)
    op.create_index("ix_courses_deleted_at", "courses", ["deleted_at"], unique=False)

    op.create_table(
        "enrollments",
        sa.Column(
            "course_id",
            sa.Integer(),
            sa.ForeignKey("courses.id", ondelete="CASCADE", name="fk_enrollments_course_id_courses"),
            nullable=False,
        ),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE", name="fk_enrollments_user_id_users"),
            nullable=False,
        ),
        sa.Column("status", enrollment_status_enum, nullable=False, server_default="active"),
        sa.Column("enrolled_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        *_timestamps(),
        sa.UniqueConstraint("course_id", "user_id", name="uq_enrollments_course_user"),
    )
    op.create_index("ix_enrollments_id", "enrollments", ["id"], unique=False)
    op.create_index("ix_enrollments_course_id", "enrollments", ["course_id"], unique=False)
    op.create_index("ix_enrollments_user_id", "enrollments", ["user_id"], unique=False)
    op.create_index("ix_enrollments_status", "enrollments", ["status"], unique=False)

    op.create_table(
        "assignments",
        sa.Column(
            "course_id",
            sa.Integer(),
            sa.ForeignKey("courses.id", ondelete="CASCADE", name="fk_assignments_course_id_courses"),
            nullable=False,
        ),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("points_weight", sa.Float(), nullable=False, server_default="0"),
        sa.Column("status", assignment_status_enum, nullable=False, server_default="draft"),
        sa.Column("allow_late", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("allow_resubmission", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("closed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "points_weight >= 0 AND points_weight <= 1",
            name="ck_assignments_points_weight_range",
        ),
    )
    op.create_index("ix_assignments_id", "assignments", ["id"], unique=False)
    op.create_index("ix_assignments_course_id", "assignments", ["course_id"], unique=False)
    op.create_index("ix_assignments_due_date", "assignments", ["due_date"], unique=False)
    op.create_index("ix_assignments_status", "assignments", ["status"], unique=False)
    op.create_index("ix_assignments_deleted_at", "assignments", ["deleted_at"], unique=False)

    op.create_table(
        "submissions",
        sa.Column(
            "assignment_id",
            sa.Integer(),
            sa.ForeignKey("assignments.id", ondelete="CASCADE", name="fk_submissions_assignment_id_assignments"),
            nullable=False,
        ),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE", name="fk_submissions_user_id_users"),
            nullable=False,
        ),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("link", sa.String(length=2048), nullable=True),
        sa.Column("status", submission_status_enum, nullable=False, server_default="submitted"),
        sa.Column("is_late", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("score", sa.Float(), nullable=True),
        sa.Column("feedback", sa.Text(), nullable=True),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("graded_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("assignment_id", "user_id", name="uq_submissions_assignment_user"),
        sa.CheckConstraint(
            "score IS NULL OR (score >= 0 AND score <= 100)",
            name="ck_submissions_score_range",
        ),
        sa.CheckConstraint(
            "(status = 'graded' AND score IS NOT NULL) OR (status <> 'graded' AND score IS NULL)",
            name="ck_submissions_score_iff_graded",
        ),
    )
    op.create_index("ix_submissions_id", "submissions", ["id"], unique=False)
    op.create_index("ix_submissions_assignment_id", "submissions", ["assignment_id"], unique=False)
    op.create_index("ix_submissions_user_id", "submissions", ["user_id"], unique=False)
    op.create_index("ix_submissions_status", "submissions", ["status"], unique=False)
    op.create_index("ix_submissions_submitted_at", "submissions", ["submitted_at"], unique=False)
    op.create_index("ix_submissions_graded_at", "submissions", ["graded_at"], unique=False)

    op.create_table(
        "reports",
        sa.Column(
            "reporter_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE", name="fk_reports_reporter_id_users"),
            nullable=False,
        ),
        sa.Column("target_type", report_target_type_enum, nullable=False),
        sa.Column("target_id", sa.Integer(), nullable=False),
        sa.Column("reason", sa.String(length=255), nullable=False),
        sa.Column("content", sa.Text(), nullable=True),
        sa.Column("status", report_status_enum, nullable=False, server_default="received"),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "resolved_by",
            sa.Integer(),
            sa.ForeignKey("users.id", name="fk_reports_resolved_by_users"),
            nullable=True,
        ),
        *_timestamps(),
    )
    op.create_index("ix_reports_id", "reports", ["id"], unique=False)
    op.create_index("ix_reports_reporter_id", "reports", ["reporter_id"], unique=False)
    op.create_index("ix_reports_target_type", "reports", ["target_type"], unique=False)
    op.create_index("ix_reports_status", "reports", ["status"], unique=False)

    op.create_table(
        "activity_logs",
        sa.Column(
            "actor_user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", name="fk_activity_logs_actor_user_id_users"),
            nullable=True,
        ),
        sa.Column("type", sa.String(length=100), nullable=False),
        sa.Column("entity_type", sa.String(length=50), nullable=True),
        sa.Column("entity_id", sa.Integer(), nullable=True),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("payload_json", sa.JSON(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_activity_logs_id", "activity_logs", ["id"], unique=False)
    op.create_index("ix_activity_logs_actor_user_id", "activity_logs", ["actor_user_id"], unique=False)
    op.create_index("ix_activity_logs_type", "activity_logs", ["type"], unique=False)
    op.create_index("ix_activity_logs_entity_type", "activity_logs", ["entity_type"], unique=False)
    op.create_index("ix_activity_logs_entity_id", "activity_logs", ["entity_id"], unique=False)


def downgrade() -> None:
    op.drop_table("activity_logs")
    op.drop_table("reports")
    op.drop_table("submissions")
    op.drop_table("assignments")
    op.drop_table("enrollments")
    op.drop_table("courses")
    op.drop_table("difficulties")
    op.drop_table("categories")
    op.drop_table("users")

    bind = op.get_bind()
    for enum_type in reversed(ALL_ENUMS):
        enum_type.drop(bind, checkfirst=True)
