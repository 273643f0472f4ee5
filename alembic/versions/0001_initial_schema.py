"""initial schema

Revision ID: 0001
Revises:
Create Date: 2026-10-18 09:00:00.000000

This migration:
1. Creates the enum types used by users, applications and notifications
2. Creates users and institutions
3. Creates applications and the append-only payment_verification_logs
4. Creates notifications and admin_notifications
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


user_role = postgresql.ENUM("student", "admin", name="user_role", create_type=False)
application_status = postgresql.ENUM(
    "draft",
    "submitted",
    "payment_pending",
    "payment_failed",
    "processing",
    "completed",
    name="application_status",
    create_type=False,
)
payment_status = postgresql.ENUM(
    "pending",
    "pending_verification",
    "completed",
    "failed",
    name="payment_status",
    create_type=False,
)
verification_decision = postgresql.ENUM(
    "verified", "rejected", name="verification_decision", create_type=False
)
notification_type = postgresql.ENUM(
    "payment_verified",
    "payment_rejected",
    "application_update",
    "general",
    "deadline_reminder",
    "application_submitted",
    name="notification_type",
    create_type=False,
)
admin_notification_status = postgresql.ENUM(
    "sent", "scheduled", "draft", name="admin_notification_status", create_type=False
)

ENUMS = (
    user_role,
    application_status,
    payment_status,
    verification_decision,
    notification_type,
    admin_notification_status,
)


def _timestamp(name: str) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        server_default=sa.text("now()"),
        nullable=False,
    )


def upgrade() -> None:
    """Create all tables and enum types."""
    bind = op.get_bind()
    for enum_type in ENUMS:
        enum_type.create(bind, checkfirst=True)

    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("first_name", sa.String(length=100), nullable=True),
        sa.Column("last_name", sa.String(length=100), nullable=True),
        sa.Column("phone", sa.String(length=20), nullable=True),
        sa.Column("role", user_role, nullable=False, server_default="student"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "institutions",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("logo_url", sa.String(length=500), nullable=True),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "applications",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("institution_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("status", application_status, nullable=False, server_default="draft"),
        sa.Column("payment_status", payment_status, nullable=False, server_default="pending"),
        sa.Column("personal_details", postgresql.JSON(astext_type=sa.Text()), nullable=True),
        # Payment claim
        sa.Column("payment_reference", sa.String(length=100), nullable=True),
        sa.Column("payment_method", sa.String(length=50), nullable=True),
        sa.Column("payment_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("total_amount", sa.Numeric(precision=10, scale=2), nullable=True),
        # Latest admin decision
        sa.Column("payment_verification_status", verification_decision, nullable=True),
        sa.Column("payment_verification_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("payment_verification_by", sa.String(length=255), nullable=True),
        sa.Column("payment_verification_notes", sa.Text(), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["institution_id"], ["institutions.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_applications_user_id", "applications", ["user_id"])
    op.create_index(
        "ix_applications_payment_status_created_at",
        "applications",
        ["payment_status", "created_at"],
    )

    op.create_table(
        "payment_verification_logs",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("application_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("verification_status", verification_decision, nullable=False),
        sa.Column("verified_by", sa.String(length=255), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("verified_at", sa.DateTime(timezone=True), nullable=False),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(["application_id"], ["applications.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_payment_verification_logs_application_id",
        "payment_verification_logs",
        ["application_id"],
    )

    op.create_table(
        "notifications",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("type", notification_type, nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("read", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("read_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("metadata", postgresql.JSON(astext_type=sa.Text()), nullable=True),
        _timestamp("created_at"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_notifications_user_id_created_at", "notifications", ["user_id", "created_at"]
    )
    op.create_index("ix_notifications_user_id_read", "notifications", ["user_id", "read"])

    op.create_table(
        "admin_notifications",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("type", sa.String(length=50), nullable=False, server_default="general"),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("recipients", postgresql.JSON(astext_type=sa.Text()), nullable=False),
        sa.Column("channels", postgresql.JSON(astext_type=sa.Text()), nullable=False),
        sa.Column("status", admin_notification_status, nullable=False, server_default="sent"),
        sa.Column("sent_to", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("delivered_to", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("opened_by", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("clicked_by", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("scheduled_for", sa.DateTime(timezone=True), nullable=True),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_by", sa.String(length=255), nullable=False),
        _timestamp("created_at"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_admin_notifications_status_scheduled_for",
        "admin_notifications",
        ["status", "scheduled_for"],
    )


def downgrade() -> None:
    """Drop all tables and enum types."""
    op.drop_index("ix_admin_notifications_status_scheduled_for", table_name="admin_notifications")
    op.drop_table("admin_notifications")

    op.drop_index("ix_notifications_user_id_read", table_name="notifications")
    op.drop_index("ix_notifications_user_id_created_at", table_name="notifications")
    op.drop_table("notifications")

    op.drop_index(
        "ix_payment_verification_logs_application_id", table_name="payment_verification_logs"
    )
    op.drop_table("payment_verification_logs")

    op.drop_index("ix_applications_payment_status_created_at", table_name="applications")
    op.drop_index("ix_applications_user_id", table_name="applications")
    op.drop_table("applications")

    op.drop_table("institutions")

    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")

    bind = op.get_bind()
    for enum_type in reversed(ENUMS):
        enum_type.drop(bind, checkfirst=True)
