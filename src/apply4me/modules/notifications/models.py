"""
Notifications Models

In-app notifications shown to students, and the admin broadcast records
that fan out into them.
"""

import enum
import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.dialects.postgresql import JSON, UUID
from sqlalchemy.orm import Mapped, mapped_column

from apply4me.core.database import Base


class NotificationType(str, enum.Enum):
    """Kinds of in-app notification."""

    PAYMENT_VERIFIED = "payment_verified"
    PAYMENT_REJECTED = "payment_rejected"
    APPLICATION_UPDATE = "application_update"
    GENERAL = "general"
    DEADLINE_REMINDER = "deadline_reminder"
    APPLICATION_SUBMITTED = "application_submitted"


class AdminNotificationStatus(str, enum.Enum):
    SENT = "sent"
    SCHEDULED = "scheduled"
    DRAFT = "draft"


class Notification(Base):
    """
    A message addressed to one user.

    Only ``read`` and ``read_at`` change after creation.
    """

    __tablename__ = "notifications"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    type: Mapped[NotificationType] = mapped_column(
        Enum(
            NotificationType,
            name="notification_type",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # "metadata" is reserved on declarative classes
    metadata_: Mapped[dict | None] = mapped_column("metadata", JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        Index("ix_notifications_user_id_created_at", "user_id", "created_at"),
        Index("ix_notifications_user_id_read", "user_id", "read"),
    )

    def __repr__(self) -> str:
        return f"<Notification(id={self.id}, user_id={self.user_id}, type={self.type.value})>"


class AdminNotification(Base):
    """
    A broadcast composed by an admin.

    ``recipients`` holds the raw targets (user IDs or group tokens such as
    ``all_users``). The counters track delivery across every user the
    targets resolved to.
    """

    __tablename__ = "admin_notifications"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    type: Mapped[str] = mapped_column(String(50), nullable=False, default="general")
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    recipients: Mapped[list] = mapped_column(JSON, nullable=False)
    channels: Mapped[list] = mapped_column(JSON, nullable=False)

    status: Mapped[AdminNotificationStatus] = mapped_column(
        Enum(
            AdminNotificationStatus,
            name="admin_notification_status",
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=AdminNotificationStatus.SENT,
    )

    sent_to: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    delivered_to: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    opened_by: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    clicked_by: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    scheduled_for: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_by: Mapped[str] = mapped_column(String(255), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (Index("ix_admin_notifications_status_scheduled_for", "status", "scheduled_for"),)
