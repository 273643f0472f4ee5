"""
Notifications Schemas

Pydantic schemas for the admin broadcast and student inbox endpoints.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import Field

from apply4me.modules.notifications.models import AdminNotificationStatus, NotificationType
from apply4me.modules.shared import CamelModel

# ============================================
# Admin broadcast
# ============================================


class AdminNotificationCreate(CamelModel):
    """Request body for POST /admin/notifications.

    ``recipients`` may be a single target or a list of targets. Required
    content is checked by the service so the error body matches the other
    validation failures.
    """

    type: str | None = Field(None, max_length=50)
    title: str | None = Field(None, max_length=255)
    message: str | None = None
    recipients: str | list[str] | None = None
    scheduled_for: datetime | None = None
    channels: list[str] | None = None

    def recipient_list(self) -> list[str]:
        if self.recipients is None:
            return []
        raw = [self.recipients] if isinstance(self.recipients, str) else self.recipients
        return [target.strip() for target in raw if target and target.strip()]


class AdminNotificationItem(CamelModel):
    id: UUID
    type: str
    title: str
    message: str
    recipients: list[str]
    channels: list[str]
    status: AdminNotificationStatus
    sent_to: int
    delivered_to: int
    opened_by: int
    clicked_by: int
    scheduled_for: datetime | None = None
    sent_at: datetime | None = None
    created_by: str
    created_at: datetime


class DeliveryStats(CamelModel):
    total: int
    successful: int
    failed: int
    emails_sent: int = 0


class AdminNotificationSendData(CamelModel):
    notification: AdminNotificationItem
    message: str
    user_notifications_created: int
    delivery_stats: DeliveryStats


class AdminNotificationSendResponse(CamelModel):
    success: bool = True
    data: AdminNotificationSendData


class NotificationSummary(CamelModel):
    total_notifications: int
    sent_notifications: int
    scheduled_notifications: int
    draft_notifications: int
    total_recipients: int
    total_delivered: int
    total_opened: int
    total_clicked: int
    delivery_rate: int = Field(..., description="Delivered / recipients, percent")
    open_rate: int = Field(..., description="Opened / delivered, percent")
    click_rate: int = Field(..., description="Clicked / opened, percent")


class AdminNotificationListData(CamelModel):
    notifications: list[AdminNotificationItem]
    summary: NotificationSummary


class AdminNotificationListResponse(CamelModel):
    success: bool = True
    data: AdminNotificationListData


# ============================================
# Student inbox
# ============================================


class NotificationItem(CamelModel):
    id: UUID
    type: NotificationType
    title: str
    message: str
    read: bool
    read_at: datetime | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime


class InboxResponse(CamelModel):
    success: bool = True
    notifications: list[NotificationItem]
    unread_count: int


class MarkReadRequest(CamelModel):
    notification_ids: list[UUID] = Field(..., min_length=1, max_length=200)


class MarkReadResponse(CamelModel):
    success: bool = True
    updated: int
    message: str
