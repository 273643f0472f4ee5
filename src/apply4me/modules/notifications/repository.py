"""
Notifications Repository

Database operations for in-app notifications and admin broadcasts.
"""

import logging
from collections.abc import Sequence
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import case, desc, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from apply4me.modules.notifications.models import (
    AdminNotification,
    AdminNotificationStatus,
    Notification,
    NotificationType,
)

logger = logging.getLogger(__name__)


# ============================================
# User notifications
# ============================================


async def create_notification(
    db: AsyncSession,
    *,
    user_id: UUID,
    type: NotificationType,
    title: str,
    message: str,
    metadata: dict[str, Any] | None = None,
) -> Notification:
    notification = Notification(
        user_id=user_id,
        type=type,
        title=title,
        message=message,
        read=False,
        metadata_=metadata or {},
    )
    db.add(notification)
    await db.commit()
    await db.refresh(notification)

    return notification


async def get_for_user(
    db: AsyncSession,
    user_id: UUID,
    *,
    unread_only: bool = False,
    limit: int = 50,
) -> list[Notification]:
    """A user's notifications, newest first."""
    query = select(Notification).where(Notification.user_id == user_id)
    if unread_only:
        query = query.where(Notification.read.is_(False))
    query = query.order_by(desc(Notification.created_at)).limit(limit)

    result = await db.execute(query)
    return list(result.scalars().all())


async def count_unread(db: AsyncSession, user_id: UUID) -> int:
    result = await db.execute(
        select(func.count())
        .select_from(Notification)
        .where(Notification.user_id == user_id, Notification.read.is_(False))
    )
    return result.scalar() or 0


async def mark_read(
    db: AsyncSession,
    user_id: UUID,
    notification_ids: Sequence[UUID],
    read_at: datetime,
) -> list[Notification]:
    """
    Mark the user's unread notifications among ``notification_ids`` as read.

    IDs belonging to other users, or already read, are ignored.

    Returns:
        The notifications that changed state
    """
    if not notification_ids:
        return []

    result = await db.execute(
        select(Notification).where(
            Notification.id.in_(list(notification_ids)),
            Notification.user_id == user_id,
            Notification.read.is_(False),
        )
    )
    notifications = list(result.scalars().all())

    for notification in notifications:
        notification.read = True
        notification.read_at = read_at

    await db.commit()
    return notifications


# ============================================
# Admin broadcasts
# ============================================


async def create_admin_notification(
    db: AsyncSession,
    *,
    type: str,
    title: str,
    message: str,
    recipients: list[str],
    channels: list[str],
    status: AdminNotificationStatus,
    created_by: str,
    scheduled_for: datetime | None = None,
) -> AdminNotification:
    admin_notification = AdminNotification(
        type=type,
        title=title,
        message=message,
        recipients=recipients,
        channels=channels,
        status=status,
        scheduled_for=scheduled_for,
        created_by=created_by,
        sent_to=0,
        delivered_to=0,
        opened_by=0,
        clicked_by=0,
    )
    db.add(admin_notification)
    await db.commit()
    await db.refresh(admin_notification)

    logger.info(f"Created admin notification {admin_notification.id} ({status.value})")
    return admin_notification


async def record_delivery(
    db: AsyncSession,
    admin_notification: AdminNotification,
    *,
    sent_to: int,
    delivered_to: int,
    sent_at: datetime,
) -> AdminNotification:
    """Fill in delivery counters and mark the broadcast sent."""
    admin_notification.sent_to = sent_to
    admin_notification.delivered_to = delivered_to
    admin_notification.sent_at = sent_at
    admin_notification.status = AdminNotificationStatus.SENT

    await db.commit()
    await db.refresh(admin_notification)

    return admin_notification


async def get_recent_admin_notifications(
    db: AsyncSession,
    limit: int = 50,
) -> list[AdminNotification]:
    result = await db.execute(
        select(AdminNotification).order_by(desc(AdminNotification.created_at)).limit(limit)
    )
    return list(result.scalars().all())


async def get_admin_notification_totals(db: AsyncSession) -> dict[str, int]:
    """
    Aggregate counts across every admin broadcast.

    Returns:
        Dict with total, sent, scheduled, draft, recipients, delivered,
        opened and clicked
    """

    def _count_status(status: AdminNotificationStatus):
        return func.coalesce(func.sum(case((AdminNotification.status == status, 1), else_=0)), 0)

    result = await db.execute(
        select(
            func.count(AdminNotification.id).label("total"),
            _count_status(AdminNotificationStatus.SENT).label("sent"),
            _count_status(AdminNotificationStatus.SCHEDULED).label("scheduled"),
            _count_status(AdminNotificationStatus.DRAFT).label("draft"),
            func.coalesce(func.sum(AdminNotification.sent_to), 0).label("recipients"),
            func.coalesce(func.sum(AdminNotification.delivered_to), 0).label("delivered"),
            func.coalesce(func.sum(AdminNotification.opened_by), 0).label("opened"),
            func.coalesce(func.sum(AdminNotification.clicked_by), 0).label("clicked"),
        )
    )
    row = result.one()
    return {key: int(value or 0) for key, value in row._mapping.items()}


async def get_due_scheduled(db: AsyncSession, now: datetime) -> list[AdminNotification]:
    """Scheduled broadcasts whose time has come, oldest first."""
    result = await db.execute(
        select(AdminNotification)
        .where(
            AdminNotification.status == AdminNotificationStatus.SCHEDULED,
            AdminNotification.scheduled_for <= now,
        )
        .order_by(AdminNotification.scheduled_for)
    )
    return list(result.scalars().all())


async def claim_scheduled(db: AsyncSession, admin_notification_id: UUID) -> bool:
    """
    Move a due broadcast from scheduled to sent before it is dispatched.

    The update only matches rows still in ``scheduled``, so a broadcast is
    claimed by one job run at most.

    Returns:
        True if this call claimed the row
    """
    result = await db.execute(
        update(AdminNotification)
        .where(
            AdminNotification.id == admin_notification_id,
            AdminNotification.status == AdminNotificationStatus.SCHEDULED,
        )
        .values(status=AdminNotificationStatus.SENT)
    )
    await db.commit()
    return result.rowcount == 1


async def increment_opened(
    db: AsyncSession,
    admin_notification_id: UUID,
    count: int = 1,
) -> None:
    await db.execute(
        update(AdminNotification)
        .where(AdminNotification.id == admin_notification_id)
        .values(opened_by=AdminNotification.opened_by + count)
    )
    await db.commit()
