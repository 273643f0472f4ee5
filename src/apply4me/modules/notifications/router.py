"""
Notifications Router

The authenticated user's notification inbox.

Endpoints:
- GET /notifications - List own notifications with unread count
- PATCH /notifications - Mark own notifications as read
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from apply4me.core.auth import AuthUser, get_current_user
from apply4me.core.database import get_db
from apply4me.modules.notifications import service
from apply4me.modules.notifications.models import Notification
from apply4me.modules.notifications.schemas import (
    InboxResponse,
    MarkReadRequest,
    MarkReadResponse,
    NotificationItem,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _notification_to_item(notification: Notification) -> NotificationItem:
    return NotificationItem(
        id=notification.id,
        type=notification.type,
        title=notification.title,
        message=notification.message,
        read=notification.read,
        read_at=notification.read_at,
        metadata=notification.metadata_ or {},
        created_at=notification.created_at,
    )


@router.get(
    "",
    response_model=InboxResponse,
    summary="List Notifications",
    description="""
The caller's notifications, newest first, plus the total unread count.

- `unreadOnly`: only return unread notifications. Default: false
- `limit`: maximum records to return (1-100). Default: 50
""",
    responses={
        200: {"description": "Notifications", "model": InboxResponse},
        401: {"description": "Unauthorized - invalid or missing token"},
    },
)
async def list_notifications(
    unread_only: bool = Query(False, alias="unreadOnly"),
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    user: AuthUser = Depends(get_current_user),
) -> InboxResponse:
    try:
        notifications, unread_count = await service.get_inbox(
            db, user.id, unread_only=unread_only, limit=limit
        )
        return InboxResponse(
            success=True,
            notifications=[_notification_to_item(n) for n in notifications],
            unread_count=unread_count,
        )
    except Exception as e:
        logger.exception(f"Error fetching notifications for user {user.id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": "INTERNAL_ERROR",
                "message": "Failed to fetch notifications.",
            },
        ) from e


@router.patch(
    "",
    response_model=MarkReadResponse,
    summary="Mark Notifications Read",
    description="Mark the given notifications as read. IDs that are not the caller's are ignored.",
    responses={
        200: {"description": "Notifications updated", "model": MarkReadResponse},
        401: {"description": "Unauthorized - invalid or missing token"},
        422: {"description": "Validation error"},
    },
)
async def mark_notifications_read(
    data: MarkReadRequest,
    db: AsyncSession = Depends(get_db),
    user: AuthUser = Depends(get_current_user),
) -> MarkReadResponse:
    try:
        updated = await service.mark_notifications_read(db, user.id, data.notification_ids)
        return MarkReadResponse(
            success=True,
            updated=updated,
            message=f"{updated} notifications marked as read",
        )
    except Exception as e:
        logger.exception(f"Error marking notifications read for user {user.id}: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": "INTERNAL_ERROR",
                "message": "Failed to mark notifications as read.",
            },
        ) from e
