"""
Notifications Admin Router

API endpoints for administrators to broadcast notifications.
All endpoints require authentication and the admin role.

Endpoints:
- GET /admin/notifications - Recent broadcasts with delivery summary
- POST /admin/notifications - Send a broadcast now or schedule it

Security:
- All endpoints require valid JWT token with admin role
- Rate limiting on the send endpoint to prevent spam
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from apply4me.core.auth import AdminUser, get_current_admin_user
from apply4me.core.database import get_db
from apply4me.core.rate_limit import enforce_rate_limit
from apply4me.modules.notifications import service
from apply4me.modules.notifications.models import AdminNotification
from apply4me.modules.notifications.schemas import (
    AdminNotificationCreate,
    AdminNotificationItem,
    AdminNotificationListData,
    AdminNotificationListResponse,
    AdminNotificationSendData,
    AdminNotificationSendResponse,
    DeliveryStats,
    NotificationSummary,
)
from apply4me.modules.notifications.service import (
    NotificationServiceError,
    NotificationValidationError,
)
from apply4me.modules.shared import raise_http_error

logger = logging.getLogger(__name__)

router = APIRouter()

RATE_LIMIT_BROADCAST = (10, 60)  # 10 broadcasts per minute per admin


def _admin_notification_to_item(notification: AdminNotification) -> AdminNotificationItem:
    return AdminNotificationItem(
        id=notification.id,
        type=notification.type,
        title=notification.title,
        message=notification.message,
        recipients=notification.recipients or [],
        channels=notification.channels or [],
        status=notification.status,
        sent_to=notification.sent_to,
        delivered_to=notification.delivered_to,
        opened_by=notification.opened_by,
        clicked_by=notification.clicked_by,
        scheduled_for=notification.scheduled_for,
        sent_at=notification.sent_at,
        created_by=notification.created_by,
        created_at=notification.created_at,
    )


@router.get(
    "",
    response_model=AdminNotificationListResponse,
    summary="List Broadcasts",
    description="""
The 50 most recent admin broadcasts and an aggregate summary.

**Summary rates** (rounded percentages, 0 when nothing to divide by):
- `deliveryRate`: delivered / recipients
- `openRate`: opened / delivered
- `clickRate`: clicked / opened

**Access:** Admin only
""",
    responses={
        200: {"description": "Broadcasts and summary", "model": AdminNotificationListResponse},
        401: {"description": "Unauthorized - invalid or missing token"},
        403: {"description": "Forbidden - not an admin"},
    },
)
async def list_admin_notifications(
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin_user),
) -> AdminNotificationListResponse:
    try:
        notifications, summary = await service.list_admin_notifications(db)
        logger.info(f"Admin {admin.id} listed {len(notifications)} broadcasts")

        return AdminNotificationListResponse(
            success=True,
            data=AdminNotificationListData(
                notifications=[_admin_notification_to_item(n) for n in notifications],
                summary=NotificationSummary(**summary),
            ),
        )
    except Exception as e:
        logger.exception(f"Error listing admin notifications: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": "INTERNAL_ERROR",
                "message": "Failed to fetch notifications.",
            },
        ) from e


@router.post(
    "",
    response_model=AdminNotificationSendResponse,
    summary="Send Broadcast",
    description="""
Send a notification to one or more recipients.

**Recipients:** user IDs and/or group tokens:
- `all_users`: every active student
- `admin`: every active admin
- `pending_payments`: students with an unpaid application

**Channels:** an in-app notification is always created; include `email`
(the default) to also send an email copy.

**Scheduling:** with `scheduledFor` the broadcast is stored and sent by the
background dispatcher once that time has passed.

**Access:** Admin only
""",
    responses={
        200: {"description": "Broadcast sent or scheduled", "model": AdminNotificationSendResponse},
        400: {"description": "Missing title, message or recipients"},
        401: {"description": "Unauthorized - invalid or missing token"},
        403: {"description": "Forbidden - not an admin"},
        429: {"description": "Rate limit exceeded"},
    },
)
async def send_admin_notification(
    data: AdminNotificationCreate,
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin_user),
) -> AdminNotificationSendResponse:
    await enforce_rate_limit(f"admin:broadcast:{admin.id}", *RATE_LIMIT_BROADCAST)

    try:
        notification, result, message = await service.send_admin_notification(db, data, admin)

        return AdminNotificationSendResponse(
            success=True,
            data=AdminNotificationSendData(
                notification=_admin_notification_to_item(notification),
                message=message,
                user_notifications_created=result.successful,
                delivery_stats=DeliveryStats(**result.to_dict()),
            ),
        )

    except NotificationValidationError as e:
        raise_http_error(e)
    except NotificationServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Admin send notification error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": "INTERNAL_ERROR",
                "message": "An unexpected error occurred.",
            },
        ) from e
