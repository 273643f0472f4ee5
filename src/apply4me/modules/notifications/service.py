"""
Notifications Service Layer

Creates in-app notifications, fans admin broadcasts out to their
recipients and backs the student inbox.

Delivery rules:
- Every resolved recipient gets exactly one in-app Notification per broadcast
- Email is a best-effort side channel; its failure never removes or
  blocks the in-app record
- Recipients that cannot be resolved are logged and counted as failed
"""

import logging
from collections.abc import Sequence
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from apply4me.core.auth import AuthUser
from apply4me.core.email import send_notification_email
from apply4me.modules.applications.models import VerificationDecision
from apply4me.modules.notifications import repository
from apply4me.modules.notifications.models import (
    AdminNotification,
    AdminNotificationStatus,
    Notification,
    NotificationType,
)
from apply4me.modules.notifications.recipients import RecipientResolver, default_resolver
from apply4me.modules.notifications.schemas import AdminNotificationCreate
from apply4me.modules.shared import ServiceError
from apply4me.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)

EMAIL_CHANNEL = "email"
ADMIN_SOURCE = "admin"
ADMIN_LIST_LIMIT = 50


class NotificationServiceError(ServiceError):
    """Base exception for notification service errors."""


class NotificationValidationError(NotificationServiceError):
    """Raised when a broadcast request is missing required content."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            status_code=400,
        )


@dataclass
class BroadcastResult:
    """Outcome of one broadcast across all resolved recipients."""

    total: int = 0
    successful: int = 0
    failed: int = 0
    emails_sent: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


# ============================================
# Single notifications
# ============================================


async def create_notification(
    db: AsyncSession,
    user_id: UUID,
    type: NotificationType,
    title: str,
    message: str,
    metadata: dict[str, Any] | None = None,
) -> Notification:
    """Persist one in-app notification for ``user_id``."""
    notification = await repository.create_notification(
        db,
        user_id=user_id,
        type=type,
        title=title,
        message=message,
        metadata=metadata,
    )
    logger.info(f"Created {type.value} notification {notification.id} for user {user_id}")
    return notification


def build_payment_verification_content(
    decision: VerificationDecision,
    amount: Decimal | int | float | None,
    payment_reference: str | None,
    institution_name: str,
    admin_notes: str | None = None,
) -> tuple[NotificationType, str, str]:
    """
    Title and message for a payment verification outcome.

    Returns:
        Tuple of (notification type, title, message)
    """
    amount_text = f"R{amount if amount is not None else 0}"
    reference = payment_reference or "N/A"

    if decision == VerificationDecision.VERIFIED:
        return (
            NotificationType.PAYMENT_VERIFIED,
            "Payment Verified - Application Submitted!",
            f"Your payment of {amount_text} (Ref: {reference}) has been verified. "
            f"Your application to {institution_name} has been successfully submitted "
            "and is now being processed.",
        )

    if admin_notes:
        message = (
            f"Your payment of {amount_text} (Ref: {reference}) could not be verified. "
            f"Reason: {admin_notes}"
        )
    else:
        message = (
            f"Your payment of {amount_text} (Ref: {reference}) could not be verified. "
            "Please check your payment details and try again."
        )
    return NotificationType.PAYMENT_REJECTED, "Payment Verification Failed", message


async def create_payment_verification_notification(
    db: AsyncSession,
    *,
    user_id: UUID,
    application_id: UUID,
    decision: VerificationDecision,
    amount: Decimal | int | float | None,
    payment_reference: str | None,
    institution_name: str,
    admin_notes: str | None = None,
) -> Notification:
    """Notify the application owner of an admin's payment decision."""
    type, title, message = build_payment_verification_content(
        decision, amount, payment_reference, institution_name, admin_notes
    )
    return await create_notification(
        db,
        user_id=user_id,
        type=type,
        title=title,
        message=message,
        metadata={
            "applicationId": str(application_id),
            "paymentReference": payment_reference,
            "verificationStatus": decision.value,
        },
    )


# ============================================
# Broadcast
# ============================================


async def _send_broadcast_emails(
    db: AsyncSession,
    user_ids: Sequence[UUID],
    title: str,
    message: str,
) -> int:
    """Email each recipient. Returns the number of emails accepted for delivery."""
    try:
        users = await UserRepository.get_by_ids(db, user_ids)
    except Exception as e:
        logger.error(f"Failed to load broadcast email recipients: {e}", exc_info=True)
        await db.rollback()
        return 0

    sent = 0
    for user_id in user_ids:
        user = users.get(user_id)
        if user is None or not user.email:
            logger.debug(f"No email address for user {user_id}, skipping email")
            continue
        try:
            if await send_notification_email(
                to_email=user.email,
                recipient_name=user.full_name,
                title=title,
                message=message,
            ):
                sent += 1
        except Exception as e:
            logger.error(f"Failed to email notification to user {user_id}: {e}", exc_info=True)
            # Don't fail the broadcast - email is non-critical
    return sent


async def broadcast(
    db: AsyncSession,
    recipients: str | Sequence[str],
    type: NotificationType,
    title: str,
    message: str,
    metadata: dict[str, Any] | None = None,
    channels: Sequence[str] = (),
    resolver: RecipientResolver = default_resolver,
) -> BroadcastResult:
    """
    Create one in-app notification per resolved recipient.

    Args:
        db: Database session
        recipients: A target or list of targets (user IDs or group tokens)
        type: Notification type for the created records
        title: Notification title
        message: Notification body
        metadata: Stored on every created record
        channels: Extra delivery channels; "email" sends a copy by email
        resolver: Maps each target to user IDs

    Returns:
        BroadcastResult with total, successful and failed counts
    """
    targets = [recipients] if isinstance(recipients, str) else list(recipients)
    result = BroadcastResult()

    user_ids: list[UUID] = []
    seen: set[UUID] = set()

    for target in targets:
        try:
            resolved = await resolver.resolve(db, str(target))
        except Exception as e:
            logger.error(f"Failed to resolve recipient {target!r}: {e}", exc_info=True)
            await db.rollback()
            resolved = []

        if not resolved:
            logger.warning(f"Recipient {target!r} resolved to no users")
            result.total += 1
            result.failed += 1
            continue

        for user_id in resolved:
            if user_id not in seen:
                seen.add(user_id)
                user_ids.append(user_id)

    result.total += len(user_ids)

    delivered: list[UUID] = []
    for user_id in user_ids:
        try:
            await repository.create_notification(
                db,
                user_id=user_id,
                type=type,
                title=title,
                message=message,
                metadata=metadata,
            )
            delivered.append(user_id)
            result.successful += 1
        except Exception as e:
            logger.error(f"Failed to create notification for user {user_id}: {e}", exc_info=True)
            await db.rollback()
            result.failed += 1

    if EMAIL_CHANNEL in channels and delivered:
        result.emails_sent = await _send_broadcast_emails(db, delivered, title, message)

    logger.info(
        f"Broadcast '{title}': total={result.total}, successful={result.successful}, "
        f"failed={result.failed}, emails={result.emails_sent}"
    )
    return result


# ============================================
# Admin broadcasts
# ============================================


def _user_facing_type(raw_type: str | None) -> NotificationType:
    try:
        return NotificationType(raw_type)
    except ValueError:
        return NotificationType.GENERAL


async def dispatch_admin_notification(
    db: AsyncSession,
    admin_notification: AdminNotification,
    resolver: RecipientResolver = default_resolver,
) -> BroadcastResult:
    """Broadcast a stored admin notification and record its delivery counters."""
    # Read before broadcasting; a rollback inside broadcast expires loaded attributes
    admin_notification_id = admin_notification.id
    recipients = list(admin_notification.recipients or [])
    channels = list(admin_notification.channels or [])
    type = _user_facing_type(admin_notification.type)
    title = admin_notification.title
    message = admin_notification.message

    result = await broadcast(
        db,
        recipients,
        type=type,
        title=title,
        message=message,
        metadata={
            "source": ADMIN_SOURCE,
            "adminNotificationId": str(admin_notification_id),
            "channels": channels,
        },
        channels=channels,
        resolver=resolver,
    )

    await repository.record_delivery(
        db,
        admin_notification,
        sent_to=result.total,
        delivered_to=result.successful,
        sent_at=datetime.now(UTC),
    )
    return result


async def send_admin_notification(
    db: AsyncSession,
    data: AdminNotificationCreate,
    admin: AuthUser,
    resolver: RecipientResolver = default_resolver,
) -> tuple[AdminNotification, BroadcastResult, str]:
    """
    Store an admin broadcast and send it now, or leave it for the scheduler.

    Returns:
        Tuple of (stored AdminNotification, BroadcastResult, summary message)

    Raises:
        NotificationValidationError: If title, message or recipients are missing
    """
    title = (data.title or "").strip()
    message = (data.message or "").strip()
    recipients = data.recipient_list()

    if not title or not message or not recipients:
        raise NotificationValidationError("Title, message, and recipients are required")

    channels = list(data.channels) if data.channels is not None else [EMAIL_CHANNEL]
    scheduled = data.scheduled_for is not None

    admin_notification = await repository.create_admin_notification(
        db,
        type=data.type or NotificationType.GENERAL.value,
        title=title,
        message=message,
        recipients=recipients,
        channels=channels,
        status=AdminNotificationStatus.SCHEDULED if scheduled else AdminNotificationStatus.SENT,
        created_by=admin.email or str(admin.id),
        scheduled_for=data.scheduled_for,
    )

    if scheduled:
        logger.info(
            f"Admin {admin.id} scheduled notification {admin_notification.id} "
            f"for {data.scheduled_for.isoformat()}"
        )
        return (
            admin_notification,
            BroadcastResult(),
            f"Notification scheduled for {data.scheduled_for.isoformat()}",
        )

    result = await dispatch_admin_notification(db, admin_notification, resolver=resolver)
    logger.info(
        f"Admin {admin.id} sent notification {admin_notification.id} "
        f"to {result.successful} recipients ({result.failed} failed)"
    )
    return (
        admin_notification,
        result,
        f"Notification sent to {result.successful} recipients ({result.failed} failed)",
    )


def _rate(numerator: int, denominator: int) -> int:
    if denominator <= 0:
        return 0
    return round(numerator / denominator * 100)


def build_summary(totals: dict[str, int]) -> dict[str, int]:
    """Turn raw aggregate counts into the admin dashboard summary."""
    return {
        "total_notifications": totals["total"],
        "sent_notifications": totals["sent"],
        "scheduled_notifications": totals["scheduled"],
        "draft_notifications": totals["draft"],
        "total_recipients": totals["recipients"],
        "total_delivered": totals["delivered"],
        "total_opened": totals["opened"],
        "total_clicked": totals["clicked"],
        "delivery_rate": _rate(totals["delivered"], totals["recipients"]),
        "open_rate": _rate(totals["opened"], totals["delivered"]),
        "click_rate": _rate(totals["clicked"], totals["opened"]),
    }


async def list_admin_notifications(
    db: AsyncSession,
) -> tuple[list[AdminNotification], dict[str, int]]:
    """The newest admin broadcasts plus the dashboard summary."""
    notifications = await repository.get_recent_admin_notifications(db, limit=ADMIN_LIST_LIMIT)
    totals = await repository.get_admin_notification_totals(db)
    return notifications, build_summary(totals)


# ============================================
# Student inbox
# ============================================


async def get_inbox(
    db: AsyncSession,
    user_id: UUID,
    *,
    unread_only: bool = False,
    limit: int = 50,
) -> tuple[list[Notification], int]:
    """
    Returns:
        Tuple of (notifications newest first, total unread count)
    """
    notifications = await repository.get_for_user(
        db, user_id, unread_only=unread_only, limit=limit
    )
    unread_count = await repository.count_unread(db, user_id)
    return notifications, unread_count


def _admin_notification_id(notification: Notification) -> UUID | None:
    metadata = notification.metadata_ or {}
    if metadata.get("source") != ADMIN_SOURCE:
        return None
    try:
        return UUID(str(metadata.get("adminNotificationId")))
    except ValueError:
        return None


async def mark_notifications_read(
    db: AsyncSession,
    user_id: UUID,
    notification_ids: Sequence[UUID],
) -> int:
    """
    Mark the user's notifications read.

    Opening a broadcast notification counts towards its AdminNotification
    ``opened_by``; a failure to update that counter is logged only.

    Returns:
        Number of notifications that changed from unread to read
    """
    updated = await repository.mark_read(db, user_id, notification_ids, datetime.now(UTC))

    opened: dict[UUID, int] = {}
    for notification in updated:
        admin_notification_id = _admin_notification_id(notification)
        if admin_notification_id is not None:
            opened[admin_notification_id] = opened.get(admin_notification_id, 0) + 1

    for admin_notification_id, count in opened.items():
        try:
            await repository.increment_opened(db, admin_notification_id, count)
        except Exception as e:
            logger.error(
                f"Failed to update open count for admin notification {admin_notification_id}: {e}",
                exc_info=True,
            )
            await db.rollback()

    logger.info(f"User {user_id} marked {len(updated)} notification(s) read")
    return len(updated)
