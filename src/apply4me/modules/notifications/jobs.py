"""
Notification Background Jobs

Sends scheduled admin broadcasts once their ``scheduled_for`` time has passed.
Each job run opens its own database session.
"""

import logging
from datetime import UTC, datetime
from typing import Any

from apscheduler.triggers.interval import IntervalTrigger

from apply4me.core.config import settings
from apply4me.core.database import async_session_maker
from apply4me.core.scheduler import register_job
from apply4me.modules.notifications import repository, service
from apply4me.modules.notifications.models import AdminNotification
from apply4me.modules.notifications.recipients import RecipientResolver, default_resolver

logger = logging.getLogger(__name__)

JOB_ID_DISPATCH_SCHEDULED = "notifications_dispatch_scheduled"


async def dispatch_scheduled_notifications(
    resolver: RecipientResolver = default_resolver,
) -> dict[str, Any]:
    """
    Dispatch every scheduled admin broadcast that is due.

    Each broadcast is claimed (moved to ``sent``) before it is dispatched,
    so a run that fails part-way never sends it twice. A failure on one
    broadcast is logged and rolled back; the remaining broadcasts are still
    dispatched. A broadcast that could not be claimed stays scheduled and is
    retried on the next run.

    Returns:
        Summary with counts of dispatched and failed broadcasts
    """
    dispatched = 0
    failed = 0
    recipients_reached = 0

    async with async_session_maker() as db:
        due = await repository.get_due_scheduled(db, datetime.now(UTC))
        if not due:
            logger.debug("No scheduled notifications due")
            return {"due": 0, "dispatched": 0, "failed": 0, "recipients": 0}

        # A rollback expires every loaded row, so only ids are carried across iterations
        due_ids = [admin_notification.id for admin_notification in due]
        logger.info(f"Dispatching {len(due_ids)} scheduled notification(s)")

        for admin_notification_id in due_ids:
            claimed = False
            try:
                claimed = await repository.claim_scheduled(db, admin_notification_id)
                if not claimed:
                    logger.info(
                        f"Scheduled notification {admin_notification_id} already claimed, skipping"
                    )
                    continue

                admin_notification = await db.get(
                    AdminNotification, admin_notification_id, populate_existing=True
                )
                result = await service.dispatch_admin_notification(
                    db, admin_notification, resolver=resolver
                )
                dispatched += 1
                recipients_reached += result.successful
            except Exception as e:
                failed += 1
                # Claimed broadcasts are not retried
                state = "marked sent, not retried" if claimed else "left scheduled"
                logger.error(
                    f"Failed to dispatch scheduled notification {admin_notification_id} "
                    f"({state}): {e}",
                    exc_info=True,
                )
                await db.rollback()

    logger.info(
        f"Scheduled notification run complete: dispatched={dispatched}, failed={failed}, "
        f"recipients={recipients_reached}"
    )
    return {
        "due": len(due_ids),
        "dispatched": dispatched,
        "failed": failed,
        "recipients": recipients_reached,
    }


def register_notification_jobs() -> None:
    register_job(
        job_id=JOB_ID_DISPATCH_SCHEDULED,
        func=dispatch_scheduled_notifications,
        trigger=IntervalTrigger(minutes=settings.scheduled_dispatch_interval_minutes),
    )
