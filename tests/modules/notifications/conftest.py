"""
Fixtures for notifications tests.
"""

from datetime import UTC, datetime
from unittest.mock import MagicMock
from uuid import UUID, uuid4

import pytest

from apply4me.modules.notifications.models import (
    AdminNotification,
    AdminNotificationStatus,
    Notification,
    NotificationType,
)


class StaticResolver:
    """Resolves targets from a fixed mapping; unknown targets resolve to nothing."""

    def __init__(self, mapping: dict[str, list[UUID]]):
        self.mapping = mapping
        self.calls: list[str] = []

    async def resolve(self, db, token: str) -> list[UUID]:
        self.calls.append(token)
        return list(self.mapping.get(token, []))


@pytest.fixture
def student_ids():
    return [uuid4(), uuid4(), uuid4()]


@pytest.fixture
def resolver(student_ids):
    return StaticResolver(
        {
            "all_users": student_ids,
            str(student_ids[0]): [student_ids[0]],
            "pending_payments": [],
        }
    )


@pytest.fixture
def sample_admin_notification():
    notification = MagicMock(spec=AdminNotification)
    notification.id = uuid4()
    notification.type = "deadline_reminder"
    notification.title = "Applications close Friday"
    notification.message = "Submit your outstanding applications before Friday 17:00."
    notification.recipients = ["all_users"]
    notification.channels = ["email"]
    notification.status = AdminNotificationStatus.SCHEDULED
    notification.sent_to = 0
    notification.delivered_to = 0
    notification.opened_by = 0
    notification.clicked_by = 0
    notification.scheduled_for = datetime(2026, 10, 17, 8, 0, tzinfo=UTC)
    notification.sent_at = None
    notification.created_by = "admin@apply4me.co.za"
    notification.created_at = datetime(2026, 10, 16, 12, 0, tzinfo=UTC)
    return notification


@pytest.fixture
def sample_notification():
    notification = MagicMock(spec=Notification)
    notification.id = uuid4()
    notification.user_id = uuid4()
    notification.type = NotificationType.PAYMENT_VERIFIED
    notification.title = "Payment Verified - Application Submitted!"
    notification.message = "Your payment of R150.00 (Ref: EFT-2026-0042) has been verified."
    notification.read = False
    notification.read_at = None
    notification.metadata_ = {"applicationId": str(uuid4()), "verificationStatus": "verified"}
    notification.created_at = datetime(2026, 10, 2, 8, 0, tzinfo=UTC)
    return notification
