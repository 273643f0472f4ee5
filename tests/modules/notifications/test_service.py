"""
Unit tests for the notifications service layer.

These tests cover:
- Payment verification notification content
- Broadcast fan-out (deduplication, unresolvable targets, partial failures, email)
- Admin broadcasts (validation, scheduling, delivery counters)
- Dashboard summary rates
- Student inbox and read tracking
"""

from datetime import UTC, datetime
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock, patch
from uuid import uuid4

import pytest

from apply4me.modules.applications.models import VerificationDecision
from apply4me.modules.notifications.models import (
    AdminNotificationStatus,
    Notification,
    NotificationType,
)
from apply4me.modules.notifications.schemas import AdminNotificationCreate
from apply4me.modules.notifications.service import (
    BroadcastResult,
    NotificationValidationError,
    broadcast,
    build_payment_verification_content,
    build_summary,
    create_payment_verification_notification,
    dispatch_admin_notification,
    get_inbox,
    mark_notifications_read,
    send_admin_notification,
)

SERVICE = "apply4me.modules.notifications.service"


@pytest.fixture
def mock_repo():
    with patch(f"{SERVICE}.repository") as repo:
        repo.create_notification = AsyncMock(side_effect=lambda db, **kw: MagicMock(id=uuid4()))
        repo.create_admin_notification = AsyncMock()
        repo.record_delivery = AsyncMock()
        repo.get_for_user = AsyncMock(return_value=[])
        repo.count_unread = AsyncMock(return_value=0)
        repo.mark_read = AsyncMock(return_value=[])
        repo.increment_opened = AsyncMock()
        yield repo


@pytest.fixture
def mock_email():
    with (
        patch(f"{SERVICE}.UserRepository") as users,
        patch(f"{SERVICE}.send_notification_email", new=AsyncMock(return_value=True)) as send,
    ):
        users.get_by_ids = AsyncMock(return_value={})
        yield users, send


class TestPaymentVerificationContent:
    def test_verified(self):
        type, title, message = build_payment_verification_content(
            VerificationDecision.VERIFIED,
            Decimal("150.00"),
            "EFT-2026-0042",
            "University of Cape Town",
        )

        assert type == NotificationType.PAYMENT_VERIFIED
        assert title == "Payment Verified - Application Submitted!"
        assert message == (
            "Your payment of R150.00 (Ref: EFT-2026-0042) has been verified. "
            "Your application to University of Cape Town has been successfully submitted "
            "and is now being processed."
        )

    def test_rejected_with_notes(self):
        type, title, message = build_payment_verification_content(
            VerificationDecision.REJECTED,
            Decimal("150.00"),
            "EFT-2026-0042",
            "University of Cape Town",
            admin_notes="card declined",
        )

        assert type == NotificationType.PAYMENT_REJECTED
        assert title == "Payment Verification Failed"
        assert message.endswith("could not be verified. Reason: card declined")

    def test_rejected_without_notes(self):
        _, _, message = build_payment_verification_content(
            VerificationDecision.REJECTED, None, None, "University of Cape Town"
        )

        assert message == (
            "Your payment of R0 (Ref: N/A) could not be verified. "
            "Please check your payment details and try again."
        )

    @pytest.mark.asyncio
    async def test_notification_metadata(self, mock_db, mock_repo):
        user_id = uuid4()
        application_id = uuid4()

        await create_payment_verification_notification(
            mock_db,
            user_id=user_id,
            application_id=application_id,
            decision=VerificationDecision.VERIFIED,
            amount=Decimal("150.00"),
            payment_reference="EFT-2026-0042",
            institution_name="University of Cape Town",
        )

        kwargs = mock_repo.create_notification.call_args.kwargs
        assert kwargs["user_id"] == user_id
        assert kwargs["metadata"] == {
            "applicationId": str(application_id),
            "paymentReference": "EFT-2026-0042",
            "verificationStatus": "verified",
        }


class TestBroadcast:
    @pytest.mark.asyncio
    async def test_one_notification_per_resolved_user(
        self, mock_db, mock_repo, resolver, student_ids
    ):
        result = await broadcast(
            mock_db,
            ["all_users", str(student_ids[0])],
            type=NotificationType.GENERAL,
            title="Welcome",
            message="Welcome to Apply4Me",
            resolver=resolver,
        )

        assert result == BroadcastResult(total=3, successful=3, failed=0)
        created_for = [c.kwargs["user_id"] for c in mock_repo.create_notification.call_args_list]
        assert created_for == student_ids

    @pytest.mark.asyncio
    async def test_single_string_target(self, mock_db, mock_repo, resolver, student_ids):
        result = await broadcast(
            mock_db,
            str(student_ids[0]),
            type=NotificationType.GENERAL,
            title="Hi",
            message="Hello",
            resolver=resolver,
        )

        assert result.total == 1
        assert result.successful == 1

    @pytest.mark.asyncio
    async def test_unresolvable_targets_count_as_failed(self, mock_db, mock_repo, resolver):
        result = await broadcast(
            mock_db,
            ["pending_payments", "no-such-group"],
            type=NotificationType.GENERAL,
            title="Reminder",
            message="Please pay",
            resolver=resolver,
        )

        assert result == BroadcastResult(total=2, successful=0, failed=2)
        mock_repo.create_notification.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_create_failure_is_counted_and_rolled_back(
        self, mock_db, mock_repo, resolver, student_ids
    ):
        failing_user = student_ids[1]

        async def _create(db, **kwargs):
            if kwargs["user_id"] == failing_user:
                raise RuntimeError("insert failed")
            return MagicMock(id=uuid4())

        mock_repo.create_notification.side_effect = _create

        result = await broadcast(
            mock_db,
            "all_users",
            type=NotificationType.GENERAL,
            title="Welcome",
            message="Welcome to Apply4Me",
            resolver=resolver,
        )

        assert result == BroadcastResult(total=3, successful=2, failed=1)
        mock_db.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_email_channel_sends_to_delivered_users(
        self, mock_db, mock_repo, mock_email, resolver, student_ids
    ):
        users, send = mock_email
        user = MagicMock()
        user.email = "thandi@student.co.za"
        user.full_name = "Thandi Nkosi"
        users.get_by_ids.return_value = {student_ids[0]: user}

        result = await broadcast(
            mock_db,
            "all_users",
            type=NotificationType.GENERAL,
            title="Welcome",
            message="Welcome to Apply4Me",
            channels=["email"],
            resolver=resolver,
        )

        assert result.successful == 3
        assert result.emails_sent == 1
        send.assert_awaited_once_with(
            to_email="thandi@student.co.za",
            recipient_name="Thandi Nkosi",
            title="Welcome",
            message="Welcome to Apply4Me",
        )

    @pytest.mark.asyncio
    async def test_email_failure_keeps_in_app_records(
        self, mock_db, mock_repo, mock_email, resolver, student_ids
    ):
        users, send = mock_email
        user = MagicMock()
        user.email = "thandi@student.co.za"
        user.full_name = "Thandi Nkosi"
        users.get_by_ids.return_value = {student_ids[0]: user}
        send.side_effect = RuntimeError("resend down")

        result = await broadcast(
            mock_db,
            "all_users",
            type=NotificationType.GENERAL,
            title="Welcome",
            message="Welcome to Apply4Me",
            channels=["email"],
            resolver=resolver,
        )

        assert result.successful == 3
        assert result.failed == 0
        assert result.emails_sent == 0

    @pytest.mark.asyncio
    async def test_no_email_without_email_channel(
        self, mock_db, mock_repo, mock_email, resolver
    ):
        _, send = mock_email

        await broadcast(
            mock_db,
            "all_users",
            type=NotificationType.GENERAL,
            title="Welcome",
            message="Welcome",
            channels=[],
            resolver=resolver,
        )

        send.assert_not_awaited()


class TestSendAdminNotification:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [
            {"message": "Body", "recipients": "all_users"},
            {"title": "Title", "recipients": "all_users"},
            {"title": "Title", "message": "Body"},
            {"title": "Title", "message": "Body", "recipients": []},
            {"title": "  ", "message": "Body", "recipients": "all_users"},
        ],
    )
    async def test_requires_title_message_and_recipients(
        self, mock_db, mock_repo, admin_user, payload
    ):
        with pytest.raises(NotificationValidationError) as exc_info:
            await send_admin_notification(mock_db, AdminNotificationCreate(**payload), admin_user)

        assert exc_info.value.status_code == 400
        assert exc_info.value.message == "Title, message, and recipients are required"
        mock_repo.create_admin_notification.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_scheduled_broadcast_is_stored_not_sent(
        self, mock_db, mock_repo, admin_user, resolver, sample_admin_notification
    ):
        mock_repo.create_admin_notification.return_value = sample_admin_notification
        scheduled_for = datetime(2026, 10, 20, 8, 0, tzinfo=UTC)

        notification, result, message = await send_admin_notification(
            mock_db,
            AdminNotificationCreate(
                title="Applications close Friday",
                message="Submit before Friday",
                recipients="all_users",
                scheduled_for=scheduled_for,
            ),
            admin_user,
            resolver=resolver,
        )

        kwargs = mock_repo.create_admin_notification.call_args.kwargs
        assert kwargs["status"] == AdminNotificationStatus.SCHEDULED
        assert kwargs["scheduled_for"] == scheduled_for
        assert kwargs["created_by"] == admin_user.email
        assert notification is sample_admin_notification
        assert result == BroadcastResult()
        assert message == f"Notification scheduled for {scheduled_for.isoformat()}"
        mock_repo.create_notification.assert_not_awaited()
        mock_repo.record_delivery.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_immediate_broadcast_records_delivery(
        self,
        mock_db,
        mock_repo,
        mock_email,
        admin_user,
        resolver,
        sample_admin_notification,
    ):
        sample_admin_notification.status = AdminNotificationStatus.SENT
        sample_admin_notification.recipients = ["all_users", "nobody"]
        mock_repo.create_admin_notification.return_value = sample_admin_notification

        _, result, message = await send_admin_notification(
            mock_db,
            AdminNotificationCreate(
                title="Applications close Friday",
                message="Submit before Friday",
                recipients=["all_users", "nobody"],
            ),
            admin_user,
            resolver=resolver,
        )

        kwargs = mock_repo.create_admin_notification.call_args.kwargs
        assert kwargs["status"] == AdminNotificationStatus.SENT
        assert kwargs["channels"] == ["email"]
        assert kwargs["type"] == "general"

        assert result.total == 4
        assert result.successful == 3
        assert result.failed == 1
        assert message == "Notification sent to 3 recipients (1 failed)"

        delivery = mock_repo.record_delivery.call_args.kwargs
        assert delivery["sent_to"] == 4
        assert delivery["delivered_to"] == 3


class TestDispatchAdminNotification:
    @pytest.mark.asyncio
    async def test_metadata_and_type(
        self, mock_db, mock_repo, mock_email, resolver, sample_admin_notification
    ):
        await dispatch_admin_notification(mock_db, sample_admin_notification, resolver=resolver)

        kwargs = mock_repo.create_notification.call_args.kwargs
        assert kwargs["type"] == NotificationType.DEADLINE_REMINDER
        assert kwargs["metadata"] == {
            "source": "admin",
            "adminNotificationId": str(sample_admin_notification.id),
            "channels": ["email"],
        }
        mock_repo.record_delivery.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unknown_type_falls_back_to_general(
        self, mock_db, mock_repo, resolver, sample_admin_notification
    ):
        sample_admin_notification.type = "announcement"
        sample_admin_notification.channels = []

        await dispatch_admin_notification(mock_db, sample_admin_notification, resolver=resolver)

        kwargs = mock_repo.create_notification.call_args.kwargs
        assert kwargs["type"] == NotificationType.GENERAL


class TestBuildSummary:
    def test_rates(self):
        summary = build_summary(
            {
                "total": 4,
                "sent": 3,
                "scheduled": 1,
                "draft": 0,
                "recipients": 3,
                "delivered": 2,
                "opened": 1,
                "clicked": 0,
            }
        )

        assert summary["total_notifications"] == 4
        assert summary["scheduled_notifications"] == 1
        assert summary["delivery_rate"] == 67
        assert summary["open_rate"] == 50
        assert summary["click_rate"] == 0

    def test_zero_denominators(self):
        summary = build_summary(
            {
                "total": 0,
                "sent": 0,
                "scheduled": 0,
                "draft": 0,
                "recipients": 0,
                "delivered": 0,
                "opened": 0,
                "clicked": 0,
            }
        )

        assert summary["delivery_rate"] == 0
        assert summary["open_rate"] == 0
        assert summary["click_rate"] == 0


class TestInbox:
    @pytest.mark.asyncio
    async def test_returns_notifications_and_unread_count(
        self, mock_db, mock_repo, sample_notification
    ):
        mock_repo.get_for_user.return_value = [sample_notification]
        mock_repo.count_unread.return_value = 5
        user_id = sample_notification.user_id

        notifications, unread = await get_inbox(mock_db, user_id, unread_only=True, limit=10)

        assert notifications == [sample_notification]
        assert unread == 5
        mock_repo.get_for_user.assert_awaited_once_with(
            mock_db, user_id, unread_only=True, limit=10
        )


def _read_notification(metadata):
    notification = MagicMock(spec=Notification)
    notification.id = uuid4()
    notification.metadata_ = metadata
    return notification


class TestMarkNotificationsRead:
    @pytest.mark.asyncio
    async def test_counts_opens_per_admin_broadcast(self, mock_db, mock_repo):
        broadcast_id = uuid4()
        broadcast_meta = {"source": "admin", "adminNotificationId": str(broadcast_id)}
        mock_repo.mark_read.return_value = [
            _read_notification(broadcast_meta),
            _read_notification(broadcast_meta),
            _read_notification({"applicationId": str(uuid4())}),
        ]

        updated = await mark_notifications_read(mock_db, uuid4(), [uuid4()])

        assert updated == 3
        mock_repo.increment_opened.assert_awaited_once_with(mock_db, broadcast_id, 2)

    @pytest.mark.asyncio
    async def test_open_counter_failure_is_not_raised(self, mock_db, mock_repo):
        broadcast_meta = {"source": "admin", "adminNotificationId": str(uuid4())}
        mock_repo.mark_read.return_value = [_read_notification(broadcast_meta)]
        mock_repo.increment_opened.side_effect = RuntimeError("update failed")

        updated = await mark_notifications_read(mock_db, uuid4(), [uuid4()])

        assert updated == 1
        mock_db.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_malformed_broadcast_id_is_ignored(self, mock_db, mock_repo):
        mock_repo.mark_read.return_value = [
            _read_notification({"source": "admin", "adminNotificationId": "not-a-uuid"}),
            _read_notification(None),
        ]

        updated = await mark_notifications_read(mock_db, uuid4(), [uuid4()])

        assert updated == 2
        mock_repo.increment_opened.assert_not_awaited()
