"""
Applications Service Layer

Business logic for application payments.

This module implements:
1. Payment Verification (admin):
   - Validate the decision request
   - Write the decision onto the application (status pair + verification fields)
   - Run the post-commit side effects in order: in-app notification,
     student email, audit log entry
   - Report the outcome of every side effect in the response

2. Payment Queue (admin):
   - Applications by payment status with display fallbacks for missing data

3. Verification History (admin):
   - Audit entries for one application

4. Payment Submission (student):
   - Record the student's payment claim and queue it for verification

Side effects run only after the decision is committed. Each one is
independent: a failure is logged, the session is rolled back, and the
remaining side effects still run. Re-verifying an application is allowed
and appends a further audit entry.
"""

import logging
from datetime import UTC, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from apply4me.core.auth import AuthUser
from apply4me.core.config import settings
from apply4me.core.email import send_payment_rejected, send_payment_verified
from apply4me.modules.applications import repository
from apply4me.modules.applications.helpers import (
    get_institution_name,
    get_student_email,
    get_student_name,
    get_student_phone,
)
from apply4me.modules.applications.models import (
    Application,
    PaymentStatus,
    VerificationDecision,
)
from apply4me.modules.applications.schemas import (
    PaymentListItem,
    PaymentListResponse,
    SideEffectOutcome,
    SideEffectsReport,
    SubmitPaymentRequest,
    SubmitPaymentResponse,
    VerificationHistoryResponse,
    VerificationLogItem,
    VerifyPaymentRequest,
    VerifyPaymentResponse,
)
from apply4me.modules.notifications import service as notification_service
from apply4me.modules.notifications.models import NotificationType
from apply4me.modules.shared import ServiceError
from apply4me.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)

UNDEFINED_COLUMN_SQLSTATE = "42703"


class ApplicationServiceError(ServiceError):
    """Base exception for application service errors."""


class VerificationValidationError(ApplicationServiceError):
    """Raised when a verification request is missing fields or has an unknown status."""

    def __init__(self, message: str):
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            status_code=400,
        )


class ApplicationNotFoundError(ApplicationServiceError):
    """Raised when an application is not found."""

    def __init__(self, application_id: UUID | str | None = None):
        message = (
            f"Application {application_id} not found" if application_id else "Application not found"
        )
        super().__init__(
            message=message,
            error_code="APPLICATION_NOT_FOUND",
            status_code=404,
        )


class PersistenceError(ApplicationServiceError):
    """Raised when an application update cannot be written."""

    def __init__(self, message: str = "Failed to update application status"):
        super().__init__(
            message=message,
            error_code="PERSISTENCE_ERROR",
            status_code=500,
        )


class PaymentQueryError(ApplicationServiceError):
    """Raised when the payment queue cannot be read."""

    def __init__(self, schema_issue: bool = False):
        self.schema_issue = schema_issue
        super().__init__(
            message="Failed to fetch payments",
            error_code="DATABASE_ERROR",
            status_code=500,
        )


class SideEffectError(ApplicationServiceError):
    """Raised inside the workflow when a post-commit side effect fails. Never surfaced."""

    def __init__(self, side_effect: str, message: str):
        self.side_effect = side_effect
        super().__init__(
            message=message,
            error_code="SIDE_EFFECT_FAILED",
            status_code=500,
        )


def _sqlstate(error: SQLAlchemyError) -> str | None:
    orig = getattr(error, "orig", None)
    return getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)


def _parse_application_id(raw: str | UUID) -> UUID:
    if isinstance(raw, UUID):
        return raw
    try:
        return UUID(str(raw).strip())
    except ValueError as e:
        raise ApplicationNotFoundError(raw) from e


def _validate_verification_request(
    data: VerifyPaymentRequest,
) -> tuple[str, VerificationDecision, str]:
    """
    Check required fields and the decision value.

    Returns:
        Tuple of (application id, decision, claimed verifier)

    Raises:
        VerificationValidationError: On any missing or invalid field
    """
    application_id = (data.application_id or "").strip()
    status = (data.status or "").strip()
    verified_by = (data.verified_by or "").strip()

    if not application_id or not status or not verified_by:
        raise VerificationValidationError(
            "Missing required fields: applicationId, status, verifiedBy"
        )

    try:
        decision = VerificationDecision(status)
    except ValueError as e:
        raise VerificationValidationError(
            'Status must be either "verified" or "rejected"'
        ) from e

    return application_id, decision, verified_by


# ============================================
# Payment Verification
# ============================================


async def _notify_student(
    db: AsyncSession,
    *,
    user_id: UUID,
    application_id: UUID,
    decision: VerificationDecision,
    amount: Decimal | None,
    payment_reference: str | None,
    institution_name: str,
    admin_notes: str | None,
) -> SideEffectOutcome:
    try:
        await notification_service.create_payment_verification_notification(
            db,
            user_id=user_id,
            application_id=application_id,
            decision=decision,
            amount=amount,
            payment_reference=payment_reference,
            institution_name=institution_name,
            admin_notes=admin_notes,
        )
        return SideEffectOutcome.SUCCEEDED
    except Exception as e:
        logger.error(
            f"Failed to create in-app notification for application {application_id}: {e}",
            exc_info=True,
        )
        await db.rollback()
        return SideEffectOutcome.FAILED


async def _email_student(
    db: AsyncSession,
    *,
    user_id: UUID,
    application_id: UUID,
    student_email: str | None,
    student_name: str,
    decision: VerificationDecision,
    amount: Decimal | None,
    payment_reference: str | None,
    institution_name: str,
    admin_notes: str | None,
) -> SideEffectOutcome:
    try:
        to_email = student_email
        if not to_email:
            user = await UserRepository.get_by_id(db, user_id)
            to_email = user.email if user is not None else None

        if not to_email:
            logger.warning(f"No student email found for application {application_id}")
            return SideEffectOutcome.SKIPPED

        if decision == VerificationDecision.VERIFIED:
            sent = await send_payment_verified(
                to_email=to_email,
                student_name=student_name,
                institution_name=institution_name,
                payment_reference=payment_reference,
                amount=amount,
            )
        else:
            sent = await send_payment_rejected(
                to_email=to_email,
                student_name=student_name,
                institution_name=institution_name,
                payment_reference=payment_reference,
                amount=amount,
                admin_notes=admin_notes,
            )

        if not sent:
            raise SideEffectError("email", f"Email provider rejected message to {to_email}")

        logger.info(f"Sent payment {decision.value} email for application {application_id}")
        return SideEffectOutcome.SUCCEEDED
    except Exception as e:
        logger.error(
            f"Failed to send payment email for application {application_id}: {e}",
            exc_info=True,
        )
        await db.rollback()
        return SideEffectOutcome.FAILED


async def _append_audit_entry(
    db: AsyncSession,
    *,
    application_id: UUID,
    decision: VerificationDecision,
    verified_by: str,
    admin_notes: str | None,
    verified_at: datetime,
) -> SideEffectOutcome:
    try:
        entry = await repository.append_verification_log(
            db,
            application_id,
            decision,
            verified_by,
            admin_notes,
            verified_at,
        )
        logger.info(f"Logged verification {entry.id} for application {application_id}")
        return SideEffectOutcome.SUCCEEDED
    except Exception as e:
        logger.error(
            f"Failed to log verification for application {application_id}: {e}",
            exc_info=True,
        )
        await db.rollback()
        return SideEffectOutcome.FAILED


async def verify_payment(
    db: AsyncSession,
    data: VerifyPaymentRequest,
    admin: AuthUser,
) -> VerifyPaymentResponse:
    """
    Record an admin's payment decision and notify the student.

    The recorded verifier is the authenticated admin, not the
    client-supplied ``verifiedBy``.

    Args:
        db: Database session
        data: Verification request
        admin: Authenticated admin

    Returns:
        VerifyPaymentResponse including the per-side-effect outcomes

    Raises:
        VerificationValidationError: Missing fields or unknown status
        ApplicationNotFoundError: Unknown (or malformed) application ID
        PersistenceError: The decision could not be committed
    """
    raw_application_id, decision, claimed_verifier = _validate_verification_request(data)
    application_id = _parse_application_id(raw_application_id)
    admin_notes = (data.admin_notes or "").strip() or None

    verified_by = admin.email or str(admin.id)
    if claimed_verifier != verified_by:
        logger.warning(
            f"verifiedBy '{claimed_verifier}' does not match authenticated admin "
            f"'{verified_by}'; recording the authenticated admin"
        )

    application = await repository.get_by_id(db, application_id)
    if not application:
        logger.warning(f"Application not found: {application_id}")
        raise ApplicationNotFoundError(application_id)

    if application.payment_verification_status is not None:
        logger.warning(
            f"Application {application_id} already has a "
            f"'{application.payment_verification_status.value}' decision; "
            f"recording new '{decision.value}' decision"
        )

    decided_at = datetime.now(UTC)

    try:
        application = await repository.apply_verification_decision(
            db,
            application,
            decision,
            verified_by,
            admin_notes,
            decided_at,
        )
    except SQLAlchemyError as e:
        logger.error(f"Failed to update application {application_id}: {e}", exc_info=True)
        await db.rollback()
        raise PersistenceError() from e

    logger.info(f"Payment {decision.value} for application {application_id} by {verified_by}")

    # Read everything the side effects need now; a rollback in one of them
    # expires the loaded application.
    user_id = application.user_id
    amount = application.total_amount
    payment_reference = application.payment_reference
    institution_name = get_institution_name(application)
    student_email = get_student_email(application)
    student_name = get_student_name(application)

    notification_outcome = await _notify_student(
        db,
        user_id=user_id,
        application_id=application_id,
        decision=decision,
        amount=amount,
        payment_reference=payment_reference,
        institution_name=institution_name,
        admin_notes=admin_notes,
    )
    email_outcome = await _email_student(
        db,
        user_id=user_id,
        application_id=application_id,
        student_email=student_email,
        student_name=student_name,
        decision=decision,
        amount=amount,
        payment_reference=payment_reference,
        institution_name=institution_name,
        admin_notes=admin_notes,
    )
    audit_outcome = await _append_audit_entry(
        db,
        application_id=application_id,
        decision=decision,
        verified_by=verified_by,
        admin_notes=admin_notes,
        verified_at=decided_at,
    )

    return VerifyPaymentResponse(
        success=True,
        message=f"Payment {decision.value} successfully",
        application_id=application_id,
        status=decision,
        verified_by=verified_by,
        timestamp=decided_at,
        side_effects=SideEffectsReport(
            notification=notification_outcome,
            email=email_outcome,
            audit_log=audit_outcome,
        ),
    )


# ============================================
# Payment Queue
# ============================================


def application_to_payment_item(application: Application) -> PaymentListItem:
    """Convert an Application to a queue row, filling display fallbacks."""
    institution = application.institution
    verification_status = (
        application.payment_verification_status.value
        if application.payment_verification_status is not None
        else PaymentStatus.PENDING_VERIFICATION.value
    )
    amount = (
        application.total_amount
        if application.total_amount is not None
        else settings.default_application_fee
    )

    return PaymentListItem(
        id=application.id,
        payment_reference=application.payment_reference or "N/A",
        payment_method=application.payment_method or "Unknown",
        payment_date=application.payment_date or application.created_at,
        amount=amount,
        status=application.payment_status,
        verification_status=verification_status,
        application_status=application.status,
        created_at=application.created_at,
        student_name=get_student_name(application),
        student_email=get_student_email(application),
        student_phone=get_student_phone(application),
        institution_name=institution.name if institution is not None else None,
        institution_logo=institution.logo_url if institution is not None else None,
    )


async def list_payments(
    db: AsyncSession,
    *,
    payment_status: PaymentStatus = PaymentStatus.PENDING_VERIFICATION,
    offset: int = 0,
    limit: int = 50,
) -> PaymentListResponse:
    """
    Applications in the given payment status, newest first.

    Raises:
        PaymentQueryError: On database failure; ``schema_issue`` is set when
            the database reports an undefined column
    """
    try:
        applications, total = await repository.get_by_payment_status(
            db,
            payment_status=payment_status,
            offset=offset,
            limit=limit,
        )
    except SQLAlchemyError as e:
        schema_issue = _sqlstate(e) == UNDEFINED_COLUMN_SQLSTATE
        logger.error(f"Error fetching payments ({payment_status.value}): {e}", exc_info=True)
        raise PaymentQueryError(schema_issue=schema_issue) from e

    return PaymentListResponse(
        success=True,
        applications=[application_to_payment_item(app) for app in applications],
        total=total,
        offset=offset,
        limit=limit,
    )


# ============================================
# Verification History
# ============================================


async def get_verification_history(
    db: AsyncSession,
    application_id: str | UUID,
) -> VerificationHistoryResponse:
    """
    Raises:
        ApplicationNotFoundError: Unknown (or malformed) application ID
    """
    parsed_id = _parse_application_id(application_id)

    application = await repository.get_by_id(db, parsed_id)
    if not application:
        raise ApplicationNotFoundError(parsed_id)

    entries = await repository.get_verification_logs(db, parsed_id)

    return VerificationHistoryResponse(
        success=True,
        application_id=parsed_id,
        history=[
            VerificationLogItem(
                id=entry.id,
                application_id=entry.application_id,
                verification_status=entry.verification_status,
                verified_by=entry.verified_by,
                notes=entry.notes,
                verified_at=entry.verified_at,
            )
            for entry in entries
        ],
    )


# ============================================
# Payment Submission
# ============================================


async def submit_payment(
    db: AsyncSession,
    data: SubmitPaymentRequest,
    user: AuthUser,
) -> SubmitPaymentResponse:
    """
    Record a student's payment claim for admin verification.

    Raises:
        ApplicationNotFoundError: The application does not exist or is not the caller's
        PersistenceError: The claim could not be committed
    """
    application = await repository.get_by_id_for_user(db, data.application_id, user.id)
    if not application:
        logger.warning(f"Application {data.application_id} not found for user {user.id}")
        raise ApplicationNotFoundError(data.application_id)

    submitted_at = datetime.now(UTC)

    try:
        application = await repository.record_payment_submission(
            db,
            application,
            payment_reference=data.payment_reference.strip(),
            amount=data.amount,
            payment_method=data.payment_method.strip(),
            submitted_at=submitted_at,
        )
    except SQLAlchemyError as e:
        logger.error(
            f"Failed to record payment for application {data.application_id}: {e}",
            exc_info=True,
        )
        await db.rollback()
        raise PersistenceError("Failed to record payment") from e

    application_id = application.id
    payment_status = application.payment_status
    application_status = application.status
    institution_name = get_institution_name(application)

    logger.info(
        f"Payment submitted for application {application_id} "
        f"(ref {data.payment_reference}, method {data.payment_method})"
    )
    if data.notes:
        logger.info(f"Student notes for application {application_id}: {data.notes}")

    try:
        await notification_service.create_notification(
            db,
            user_id=user.id,
            type=NotificationType.APPLICATION_SUBMITTED,
            title="Payment Submitted for Verification",
            message=(
                f"Your payment of R{data.amount} (Ref: {data.payment_reference}) for your "
                f"application to {institution_name} has been received and is awaiting "
                "verification."
            ),
            metadata={
                "applicationId": str(application_id),
                "paymentReference": data.payment_reference,
            },
        )
    except Exception as e:
        logger.error(
            f"Failed to create submission notification for application {application_id}: {e}",
            exc_info=True,
        )
        await db.rollback()
        # Don't fail the request - notification is non-critical

    return SubmitPaymentResponse(
        success=True,
        message="Payment submitted for verification",
        application_id=application_id,
        payment_status=payment_status,
        application_status=application_status,
    )
