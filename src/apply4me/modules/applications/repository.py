"""
Applications Repository

Database operations for applications and the payment verification log.
"""

import logging
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from apply4me.modules.applications.models import (
    Application,
    ApplicationStatus,
    PaymentStatus,
    PaymentVerificationLog,
    VerificationDecision,
)

logger = logging.getLogger(__name__)

# Decision -> (payment_status, application status)
DECISION_TRANSITIONS: dict[VerificationDecision, tuple[PaymentStatus, ApplicationStatus]] = {
    VerificationDecision.VERIFIED: (PaymentStatus.COMPLETED, ApplicationStatus.SUBMITTED),
    VerificationDecision.REJECTED: (PaymentStatus.FAILED, ApplicationStatus.PAYMENT_FAILED),
}


async def get_by_id(db: AsyncSession, id: UUID) -> Application | None:
    result = await db.execute(select(Application).where(Application.id == id))
    return result.scalar_one_or_none()


async def get_by_id_for_user(db: AsyncSession, id: UUID, user_id: UUID) -> Application | None:
    """Get an application only if it belongs to ``user_id``."""
    result = await db.execute(
        select(Application).where(Application.id == id, Application.user_id == user_id)
    )
    return result.scalar_one_or_none()


async def apply_verification_decision(
    db: AsyncSession,
    application: Application,
    decision: VerificationDecision,
    verified_by: str,
    notes: str | None,
    decided_at: datetime,
) -> Application:
    """
    Write an admin decision onto the application and commit.

    The status pair and every payment_verification_* column are set in the
    same commit.

    Raises:
        SQLAlchemyError: If the commit fails (caller rolls back)
    """
    payment_status, status = DECISION_TRANSITIONS[decision]

    application.payment_status = payment_status
    application.status = status
    application.payment_verification_status = decision
    application.payment_verification_date = decided_at
    application.payment_verification_by = verified_by
    application.payment_verification_notes = notes
    application.updated_at = decided_at

    await db.commit()
    await db.refresh(application)

    return application


async def append_verification_log(
    db: AsyncSession,
    application_id: UUID,
    decision: VerificationDecision,
    verified_by: str,
    notes: str | None,
    verified_at: datetime,
) -> PaymentVerificationLog:
    """Append one audit entry. There is no update or delete counterpart."""
    entry = PaymentVerificationLog(
        application_id=application_id,
        verification_status=decision,
        verified_by=verified_by,
        notes=notes,
        verified_at=verified_at,
    )
    db.add(entry)
    await db.commit()
    await db.refresh(entry)

    return entry


async def get_verification_logs(
    db: AsyncSession,
    application_id: UUID,
) -> list[PaymentVerificationLog]:
    """Audit entries for one application, newest first."""
    result = await db.execute(
        select(PaymentVerificationLog)
        .where(PaymentVerificationLog.application_id == application_id)
        .order_by(desc(PaymentVerificationLog.verified_at))
    )
    return list(result.scalars().all())


async def get_by_payment_status(
    db: AsyncSession,
    *,
    payment_status: PaymentStatus,
    offset: int = 0,
    limit: int = 50,
) -> tuple[list[Application], int]:
    """
    Applications with the given payment status, newest first.

    Returns:
        Tuple of (page of applications, total count matching the filter)
    """
    query = select(Application).where(Application.payment_status == payment_status)

    count_query = select(func.count()).select_from(query.subquery())
    total_result = await db.execute(count_query)
    total = total_result.scalar() or 0

    query = query.order_by(desc(Application.created_at)).offset(offset).limit(limit)
    result = await db.execute(query)

    return list(result.scalars().all()), total


async def record_payment_submission(
    db: AsyncSession,
    application: Application,
    *,
    payment_reference: str,
    amount: Decimal,
    payment_method: str,
    submitted_at: datetime,
) -> Application:
    """Store a student's payment claim and queue it for admin verification."""
    application.payment_reference = payment_reference
    application.total_amount = amount
    application.payment_method = payment_method
    application.payment_date = submitted_at
    application.payment_status = PaymentStatus.PENDING_VERIFICATION
    application.status = ApplicationStatus.PAYMENT_PENDING
    application.updated_at = submitted_at

    await db.commit()
    await db.refresh(application)

    return application


async def get_owner_ids_by_payment_status(
    db: AsyncSession,
    payment_status: PaymentStatus,
) -> list[UUID]:
    """Distinct owners of applications in the given payment status."""
    result = await db.execute(
        select(Application.user_id)
        .where(Application.payment_status == payment_status)
        .distinct()
    )
    return list(result.scalars().all())
