"""
Applications Models

Database models for institutions, student applications and the payment
verification audit log.
"""

import enum
import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Enum, ForeignKey, Index, Numeric, String, Text, func
from sqlalchemy.dialects.postgresql import JSON, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from apply4me.core.database import Base


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class PaymentStatus(str, enum.Enum):
    """Payment state of an application."""

    PENDING = "pending"
    PENDING_VERIFICATION = "pending_verification"
    COMPLETED = "completed"
    FAILED = "failed"


class ApplicationStatus(str, enum.Enum):
    """Lifecycle state of an application."""

    DRAFT = "draft"
    SUBMITTED = "submitted"
    PAYMENT_PENDING = "payment_pending"
    PAYMENT_FAILED = "payment_failed"
    PROCESSING = "processing"
    COMPLETED = "completed"


class VerificationDecision(str, enum.Enum):
    """Outcome of an admin payment verification."""

    VERIFIED = "verified"
    REJECTED = "rejected"


class Institution(Base):
    """A university or college students apply to."""

    __tablename__ = "institutions"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    logo_url: Mapped[str | None] = mapped_column(String(500), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


class Application(Base):
    """
    A student's application to one institution.

    ``personal_details`` is the student-entered JSON blob (firstName,
    lastName, email, phone, ...). The payment_verification_* columns hold
    the latest admin decision; the full history lives in
    ``payment_verification_logs``.
    """

    __tablename__ = "applications"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    institution_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("institutions.id", ondelete="SET NULL"),
        nullable=True,
    )

    status: Mapped[ApplicationStatus] = mapped_column(
        Enum(ApplicationStatus, name="application_status", values_callable=_enum_values),
        nullable=False,
        default=ApplicationStatus.DRAFT,
    )
    payment_status: Mapped[PaymentStatus] = mapped_column(
        Enum(PaymentStatus, name="payment_status", values_callable=_enum_values),
        nullable=False,
        default=PaymentStatus.PENDING,
    )

    personal_details: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    # Payment claim submitted by the student
    payment_reference: Mapped[str | None] = mapped_column(String(100), nullable=True)
    payment_method: Mapped[str | None] = mapped_column(String(50), nullable=True)
    payment_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    total_amount: Mapped[Decimal | None] = mapped_column(Numeric(10, 2), nullable=True)

    # Latest admin decision
    payment_verification_status: Mapped[VerificationDecision | None] = mapped_column(
        Enum(VerificationDecision, name="verification_decision", values_callable=_enum_values),
        nullable=True,
    )
    payment_verification_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    payment_verification_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    payment_verification_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    institution: Mapped[Institution | None] = relationship("Institution", lazy="selectin")
    verification_logs: Mapped[list["PaymentVerificationLog"]] = relationship(
        "PaymentVerificationLog",
        back_populates="application",
        order_by="PaymentVerificationLog.verified_at.desc()",
    )

    __table_args__ = (
        Index("ix_applications_payment_status_created_at", "payment_status", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<Application(id={self.id}, status={self.status.value}, "
            f"payment_status={self.payment_status.value})>"
        )


class PaymentVerificationLog(Base):
    """
    Append-only audit record of one verification decision.

    Rows are never updated or deleted.
    """

    __tablename__ = "payment_verification_logs"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    application_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("applications.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    verification_status: Mapped[VerificationDecision] = mapped_column(
        Enum(VerificationDecision, name="verification_decision", values_callable=_enum_values),
        nullable=False,
    )
    verified_by: Mapped[str] = mapped_column(String(255), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    verified_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    application: Mapped["Application"] = relationship(
        "Application", back_populates="verification_logs"
    )
