"""
Applications Schemas

Pydantic schemas for the payment verification endpoints. Field names are
camelCase on the wire (see CamelModel).
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import Field, model_validator

from apply4me.modules.applications.models import (
    ApplicationStatus,
    PaymentStatus,
    VerificationDecision,
)
from apply4me.modules.shared import CamelModel


class SideEffectOutcome(str, Enum):
    """Result of one post-commit side effect."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


# ============================================
# Verify Payment
# ============================================


class VerifyPaymentRequest(CamelModel):
    """Request body for POST /payments/verify.

    Fields are optional here so that missing or unknown values are reported
    by the service with a single VALIDATION_ERROR response.
    """

    application_id: str | None = None
    status: str | None = None
    admin_notes: str | None = Field(None, max_length=2000)
    verified_by: str | None = None

    @model_validator(mode="before")
    @classmethod
    def stringify_scalars(cls, data: Any) -> Any:
        """Accept numbers and other non-string values; the service judges them."""
        if not isinstance(data, dict):
            return data
        return {
            key: value if value is None or isinstance(value, str) else str(value)
            for key, value in data.items()
        }


class SideEffectsReport(CamelModel):
    notification: SideEffectOutcome
    email: SideEffectOutcome
    audit_log: SideEffectOutcome


class VerifyPaymentResponse(CamelModel):
    """Response for POST /payments/verify."""

    success: bool = True
    message: str
    application_id: UUID
    status: VerificationDecision
    verified_by: str
    timestamp: datetime
    side_effects: SideEffectsReport


# ============================================
# Pending Payments List
# ============================================


class PaymentListItem(CamelModel):
    """One application in the admin payment verification queue."""

    id: UUID
    payment_reference: str
    payment_method: str
    payment_date: datetime
    amount: Decimal
    status: PaymentStatus
    verification_status: str
    application_status: ApplicationStatus
    created_at: datetime
    student_name: str
    student_email: str | None = None
    student_phone: str | None = None
    institution_name: str | None = None
    institution_logo: str | None = None


class PaymentListResponse(CamelModel):
    success: bool = True
    applications: list[PaymentListItem]
    total: int = Field(..., ge=0, description="Total applications matching the status filter")
    offset: int = Field(..., ge=0)
    limit: int = Field(..., ge=1, le=100)


# ============================================
# Verification History
# ============================================


class VerificationLogItem(CamelModel):
    id: UUID
    application_id: UUID
    verification_status: VerificationDecision
    verified_by: str
    notes: str | None = None
    verified_at: datetime


class VerificationHistoryResponse(CamelModel):
    success: bool = True
    application_id: UUID
    history: list[VerificationLogItem]


# ============================================
# Payment Submission (student)
# ============================================


class SubmitPaymentRequest(CamelModel):
    """Request body for POST /payments/submit."""

    application_id: UUID
    payment_reference: str = Field(..., min_length=1, max_length=100)
    amount: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    payment_method: str = Field(..., min_length=1, max_length=50)
    notes: str | None = Field(None, max_length=2000)


class SubmitPaymentResponse(CamelModel):
    success: bool = True
    message: str
    application_id: UUID
    payment_status: PaymentStatus
    application_status: ApplicationStatus
