"""
Payments Router

API endpoints for application payment verification.

Endpoints:
- POST /payments/verify - Admin verifies or rejects a payment
- GET /payments/verify - Admin payment queue filtered by payment status
- GET /payments/verify/{application_id}/history - Audit trail of decisions
- POST /payments/submit - Student submits payment details for verification

Security:
- Admin endpoints require a JWT with the admin role
- The recorded verifier is the authenticated admin
- Rate limiting on action endpoints to prevent abuse
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from apply4me.core.auth import AdminUser, AuthUser, get_current_admin_user, get_current_user
from apply4me.core.database import get_db
from apply4me.core.rate_limit import enforce_rate_limit
from apply4me.modules.applications import service
from apply4me.modules.applications.models import PaymentStatus
from apply4me.modules.applications.schemas import (
    PaymentListResponse,
    SubmitPaymentRequest,
    SubmitPaymentResponse,
    VerificationHistoryResponse,
    VerifyPaymentRequest,
    VerifyPaymentResponse,
)
from apply4me.modules.applications.service import (
    ApplicationNotFoundError,
    ApplicationServiceError,
    PaymentQueryError,
    PersistenceError,
    VerificationValidationError,
)
from apply4me.modules.shared import raise_http_error

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================
# Rate Limiting Configuration
# ============================================

RATE_LIMIT_VERIFY = (30, 60)  # 30 decisions per minute per admin
RATE_LIMIT_SUBMIT = (10, 60)  # 10 submissions per minute per student


def _internal_error() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={
            "error": "INTERNAL_ERROR",
            "message": "An unexpected error occurred.",
        },
    )


# ============================================
# Admin Endpoints
# ============================================


@router.post(
    "/verify",
    response_model=VerifyPaymentResponse,
    summary="Verify Payment",
    description="""
Record an admin decision on a student's payment claim.

**Decision effects:**
- `verified`: payment status `completed`, application status `submitted`
- `rejected`: payment status `failed`, application status `payment_failed`

After the decision is saved the student gets an in-app notification and an
email, and an audit entry is appended. These side effects never fail the
request; their outcomes are reported in `sideEffects`.

Re-verifying an application is allowed and appends another audit entry.

**Access:** Admin only
""",
    responses={
        200: {"description": "Decision recorded", "model": VerifyPaymentResponse},
        400: {"description": "Missing fields or invalid status"},
        401: {"description": "Unauthorized - invalid or missing token"},
        403: {"description": "Forbidden - not an admin"},
        404: {"description": "Application not found"},
        429: {"description": "Rate limit exceeded"},
        500: {"description": "Decision could not be saved"},
    },
)
async def verify_payment(
    data: VerifyPaymentRequest,
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin_user),
) -> VerifyPaymentResponse:
    await enforce_rate_limit(f"admin:verify_payment:{admin.id}", *RATE_LIMIT_VERIFY)

    try:
        return await service.verify_payment(db, data, admin)

    except VerificationValidationError as e:
        raise_http_error(e)
    except ApplicationNotFoundError as e:
        raise_http_error(e)
    except PersistenceError as e:
        raise_http_error(e)
    except ApplicationServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Payment verification error: {e}")
        raise _internal_error() from e


@router.get(
    "/verify",
    response_model=PaymentListResponse,
    summary="List Payments",
    description="""
Payment verification queue, newest first.

**Filters:**
- `status`: payment status to list. Default: `pending_verification`

**Pagination:**
- `offset`: records to skip. Default: 0
- `limit`: maximum records to return (1-100). Default: 50

Missing payment details are filled with display placeholders
(`N/A` reference, `Unknown` method, default application fee).

**Access:** Admin only
""",
    responses={
        200: {"description": "Payment queue", "model": PaymentListResponse},
        401: {"description": "Unauthorized - invalid or missing token"},
        403: {"description": "Forbidden - not an admin"},
        500: {"description": "Database error (`schemaIssue` set for undefined columns)"},
    },
)
async def list_payments(
    payment_status: PaymentStatus = Query(
        PaymentStatus.PENDING_VERIFICATION,
        alias="status",
        description="Payment status to list",
    ),
    limit: int = Query(50, ge=1, le=100, description="Maximum records to return"),
    offset: int = Query(0, ge=0, description="Records to skip"),
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin_user),
) -> PaymentListResponse:
    try:
        result = await service.list_payments(
            db,
            payment_status=payment_status,
            offset=offset,
            limit=limit,
        )
        logger.info(
            f"Admin {admin.id} listed {payment_status.value} payments: "
            f"total={result.total}, returned={len(result.applications)}"
        )
        return result

    except PaymentQueryError as e:
        raise HTTPException(
            status_code=e.status_code,
            detail={
                "error": e.error_code,
                "message": e.message,
                "schemaIssue": e.schema_issue,
            },
        ) from e
    except ApplicationServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Error listing payments: {e}")
        raise _internal_error() from e


@router.get(
    "/verify/{application_id}/history",
    response_model=VerificationHistoryResponse,
    summary="Verification History",
    description="Audit entries for one application, newest first. **Access:** Admin only",
    responses={
        200: {"description": "Audit entries", "model": VerificationHistoryResponse},
        401: {"description": "Unauthorized - invalid or missing token"},
        403: {"description": "Forbidden - not an admin"},
        404: {"description": "Application not found"},
    },
)
async def get_verification_history(
    application_id: str,
    db: AsyncSession = Depends(get_db),
    admin: AdminUser = Depends(get_current_admin_user),
) -> VerificationHistoryResponse:
    try:
        return await service.get_verification_history(db, application_id)

    except ApplicationNotFoundError as e:
        raise_http_error(e)
    except ApplicationServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Error fetching verification history for {application_id}: {e}")
        raise _internal_error() from e


# ============================================
# Student Endpoints
# ============================================


@router.post(
    "/submit",
    response_model=SubmitPaymentResponse,
    summary="Submit Payment",
    description="""
Submit payment details (reference, amount, method) for one of your
applications. The application moves to `payment_pending` and waits for
admin verification.

**Access:** Authenticated application owner
""",
    responses={
        200: {"description": "Payment queued for verification", "model": SubmitPaymentResponse},
        401: {"description": "Unauthorized - invalid or missing token"},
        404: {"description": "Application not found"},
        422: {"description": "Validation error"},
        429: {"description": "Rate limit exceeded"},
    },
)
async def submit_payment(
    data: SubmitPaymentRequest,
    db: AsyncSession = Depends(get_db),
    user: AuthUser = Depends(get_current_user),
) -> SubmitPaymentResponse:
    await enforce_rate_limit(f"user:submit_payment:{user.id}", *RATE_LIMIT_SUBMIT)

    try:
        return await service.submit_payment(db, data, user)

    except ApplicationNotFoundError as e:
        raise_http_error(e)
    except PersistenceError as e:
        raise_http_error(e)
    except ApplicationServiceError as e:
        raise_http_error(e)
    except Exception as e:
        logger.exception(f"Payment submission error: {e}")
        raise _internal_error() from e
