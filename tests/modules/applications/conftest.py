"""
Fixtures for applications tests.
"""

from datetime import UTC, datetime
from decimal import Decimal
from unittest.mock import MagicMock
from uuid import uuid4

import pytest

from apply4me.modules.applications.models import (
    Application,
    ApplicationStatus,
    Institution,
    PaymentStatus,
    PaymentVerificationLog,
    VerificationDecision,
)


@pytest.fixture
def sample_institution():
    institution = MagicMock(spec=Institution)
    institution.id = uuid4()
    institution.name = "University of Cape Town"
    institution.logo_url = "https://cdn.apply4me.co.za/logos/uct.png"
    return institution


@pytest.fixture
def sample_application(sample_institution):
    """An application waiting for payment verification."""
    app = MagicMock(spec=Application)
    app.id = uuid4()
    app.user_id = uuid4()
    app.institution_id = sample_institution.id
    app.institution = sample_institution
    app.status = ApplicationStatus.PAYMENT_PENDING
    app.payment_status = PaymentStatus.PENDING_VERIFICATION
    app.personal_details = {
        "firstName": "Thandi",
        "lastName": "Nkosi",
        "email": "thandi@student.co.za",
        "phone": "+27821234567",
    }
    app.payment_reference = "EFT-2026-0042"
    app.payment_method = "eft"
    app.payment_date = datetime(2026, 10, 1, 9, 30, tzinfo=UTC)
    app.total_amount = Decimal("150.00")
    app.payment_verification_status = None
    app.payment_verification_date = None
    app.payment_verification_by = None
    app.payment_verification_notes = None
    app.created_at = datetime(2026, 9, 30, 14, 0, tzinfo=UTC)
    app.updated_at = datetime(2026, 10, 1, 9, 30, tzinfo=UTC)
    return app


@pytest.fixture
def bare_application():
    """An application with none of the optional payment details filled in."""
    app = MagicMock(spec=Application)
    app.id = uuid4()
    app.user_id = uuid4()
    app.institution_id = None
    app.institution = None
    app.status = ApplicationStatus.PAYMENT_PENDING
    app.payment_status = PaymentStatus.PENDING_VERIFICATION
    app.personal_details = None
    app.payment_reference = None
    app.payment_method = None
    app.payment_date = None
    app.total_amount = None
    app.payment_verification_status = None
    app.created_at = datetime(2026, 9, 30, 14, 0, tzinfo=UTC)
    return app


@pytest.fixture
def sample_log_entry(sample_application):
    entry = MagicMock(spec=PaymentVerificationLog)
    entry.id = uuid4()
    entry.application_id = sample_application.id
    entry.verification_status = VerificationDecision.VERIFIED
    entry.verified_by = "admin@apply4me.co.za"
    entry.notes = None
    entry.verified_at = datetime(2026, 10, 2, 8, 0, tzinfo=UTC)
    return entry
