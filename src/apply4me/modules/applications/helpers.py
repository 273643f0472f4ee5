"""
Applications Shared Helpers

Read student contact details out of the ``personal_details`` JSON blob.
Students fill the blob in on the client, so keys may be missing or empty
and values are not guaranteed to be strings.
"""

from apply4me.modules.applications.models import Application

UNKNOWN_STUDENT = "Unknown Student"


def _detail(application: Application, key: str) -> str | None:
    details = application.personal_details
    if not isinstance(details, dict):
        return None
    value = details.get(key)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def get_student_name(application: Application) -> str:
    """
    Full name from personal details.

    Returns:
        "First Last", whichever part exists, or "Unknown Student"
    """
    parts = [_detail(application, "firstName"), _detail(application, "lastName")]
    name = " ".join(part for part in parts if part)
    return name or UNKNOWN_STUDENT


def get_student_email(application: Application) -> str | None:
    return _detail(application, "email")


def get_student_phone(application: Application) -> str | None:
    return _detail(application, "phone")


def get_institution_name(application: Application, default: str = "the institution") -> str:
    institution = application.institution
    if institution is not None and institution.name:
        return institution.name
    return default
