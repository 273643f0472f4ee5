"""
Unit tests for applications helper functions.
"""

from unittest.mock import MagicMock

import pytest

from apply4me.modules.applications.helpers import (
    UNKNOWN_STUDENT,
    get_institution_name,
    get_student_email,
    get_student_name,
    get_student_phone,
)
from apply4me.modules.applications.models import Application


def _application(personal_details=None, institution=None):
    app = MagicMock(spec=Application)
    app.personal_details = personal_details
    app.institution = institution
    return app


class TestGetStudentName:
    @pytest.mark.parametrize(
        "details,expected",
        [
            ({"firstName": "Thandi", "lastName": "Nkosi"}, "Thandi Nkosi"),
            ({"firstName": "Thandi"}, "Thandi"),
            ({"lastName": "Nkosi"}, "Nkosi"),
            ({"firstName": "  ", "lastName": ""}, UNKNOWN_STUDENT),
            ({}, UNKNOWN_STUDENT),
            (None, UNKNOWN_STUDENT),
        ],
    )
    def test_name_from_personal_details(self, details, expected):
        assert get_student_name(_application(details)) == expected

    def test_non_dict_details(self):
        assert get_student_name(_application(["Thandi"])) == UNKNOWN_STUDENT

    def test_never_returns_empty(self):
        assert get_student_name(_application({"firstName": None})) == "Unknown Student"


class TestContactDetails:
    def test_email_and_phone(self):
        app = _application({"email": " thandi@student.co.za ", "phone": 27821234567})
        assert get_student_email(app) == "thandi@student.co.za"
        assert get_student_phone(app) == "27821234567"

    def test_missing_contact_details(self):
        app = _application({"firstName": "Thandi"})
        assert get_student_email(app) is None
        assert get_student_phone(app) is None


class TestGetInstitutionName:
    def test_uses_institution_name(self):
        institution = MagicMock()
        institution.name = "Stellenbosch University"
        assert get_institution_name(_application(institution=institution)) == (
            "Stellenbosch University"
        )

    def test_default_without_institution(self):
        assert get_institution_name(_application()) == "the institution"
        assert get_institution_name(_application(), default="your institution") == (
            "your institution"
        )
