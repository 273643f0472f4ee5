"""
Unit tests for token handling and the auth dependencies.
"""

from datetime import timedelta
from unittest.mock import patch
from uuid import uuid4

import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from apply4me.core import auth
from apply4me.core.auth import (
    ADMIN_ROLE,
    STUDENT_ROLE,
    get_current_admin_user,
    get_current_user,
)
from apply4me.core.config import Settings
from apply4me.core.security import create_access_token, decode_token


def _credentials(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


class TestTokens:
    def test_round_trip_claims(self):
        user_id = uuid4()
        token = create_access_token(str(user_id), extra_claims={"role": ADMIN_ROLE})

        payload = decode_token(token)

        assert payload["sub"] == str(user_id)
        assert payload["type"] == "access"
        assert payload["role"] == ADMIN_ROLE

    def test_expired_token_is_rejected(self):
        token = create_access_token(str(uuid4()), expires_delta=timedelta(seconds=-10))
        assert decode_token(token) is None

    def test_garbage_is_rejected(self):
        assert decode_token("not-a-jwt") is None


class TestGetCurrentUser:
    @pytest.mark.asyncio
    async def test_student_from_jwt(self):
        user_id = uuid4()
        token = create_access_token(
            str(user_id),
            extra_claims={"email": "thandi@student.co.za", "role": STUDENT_ROLE},
        )

        user = await get_current_user(_credentials(token))

        assert user.id == user_id
        assert user.email == "thandi@student.co.za"
        assert user.is_admin is False

    @pytest.mark.asyncio
    async def test_role_defaults_to_student(self):
        token = create_access_token(str(uuid4()))
        user = await get_current_user(_credentials(token))
        assert user.role == STUDENT_ROLE

    @pytest.mark.asyncio
    async def test_non_uuid_subject_rejected(self):
        token = create_access_token("not-a-uuid")

        with pytest.raises(HTTPException) as exc_info:
            await get_current_user(_credentials(token))

        assert exc_info.value.status_code == 401
        assert exc_info.value.detail["error"] == "INVALID_TOKEN_CLAIMS"

    @pytest.mark.asyncio
    async def test_non_access_token_rejected(self):
        token = create_access_token(str(uuid4()), extra_claims={"type": "refresh"})

        with pytest.raises(HTTPException) as exc_info:
            await get_current_user(_credentials(token))

        assert exc_info.value.detail["error"] == "INVALID_TOKEN_TYPE"


class TestGetCurrentAdminUser:
    @pytest.mark.asyncio
    async def test_admin_from_jwt(self):
        token = create_access_token(
            str(uuid4()), extra_claims={"email": "admin@apply4me.co.za", "role": ADMIN_ROLE}
        )

        admin = await get_current_admin_user(_credentials(token))

        assert admin.is_admin is True
        assert admin.email == "admin@apply4me.co.za"

    @pytest.mark.asyncio
    async def test_student_is_forbidden(self):
        token = create_access_token(str(uuid4()), extra_claims={"role": STUDENT_ROLE})

        with pytest.raises(HTTPException) as exc_info:
            await get_current_admin_user(_credentials(token))

        assert exc_info.value.status_code == 403
        assert exc_info.value.detail["error"] == "ADMIN_ACCESS_REQUIRED"

    @pytest.mark.asyncio
    async def test_development_token(self):
        admin = await get_current_admin_user(_credentials("dev-token"))
        assert admin.role == ADMIN_ROLE


class TestDevelopmentTokens:
    def test_unset_environment_disables_development_mode(self, monkeypatch):
        monkeypatch.delenv("PYTHON_ENV", raising=False)
        default_settings = Settings(_env_file=None)

        assert default_settings.python_env == "production"
        with patch.object(auth, "settings", default_settings):
            assert auth._is_dev_mode_safe() is False

    @pytest.mark.asyncio
    async def test_dev_token_refused_outside_development(self):
        with patch.object(auth, "_DEVELOPMENT_MODE", False):
            with pytest.raises(HTTPException) as exc_info:
                await get_current_admin_user(_credentials("dev-token"))

        assert exc_info.value.status_code == 401
        assert exc_info.value.detail["error"] == "INVALID_TOKEN"
