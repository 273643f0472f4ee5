"""
Shared test fixtures.
"""

import os

# Development auth tokens are only honoured in development
os.environ.setdefault("PYTHON_ENV", "development")

from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from apply4me.core.auth import ADMIN_ROLE, STUDENT_ROLE, AuthUser
from apply4me.core.rate_limit import reset_memory_store


@pytest.fixture(autouse=True)
def _clear_rate_limits():
    reset_memory_store()
    yield
    reset_memory_store()


@pytest.fixture
def mock_db():
    """Create a mock database session."""
    db = AsyncMock()
    db.commit = AsyncMock()
    db.refresh = AsyncMock()
    db.rollback = AsyncMock()
    db.execute = AsyncMock()
    db.add = MagicMock()
    return db


@pytest.fixture
def admin_user():
    return AuthUser(id=uuid4(), email="admin@apply4me.co.za", role=ADMIN_ROLE, name="Ada Admin")


@pytest.fixture
def student_user():
    return AuthUser(
        id=uuid4(), email="thandi@student.co.za", role=STUDENT_ROLE, name="Thandi Nkosi"
    )


@pytest.fixture
def app():
    from apply4me.main import app as fastapi_app

    yield fastapi_app
    fastapi_app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    from fastapi.testclient import TestClient

    return TestClient(app)


@pytest.fixture
def override_db(app, mock_db):
    from apply4me.core.database import get_db

    async def _get_db():
        yield mock_db

    app.dependency_overrides[get_db] = _get_db
    return mock_db


@pytest.fixture
def as_admin(app, admin_user):
    from apply4me.core.auth import get_current_admin_user, get_current_user

    app.dependency_overrides[get_current_admin_user] = lambda: admin_user
    app.dependency_overrides[get_current_user] = lambda: admin_user
    return admin_user


@pytest.fixture
def as_student(app, student_user):
    from apply4me.core.auth import get_current_user

    app.dependency_overrides[get_current_user] = lambda: student_user
    return student_user
