"""
Recipient Resolution

Turns a broadcast target into concrete user IDs. A target is either a
user ID or a group token:

- ``all_users``: every active student
- ``admin``: every active admin
- ``pending_payments``: owners of applications whose payment is still pending

The dispatcher depends only on the RecipientResolver protocol, so tests
and other callers can supply their own resolver.
"""

import logging
from typing import Protocol
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from apply4me.modules.applications import repository as applications_repository
from apply4me.modules.applications.models import PaymentStatus
from apply4me.modules.users.models import UserRole
from apply4me.modules.users.repository import UserRepository

logger = logging.getLogger(__name__)

ALL_USERS = "all_users"
ADMINS = "admin"
PENDING_PAYMENTS = "pending_payments"


class RecipientResolver(Protocol):
    async def resolve(self, db: AsyncSession, token: str) -> list[UUID]:
        """Return the user IDs ``token`` refers to (empty if none)."""
        ...


class DatabaseRecipientResolver:
    """Resolve targets against the users and applications tables."""

    async def resolve(self, db: AsyncSession, token: str) -> list[UUID]:
        token = token.strip()

        if token == ALL_USERS:
            return await UserRepository.get_active_ids_by_role(db, UserRole.STUDENT)
        if token == ADMINS:
            return await UserRepository.get_active_ids_by_role(db, UserRole.ADMIN)
        if token == PENDING_PAYMENTS:
            return await applications_repository.get_owner_ids_by_payment_status(
                db, PaymentStatus.PENDING
            )

        try:
            return [UUID(token)]
        except ValueError:
            logger.warning(f"Unknown recipient token: {token!r}")
            return []


default_resolver = DatabaseRecipientResolver()
