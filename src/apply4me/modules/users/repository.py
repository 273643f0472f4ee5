"""
User Repository

Database lookups used for recipient resolution and email addressing.
"""

import logging
from collections.abc import Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from apply4me.modules.users.models import User, UserRole

logger = logging.getLogger(__name__)


class UserRepository:
    """Repository for user database operations."""

    @staticmethod
    async def get_by_id(db: AsyncSession, user_id: UUID) -> User | None:
        """
        Get a user by ID.

        Returns:
            User instance or None if not found
        """
        result = await db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    @staticmethod
    async def get_by_ids(db: AsyncSession, user_ids: Sequence[UUID]) -> dict[UUID, User]:
        """Fetch several users at once, keyed by ID. Unknown IDs are omitted."""
        if not user_ids:
            return {}
        result = await db.execute(select(User).where(User.id.in_(list(user_ids))))
        return {user.id: user for user in result.scalars().all()}

    @staticmethod
    async def get_active_ids_by_role(db: AsyncSession, role: UserRole) -> list[UUID]:
        """IDs of all active users with the given role."""
        result = await db.execute(
            select(User.id).where(User.role == role, User.is_active.is_(True)).order_by(User.id)
        )
        return list(result.scalars().all())
