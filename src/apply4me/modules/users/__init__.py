"""
Users module - Identity mirror used for notification addressing.
"""

from apply4me.modules.users.models import User, UserRole
from apply4me.modules.users.repository import UserRepository

__all__ = ["User", "UserRole", "UserRepository"]
