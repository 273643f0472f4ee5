"""
Seed Admin User

Creates an admin user in the local users table and prints an access token
for it, so the admin endpoints can be exercised against a real database.

Usage:
    python scripts/seed_admin.py admin@example.com --first-name Ada --last-name Admin
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add the src directory to the path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from sqlalchemy import select

from apply4me.core.auth import ADMIN_ROLE
from apply4me.core.database import async_session_maker, close_db
from apply4me.core.security import create_access_token
from apply4me.modules.users.models import User, UserRole


async def seed_admin(email: str, first_name: str | None, last_name: str | None) -> None:
    """Create the admin user if it doesn't exist and print a token for it."""
    async with async_session_maker() as db:
        result = await db.execute(select(User).where(User.email == email))
        user = result.scalar_one_or_none()

        if user is not None:
            print(f"User already exists: {email}")
            if user.role != UserRole.ADMIN:
                user.role = UserRole.ADMIN
                await db.commit()
                print("  Role upgraded to admin")
        else:
            user = User(
                email=email,
                first_name=first_name,
                last_name=last_name,
                role=UserRole.ADMIN,
                is_active=True,
            )
            db.add(user)
            await db.commit()
            await db.refresh(user)
            print("Admin created successfully!")

        print(f"  Email: {user.email}")
        print(f"  Name: {user.full_name}")
        print(f"  ID: {user.id}")

        token = create_access_token(
            str(user.id),
            extra_claims={"email": user.email, "role": ADMIN_ROLE, "name": user.full_name},
        )
        print(f"  Access token: {token}")

    await close_db()


def main() -> None:
    parser = argparse.ArgumentParser(description="Create an Apply4Me admin user")
    parser.add_argument("email")
    parser.add_argument("--first-name", default=None)
    parser.add_argument("--last-name", default=None)
    args = parser.parse_args()

    asyncio.run(seed_admin(args.email, args.first_name, args.last_name))


if __name__ == "__main__":
    main()
