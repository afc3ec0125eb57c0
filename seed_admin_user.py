"""Seed script to grant the admin role to an identity-provider user.

Run this after migrations, with the user id (token ``sub``) of the account:
    python seed_admin_user.py <user_id> [email]
"""
import asyncio
import sys
from typing import Optional

from app.db.database import async_session_maker
from app.models.enums import StaffRole
from app.models.staff import StaffProfile
from app.services.staff import get_profile


async def seed_admin_user(user_id: str, email: Optional[str] = None):
    """Create or reactivate an admin staff profile."""
    async with async_session_maker() as session:
        existing = await get_profile(session, user_id)

        if existing and existing.role == StaffRole.ADMIN and existing.active:
            print(f"[X] User '{user_id}' is already an active admin. Skipping.")
            return

        if existing:
            existing.role = StaffRole.ADMIN
            existing.active = True
            if email:
                existing.email = email
            action = "promoted to admin"
        else:
            session.add(StaffProfile(
                user_id=user_id,
                role=StaffRole.ADMIN,
                active=True,
                email=email,
            ))
            action = "granted admin"

        await session.commit()

        print(f"[OK] User '{user_id}' {action}.")
        if email:
            print(f"     Email: {email}")


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(1)
    asyncio.run(seed_admin_user(sys.argv[1], sys.argv[2] if len(sys.argv) > 2 else None))
