"""
Staff profile management.

Accounts and passwords belong to the identity provider; this module only
grants, lists and (de)activates staff roles.
"""
import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.enums import StaffRole
from app.models.staff import StaffProfile

logger = logging.getLogger(__name__)


class StaffNotFoundError(Exception):
    pass


class StaffConflictError(Exception):
    """User already has a staff profile."""
    pass


async def get_profile(session: AsyncSession, user_id: str) -> Optional[StaffProfile]:
    return await session.scalar(select(StaffProfile).where(StaffProfile.user_id == user_id))


async def list_employees(session: AsyncSession) -> list[StaffProfile]:
    result = await session.execute(
        select(StaffProfile)
        .where(StaffProfile.role == StaffRole.EMPLOYEE)
        .order_by(StaffProfile.created_at.desc())
    )
    return list(result.scalars().all())


async def create_employee(
    session: AsyncSession,
    user_id: str,
    email: Optional[str] = None,
    name: Optional[str] = None,
) -> StaffProfile:
    """
    Grant the employee role.

    Raises:
        StaffConflictError: the user already has a profile
    """
    if await get_profile(session, user_id) is not None:
        raise StaffConflictError(f"User {user_id} already has a staff profile")

    profile = StaffProfile(
        user_id=user_id,
        role=StaffRole.EMPLOYEE,
        active=True,
        email=email,
        name=name,
    )
    session.add(profile)
    await session.flush()
    logger.info("Employee role granted to %s", user_id)
    return profile


async def set_employee_active(session: AsyncSession, user_id: str, active: bool) -> StaffProfile:
    """
    Activate or deactivate an employee. Admin profiles are not changed here.

    Raises:
        StaffNotFoundError: no employee profile for the user
    """
    profile = await get_profile(session, user_id)
    if profile is None or profile.role != StaffRole.EMPLOYEE:
        raise StaffNotFoundError(f"Employee {user_id} not found")
    profile.active = active
    await session.flush()
    await session.refresh(profile)
    logger.info("Employee %s %s", user_id, "activated" if active else "deactivated")
    return profile
