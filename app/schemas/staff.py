"""
Staff management schemas.
"""
from typing import Optional
from uuid import UUID

from pydantic import Field

from app.models.enums import StaffRole
from app.schemas.base import TimestampSchema, BaseSchema


class StaffProfileResponse(TimestampSchema):
    id: UUID
    user_id: str
    role: StaffRole
    active: bool
    email: Optional[str] = None
    name: Optional[str] = None


class EmployeeCreate(BaseSchema):
    """Grant the employee role to an existing identity-provider user."""
    user_id: str = Field(..., min_length=1, max_length=64)
    email: Optional[str] = Field(None, max_length=320)
    name: Optional[str] = Field(None, max_length=200)


class EmployeeUpdate(BaseSchema):
    active: bool
