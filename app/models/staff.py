"""Staff profile and billing profile models."""
from typing import Optional

from sqlalchemy import Boolean, Enum, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import BaseModel
from .enums import StaffRole


class StaffProfile(BaseModel):
    """Staff console access for an identity-provider user.

    Accounts themselves live with the identity provider; this row only
    grants a role. Inactive profiles are rejected outright.
    """

    __tablename__ = "staff_profiles"

    user_id: Mapped[str] = mapped_column(
        String(64), unique=True, nullable=False, index=True
    )
    role: Mapped[StaffRole] = mapped_column(
        Enum(StaffRole, name="staff_role", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=StaffRole.EMPLOYEE,
    )
    active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(320), nullable=True)
    name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)

    def __repr__(self) -> str:
        return f"<StaffProfile(user_id={self.user_id}, role={self.role.value}, active={self.active})>"


class BillingProfile(BaseModel):
    """Payment-gateway customer and saved card summary for a user."""

    __tablename__ = "billing_profiles"

    user_id: Mapped[str] = mapped_column(
        String(64), unique=True, nullable=False, index=True
    )
    stripe_customer_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    has_saved_payment_method: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    card_brand: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    card_last4: Mapped[Optional[str]] = mapped_column(String(4), nullable=True)
    card_exp_month: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    card_exp_year: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
