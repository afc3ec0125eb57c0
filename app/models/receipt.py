"""Receipt model."""
from sqlalchemy import String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import BaseModel


class Receipt(BaseModel):
    """Text record of a completed payment.

    At most one receipt exists per (user, order code); the service checks
    before inserting and the constraint backs it up.
    """

    __tablename__ = "receipts"
    __table_args__ = (
        UniqueConstraint("user_id", "order_code", name="uq_receipts_user_order"),
    )

    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    order_code: Mapped[str] = mapped_column(String(32), nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)

    def __repr__(self) -> str:
        return f"<Receipt(user_id={self.user_id}, order_code={self.order_code})>"
