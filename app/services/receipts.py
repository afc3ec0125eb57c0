"""
Payment receipts.
"""
import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.receipt import Receipt
from app.schemas.quote import Totals

logger = logging.getLogger(__name__)


def build_receipt_text(
    order_code: str,
    created_at: datetime,
    customer_email: Optional[str],
    totals: Totals,
) -> str:
    """Plain-text receipt, one fact per line."""
    lines = [
        "Receipt",
        f"Created: {created_at.isoformat()}",
        f"Order: {order_code}",
    ]
    if customer_email:
        lines.append(f"Customer: {customer_email}")
    lines += [
        f"Subtotal (before tax): ${totals.subtotal:.2f}",
        f"Tax {totals.tax_note} ({totals.tax_rate * 100:.3f}%): ${totals.tax:.2f}",
        f"Total: ${totals.total:.2f}",
    ]
    return "\n".join(lines)


async def create_receipt_once(
    session: AsyncSession,
    user_id: str,
    order_code: str,
    text: str,
) -> Optional[Receipt]:
    """
    Insert a receipt unless one exists for (user, order code).

    Returns the new receipt, or None when one was already there.
    """
    existing = await session.scalar(
        select(Receipt.id)
        .where(Receipt.user_id == user_id, Receipt.order_code == order_code)
        .limit(1)
    )
    if existing is not None:
        logger.info("Receipt for %s already exists", order_code)
        return None

    receipt = Receipt(user_id=user_id, order_code=order_code, text=text)
    session.add(receipt)
    await session.flush()
    return receipt


async def list_receipts(session: AsyncSession, user_id: str) -> list[Receipt]:
    result = await session.execute(
        select(Receipt)
        .where(Receipt.user_id == user_id)
        .order_by(Receipt.created_at.desc())
    )
    return list(result.scalars().all())


async def delete_receipt(session: AsyncSession, user_id: str, receipt_id: UUID) -> bool:
    """Delete one of the user's receipts; False when it is not theirs or missing."""
    receipt = await session.scalar(
        select(Receipt).where(Receipt.id == receipt_id, Receipt.user_id == user_id)
    )
    if receipt is None:
        return False
    await session.delete(receipt)
    await session.flush()
    return True
