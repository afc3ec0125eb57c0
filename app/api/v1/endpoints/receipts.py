"""
Receipt endpoints.
"""
from uuid import UUID

from fastapi import APIRouter, HTTPException

from app.core.dependencies import CurrentUser, DbSession
from app.schemas.receipt import ReceiptResponse
from app.services.receipts import delete_receipt, list_receipts

router = APIRouter()


@router.get("", response_model=list[ReceiptResponse])
async def get_receipts(current_user: CurrentUser, session: DbSession):
    """The caller's receipts, newest first."""
    return await list_receipts(session, current_user.user_id)


@router.delete("/{receipt_id}", status_code=204)
async def remove_receipt(receipt_id: UUID, current_user: CurrentUser, session: DbSession):
    if not await delete_receipt(session, current_user.user_id, receipt_id):
        raise HTTPException(status_code=404, detail="Receipt not found")
