"""
Draft API endpoints.

Drafts are private to their owner; every lookup is keyed by the caller's
user id, so another user's draft id simply reads as not found.
"""
import logging

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from kombu.exceptions import OperationalError

from app.api.v1.endpoints.extraction import read_uploads
from app.core.dependencies import CurrentUser, get_draft_repository
from app.models.enums import DraftSource
from app.schemas.draft import BulkUploadResponse, Draft, DraftSave, DraftSaved, ResumedDraft
from app.schemas.shipment_form import ShipmentForm
from app.services.drafts import DraftNotFoundError, DraftRepository
from app.services.extraction import UploadValidationError
from app.services.tasks import process_bulk_draft

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=DraftSaved, status_code=201)
async def save_draft(
    data: DraftSave,
    current_user: CurrentUser,
    drafts: DraftRepository = Depends(get_draft_repository),
):
    """
    Save progress. With ``draft_id`` the existing draft is updated in place.

    A draft flagged ``needs_extraction`` never keeps a quote.
    """
    try:
        draft = await drafts.save_draft(
            current_user.user_id,
            data.form,
            data.quote,
            source=data.source,
            needs_extraction=data.needs_extraction,
            draft_id=data.draft_id,
        )
    except DraftNotFoundError:
        raise HTTPException(status_code=404, detail="Draft not found")
    return DraftSaved(draft_id=draft.id, revision=draft.revision)


@router.get("", response_model=list[Draft])
async def list_drafts(
    current_user: CurrentUser,
    drafts: DraftRepository = Depends(get_draft_repository),
):
    """The caller's drafts, newest first."""
    return await drafts.list_drafts(current_user.user_id)


@router.post("/bulk", response_model=BulkUploadResponse, status_code=202)
async def bulk_upload(
    current_user: CurrentUser,
    files: list[UploadFile] = File(..., description="One release form per draft"),
    drafts: DraftRepository = Depends(get_draft_repository),
):
    """
    Create one draft per uploaded file and queue extraction for each.

    The drafts are listed immediately with ``needs_extraction`` set; a
    worker fills in the form and quote later. Drafts whose work could not
    be queued stay listed for manual completion and are counted in
    ``failed``.
    """
    documents = await read_uploads(files)

    draft_ids: list[str] = []
    failed = 0
    for document in documents:
        draft = await drafts.save_draft(
            current_user.user_id,
            ShipmentForm.blank(),
            source=DraftSource.BULK_EXTRACTED,
            needs_extraction=True,
        )
        draft = await drafts.attach_documents(current_user.user_id, draft.id, [document])
        draft_ids.append(draft.id)
        try:
            process_bulk_draft.delay(current_user.user_id, draft.id, draft.revision)
        except OperationalError as e:
            logger.warning("Could not queue extraction for draft %s: %s", draft.id, e)
            failed += 1

    return BulkUploadResponse(draft_ids=draft_ids, failed=failed, queued=failed == 0)


@router.get("/{draft_id}", response_model=ResumedDraft)
async def resume_draft(
    draft_id: str,
    current_user: CurrentUser,
    drafts: DraftRepository = Depends(get_draft_repository),
):
    """Everything needed to continue a draft; no quote while extraction is pending."""
    try:
        return await drafts.resume_draft(current_user.user_id, draft_id)
    except DraftNotFoundError:
        raise HTTPException(status_code=404, detail="Draft not found")


@router.delete("/{draft_id}", status_code=204)
async def delete_draft(
    draft_id: str,
    current_user: CurrentUser,
    drafts: DraftRepository = Depends(get_draft_repository),
):
    """Delete a draft together with its attached documents."""
    try:
        await drafts.delete_draft(current_user.user_id, draft_id)
    except DraftNotFoundError:
        raise HTTPException(status_code=404, detail="Draft not found")


@router.post("/{draft_id}/documents", response_model=Draft)
async def attach_documents(
    draft_id: str,
    current_user: CurrentUser,
    files: list[UploadFile] = File(...),
    drafts: DraftRepository = Depends(get_draft_repository),
):
    """
    Attach documents to a draft.

    **Error Responses:**
    - 400: Upload limits exceeded, including the per-draft document cap
    - 404: Draft not found
    """
    documents = await read_uploads(files)
    try:
        return await drafts.attach_documents(current_user.user_id, draft_id, documents)
    except DraftNotFoundError:
        raise HTTPException(status_code=404, detail="Draft not found")
    except UploadValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
