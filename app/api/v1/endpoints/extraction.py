"""
Release-form extraction endpoints.
"""
from fastapi import APIRouter, File, HTTPException, UploadFile

from app.core.dependencies import CurrentUser
from app.schemas.extraction import ExtractionResponse
from app.schemas.shipment_form import ShipmentForm
from app.services.extraction import (
    ExtractionUnavailableError,
    UploadDocument,
    UploadValidationError,
    extraction_client,
    validate_uploads,
)

router = APIRouter()

MANUAL_ENTRY_MESSAGE = "Automatic extraction is unavailable. Please fill in the form manually."


async def read_uploads(files: list[UploadFile]) -> list[UploadDocument]:
    """Read and validate multipart files; 400 on a limit violation."""
    documents = []
    for upload in files:
        documents.append(UploadDocument(
            name=upload.filename or "document",
            content_type=upload.content_type or "application/octet-stream",
            data=await upload.read(),
        ))
    try:
        validate_uploads(documents)
    except UploadValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return documents


@router.post("", response_model=ExtractionResponse)
async def extract_release_form(
    current_user: CurrentUser,
    files: list[UploadFile] = File(..., description="Release form (PDF, JPG or PNG)"),
):
    """
    Extract a shipment form from uploaded release-form documents.

    When the extraction service is down or returns something unusable the
    response is still 200, with ``available=false`` and a blank form.

    **Error Responses:**
    - 400: Too many files, unsupported type or file too large
    """
    documents = await read_uploads(files)

    try:
        form = await extraction_client.extract(documents)
    except ExtractionUnavailableError:
        return ExtractionResponse(
            available=False,
            form=ShipmentForm.blank(),
            message=MANUAL_ENTRY_MESSAGE,
        )

    return ExtractionResponse(available=True, form=form)
