"""
Draft schemas.

A draft's metadata record never embeds document bytes; blobs are stored
under their own keys and only described here.
"""
from datetime import datetime
from typing import Optional

from pydantic import Field, model_validator

from app.models.enums import DraftSource
from app.schemas.base import BaseSchema
from app.schemas.quote import Quote
from app.schemas.shipment_form import ShipmentForm


class DocumentMeta(BaseSchema):
    """Description of one attached document."""
    name: str
    content_type: str = "application/octet-stream"
    size: int = Field(..., ge=0)


class Draft(BaseSchema):
    """Persisted draft metadata."""
    id: str
    owner: str
    created_at: datetime
    updated_at: datetime
    revision: int = 1
    form: ShipmentForm = Field(default_factory=ShipmentForm)
    quote: Optional[Quote] = None
    doc_count: int = Field(0, ge=0)
    documents: list[DocumentMeta] = Field(default_factory=list)
    source: DraftSource = DraftSource.MANUAL
    needs_extraction: bool = False

    @model_validator(mode="after")
    def no_quote_while_extracting(self) -> "Draft":
        if self.needs_extraction:
            self.quote = None
        return self


class DraftSave(BaseSchema):
    """Request body for creating or updating a draft."""
    draft_id: Optional[str] = None
    form: ShipmentForm = Field(default_factory=ShipmentForm)
    quote: Optional[Quote] = None
    source: DraftSource = DraftSource.MANUAL
    needs_extraction: bool = False


class DraftSaved(BaseSchema):
    draft_id: str
    revision: int


class ResumedDraft(BaseSchema):
    """What a caller needs to continue a draft."""
    draft_id: str
    form: ShipmentForm
    quote: Optional[Quote] = None
    doc_count: int = 0
    documents: list[DocumentMeta] = Field(default_factory=list)
    needs_extraction: bool = False


class BulkUploadResponse(BaseSchema):
    draft_ids: list[str]
    failed: int = 0
    queued: bool = False
