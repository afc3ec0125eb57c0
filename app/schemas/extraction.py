"""
Extraction and geocoding request/response schemas.
"""
from typing import Optional

from pydantic import Field

from app.schemas.base import BaseSchema
from app.schemas.shipment_form import ShipmentForm


class ExtractionResponse(BaseSchema):
    """
    Result of a release-form upload.

    ``available`` is false when the extraction service could not be used;
    ``form`` is then blank for manual entry.
    """
    available: bool
    form: ShipmentForm
    message: Optional[str] = None


class GeocodeRequest(BaseSchema):
    address: str = Field(..., min_length=1, max_length=500)
