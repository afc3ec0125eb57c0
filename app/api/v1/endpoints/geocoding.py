"""
Geocoding API endpoints.
"""
from fastapi import APIRouter, HTTPException

from app.core.dependencies import CurrentUser
from app.schemas.base import Coordinates
from app.schemas.extraction import GeocodeRequest
from app.services.geocoding import geocoding_service

router = APIRouter()


@router.post("/geocode", response_model=Coordinates)
async def geocode_address(request: GeocodeRequest, current_user: CurrentUser):
    """
    Convert a free-text address to latitude/longitude.

    A leading business name is dropped when a later comma-separated part
    holds the street address.

    **Example Request:**
    ```json
    {"address": "Sample Motors, 1234 Rue Sherbrooke, Montreal, QC"}
    ```

    **Error Responses:**
    - 400: Address could not be geocoded
    - 422: Validation error
    """
    coords = await geocoding_service.geocode(request.address)
    if coords is None:
        raise HTTPException(status_code=400, detail="Address could not be geocoded")
    return coords
