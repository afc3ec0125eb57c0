"""
Shipment form schemas.

The form is the canonical shape for both manual entry and extraction
results. Every leaf is optional; missing values are explicit ``None``
rather than absent keys or empty strings.
"""
from typing import Any, Optional

from pydantic import Field, field_validator, model_validator

from app.models.enums import ServiceType
from app.schemas.base import BaseSchema, Coordinates


class FormSection(BaseSchema):
    """Base for form sections: blank strings collapse to None."""

    @field_validator("*", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v


class ServiceSection(FormSection):
    service_type: ServiceType = ServiceType.PICKUP
    vehicle_type: str = "standard"

    @field_validator("service_type", mode="before")
    @classmethod
    def coerce_service_type(cls, v: Any) -> ServiceType:
        # Accepts legacy values such as "delivery_one_way"
        if isinstance(v, str) and "deliver" in v.lower():
            return ServiceType.DELIVERY
        return ServiceType.PICKUP

    @field_validator("vehicle_type", mode="before")
    @classmethod
    def only_standard(cls, v: Any) -> str:
        # Only standard vehicles are offered
        return "standard"


class VehicleSection(FormSection):
    vin: Optional[str] = None
    year: Optional[str] = None
    make: Optional[str] = None
    model: Optional[str] = None
    transmission: Optional[str] = None
    odometer_km: Optional[str] = None
    exterior_color: Optional[str] = None


class SellingDealership(FormSection):
    name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None


class BuyingDealership(FormSection):
    name: Optional[str] = None
    phone: Optional[str] = None
    contact_name: Optional[str] = None


class PickupLocation(FormSection):
    name: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None


class DropoffLocation(FormSection):
    """
    Drop-off location.

    Coordinates are kept only as a valid pair: out-of-range values, a lone
    latitude or longitude, and (0, 0) are all normalised to unset.
    """
    name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    service_area: Optional[str] = None

    @field_validator("lat", "lng", mode="before")
    @classmethod
    def parse_coordinate(cls, v: Any) -> Optional[float]:
        if v is None:
            return None
        try:
            return float(v)
        except (TypeError, ValueError):
            return None

    @model_validator(mode="after")
    def drop_invalid_pair(self) -> "DropoffLocation":
        if not Coordinates.is_valid(self.lat, self.lng):
            self.lat = None
            self.lng = None
        return self

    @property
    def coordinates(self) -> Optional[Coordinates]:
        return Coordinates.from_pair(self.lat, self.lng)


class TransactionSection(FormSection):
    transaction_id: Optional[str] = None
    release_form_number: Optional[str] = None
    release_date: Optional[str] = None
    arrival_date: Optional[str] = None


class AuthorizationSection(FormSection):
    released_by_name: Optional[str] = None
    released_to_name: Optional[str] = None


class ShipmentForm(BaseSchema):
    """Structured description of one vehicle move."""
    service: ServiceSection = Field(default_factory=ServiceSection)
    vehicle: VehicleSection = Field(default_factory=VehicleSection)
    selling_dealership: SellingDealership = Field(default_factory=SellingDealership)
    buying_dealership: BuyingDealership = Field(default_factory=BuyingDealership)
    pickup_location: PickupLocation = Field(default_factory=PickupLocation)
    dropoff_location: DropoffLocation = Field(default_factory=DropoffLocation)
    transaction: TransactionSection = Field(default_factory=TransactionSection)
    authorization: AuthorizationSection = Field(default_factory=AuthorizationSection)
    dealer_notes: Optional[str] = None

    @field_validator("dealer_notes", mode="before")
    @classmethod
    def blank_notes(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip() or None
        return v

    @classmethod
    def blank(cls) -> "ShipmentForm":
        """Empty form for manual entry."""
        return cls()
