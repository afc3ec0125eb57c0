"""
Pydantic schemas for API request/response validation.
"""

from app.schemas.base import BaseSchema, Coordinates, PaginatedResponse
from app.schemas.shipment_form import (
    ShipmentForm,
    ServiceSection,
    VehicleSection,
    SellingDealership,
    BuyingDealership,
    PickupLocation,
    DropoffLocation,
    TransactionSection,
    AuthorizationSection,
)
from app.schemas.quote import (
    RouteEstimate,
    Quote,
    Totals,
    QuoteRequest,
    QuoteResponse,
)
from app.schemas.draft import (
    DocumentMeta,
    Draft,
    DraftSave,
    DraftSaved,
    ResumedDraft,
    BulkUploadResponse,
)
from app.schemas.order import (
    Disclosures,
    CustomerInfo,
    OrderCreate,
    OrderEventResponse,
    OrderResponse,
    OrderDetailResponse,
    OrderStatusUpdate,
    TrackedOrder,
    TrackingResponse,
)
from app.schemas.checkout import (
    CheckoutSessionRequest,
    CheckoutSessionResponse,
    WebhookAck,
)
from app.schemas.staff import (
    StaffProfileResponse,
    EmployeeCreate,
    EmployeeUpdate,
)
from app.schemas.pricing import (
    RegionPriceResponse,
    PricingOverrides,
    PricingOverrideSet,
)
from app.schemas.receipt import ReceiptResponse
from app.schemas.extraction import ExtractionResponse, GeocodeRequest

__all__ = [
    # Base
    "BaseSchema",
    "Coordinates",
    "PaginatedResponse",
    # Shipment form
    "ShipmentForm",
    "ServiceSection",
    "VehicleSection",
    "SellingDealership",
    "BuyingDealership",
    "PickupLocation",
    "DropoffLocation",
    "TransactionSection",
    "AuthorizationSection",
    # Quote
    "RouteEstimate",
    "Quote",
    "Totals",
    "QuoteRequest",
    "QuoteResponse",
    # Draft
    "DocumentMeta",
    "Draft",
    "DraftSave",
    "DraftSaved",
    "ResumedDraft",
    "BulkUploadResponse",
    # Order
    "Disclosures",
    "CustomerInfo",
    "OrderCreate",
    "OrderEventResponse",
    "OrderResponse",
    "OrderDetailResponse",
    "OrderStatusUpdate",
    "TrackedOrder",
    "TrackingResponse",
    # Checkout
    "CheckoutSessionRequest",
    "CheckoutSessionResponse",
    "WebhookAck",
    # Staff
    "StaffProfileResponse",
    "EmployeeCreate",
    "EmployeeUpdate",
    # Pricing
    "RegionPriceResponse",
    "PricingOverrides",
    "PricingOverrideSet",
    # Receipts
    "ReceiptResponse",
    # Extraction / geocoding
    "ExtractionResponse",
    "GeocodeRequest",
]
