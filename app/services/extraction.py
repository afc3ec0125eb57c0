"""
Release-form extraction.

The extraction webhook returns loosely shaped JSON: sometimes a record,
sometimes an array whose first element wraps the record under ``output``,
with field names that vary between documents. Everything is funnelled
through :func:`normalize_extraction`, driven by the ``FIELD_RULES`` synonym
table, into a canonical :class:`ShipmentForm`.
"""
import base64
import logging
import math
import re
from dataclasses import dataclass
from pathlib import PurePath
from typing import Any, Iterable, Optional, Sequence

import httpx

from app.core.config import settings
from app.schemas.shipment_form import ShipmentForm
from app.services.pricing import match_region_for_address, price_for_region

logger = logging.getLogger(__name__)


class ExtractionUnavailableError(Exception):
    """The extraction service could not produce a usable record."""
    pass


class UploadValidationError(ValueError):
    """Uploaded files violate count, type or size limits."""
    pass


@dataclass
class UploadDocument:
    """One uploaded file held in memory."""
    name: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)

    def to_payload(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "type": self.content_type,
            "size": self.size,
            "base64": base64.b64encode(self.data).decode("ascii"),
        }


# =============================================================================
# Upload validation
# =============================================================================

def validate_uploads(files: Sequence[UploadDocument]) -> None:
    """
    Enforce upload limits before anything is stored or sent.

    Raises:
        UploadValidationError: with a message suitable for the user
    """
    if not files:
        raise UploadValidationError("Please upload at least one file")
    if len(files) > settings.max_upload_files:
        raise UploadValidationError(
            f"Please upload no more than {settings.max_upload_files} files"
        )
    max_mb = settings.max_upload_bytes // (1024 * 1024)
    for f in files:
        ext = PurePath(f.name).suffix.lower()
        if ext not in settings.allowed_upload_extensions:
            raise UploadValidationError(
                f"{f.name}: unsupported file type (PDF, JPG or PNG only)"
            )
        if f.size > settings.max_upload_bytes:
            raise UploadValidationError(f"{f.name}: file exceeds {max_mb}MB")


# =============================================================================
# Payload shape
# =============================================================================

def unwrap_extraction_payload(data: Any) -> Optional[dict[str, Any]]:
    """
    Find the record in a webhook response.

    Accepts a record or an array whose first element is the record. When
    the record carries an ``output`` object, its fields are merged over the
    wrapper's.
    """
    if isinstance(data, list):
        data = data[0] if data else None
    if not isinstance(data, dict):
        return None
    output = data.get("output")
    if isinstance(output, dict):
        merged = {k: v for k, v in data.items() if k != "output"}
        merged.update(output)
        return merged
    if "output" in data and output is not None:
        # Plain-text output carries no fields
        return None
    return data


def normalize_loose_key(value: str) -> str:
    return re.sub(r"[^a-z0-9]", "", str(value).lower())


def read_string(value: Any) -> str:
    """Best-effort text from a scalar or a ``{"value": ...}``-style wrapper."""
    if isinstance(value, bool):
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)):
        return str(value) if math.isfinite(value) else ""
    if isinstance(value, dict):
        for key in ("value", "text", "raw", "result", "km", "year"):
            s = read_string(value.get(key))
            if s:
                return s
    return ""


def get_loose(obj: Optional[dict[str, Any]], keys: Iterable[str]) -> str:
    """
    First non-empty text among keys matching ``keys``, compared ignoring
    case and punctuation. Synonyms are tried in the order given.
    """
    if not obj:
        return ""
    by_norm: dict[str, list[Any]] = {}
    for existing, value in obj.items():
        by_norm.setdefault(normalize_loose_key(existing), []).append(value)
    for key in keys:
        for value in by_norm.get(normalize_loose_key(key), ()):
            s = read_string(value).strip()
            if s:
                return s
    return ""


# =============================================================================
# Synonym table
# =============================================================================

DROPOFF_CONTAINERS = (
    "dropoff_location",
    "drop_off_location",
    "dropoff",
    "delivery_location",
    "deliveryLocation",
    "destination",
)


@dataclass(frozen=True)
class FieldRule:
    """
    Where one form field may be found.

    ``containers`` are nested objects tried in order with ``nested_keys``;
    ``loose_keys`` are then tried against top-level keys. ``container_text``
    lets a container that is a plain string stand in for the field.
    """
    section: Optional[str]
    field: str
    containers: tuple[str, ...] = ()
    nested_keys: tuple[str, ...] = ()
    loose_keys: tuple[str, ...] = ()
    container_text: bool = False


FIELD_RULES: tuple[FieldRule, ...] = (
    # Service
    FieldRule("service", "service_type", ("service", "transaction"), ("service_type",), ("service_type",)),
    # Vehicle
    FieldRule("vehicle", "vin", ("vehicle",), ("vin",), ("vin",)),
    FieldRule(
        "vehicle", "year", ("vehicle",),
        ("year", "vehicle_year"), ("year", "vehicle_year"),
    ),
    FieldRule("vehicle", "make", ("vehicle",), ("make",), ("make",)),
    FieldRule("vehicle", "model", ("vehicle",), ("model",), ("model",)),
    FieldRule("vehicle", "transmission", ("vehicle",), ("transmission",), ("transmission",)),
    FieldRule(
        "vehicle", "odometer_km", ("vehicle",),
        ("odometer_km", "odometer", "mileage"), ("odometer_km", "odometer", "mileage"),
    ),
    FieldRule(
        "vehicle", "exterior_color", ("vehicle",),
        ("exterior_color", "color"), ("exterior_color", "color"),
    ),
    # Selling dealership
    FieldRule(
        "selling_dealership", "name", ("selling_dealership",), ("name",),
        ("selling_dealership_name", "selling_dealership", "seller", "seller_name"),
    ),
    FieldRule(
        "selling_dealership", "phone", ("selling_dealership",), ("phone",),
        ("selling_dealership_phone", "seller_phone", "selling_phone"),
    ),
    FieldRule(
        "selling_dealership", "address", ("selling_dealership",), ("address",),
        ("selling_dealership_address", "seller_address"),
    ),
    # Buying dealership
    FieldRule(
        "buying_dealership", "name", ("buying_dealership",), ("name",),
        ("buying_dealership_name", "buying_dealership", "buyer", "buyer_name"),
    ),
    FieldRule(
        "buying_dealership", "phone", ("buying_dealership",), ("phone",),
        ("buying_dealership_phone", "buyer_phone"),
    ),
    FieldRule(
        "buying_dealership", "contact_name", ("buying_dealership",), ("contact_name",),
        ("contact_name", "buyer_contact_name", "buyer_contact"),
    ),
    # Pickup
    FieldRule(
        "pickup_location", "name", ("pickup_location",), ("name",),
        ("pickup_location_name", "pickup_name"),
    ),
    FieldRule(
        "pickup_location", "address", ("pickup_location",), ("address",),
        ("pickup_location_address", "pickup_address"),
    ),
    FieldRule(
        "pickup_location", "phone", ("pickup_location",), ("phone",),
        ("pickup_location_phone", "pickup_phone"),
    ),
    # Drop-off
    FieldRule(
        "dropoff_location", "address", DROPOFF_CONTAINERS, ("address", "full_address"),
        ("dropoff_address", "destination_address", "delivery_address"),
        container_text=True,
    ),
    FieldRule("dropoff_location", "name", DROPOFF_CONTAINERS, ("name",)),
    FieldRule("dropoff_location", "phone", DROPOFF_CONTAINERS, ("phone",)),
    FieldRule("dropoff_location", "lat", DROPOFF_CONTAINERS, ("lat",), ("dropoff_lat",)),
    FieldRule("dropoff_location", "lng", DROPOFF_CONTAINERS, ("lng",), ("dropoff_lng",)),
    # Transaction
    FieldRule(
        "transaction", "transaction_id", ("transaction",), ("transaction_id",),
        ("transaction_id", "transaction", "transaction_number"),
    ),
    FieldRule(
        "transaction", "release_form_number", ("transaction",), ("release_form_number",),
        ("release_form_number", "release_form", "release_form_no"),
    ),
    FieldRule("transaction", "release_date", ("transaction",), ("release_date",), ("release_date",)),
    FieldRule("transaction", "arrival_date", ("transaction",), ("arrival_date",), ("arrival_date",)),
    # Authorization
    FieldRule(
        "authorization", "released_by_name", ("authorization",), ("released_by_name",),
        ("released_by_name", "released_by"),
    ),
    FieldRule(
        "authorization", "released_to_name", ("authorization",), ("released_to_name",),
        ("released_to_name", "released_to"),
    ),
    # Free text
    FieldRule(None, "dealer_notes", (), (), ("dealer_notes",)),
)

# Auxiliary values used only during post-processing
DROPOFF_CITY_RULE = FieldRule(
    None, "dropoff_city", DROPOFF_CONTAINERS, ("city",),
    ("dropoff_city", "destination_city", "delivery_city"),
)
RAW_TEXT_RULE = FieldRule(
    None, "raw_text", (), (),
    ("text", "raw_text", "document_text", "ocr_text", "extracted_text"),
)


def apply_rule(record: dict[str, Any], rule: FieldRule) -> str:
    """Resolve one field: nested containers first, then loose top-level keys."""
    for name in rule.containers:
        container = record.get(name)
        if isinstance(container, dict):
            s = get_loose(container, rule.nested_keys)
            if s:
                return s
        elif rule.container_text and isinstance(container, str) and container.strip():
            return container.strip()
    return get_loose(record, rule.loose_keys)


# =============================================================================
# Post-processing
# =============================================================================

_YEAR = re.compile(r"(19\d{2}|20\d{2})")
_YEAR_IN_TEXT = re.compile(r"\bYear\b\s*[:-]?\s*(19\d{2}|20\d{2})", re.IGNORECASE)
_ODOMETER = re.compile(r"([0-9][0-9,\s.]*)\s*km", re.IGNORECASE)
_ODOMETER_IN_TEXT = re.compile(r"\bOdometer\b\s*[:-]?\s*([0-9][0-9,\s.]*)\s*km\b", re.IGNORECASE)


def normalize_year(value: str) -> str:
    match = _YEAR.search(value)
    return match.group(1) if match else value


def normalize_odometer(value: str) -> str:
    match = _ODOMETER.search(value)
    return re.sub(r"[^0-9.]", "", match.group(1) if match else value)


def year_from_text(text: str) -> str:
    match = _YEAR_IN_TEXT.search(text)
    return match.group(1) if match else ""


def odometer_from_text(text: str) -> str:
    match = _ODOMETER_IN_TEXT.search(text)
    return re.sub(r"[^0-9.]", "", match.group(1)) if match else ""


def normalize_extraction(record: Optional[dict[str, Any]]) -> ShipmentForm:
    """
    Map an extraction record onto a ShipmentForm.

    Unknown shapes produce a blank form rather than an error.
    """
    if not isinstance(record, dict):
        return ShipmentForm.blank()

    values: dict[str, dict[str, str]] = {}
    notes = ""
    for rule in FIELD_RULES:
        value = apply_rule(record, rule)
        if rule.section is None:
            notes = value
        else:
            values.setdefault(rule.section, {})[rule.field] = value

    raw_text = apply_rule(record, RAW_TEXT_RULE)
    city = apply_rule(record, DROPOFF_CITY_RULE)

    vehicle = values["vehicle"]
    vehicle["year"] = normalize_year(vehicle["year"]) if vehicle["year"] else year_from_text(raw_text)
    vehicle["odometer_km"] = (
        normalize_odometer(vehicle["odometer_km"]) if vehicle["odometer_km"] else ""
    ) or odometer_from_text(raw_text)

    selling = values["selling_dealership"]
    pickup = values["pickup_location"]
    selling["address"] = selling["address"] or pickup["address"]
    pickup["phone"] = pickup["phone"] or selling["phone"]

    dropoff = values["dropoff_location"]
    dropoff["address"] = dropoff["address"] or city
    inferred = match_region_for_address(f"{dropoff['address']} {dropoff['name']}".strip())
    if inferred is None:
        inferred = price_for_region(city)
    dropoff["service_area"] = inferred.region if inferred else ""

    return ShipmentForm.model_validate({**values, "dealer_notes": notes})


# =============================================================================
# Webhook client
# =============================================================================

class ExtractionClient:
    """Thin client for the release-form extraction webhook."""

    def __init__(self, url: Optional[str] = None, timeout: Optional[float] = None):
        self.url = url if url is not None else settings.extraction_webhook_url
        self.timeout = timeout or settings.extraction_timeout_seconds

    async def extract(self, files: Sequence[UploadDocument]) -> ShipmentForm:
        """
        Send documents for extraction.

        Raises:
            ExtractionUnavailableError: unconfigured, timed out, non-2xx,
                undecodable or unrecognised response
        """
        if not self.url:
            raise ExtractionUnavailableError("Extraction service is not configured")

        payload = {"files": [f.to_payload() for f in files]}
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.post(self.url, json=payload)
                response.raise_for_status()
                data = response.json()
            except (httpx.HTTPError, ValueError) as e:
                logger.warning("Extraction webhook failed: %s", e)
                raise ExtractionUnavailableError(str(e)) from e

        record = unwrap_extraction_payload(data)
        if record is None:
            logger.warning("Extraction webhook returned an unrecognised payload")
            raise ExtractionUnavailableError("Unrecognised extraction response")
        return normalize_extraction(record)


extraction_client = ExtractionClient()
