"""
Base Pydantic schemas and common types.
"""
import math
from datetime import datetime
from typing import Generic, TypeVar, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class BaseSchema(BaseModel):
    """Base schema with common configuration."""

    model_config = ConfigDict(
        from_attributes=True,  # Enable ORM mode
        populate_by_name=True,
        use_enum_values=True,
    )


class TimestampSchema(BaseSchema):
    """Schema mixin for timestamp fields."""
    created_at: datetime
    updated_at: datetime


class IDSchema(BaseSchema):
    """Schema mixin for ID field."""
    id: UUID


# Generic type for paginated responses
T = TypeVar("T")


class PaginatedResponse(BaseSchema, Generic[T]):
    """Generic paginated response wrapper."""
    items: list[T]
    total: int
    page: int
    page_size: int
    total_pages: int

    @classmethod
    def create(
        cls,
        items: list[T],
        total: int,
        page: int,
        page_size: int,
    ) -> "PaginatedResponse[T]":
        """Factory method to create paginated response."""
        total_pages = (total + page_size - 1) // page_size
        return cls(
            items=items,
            total=total,
            page=page,
            page_size=page_size,
            total_pages=total_pages,
        )


class Coordinates(BaseSchema):
    """Geographic point in decimal degrees."""
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)

    @staticmethod
    def is_valid(lat: Optional[float], lng: Optional[float]) -> bool:
        """
        True for a finite in-range pair that is not exactly (0, 0).

        (0, 0) is what blank form inputs coerce to, so it is treated as unset.
        """
        if lat is None or lng is None:
            return False
        if not (math.isfinite(lat) and math.isfinite(lng)):
            return False
        if not (-90 <= lat <= 90 and -180 <= lng <= 180):
            return False
        return not (lat == 0 and lng == 0)

    @classmethod
    def from_pair(cls, lat: Optional[float], lng: Optional[float]) -> Optional["Coordinates"]:
        """Build coordinates from a raw pair, or None if the pair is unusable."""
        if not cls.is_valid(lat, lng):
            return None
        return cls(lat=lat, lng=lng)
