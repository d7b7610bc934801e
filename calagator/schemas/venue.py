from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator


class VenueBase(BaseModel):
    """Fields shared by venue input and output."""
    title: str
    description: Optional[str] = None
    address: Optional[str] = None
    street_address: Optional[str] = None
    locality: Optional[str] = None
    region: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    url: Optional[str] = None

    @field_validator("latitude")
    @classmethod
    def validate_latitude(cls, v):
        if v is not None and not -90 <= v <= 90:
            raise ValueError("Latitude must be between -90 and 90")
        return v

    @field_validator("longitude")
    @classmethod
    def validate_longitude(cls, v):
        if v is not None and not -180 <= v <= 180:
            raise ValueError("Longitude must be between -180 and 180")
        return v


class VenueCreate(VenueBase):
    """Schema for creating a venue."""
    pass


class VenueResponse(VenueBase):
    """Venue as returned from the store."""
    id: int
    events_count: int = 0
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
