from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

FurnishType = Literal["furnished", "unfurnished", "furnished_or_unfurnished"]


class SavedQuery(BaseModel):
    """
    A user's standing rental search. Read-only to the monitor.
    """

    id: str = Field(..., description="Saved query UUID")
    user_id: Optional[str] = Field(None, description="Owning user; queries without one are skipped")
    name: str = Field("", description="Human label shown in notifications")
    location_identifier: Optional[str] = Field(
        None, description="Upstream location id or postcode, used when no coordinates are set"
    )
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    min_price: Optional[int] = None
    max_price: Optional[int] = None
    min_bedrooms: Optional[int] = None
    max_bedrooms: Optional[int] = None
    min_bathrooms: Optional[int] = None
    max_bathrooms: Optional[int] = None
    furnish_type: Optional[FurnishType] = None
    radius: Optional[float] = None
    active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class SearchCriteria(BaseModel):
    """
    Parameters for one search call against the listing source.

    Either latitude/longitude or location_identifier must be set.
    """

    latitude: Optional[float] = None
    longitude: Optional[float] = None
    location_identifier: Optional[str] = None
    min_price: Optional[int] = None
    max_price: Optional[int] = None
    min_bedrooms: Optional[int] = None
    max_bedrooms: Optional[int] = None
    min_bathrooms: Optional[int] = None
    max_bathrooms: Optional[int] = None
    furnish_type: Optional[FurnishType] = None
    radius: Optional[float] = None
    page: int = 1
    page_size: int = 25

    @classmethod
    def from_query(cls, query: SavedQuery, page: int = 1, page_size: int = 25) -> "SearchCriteria":
        return cls(
            latitude=query.latitude,
            longitude=query.longitude,
            location_identifier=query.location_identifier,
            min_price=query.min_price,
            max_price=query.max_price,
            min_bedrooms=query.min_bedrooms,
            max_bedrooms=query.max_bedrooms,
            min_bathrooms=query.min_bathrooms,
            max_bathrooms=query.max_bathrooms,
            furnish_type=query.furnish_type,
            radius=query.radius,
            page=page,
            page_size=page_size,
        )
