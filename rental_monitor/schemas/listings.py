from typing import Optional

from pydantic import BaseModel, Field


class Listing(BaseModel):
    """
    A rental listing as returned by a search, keyed by the upstream listing id.
    """

    external_id: int = Field(..., description="Upstream listing identifier")
    address: str = Field("", description="Display address")
    area: Optional[str] = Field(None, description="Last comma-separated part of the address")
    price: str = Field("Price on request", description="Price display string")
    bedrooms: int = 0
    bathrooms: int = 0
    images: list[str] = Field(default_factory=list, description="Image URLs, thumbnails or HD")
    source_url: Optional[str] = None
    agent_name: Optional[str] = None
    agent_phone: Optional[str] = None
    branch_name: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class ListingDetails(BaseModel):
    """
    Higher-fidelity data from the listing detail endpoint.
    """

    external_id: int
    photos: list[str] = Field(default_factory=list, description="Full-resolution photo URLs")
    bathrooms: Optional[int] = Field(None, description="Authoritative bathroom count, if reported")


class EnrichedListing(Listing):
    """
    In-memory listing after the enrichment stage. Never stored separately.

    hd_images is False when the detail fetch failed or found no photos and the
    search thumbnails were kept.
    """

    hd_images: bool = False


class SearchPage(BaseModel):
    """One page of search results."""

    listings: list[Listing] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    has_more: bool = False
