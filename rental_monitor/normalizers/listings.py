import json
from typing import Any, Dict, List, Optional

import structlog

from rental_monitor.config import DEBUG
from rental_monitor.schemas.listings import Listing, ListingDetails

logger = structlog.get_logger(__name__)

LISTING_URL = "https://www.rightmove.co.uk/properties/{id}"
PRICE_ON_REQUEST = "Price on request"


def _area_from_address(address: str) -> Optional[str]:
    parts = [p.strip() for p in address.split(",")]
    if len(parts) > 1 and parts[-1]:
        return parts[-1]
    return None


def _to_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def normalize_search_listing(raw: Dict[str, Any]) -> Optional[Listing]:
    """
    Map one raw search result onto a Listing.

    Search results carry thumbnails only and no bathroom count; both are
    filled in later by enrichment.

    Args:
        raw: Listing dict from the search response "properties" array.

    Returns:
        Listing, or None when the payload has no identifier.
    """
    external_id = _to_int(raw.get("identifier"))
    if external_id is None:
        return None

    address = raw.get("address") or ""
    display_prices = raw.get("displayPrices") or []
    price = display_prices[0].get("displayPrice") if display_prices else None
    monthly_rent = _to_int(raw.get("monthlyRent"))
    if not price and monthly_rent:
        price = f"£{monthly_rent} pcm"

    images = [p["url"] for p in raw.get("thumbnailPhotos") or [] if p.get("url")]
    if not images and raw.get("photoLargeThumbnailUrl"):
        images = [raw["photoLargeThumbnailUrl"]]

    branch = raw.get("branch") or {}

    return Listing(
        external_id=external_id,
        address=address,
        area=_area_from_address(address),
        price=price or PRICE_ON_REQUEST,
        bedrooms=_to_int(raw.get("bedrooms")) or 0,
        bathrooms=_to_int(raw.get("bathrooms")) or 0,
        images=images,
        source_url=LISTING_URL.format(id=external_id),
        agent_name=branch.get("brandName"),
        agent_phone=branch.get("contactTelephoneNumber"),
        branch_name=branch.get("name"),
        latitude=raw.get("latitude"),
        longitude=raw.get("longitude"),
    )


def normalize_search_results(raw_listings: List[Dict[str, Any]]) -> List[Listing]:
    """
    Map a search response's listings, skipping payloads without an identifier.
    """
    listings = []
    for raw in raw_listings:
        listing = normalize_search_listing(raw)
        if listing is None:
            logger.warning("Skipping search result with missing identifier")
            continue
        listings.append(listing)

    if DEBUG and listings:
        logger.debug("Sample listing:\n%s", json.dumps(listings[0].model_dump(), indent=2))

    return listings


def normalize_listing_details(external_id: int, raw: Dict[str, Any]) -> ListingDetails:
    """
    Extract HD photos and the bathroom count from a detail response.

    Photo order is preserved and repeated URLs are dropped. The max-size URL is
    preferred over the standard one.

    Args:
        external_id: Listing the details were requested for.
        raw: Detail response; the listing sits under "property".

    Returns:
        ListingDetails with bathrooms None when not reported.
    """
    prop = raw.get("property") or {}

    photos: List[str] = []
    seen = set()
    for photo in prop.get("photos") or []:
        url = photo.get("maxSizeUrl") or photo.get("url")
        if url and url not in seen:
            seen.add(url)
            photos.append(url)

    analytics = prop.get("analyticsInfo") or {}
    bathrooms = _to_int(analytics.get("bathrooms"))

    return ListingDetails(external_id=external_id, photos=photos, bathrooms=bathrooms)
