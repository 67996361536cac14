import json
from typing import Any

import structlog
from sqlalchemy.engine import Connection

from rental_monitor.config import DEBUG
from rental_monitor.db.writers._upsert import upsert_returning_id
from rental_monitor.models.listings import Listing
from rental_monitor.schemas.listings import Listing as ListingSchema
from rental_monitor.utils.datetime import utc_now

logger = structlog.get_logger(__name__)

# Columns refreshed when a listing is sighted again
MUTABLE_COLUMNS = [
    "address",
    "area",
    "price",
    "bedrooms",
    "bathrooms",
    "images",
    "source_url",
    "agent_name",
    "agent_phone",
    "branch_name",
    "latitude",
    "longitude",
]


def listing_to_row(listing: ListingSchema) -> dict[str, Any]:
    """
    Map a listing schema onto the listings table columns.

    Args:
        listing: Search or enriched listing

    Returns:
        dict: Row values, including updated_at
    """
    return {
        "external_id": listing.external_id,
        "address": listing.address,
        "area": listing.area,
        "price": listing.price,
        "bedrooms": listing.bedrooms,
        "bathrooms": listing.bathrooms,
        "images": list(listing.images),
        "source_url": listing.source_url,
        "agent_name": listing.agent_name,
        "agent_phone": listing.agent_phone,
        "branch_name": listing.branch_name,
        "latitude": listing.latitude,
        "longitude": listing.longitude,
        "updated_at": utc_now(),
    }


def upsert_listing(conn: Connection, listing: ListingSchema) -> str:
    """
    Upsert one listing keyed on external_id and return its canonical id.

    A repeated sighting never creates a second row; changed fields (price,
    photos, agent details) overwrite the stored values.

    Args:
        conn: SQLAlchemy DB connection (within transaction)
        listing: Listing to store

    Returns:
        str: Canonical listing UUID
    """
    row = listing_to_row(listing)

    if DEBUG:
        logger.debug("Listing to upsert:\n%s", json.dumps(row, default=str, indent=2))

    listing_id = upsert_returning_id(
        conn=conn,
        table=Listing,
        row=row,
        conflict_column="external_id",
        update_columns=MUTABLE_COLUMNS,
    )
    return str(listing_id)
