"""
Persistence gateway for the monitor.

Wraps the per-entity readers and writers behind one object that owns the
engine. Each operation opens its own short transaction; no transaction spans
more than one upsert or one link insert, so concurrent user tasks only
contend on the database's own row-level upsert atomicity.
"""

from typing import Optional

import structlog
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from rental_monitor.db.readers.device_tokens import get_device_tokens
from rental_monitor.db.readers.queries import get_active_queries
from rental_monitor.db.readers.query_listings import get_linked_external_ids, is_listing_linked
from rental_monitor.db.writers.device_tokens import delete_device_token
from rental_monitor.db.writers.listings import upsert_listing
from rental_monitor.db.writers.query_listings import link_listing_to_query
from rental_monitor.schemas.device_tokens import DeviceToken
from rental_monitor.schemas.listings import Listing
from rental_monitor.schemas.queries import SavedQuery
from rental_monitor.utils.result import Result

logger = structlog.get_logger(__name__)


class PersistenceGateway:
    """
    Database access for dedup, listing upserts, query links and device tokens.

    Per-item writes return a Result instead of raising so callers can keep
    going after one listing fails. Reads raise; the caller decides whether a
    failed read aborts a query (dedup) or the whole run (active queries).

    Attributes:
        engine: Shared SQLAlchemy engine
        dry_run: When True, writes are logged and skipped
    """

    def __init__(self, engine: Engine, dry_run: bool = False):
        self.engine = engine
        self.dry_run = dry_run

    def load_active_queries(self, user_id: Optional[str] = None) -> list[SavedQuery]:
        with self.engine.connect() as conn:
            queries = get_active_queries(conn, user_id=user_id)

        logger.info("active_queries_loaded", count=len(queries), user_id=user_id)
        return queries

    def is_already_linked(self, query_id: str, external_id: int) -> bool:
        with self.engine.connect() as conn:
            return is_listing_linked(conn, query_id, external_id)

    def filter_new(self, query_id: str, listings: list[Listing]) -> list[Listing]:
        """
        Keep the listings not yet linked to this query, in their original order.

        "New" is scoped to the query: a listing linked only to other queries
        is still new here. Repeated external ids within one search result are
        collapsed to their first occurrence.

        Args:
            query_id: Saved query UUID
            listings: Listings from the search, upstream order

        Returns:
            list[Listing]: Unlinked listings
        """
        if not listings:
            return []

        with self.engine.connect() as conn:
            linked = get_linked_external_ids(conn, query_id, [item.external_id for item in listings])

        seen: set[int] = set()
        new_listings = []
        for listing in listings:
            if listing.external_id in linked or listing.external_id in seen:
                continue
            seen.add(listing.external_id)
            new_listings.append(listing)

        logger.debug(
            "listings_filtered",
            query_id=query_id,
            candidates=len(listings),
            already_linked=len(linked),
            new=len(new_listings),
        )
        return new_listings

    def upsert_listing(self, listing: Listing) -> Result[str]:
        """
        Insert or update a listing keyed on its external id.

        Returns:
            Result[str]: Canonical listing id, or the error message
        """
        if self.dry_run:
            logger.info("[DRY RUN] Would upsert listing", external_id=listing.external_id)
            return Result.success(str(listing.external_id))

        try:
            with self.engine.begin() as conn:
                listing_id = upsert_listing(conn, listing)
        except SQLAlchemyError as e:
            logger.warning("listing_upsert_failed", external_id=listing.external_id, error=str(e))
            return Result.failure(f"Failed to save listing {listing.external_id}: {e}")

        return Result.success(listing_id)

    def link_to_query(self, query_id: str, listing_id: str) -> Result[bool]:
        """
        Link a listing to a query; an existing link is left as is.

        Returns:
            Result[bool]: True if a new link was created, False if it existed
        """
        if self.dry_run:
            logger.info("[DRY RUN] Would link listing", query_id=query_id, listing_id=listing_id)
            return Result.success(True)

        try:
            with self.engine.begin() as conn:
                created = link_listing_to_query(conn, query_id, listing_id)
        except SQLAlchemyError as e:
            logger.warning(
                "listing_link_failed", query_id=query_id, listing_id=listing_id, error=str(e)
            )
            return Result.failure(f"Failed to link listing {listing_id} to query {query_id}: {e}")

        return Result.success(created)

    def device_tokens_for_user(self, user_id: str) -> list[DeviceToken]:
        with self.engine.connect() as conn:
            return get_device_tokens(conn, user_id)

    def remove_device_token(self, device_token: str) -> Result[int]:
        if self.dry_run:
            logger.info("[DRY RUN] Would delete device token", token_suffix=device_token[-8:])
            return Result.success(0)

        try:
            with self.engine.begin() as conn:
                removed = delete_device_token(conn, device_token)
        except SQLAlchemyError as e:
            logger.error("device_token_delete_failed", token_suffix=device_token[-8:], error=str(e))
            return Result.failure(f"Failed to remove device token: {e}")

        return Result.success(removed)
