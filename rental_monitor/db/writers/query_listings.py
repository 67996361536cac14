from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.engine import Connection

from rental_monitor.models.query_listings import QueryListing
from rental_monitor.utils.datetime import utc_now


def link_listing_to_query(conn: Connection, query_id: str, listing_id: str) -> bool:
    """
    Insert the (query, listing) link if it does not exist yet.

    A repeat call for the same pair is a no-op, not an error.

    Args:
        conn (Connection): SQLAlchemy DB connection.
        query_id (str): Saved query UUID.
        listing_id (str): Canonical listing UUID.

    Returns:
        bool: True if a new link row was inserted, False if it already existed.
    """
    stmt = (
        insert(QueryListing)
        .values(query_id=query_id, listing_id=listing_id, found_at=utc_now())
        .on_conflict_do_nothing(index_elements=["query_id", "listing_id"])
    )

    result = conn.execute(stmt)
    return bool(result.rowcount)
