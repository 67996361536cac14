import structlog

from rental_monitor.config import MAX_PAGES, SEARCH_PAGE_SIZE
from rental_monitor.network.client import ListingSourceClient
from rental_monitor.schemas.listings import Listing
from rental_monitor.schemas.queries import SavedQuery, SearchCriteria

logger = structlog.get_logger(__name__)


def poll_listings(
    source: ListingSourceClient,
    query: SavedQuery,
    page_size: int = SEARCH_PAGE_SIZE,
    max_pages: int = MAX_PAGES,
) -> list[Listing]:
    """
    Fetch current listings for a saved query, newest first.

    Pages are fetched in order until max_pages is reached or the source
    reports no further results.

    Args:
        source: Listing source client
        query: Saved query supplying the criteria
        page_size: Listings per page
        max_pages: Upper bound on pages fetched (the monitor uses 1)

    Returns:
        list[Listing]: Listings across the fetched pages, upstream order

    Raises:
        ListingSourceError: If a page cannot be fetched
    """
    listings: list[Listing] = []

    for page_number in range(1, max(1, max_pages) + 1):
        criteria = SearchCriteria.from_query(query, page=page_number, page_size=page_size)
        page = source.search(criteria)
        listings.extend(page.listings)

        if not page.has_more:
            break

    logger.info(
        "listings_polled",
        query_id=query.id,
        query_name=query.name,
        count=len(listings),
    )
    return listings
