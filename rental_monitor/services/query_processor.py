"""Per-query pipeline: search, dedup, cap, enrich, persist, link."""

from dataclasses import dataclass, field

import structlog

from rental_monitor.config import MAX_HD_PROPERTIES_PER_QUERY, MAX_PAGES, SEARCH_PAGE_SIZE
from rental_monitor.db.gateway import PersistenceGateway
from rental_monitor.metrics import listings_linked, query_duration, query_runs
from rental_monitor.network.client import ListingSourceClient
from rental_monitor.pollers.listings import poll_listings
from rental_monitor.schemas.queries import SavedQuery
from rental_monitor.services.enrichment import Enricher

logger = structlog.get_logger(__name__)


@dataclass
class QueryResult:
    new_count: int = 0
    errors: list[str] = field(default_factory=list)


class QueryProcessor:
    """
    Run the ingestion steps for one saved query.

    Nothing raised inside process() escapes: a failed search or dedup read
    becomes a single error entry, a failed listing write becomes one error
    entry per listing, and the remaining listings are still processed.
    """

    def __init__(
        self,
        source: ListingSourceClient,
        gateway: PersistenceGateway,
        enricher: Enricher,
        max_new_per_query: int = MAX_HD_PROPERTIES_PER_QUERY,
        page_size: int = SEARCH_PAGE_SIZE,
        max_pages: int = MAX_PAGES,
    ):
        self.source = source
        self.gateway = gateway
        self.enricher = enricher
        self.max_new_per_query = max_new_per_query
        self.page_size = page_size
        self.max_pages = max_pages

    def process(self, query: SavedQuery) -> QueryResult:
        """
        Discover, store and link new listings for one query.

        Args:
            query: Active saved query

        Returns:
            QueryResult: Number of listings newly linked and error strings
        """
        log = logger.bind(query_id=query.id, query_name=query.name)

        with query_duration.time():
            try:
                listings = poll_listings(
                    self.source, query, page_size=self.page_size, max_pages=self.max_pages
                )
                new_listings = self.gateway.filter_new(query.id, listings)
            except Exception as e:
                log.warning("query_search_failed", error=str(e))
                query_runs.labels(status="failure").inc()
                return QueryResult(errors=[f"Query {query.id} ({query.name}): {e}"])

            log.info(
                "new_listings_found",
                found=len(listings),
                new=len(new_listings),
                already_seen=len(listings) - len(new_listings),
            )

            if not new_listings:
                query_runs.labels(status="success").inc()
                return QueryResult()

            # Upstream order is newest first; listings beyond the cap stay
            # unlinked and are picked up again on the next run
            capped = new_listings[: self.max_new_per_query]
            if len(capped) < len(new_listings):
                log.info("new_listings_capped", kept=len(capped), deferred=len(new_listings) - len(capped))

            enriched = self.enricher.enrich(capped)

            result = QueryResult()
            for listing in enriched:
                saved = self.gateway.upsert_listing(listing)
                if not saved.ok or saved.value is None:
                    result.errors.append(saved.error or f"Failed to save listing {listing.external_id}")
                    continue

                linked = self.gateway.link_to_query(query.id, saved.value)
                if not linked.ok:
                    result.errors.append(linked.error or f"Failed to link listing {listing.external_id}")
                    continue

                result.new_count += 1

        listings_linked.inc(result.new_count)
        query_runs.labels(status="partial" if result.errors else "success").inc()
        log.info("query_processed", new_count=result.new_count, errors=len(result.errors))
        return result
