"""
Enrichment stage: replace search thumbnails with HD photos and set the real
bathroom count for a small set of new listings.

Detail fetches run strictly one after another with a fixed pause between
them; bursts of detail requests get the whole pipeline blocked upstream.
"""

import structlog

from rental_monitor.config import ENABLE_HD_IMAGES, HD_IMAGE_DELAY_MS, MAX_IMAGES_PER_PROPERTY
from rental_monitor.metrics import enrichment_results
from rental_monitor.network.client import ListingSourceClient
from rental_monitor.network.errors import ListingSourceError
from rental_monitor.schemas.listings import EnrichedListing, Listing
from rental_monitor.utils.datetime import ms_to_seconds
from rental_monitor.utils.throttle import FixedDelay

logger = structlog.get_logger(__name__)


class Enricher:
    """
    Fetch listing details sequentially and merge them into the listings.

    Attributes:
        source: Listing source client used for get_details
        throttle: Pause applied between consecutive detail fetches
        max_images: Cap on HD photos kept per listing
        enabled: When False, listings pass through without network calls
    """

    def __init__(
        self,
        source: ListingSourceClient,
        throttle: FixedDelay | None = None,
        max_images: int = MAX_IMAGES_PER_PROPERTY,
        enabled: bool = ENABLE_HD_IMAGES,
    ):
        self.source = source
        self.throttle = throttle or FixedDelay(ms_to_seconds(HD_IMAGE_DELAY_MS))
        self.max_images = max_images
        self.enabled = enabled

    def enrich(self, listings: list[Listing]) -> list[EnrichedListing]:
        """
        Enrich listings one at a time, keeping length and order.

        A failed detail fetch keeps that listing's thumbnail data and never
        stops the rest of the batch.

        Args:
            listings: Capped list of new listings

        Returns:
            list[EnrichedListing]: One entry per input listing
        """
        if not self.enabled:
            return [EnrichedListing(**listing.model_dump()) for listing in listings]

        logger.info("enrichment_started", count=len(listings))

        enriched = [self._enrich_one(listing) for listing in self.throttle.paced(listings)]

        logger.info(
            "enrichment_completed",
            count=len(enriched),
            hd=sum(1 for e in enriched if e.hd_images),
        )
        return enriched

    def _enrich_one(self, listing: Listing) -> EnrichedListing:
        base = EnrichedListing(**listing.model_dump())

        try:
            details = self.source.get_details(listing.external_id)
        except ListingSourceError as e:
            logger.warning(
                "enrichment_failed",
                external_id=listing.external_id,
                retryable=e.retryable,
                error=str(e),
            )
            enrichment_results.labels(status="failure").inc()
            return base
        except Exception as e:
            logger.exception("enrichment_error", external_id=listing.external_id, error=str(e))
            enrichment_results.labels(status="failure").inc()
            return base

        update: dict = {}
        if details.photos:
            update["images"] = details.photos[: self.max_images]
            update["hd_images"] = True
        if details.bathrooms is not None:
            update["bathrooms"] = details.bathrooms

        enrichment_results.labels(status="hd" if details.photos else "thumbnail").inc()
        if not details.photos:
            logger.info("enrichment_no_hd_photos", external_id=listing.external_id)

        return base.model_copy(update=update)
