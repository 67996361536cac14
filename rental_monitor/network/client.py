"""
Client for the upstream rental listing source (Rightmove mobile API).

Handles request headers, compressed responses, retries with backoff,
bounding-box construction and pagination metadata. Responses are mapped to
schemas by rental_monitor.normalizers.listings.
"""

import time
from typing import Any, Callable, Dict, Optional
from urllib.parse import urljoin

import requests
import structlog

from rental_monitor.config import DETAIL_TIMEOUT_SECONDS, SEARCH_TIMEOUT_SECONDS
from rental_monitor.metrics import api_latency, api_requests
from rental_monitor.network.errors import (
    BadRequestError,
    ListingNotFoundError,
    ListingSourceError,
    TransientSourceError,
)
from rental_monitor.normalizers.listings import normalize_listing_details, normalize_search_results
from rental_monitor.schemas.listings import ListingDetails, SearchPage
from rental_monitor.schemas.queries import SearchCriteria

logger = structlog.get_logger(__name__)

BASE_URL = "https://api.rightmove.co.uk/"
API_HEADERS = {
    "Content-Type": "application/json",
    "Accept": "*/*",
    "User-Agent": "Rightmove/8876 CFNetwork/3860.300.31 Darwin/25.2.0",
    "Accept-Language": "en-GB,en;q=0.9",
    # brotli is decoded by urllib3 when the brotli package is installed
    "Accept-Encoding": "gzip, deflate, br",
    "Connection": "keep-alive",
}
APP_PARAMS = {"appVersion": "10.31", "apiApplication": "IPHONE"}

MAX_RETRIES = 2
RETRY_DELAY = 2.0
DEFAULT_RADIUS = 1
# Roughly 50m either side of the anchor point
LOCATION_BOX_DELTA = 0.0005


def create_location_box(latitude: float, longitude: float) -> str:
    """
    Encode a small bounding box around a point.

    The search endpoint takes a box rather than a centre and radius.
    Format: LAT_LONG_BOX^westLong,eastLong,southLat,northLat

    Example:
        >>> create_location_box(51.5, -0.02)
        'LAT_LONG_BOX^-0.0205,-0.0195,51.4995,51.5005'
    """
    west = round(longitude - LOCATION_BOX_DELTA, 7)
    east = round(longitude + LOCATION_BOX_DELTA, 7)
    south = round(latitude - LOCATION_BOX_DELTA, 7)
    north = round(latitude + LOCATION_BOX_DELTA, 7)
    return f"LAT_LONG_BOX^{west},{east},{south},{north}"


def _format_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def build_search_params(criteria: SearchCriteria) -> Dict[str, str]:
    """
    Build query-string parameters for one search page.

    Args:
        criteria: Search criteria; coordinates take precedence over a
            location identifier.

    Returns:
        Dict[str, str]: Query parameters.

    Raises:
        BadRequestError: If neither coordinates nor a location identifier is set.
    """
    if criteria.latitude is not None and criteria.longitude is not None:
        location = create_location_box(criteria.latitude, criteria.longitude)
    elif criteria.location_identifier:
        location = criteria.location_identifier
    else:
        raise BadRequestError("Search criteria need coordinates or a location identifier")

    params = {
        "channel": "RENT",
        "locationIdentifier": location,
        "page": str(criteria.page),
        "numberOfPropertiesPerPage": str(criteria.page_size),
        "sortBy": "newestListed",
        "includeUnavailableProperties": "false",
        "radius": _format_number(
            criteria.radius if criteria.radius is not None else DEFAULT_RADIUS
        ),
        **APP_PARAMS,
    }

    optional = {
        "minPrice": criteria.min_price,
        "maxPrice": criteria.max_price,
        "minBedrooms": criteria.min_bedrooms,
        "maxBedrooms": criteria.max_bedrooms,
        "minBathrooms": criteria.min_bathrooms,
        "maxBathrooms": criteria.max_bathrooms,
    }
    for key, value in optional.items():
        if value is not None:
            params[key] = str(value)

    # "furnished_or_unfurnished" is the upstream default, so it is not sent
    if criteria.furnish_type in ("furnished", "unfurnished"):
        params["furnishTypes"] = criteria.furnish_type

    return params


def _error_detail(res: requests.Response) -> str:
    try:
        body = res.json()
    except ValueError:
        return res.reason or "Unknown error"
    if isinstance(body, dict):
        return str(body.get("title") or body.get("detail") or "Unknown error")
    return "Unknown error"


class ListingSourceClient:
    """
    Search and detail-fetch operations against the listing source.

    Transient failures (timeouts, connection errors, undecodable bodies, 429
    and 5xx) are retried up to max_retries times with a linear backoff; all
    other failures raise immediately.

    Example:
        >>> client = ListingSourceClient()
        >>> page = client.search(SearchCriteria(latitude=51.5, longitude=-0.02))
        >>> details = client.get_details(page.listings[0].external_id)
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        base_url: str = BASE_URL,
        search_timeout: float = SEARCH_TIMEOUT_SECONDS,
        detail_timeout: float = DETAIL_TIMEOUT_SECONDS,
        max_retries: int = MAX_RETRIES,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.session = session or requests.Session()
        self.session.headers.update(API_HEADERS)
        self.base_url = base_url
        self.search_timeout = search_timeout
        self.detail_timeout = detail_timeout
        self.max_retries = max_retries
        self._sleep = sleep

    def search(self, criteria: SearchCriteria) -> SearchPage:
        """
        Fetch one page of rental listings, newest first.

        Returns:
            SearchPage: listings, total results and has_more
                (page * page_size < total).
        """
        params = build_search_params(criteria)
        data = self._request("search", "api/property-listing", params, self.search_timeout)

        listings = normalize_search_results(data.get("properties") or [])
        total = int(data.get("totalAvailableResults") or 0)

        return SearchPage(
            listings=listings,
            total=total,
            page=criteria.page,
            has_more=criteria.page * criteria.page_size < total,
        )

    def get_details(self, external_id: int) -> ListingDetails:
        """
        Fetch the full listing record (HD photos, bathroom count).

        Raises:
            ListingSourceError: On any non-success response after retries.
        """
        data = self._request(
            "details", f"api/property/{external_id}", dict(APP_PARAMS), self.detail_timeout
        )
        return normalize_listing_details(external_id, data)

    def close(self) -> None:
        self.session.close()

    def _request(
        self, endpoint: str, path: str, params: Dict[str, str], timeout: float
    ) -> Dict[str, Any]:
        retries = 0

        while True:
            try:
                return self._get_once(endpoint, path, params, timeout)
            except ListingSourceError as err:
                retries += 1
                if not err.retryable or retries > self.max_retries:
                    raise
                logger.warning(
                    "source_request_retry",
                    endpoint=endpoint,
                    attempt=retries,
                    error=str(err),
                )
                self._sleep(RETRY_DELAY * retries)

    def _get_once(
        self, endpoint: str, path: str, params: Dict[str, str], timeout: float
    ) -> Dict[str, Any]:
        url = urljoin(self.base_url, path)
        logger.debug("source_request", endpoint=endpoint, path=path)

        start_time = time.time()
        try:
            res = self.session.get(url, params=params, timeout=timeout)
        except requests.Timeout as e:
            api_requests.labels(endpoint=endpoint, status_code="error").inc()
            raise TransientSourceError(f"Timeout calling {endpoint}: {e}") from e
        except requests.RequestException as e:
            # Covers connection errors and gzip/brotli/deflate decoding failures
            api_requests.labels(endpoint=endpoint, status_code="error").inc()
            raise TransientSourceError(f"Request to {endpoint} failed: {e}") from e

        api_requests.labels(endpoint=endpoint, status_code=str(res.status_code)).inc()
        api_latency.labels(endpoint=endpoint).observe(time.time() - start_time)

        status = res.status_code
        if status == 200:
            try:
                body = res.json()
            except ValueError as e:
                raise TransientSourceError(f"Invalid JSON from {endpoint}: {e}", status) from e
            if not isinstance(body, dict):
                raise TransientSourceError(f"Unexpected response shape from {endpoint}", status)
            return body

        message = f"API error: {status} - {_error_detail(res)}"
        if status == 404:
            raise ListingNotFoundError(message, status)
        if status in (400, 422):
            raise BadRequestError(message, status)
        if status == 429 or status >= 500:
            raise TransientSourceError(message, status)
        raise ListingSourceError(message, status)
