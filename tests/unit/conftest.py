"""
In-memory stand-ins for the network and database edges of the monitor.

The fakes implement the same methods the services call on
ListingSourceClient, PersistenceGateway and APNsClient, so the orchestration
code runs unchanged against them.
"""

from __future__ import annotations

import threading
from typing import Any, Callable, Optional

import pytest

from rental_monitor.network.apns import DeliveryResult, DeliveryStatus
from rental_monitor.network.errors import TransientSourceError
from rental_monitor.schemas.device_tokens import DeviceToken
from rental_monitor.schemas.listings import Listing, ListingDetails, SearchPage
from rental_monitor.schemas.queries import SavedQuery, SearchCriteria
from rental_monitor.utils.result import Result


def build_listing(external_id: int, **overrides: Any) -> Listing:
    data = {
        "external_id": external_id,
        "address": f"{external_id} Marsh Wall, London, E14",
        "area": "E14",
        "price": "£2,400 pcm",
        "bedrooms": 2,
        "bathrooms": 0,
        "images": [f"https://media.example.com/{external_id}/thumb.jpg"],
        "source_url": f"https://www.rightmove.co.uk/properties/{external_id}",
    }
    data.update(overrides)
    return Listing(**data)


class FakeSource:
    """Serves a fixed newest-first listing set for every search."""

    def __init__(self) -> None:
        self.listings: list[Listing] = []
        self.by_location: dict[str, list[Listing]] = {}
        self.detail_failures: set[int] = set()
        self.search_error: Optional[Exception] = None
        self.search_calls: list[SearchCriteria] = []
        self.detail_calls: list[int] = []

    def search(self, criteria: SearchCriteria) -> SearchPage:
        self.search_calls.append(criteria)
        if self.search_error is not None:
            raise self.search_error

        listings = self.by_location.get(criteria.location_identifier or "", self.listings)
        start = (criteria.page - 1) * criteria.page_size
        page = listings[start : start + criteria.page_size]
        return SearchPage(
            listings=page,
            total=len(listings),
            page=criteria.page,
            has_more=criteria.page * criteria.page_size < len(listings),
        )

    def get_details(self, external_id: int) -> ListingDetails:
        self.detail_calls.append(external_id)
        if external_id in self.detail_failures:
            raise TransientSourceError(f"Timeout calling details for {external_id}")
        return ListingDetails(
            external_id=external_id,
            photos=[f"https://media.example.com/{external_id}/hd-{n}.jpg" for n in range(3)],
            bathrooms=2,
        )


class FakeGateway:
    """Dict-backed persistence gateway with the same dedup semantics."""

    def __init__(self) -> None:
        self.queries: list[SavedQuery] = []
        self.listings: dict[int, Listing] = {}
        self.links: set[tuple[str, str]] = set()
        self.tokens: dict[str, list[str]] = {}
        self.removed_tokens: list[str] = []
        self.upsert_failures: set[int] = set()
        self.load_error: Optional[Exception] = None
        self._lock = threading.Lock()

    def load_active_queries(self, user_id: Optional[str] = None) -> list[SavedQuery]:
        if self.load_error is not None:
            raise self.load_error
        return [
            q for q in self.queries if q.active and (user_id is None or q.user_id == user_id)
        ]

    def is_already_linked(self, query_id: str, external_id: int) -> bool:
        return (query_id, f"listing-{external_id}") in self.links

    def filter_new(self, query_id: str, listings: list[Listing]) -> list[Listing]:
        seen: set[int] = set()
        new = []
        for listing in listings:
            if self.is_already_linked(query_id, listing.external_id) or listing.external_id in seen:
                continue
            seen.add(listing.external_id)
            new.append(listing)
        return new

    def upsert_listing(self, listing: Listing) -> Result[str]:
        if listing.external_id in self.upsert_failures:
            return Result.failure(f"Failed to save listing {listing.external_id}: deadlock detected")
        with self._lock:
            self.listings[listing.external_id] = listing
        return Result.success(f"listing-{listing.external_id}")

    def link_to_query(self, query_id: str, listing_id: str) -> Result[bool]:
        with self._lock:
            created = (query_id, listing_id) not in self.links
            self.links.add((query_id, listing_id))
        return Result.success(created)

    def linked_external_ids(self, query_id: str) -> set[int]:
        return {int(lid.split("-")[1]) for qid, lid in self.links if qid == query_id}

    def device_tokens_for_user(self, user_id: str) -> list[DeviceToken]:
        return [DeviceToken(user_id=user_id, device_token=t) for t in self.tokens.get(user_id, [])]

    def remove_device_token(self, device_token: str) -> Result[int]:
        self.removed_tokens.append(device_token)
        for tokens in self.tokens.values():
            if device_token in tokens:
                tokens.remove(device_token)
        return Result.success(1)


class FakePushClient:
    """Records sends; outcomes are configured per device token."""

    def __init__(self, environment: str) -> None:
        self.environment = environment
        self.outcomes: dict[str, DeliveryResult] = {}
        self.sent: list[tuple[str, dict]] = []
        self.closed = False

    def reject(self, device_token: str, reason: str, status_code: int = 400) -> None:
        status = {
            "BadDeviceToken": DeliveryStatus.BAD_TOKEN,
            "Unregistered": DeliveryStatus.PERMANENT,
            "DeviceTokenNotForTopic": DeliveryStatus.PERMANENT,
        }.get(reason, DeliveryStatus.FAILED)
        self.outcomes[device_token] = DeliveryResult(status, reason, status_code)

    def send(self, device_token: str, payload: dict) -> DeliveryResult:
        self.sent.append((device_token, payload))
        return self.outcomes.get(device_token, DeliveryResult(DeliveryStatus.DELIVERED, None, 200))

    def shutdown(self) -> None:
        self.closed = True


class RecordingSleep:
    def __init__(self) -> None:
        self.delays: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def make_listing() -> Callable[..., Listing]:
    return build_listing


@pytest.fixture
def make_query() -> Callable[..., SavedQuery]:
    def _make(query_id: str, user_id: Optional[str] = "user-1", **overrides: Any) -> SavedQuery:
        data = {
            "id": query_id,
            "user_id": user_id,
            "name": f"Query {query_id}",
            "location_identifier": "REGION^87490",
            "max_price": 2500,
            "min_bedrooms": 2,
        }
        data.update(overrides)
        return SavedQuery(**data)

    return _make


@pytest.fixture
def source() -> FakeSource:
    return FakeSource()


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def sleeps() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def push_clients() -> tuple[FakePushClient, FakePushClient]:
    return FakePushClient("production"), FakePushClient("sandbox")
