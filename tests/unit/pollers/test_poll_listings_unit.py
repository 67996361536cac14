import pytest

from rental_monitor.pollers.listings import poll_listings


@pytest.mark.unit
def test_poll_listings_fetches_first_page_only_by_default(source, make_listing, make_query) -> None:
    source.listings = [make_listing(i) for i in range(1, 41)]

    listings = poll_listings(source, make_query("q1"), page_size=25, max_pages=1)

    assert [listing.external_id for listing in listings] == list(range(1, 26))
    assert len(source.search_calls) == 1
    criteria = source.search_calls[0]
    assert criteria.page == 1
    assert criteria.page_size == 25
    assert criteria.location_identifier == "REGION^87490"
    assert criteria.max_price == 2500


@pytest.mark.unit
def test_poll_listings_stops_when_no_more_pages(source, make_listing, make_query) -> None:
    source.listings = [make_listing(i) for i in range(1, 31)]

    listings = poll_listings(source, make_query("q1"), page_size=25, max_pages=5)

    assert len(listings) == 30
    assert [c.page for c in source.search_calls] == [1, 2]


@pytest.mark.unit
def test_poll_listings_propagates_source_errors(source, make_query) -> None:
    source.search_error = RuntimeError("upstream down")

    with pytest.raises(RuntimeError):
        poll_listings(source, make_query("q1"))
