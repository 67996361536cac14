import threading
from unittest.mock import Mock

import pytest

from rental_monitor.services.monitor import MonitorRunner, chunk, group_by_user
from rental_monitor.services.notifications import NotificationResult
from rental_monitor.services.query_processor import QueryResult
from rental_monitor.utils.throttle import FixedDelay


def _processor(results: dict[str, QueryResult]) -> Mock:
    processor = Mock()
    processor.process.side_effect = lambda query: results.get(query.id, QueryResult())
    return processor


def _dispatcher() -> Mock:
    dispatcher = Mock()
    dispatcher.notify.return_value = NotificationResult(success=True, delivered=1)
    return dispatcher


@pytest.mark.unit
def test_group_by_user_drops_queries_without_owner(make_query) -> None:
    queries = [
        make_query("q1", user_id="u1"),
        make_query("q2", user_id=None),
        make_query("q3", user_id="u2"),
        make_query("q4", user_id="u1"),
    ]

    grouped = group_by_user(queries)

    assert list(grouped) == ["u1", "u2"]
    assert [q.id for q in grouped["u1"]] == ["q1", "q4"]


@pytest.mark.unit
def test_chunk_splits_into_fixed_size_batches() -> None:
    assert chunk([1, 2, 3, 4, 5, 6, 7], 3) == [[1, 2, 3], [4, 5, 6], [7]]
    assert chunk([], 3) == []


@pytest.mark.unit
def test_user_without_new_listings_is_not_notified(gateway, sleeps, make_query) -> None:
    gateway.queries = [make_query("q1", user_id="u1"), make_query("q2", user_id="u1")]
    dispatcher = _dispatcher()
    runner = MonitorRunner(
        gateway, _processor({}), dispatcher, throttle=FixedDelay(2.0, sleep=sleeps)
    )

    summary = runner.run()

    dispatcher.notify.assert_not_called()
    assert summary.total_new == 0
    assert summary.users_processed == 1
    assert summary.users_notified == 0


@pytest.mark.unit
def test_user_notified_once_with_sum_across_queries(gateway, sleeps, make_query) -> None:
    gateway.queries = [
        make_query("q1", user_id="u1", name="Canary Wharf 2-bed"),
        make_query("q2", user_id="u1", name="Bow"),
        make_query("q3", user_id="u1", name="Stratford"),
    ]
    processor = _processor({"q1": QueryResult(new_count=2), "q3": QueryResult(new_count=3)})
    dispatcher = _dispatcher()
    runner = MonitorRunner(gateway, processor, dispatcher, throttle=FixedDelay(2.0, sleep=sleeps))

    summary = runner.run()

    dispatcher.notify.assert_called_once_with("u1", 5, 2, query_name=None)
    assert summary.total_new == 5
    assert summary.users_notified == 1


@pytest.mark.unit
def test_single_contributing_query_passes_its_name(gateway, sleeps, make_query) -> None:
    gateway.queries = [
        make_query("q1", user_id="u1", name="Canary Wharf 2-bed"),
        make_query("q2", user_id="u1", name="Bow"),
    ]
    processor = _processor({"q1": QueryResult(new_count=1)})
    dispatcher = _dispatcher()
    runner = MonitorRunner(gateway, processor, dispatcher, throttle=FixedDelay(0, sleep=sleeps))

    runner.run()

    dispatcher.notify.assert_called_once_with("u1", 1, 1, query_name="Canary Wharf 2-bed")


@pytest.mark.unit
def test_queries_within_user_run_sequentially_in_order(gateway, sleeps, make_query) -> None:
    gateway.queries = [make_query(f"q{i}", user_id="u1") for i in range(1, 5)]
    processor = _processor({})
    runner = MonitorRunner(gateway, processor, throttle=FixedDelay(0, sleep=sleeps))

    runner.run()

    assert [c.args[0].id for c in processor.process.call_args_list] == ["q1", "q2", "q3", "q4"]


@pytest.mark.unit
def test_users_batched_with_pause_between_batches(gateway, sleeps, make_query) -> None:
    gateway.queries = [make_query(f"q{i}", user_id=f"u{i}") for i in range(1, 8)]
    runner = MonitorRunner(
        gateway, _processor({}), batch_size=3, throttle=FixedDelay(2.0, sleep=sleeps)
    )

    summary = runner.run()

    assert summary.users_processed == 7
    # Three batches (3 + 3 + 1), pauses only between them
    assert sleeps.delays == [2.0, 2.0]


@pytest.mark.unit
def test_users_in_a_batch_run_concurrently(gateway, sleeps, make_query) -> None:
    gateway.queries = [make_query(f"q{i}", user_id=f"u{i}") for i in range(1, 4)]
    barrier = threading.Barrier(3, timeout=5)

    def process(query):
        # Only returns once all three users are in flight at the same time
        barrier.wait()
        return QueryResult()

    processor = Mock()
    processor.process.side_effect = process
    runner = MonitorRunner(gateway, processor, batch_size=3, throttle=FixedDelay(0, sleep=sleeps))

    summary = runner.run()

    assert summary.users_processed == 3
    assert summary.errors == []


@pytest.mark.unit
def test_failing_user_does_not_affect_siblings(gateway, sleeps, make_query) -> None:
    gateway.queries = [make_query("q1", user_id="u1"), make_query("q2", user_id="u2")]

    def process(query):
        if query.id == "q1":
            raise RuntimeError("connection pool exhausted")
        return QueryResult(new_count=2)

    processor = Mock()
    processor.process.side_effect = process
    dispatcher = _dispatcher()
    runner = MonitorRunner(gateway, processor, dispatcher, throttle=FixedDelay(0, sleep=sleeps))

    summary = runner.run()

    dispatcher.notify.assert_called_once_with("u2", 2, 1, query_name="Query q2")
    assert summary.users_processed == 2
    assert summary.total_new == 2
    assert any("connection pool exhausted" in e for e in summary.errors)


@pytest.mark.unit
def test_notification_failure_keeps_new_count(gateway, sleeps, make_query) -> None:
    gateway.queries = [make_query("q1", user_id="u1"), make_query("q2", user_id="u2")]
    processor = _processor({"q1": QueryResult(new_count=3), "q2": QueryResult(new_count=1)})
    dispatcher = _dispatcher()

    def notify(user_id, new_count, query_count, query_name=None):
        if user_id == "u1":
            raise RuntimeError("could not load device tokens")
        return NotificationResult(success=True, delivered=1)

    dispatcher.notify.side_effect = notify
    runner = MonitorRunner(gateway, processor, dispatcher, throttle=FixedDelay(0, sleep=sleeps))

    summary = runner.run()

    assert summary.users_processed == 2
    assert summary.total_new == 4
    assert summary.users_notified == 1
    assert len(summary.errors) == 1
    assert "could not load device tokens" in summary.errors[0]


@pytest.mark.unit
def test_query_errors_are_accumulated(gateway, sleeps, make_query) -> None:
    gateway.queries = [make_query("q1", user_id="u1")]
    processor = _processor({"q1": QueryResult(new_count=1, errors=["Failed to save listing 9"])})
    runner = MonitorRunner(gateway, processor, throttle=FixedDelay(0, sleep=sleeps))

    summary = runner.run()

    assert summary.total_new == 1
    assert summary.errors == ["Failed to save listing 9"]


@pytest.mark.unit
def test_run_restricted_to_one_user(gateway, sleeps, make_query) -> None:
    gateway.queries = [make_query("q1", user_id="u1"), make_query("q2", user_id="u2")]
    processor = _processor({})
    runner = MonitorRunner(gateway, processor, throttle=FixedDelay(0, sleep=sleeps))

    summary = runner.run(user_id="u2")

    assert summary.users_processed == 1
    assert [c.args[0].id for c in processor.process.call_args_list] == ["q2"]


@pytest.mark.unit
def test_failure_to_load_queries_aborts_run(gateway, sleeps) -> None:
    gateway.load_error = RuntimeError("could not connect to server")
    runner = MonitorRunner(gateway, _processor({}), throttle=FixedDelay(0, sleep=sleeps))

    with pytest.raises(RuntimeError):
        runner.run()
