"""Run-level orchestrator: group queries by user, process users in batches, notify."""

from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Optional

import structlog

from rental_monitor.config import BATCH_DELAY_MS, USER_BATCH_SIZE
from rental_monitor.db.gateway import PersistenceGateway
from rental_monitor.metrics import active_queries
from rental_monitor.schemas.queries import SavedQuery
from rental_monitor.services.notifications import NotificationDispatcher
from rental_monitor.services.query_processor import QueryProcessor
from rental_monitor.utils.datetime import ms_to_seconds
from rental_monitor.utils.throttle import FixedDelay

logger = structlog.get_logger(__name__)


@dataclass
class UserResult:
    user_id: str
    new_count: int = 0
    notified: bool = False
    errors: list[str] = field(default_factory=list)


@dataclass
class RunSummary:
    total_new: int = 0
    users_processed: int = 0
    users_notified: int = 0
    errors: list[str] = field(default_factory=list)


def group_by_user(queries: list[SavedQuery]) -> dict[str, list[SavedQuery]]:
    """
    Group queries by owner, keeping load order within each user.

    Queries without a user id cannot be attributed or notified and are dropped.
    """
    grouped: dict[str, list[SavedQuery]] = defaultdict(list)
    dropped = 0
    for query in queries:
        if not query.user_id:
            dropped += 1
            continue
        grouped[query.user_id].append(query)

    if dropped:
        logger.warning("queries_without_user_dropped", count=dropped)
    return dict(grouped)


def chunk(items: list, size: int) -> list[list]:
    size = max(1, size)
    return [items[i : i + size] for i in range(0, len(items), size)]


class MonitorRunner:
    """
    Process every active saved query and send per-user summaries.

    Users in one batch run concurrently on a thread pool; each user's queries
    run one after another in that user's thread. A fixed pause separates
    batches.

    Example:
        >>> runner = MonitorRunner(gateway, processor, dispatcher)
        >>> summary = runner.run()
        >>> summary.total_new
        4
    """

    def __init__(
        self,
        gateway: PersistenceGateway,
        processor: QueryProcessor,
        dispatcher: Optional[NotificationDispatcher] = None,
        batch_size: int = USER_BATCH_SIZE,
        throttle: Optional[FixedDelay] = None,
    ):
        self.gateway = gateway
        self.processor = processor
        self.dispatcher = dispatcher
        self.batch_size = batch_size
        self.throttle = throttle or FixedDelay(ms_to_seconds(BATCH_DELAY_MS))

    def run(self, user_id: Optional[str] = None) -> RunSummary:
        """
        Run the monitor once.

        Args:
            user_id: Restrict the run to one user's queries

        Returns:
            RunSummary: Totals and accumulated error strings

        Raises:
            Exception: If the active queries cannot be loaded
        """
        logger.info("monitor_run_started", user_id=user_id)

        queries = self.gateway.load_active_queries(user_id=user_id)
        active_queries.set(len(queries))

        by_user = group_by_user(queries)
        batches = chunk(list(by_user.items()), self.batch_size)

        summary = RunSummary()
        for batch in self.throttle.paced(batches):
            for user_result in self._run_batch(batch):
                summary.users_processed += 1
                summary.total_new += user_result.new_count
                summary.users_notified += int(user_result.notified)
                summary.errors.extend(user_result.errors)

        logger.info(
            "monitor_run_completed",
            queries=len(queries),
            users=summary.users_processed,
            batches=len(batches),
            total_new=summary.total_new,
            users_notified=summary.users_notified,
            errors=len(summary.errors),
        )
        return summary

    def _run_batch(self, batch: list[tuple[str, list[SavedQuery]]]) -> list[UserResult]:
        results = []
        with ThreadPoolExecutor(max_workers=len(batch)) as pool:
            futures = {
                pool.submit(self._process_user, uid, user_queries): uid
                for uid, user_queries in batch
            }
            for future in as_completed(futures):
                uid = futures[future]
                try:
                    results.append(future.result())
                except Exception as e:
                    logger.exception("user_processing_failed", user_id=uid, error=str(e))
                    results.append(UserResult(user_id=uid, errors=[f"User {uid}: {e}"]))
        return results

    def _process_user(self, user_id: str, queries: list[SavedQuery]) -> UserResult:
        result = UserResult(user_id=user_id)
        contributing: list[SavedQuery] = []

        for query in queries:
            query_result = self.processor.process(query)
            result.errors.extend(query_result.errors)
            if query_result.new_count > 0:
                result.new_count += query_result.new_count
                contributing.append(query)

        logger.info(
            "user_processed",
            user_id=user_id,
            queries=len(queries),
            new_count=result.new_count,
            errors=len(result.errors),
        )

        if result.new_count == 0 or self.dispatcher is None:
            return result

        query_name = (contributing[0].name or None) if len(contributing) == 1 else None
        # Listings are already linked at this point; a push failure must not lose the count
        try:
            notification = self.dispatcher.notify(
                user_id, result.new_count, len(contributing), query_name=query_name
            )
        except Exception as e:
            logger.exception("notification_failed", user_id=user_id, error=str(e))
            result.errors.append(f"Notification for user {user_id} failed: {e}")
            return result

        result.notified = notification.success
        if not notification.success:
            result.errors.extend(notification.errors)
        return result
