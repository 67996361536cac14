import argparse
import sys
from typing import Optional

import structlog

from rental_monitor.config import DRY_RUN, PUSHGATEWAY_URL
from rental_monitor.db.engine import check_engine_health, create_db_engine
from rental_monitor.db.gateway import PersistenceGateway
from rental_monitor.logging_config import setup_logging
from rental_monitor.metrics import push_run_metrics
from rental_monitor.network.apns import NotificationConfigError
from rental_monitor.network.client import ListingSourceClient
from rental_monitor.services.enrichment import Enricher
from rental_monitor.services.monitor import MonitorRunner
from rental_monitor.services.notifications import NotificationDispatcher, build_dispatcher
from rental_monitor.services.query_processor import QueryProcessor

logger = structlog.get_logger(__name__)


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="rental-monitor",
        description="Search every active saved query once and notify users of new listings.",
    )
    parser.add_argument("--user-id", help="Only process this user's saved queries")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        default=DRY_RUN,
        help="Search and enrich but skip database writes",
    )
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    """
    Run the monitor once.

    Returns:
        int: Exit code; 1 only when the active queries could not be loaded
    """
    args = parse_args(argv)
    setup_logging()

    engine = create_db_engine()
    if not check_engine_health(engine):
        logger.error("database_unreachable")
        return 1

    gateway = PersistenceGateway(engine, dry_run=args.dry_run)
    source = ListingSourceClient()

    dispatcher: Optional[NotificationDispatcher] = None
    if args.dry_run:
        logger.info("[DRY RUN] Notifications disabled")
    else:
        try:
            dispatcher = build_dispatcher(gateway)
        except NotificationConfigError as e:
            logger.warning("notifications_disabled", error=str(e))

    runner = MonitorRunner(
        gateway,
        QueryProcessor(source, gateway, Enricher(source)),
        dispatcher=dispatcher,
    )

    try:
        summary = runner.run(user_id=args.user_id)
    except Exception as e:
        logger.exception("active_queries_load_failed", error=str(e))
        return 1
    finally:
        if dispatcher is not None:
            dispatcher.shutdown()
        source.close()
        engine.dispose()
        push_run_metrics(PUSHGATEWAY_URL)

    for error in summary.errors:
        logger.warning("run_error", error=error)

    logger.info(
        "monitor_finished",
        dry_run=args.dry_run,
        total_new=summary.total_new,
        users_processed=summary.users_processed,
        users_notified=summary.users_notified,
        errors=len(summary.errors),
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
