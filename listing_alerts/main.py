"""Main entry point for the listing alert engine."""

from dotenv import load_dotenv
load_dotenv()

import argparse
import signal
import sys
import threading
import time
from pathlib import Path
from typing import NamedTuple, Optional, Tuple

from listing_alerts.alerts import DigestScheduler, DispatchRunResult, InstantAlertDispatcher
from listing_alerts.config.environment import EnvironmentConfig
from listing_alerts.config.exceptions import ConfigurationError
from listing_alerts.config.loader import load_config, validate_config_file
from listing_alerts.config.models import AppConfig
from listing_alerts.domain.models import AlertFrequency
from listing_alerts.logging import get_logger
from listing_alerts.logging.config import configure_logging
from listing_alerts.matching import FilterMatcher
from listing_alerts.notifications import (
    BackgroundNotificationSink,
    EmailNotificationSink,
    NotificationSink,
)
from listing_alerts.persistence import close_database, init_database, sql_store_scope
from listing_alerts.scheduler import SchedulerService

logger = get_logger(__name__, component="cli")

SHUTDOWN_DRAIN_SECONDS = 30


class Engine(NamedTuple):
    """Wired dispatchers plus the sink they share."""

    instant: InstantAlertDispatcher
    digest: DigestScheduler
    sink: NotificationSink


def load_runtime_config(
    config_path: Optional[Path], log_level_override: Optional[str]
) -> Tuple[AppConfig, EnvironmentConfig]:
    """
    Load configuration and resolve the effective log level.

    Log level priority: CLI > LOG_LEVEL environment variable > config file.

    Raises:
        ConfigurationError: If configuration is invalid
    """
    app_config, env_config = load_config(config_path)

    if log_level_override:
        env_config.log_level = log_level_override
    elif not env_config.log_level:
        env_config.log_level = app_config.logging.level or "INFO"

    return app_config, env_config


def build_engine(app_config: AppConfig, env_config: EnvironmentConfig) -> Engine:
    """Wire the e-mail sink, optional background pool and both dispatchers."""
    sink: NotificationSink = EmailNotificationSink(
        env_config=env_config,
        email_config=app_config.email,
        links_config=app_config.links,
    )
    if app_config.delivery.background:
        sink = BackgroundNotificationSink(sink, max_workers=app_config.delivery.max_workers)

    matcher = FilterMatcher()
    instant = InstantAlertDispatcher(store_scope=sql_store_scope, sink=sink, matcher=matcher)
    digest = DigestScheduler(
        store_scope=sql_store_scope,
        sink=sink,
        digest_config=app_config.digest,
        matcher=matcher,
    )
    return Engine(instant=instant, digest=digest, sink=sink)


def shutdown_engine(engine: Engine) -> None:
    """Drain queued deliveries before the database goes away."""
    if isinstance(engine.sink, BackgroundNotificationSink):
        if not engine.sink.wait_idle(timeout=SHUTDOWN_DRAIN_SECONDS):
            logger.warning(
                "Deliveries still pending at shutdown",
                extra={"event": "service.shutdown.pending_deliveries"},
            )
        engine.sink.shutdown(wait_for_pending=False)


def log_run_summary(result: DispatchRunResult) -> None:
    logger.info(
        f"{result.trigger} run finished: {result.searches_evaluated} searches evaluated, "
        f"{result.dispatched} dispatched, {result.duplicates} duplicates, "
        f"{result.conflicts} conflicts, {result.failures} failed",
        extra={
            "event": "service.run.completed",
            "trigger": result.trigger,
            "run_id": result.run_id,
            "had_errors": result.had_errors,
            "duration_seconds": result.duration_seconds,
        },
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Listing alert engine - saved-search matching, instant alerts and digests"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: config.yaml, then config/config.yaml)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (overrides config and environment)",
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--run-digest",
        choices=[AlertFrequency.DAILY.value, AlertFrequency.WEEKLY.value],
        help="Run one digest immediately and exit",
    )
    mode.add_argument(
        "--publish",
        metavar="LISTING_ID",
        help="Send instant alerts for a stored, published listing and exit",
    )
    mode.add_argument(
        "--check-config",
        action="store_true",
        help="Validate the configuration file and exit",
    )
    return parser


def main(argv=None) -> int:
    """
    Main entry point for the listing alert engine.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    start_time = time.time()
    args = build_parser().parse_args(argv)

    if args.check_config:
        return 0 if validate_config_file(args.config or Path("config.yaml")) else 1

    engine: Optional[Engine] = None
    try:
        app_config, env_config = load_runtime_config(args.config, args.log_level)
        configure_logging(
            level=env_config.log_level,
            format_type=app_config.logging.format,
            environment=env_config.environment,
        )

        logger.info(
            "Listing alert engine starting",
            extra={
                "event": "service.starting",
                "log_level": env_config.log_level,
                "mode": "digest" if args.run_digest else "publish" if args.publish else "daemon",
            },
        )

        init_database(env_config.database_url)
        engine = build_engine(app_config, env_config)

        if args.run_digest:
            result = engine.digest.run_digest(AlertFrequency(args.run_digest))
            log_run_summary(result)
            return 1 if result.had_errors else 0

        if args.publish:
            result = engine.instant.on_publish_by_id(args.publish)
            log_run_summary(result)
            return 1 if result.had_errors else 0

        shutdown_event = threading.Event()
        scheduler_service = SchedulerService(
            digest_callable=engine.digest.run_digest,
            digest_config=app_config.digest,
            shutdown_event=shutdown_event,
        )

        def signal_handler(signum, frame):
            logger.info(
                f"Received signal {signum}, shutting down",
                extra={"event": "service.signal_received", "signal": signum},
            )
            scheduler_service.shutdown(wait=False)

        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

        scheduler_service.start()
        logger.info(
            "Scheduler started. Press Ctrl+C to stop",
            extra={"event": "service.daemon_mode.started"},
        )

        try:
            shutdown_event.wait()
        except KeyboardInterrupt:
            scheduler_service.shutdown(wait=False)
        return 0

    except ConfigurationError as e:
        print(f"Configuration Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nShutdown requested by user", file=sys.stderr)
        return 0
    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        logger.critical(
            "Fatal error",
            extra={"event": "service.failed", "error_type": type(e).__name__},
            exc_info=True,
        )
        return 1
    finally:
        if engine is not None:
            shutdown_engine(engine)
        close_database()
        logger.info(
            "Listing alert engine stopped",
            extra={
                "event": "service.stopping",
                "uptime_seconds": round(time.time() - start_time, 2),
            },
        )


if __name__ == "__main__":
    sys.exit(main())
