"""Main entry point for the mentor match suggestion service."""

from dotenv import load_dotenv

load_dotenv()

import argparse
import os
import signal
import sys
import threading
import time
from pathlib import Path
from typing import List, Optional, Tuple

from mentormatch.config.environment import EnvironmentConfig
from mentormatch.config.exceptions import ConfigurationError
from mentormatch.config.loader import load_config
from mentormatch.config.models import AppConfig
from mentormatch.logging import get_logger
from mentormatch.logging.config import configure_logging
from mentormatch.matching.generator import SuggestionGenerator
from mentormatch.notifications.service import NotificationService
from mentormatch.persistence.database import close_database, init_database
from mentormatch.pipeline import RefreshRunResult, SuggestionRefreshJob
from mentormatch.scheduler import SchedulerService

logger = get_logger(__name__, component="cli")


def load_runtime_config(
    config_path: Optional[Path], log_level_override: Optional[str]
) -> Tuple[AppConfig, EnvironmentConfig]:
    """
    Load configuration and settle the effective log level.

    Log level priority: CLI > LOG_LEVEL environment variable > config file.

    Raises:
        ConfigurationError: If configuration is invalid
    """
    app_config, env_config = load_config(config_path)

    if log_level_override:
        env_config.log_level = log_level_override
    elif not env_config.log_level:
        env_config.log_level = app_config.logging.level

    return app_config, env_config


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Mentor Match - scored mentor/mentee suggestion generation service"
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: config.yaml if present)",
    )
    parser.add_argument(
        "--manual-run",
        action="store_true",
        help="Regenerate suggestions once and exit",
    )
    parser.add_argument(
        "--mentor-id",
        default=None,
        help="Limit a manual run to a single mentor",
    )
    parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Suggestions per mentor (overrides MATCH_SUGGESTION_LIMIT)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log level (overrides config and environment)",
    )
    return parser


def log_run_summary(result: RefreshRunResult) -> None:
    logger.info(
        f"Manual refresh completed: {result.total_generated} suggestions "
        f"for {result.mentor_count} mentors, {result.total_errors} failed",
        extra={
            "event": "service.manual_refresh.completed",
            "duration_seconds": result.total_duration_seconds,
            "had_errors": result.had_errors,
            "total_generated": result.total_generated,
            "total_errors": result.total_errors,
        },
    )
    for stats in result.mentor_stats:
        if stats.had_errors:
            logger.warning(
                f"Mentor {stats.mentor_id} failed: {stats.error_message}",
                extra={"event": "service.manual_refresh.mentor_failed", "mentor_id": stats.mentor_id},
            )


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point.

    Returns:
        Exit code (0 for success, non-zero for failure)
    """
    start_time = time.time()
    args = build_parser().parse_args(argv)

    if args.limit is not None and args.limit < 1:
        print("--limit must be a positive integer", file=sys.stderr)
        return 2

    try:
        app_config, env_config = load_runtime_config(args.config, args.log_level)

        environment = os.environ.get("ENVIRONMENT", "local")
        configure_logging(
            level=env_config.log_level,
            format_type=app_config.logging.format,
            environment=environment,
        )

        logger.info(
            "Mentor Match starting",
            extra={
                "event": "service.starting",
                "config_path": str(args.config) if args.config else None,
                "log_level": env_config.log_level,
                "manual_run": args.manual_run,
            },
        )

        init_database(env_config.database_url)

        logger.info(
            "Configuration loaded",
            extra={
                "event": "config.loaded",
                "suggestion_ttl_days": app_config.matching.suggestion_ttl_days,
                "suggestion_limit": app_config.matching.suggestion_limit,
                "regeneration_enabled": app_config.regeneration.enabled,
                "regeneration_interval_seconds": app_config.regeneration.interval_seconds,
                "email_enabled": env_config.email_enabled,
            },
        )

        notification_service = NotificationService(
            env_config=env_config, email_config=app_config.email
        )
        generator = SuggestionGenerator(
            notifier=notification_service, matching_config=app_config.matching
        )
        refresh_job = SuggestionRefreshJob(generator, limit=args.limit)

        if args.manual_run:
            logger.info(
                "Executing manual refresh",
                extra={"event": "service.manual_refresh.starting", "mentor_id": args.mentor_id},
            )
            result = refresh_job.run_once(mentor_id=args.mentor_id)
            log_run_summary(result)

            close_database()
            logger.info(
                "Mentor Match stopped",
                extra={
                    "event": "service.stopping",
                    "uptime_seconds": round(time.time() - start_time, 2),
                },
            )
            return 1 if result.had_errors else 0

        if args.mentor_id:
            logger.warning(
                "--mentor-id only applies to --manual-run; refreshing all mentors",
                extra={"event": "service.argument_ignored"},
            )

        if not app_config.regeneration.enabled:
            logger.warning(
                "Scheduled regeneration is disabled; nothing to do",
                extra={"event": "service.daemon_mode.disabled"},
            )
            close_database()
            return 0

        shutdown_event = threading.Event()
        scheduler_service = SchedulerService(
            job_callable=refresh_job.run_once,
            interval_seconds=app_config.regeneration.interval_seconds,
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
            logger.info(
                "Keyboard interrupt received, shutting down",
                extra={"event": "service.keyboard_interrupt"},
            )
            scheduler_service.shutdown(wait=False)

        close_database()
        logger.info(
            "Mentor Match stopped",
            extra={
                "event": "service.stopping",
                "uptime_seconds": round(time.time() - start_time, 2),
            },
        )
        return 0

    except ConfigurationError as e:
        print(f"Configuration Error: {e}", file=sys.stderr)
        logger.error(
            f"Configuration error: {e}",
            extra={"event": "config.error", "error_type": "ConfigurationError"},
        )
        return 1
    except KeyboardInterrupt:
        print("\nShutdown requested by user", file=sys.stderr)
        return 0
    except Exception as e:
        print(f"Fatal error: {e}", file=sys.stderr)
        logger.critical(
            "Fatal error during startup",
            extra={
                "event": "service.startup.failed",
                "error_type": type(e).__name__,
                "error": str(e),
            },
            exc_info=True,
        )
        return 1


if __name__ == "__main__":
    sys.exit(main())
