#!/usr/bin/env python3
"""
Command-center snapshot runner.

Computes the command-center payload for one or more properties and writes
it to the configured storage. It can be scheduled via cron, or run as a
daemon with built-in scheduling.

Usage:
  python -m jobs.snapshot_runner --property ID [--property ID ...]
                                 [--days DAYS] [--verbose] [--every {daily|weekly}]

Options:
  --property ID              Property to snapshot (repeatable)
  --days DAYS                Length of the reporting window (default: 30)
  --verbose                  Enable verbose logging
  --every {daily|weekly}     Run continuously on schedule
"""
import os
import sys
import time
import logging
import argparse
from typing import List, Optional

import schedule

# Add the parent directory to sys.path if running as script
if __name__ == "__main__" and __package__ is None:
    sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from connectors import get_data_access  # noqa: E402
from connectors.storage import dump_raw_to_storage  # noqa: E402
from engine import Period, get_command_center_data  # noqa: E402
from engine.settings import DEFAULT_PERIOD_DAYS  # noqa: E402

logger = logging.getLogger("snapshot-runner")

# Local hour (UTC+3) the scheduled runs start at
RUN_LOCAL_HOUR = 2
LOCAL_UTC_OFFSET = 3


def setup_logging(log_file: str = "snapshot_run.log") -> None:
    """Send runner logs to stdout and to a log file."""
    # force: importing engine already attached a stderr handler to the root logger
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(log_file)
        ],
        force=True,
    )


def load_env_file(env_path: Optional[str] = None) -> None:
    """Load environment variables from .env file if present."""
    env_path = env_path or os.path.join(
        os.path.dirname(os.path.dirname(os.path.abspath(__file__))), '.env'
    )
    if os.path.exists(env_path):
        logger.info(f"Loading environment from {env_path}")
        with open(env_path) as f:
            for line in f:
                line = line.strip()
                if line and not line.startswith('#') and '=' in line:
                    key, value = line.split('=', 1)
                    os.environ[key.strip()] = value.strip()


def run_snapshot(property_ids: List[str], days: int = DEFAULT_PERIOD_DAYS,
                 verbose: bool = False, data_access=None) -> bool:
    """Compute and store one command-center snapshot per property."""
    logger.info("Starting snapshot run")

    if verbose:
        logger.setLevel(logging.DEBUG)
        logger.debug("Verbose logging enabled")

    try:
        data_access = data_access or get_data_access()
        period = Period.last_days(days)

        for property_id in property_ids:
            logger.info(f"Computing command center for {property_id}: {period.start} to {period.end}")
            payload = get_command_center_data(property_id, period, data_access)
            location = dump_raw_to_storage(payload, "command_center", property_id)
            logger.info(f"Stored snapshot for {property_id} at {location}")

        logger.info("Snapshot run completed successfully")
        return True

    except Exception as e:
        logger.error(f"Error during snapshot run: {str(e)}", exc_info=True)
        return False


def schedule_snapshots(property_ids: List[str], schedule_type: str = "daily",
                       days: int = DEFAULT_PERIOD_DAYS, verbose: bool = False):
    """Schedule snapshot runs based on schedule_type."""
    utc_hour = (RUN_LOCAL_HOUR - LOCAL_UTC_OFFSET) % 24
    if schedule_type == "daily":
        schedule.every().day.at(f"{utc_hour:02d}:00").do(
            run_snapshot, property_ids, days=days, verbose=verbose)
        logger.info(f"Scheduled daily snapshot at {RUN_LOCAL_HOUR:02d}:00 local time")
    elif schedule_type == "weekly":
        schedule.every().monday.at(f"{utc_hour:02d}:00").do(
            run_snapshot, property_ids, days=days, verbose=verbose)
        logger.info(f"Scheduled weekly snapshot on Monday at {RUN_LOCAL_HOUR:02d}:00 local time")
    else:
        raise ValueError(f"Invalid schedule type: {schedule_type}")

    # Next run, so callers can report it
    return schedule.next_run()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Store command-center snapshots")
    parser.add_argument("--property", dest="properties", action="append", required=True,
                        help="Property id to snapshot (repeatable)")
    parser.add_argument("--days", type=int, default=DEFAULT_PERIOD_DAYS,
                        help="Length of the reporting window in days")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging")
    parser.add_argument("--every", choices=["daily", "weekly"], default=None,
                        help="Schedule automatic runs")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging()

    # Storage and connector settings may live in .env
    load_env_file()

    if not args.every:
        success = run_snapshot(args.properties, days=args.days, verbose=args.verbose)
        return 0 if success else 1

    next_run = schedule_snapshots(args.properties, args.every, args.days, args.verbose)
    logger.info(f"Next scheduled run: {next_run}")

    # Take one snapshot now instead of waiting for the first slot
    run_snapshot(args.properties, days=args.days, verbose=args.verbose)

    logger.info("Running in scheduler mode. Press Ctrl+C to exit.")
    try:
        while True:
            schedule.run_pending()
            time.sleep(60)
    except KeyboardInterrupt:
        logger.info("Scheduler stopped by user")
    return 0


if __name__ == "__main__":
    sys.exit(main())
