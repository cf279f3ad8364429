#!/usr/bin/env python3
"""
CLI application that collects host metrics on a schedule and pushes them to
Graphite through the carbon pickle receiver.
"""
import argparse
import logging
import sys
import time
from typing import List

from graphite_pusher import config as pusher_config
from graphite_pusher.collector import Collector
from graphite_pusher.pusher import GraphitePusher
from collectors.system_collector.system_collector import SystemCollector

# Setup logging
logger = logging.getLogger(__name__)

# Collector types that can be selected with --collectors
COLLECTORS = {
    'system': SystemCollector,
}


def setup_logging(log_level: str) -> None:
    """
    Setup logging with the specified log level.

    Args:
        log_level (str): Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    numeric_level = getattr(logging, log_level.upper(), None)
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {log_level}")

    logging.basicConfig(
        level=numeric_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def build_collectors(collector_types: List[str], prefix: str) -> List[Collector]:
    """
    Instantiate the requested collectors.

    Args:
        collector_types (list): Collector type names
        prefix (str): Metric path prefix, or None for each collector's default

    Returns:
        list: Collector instances
    """
    collectors = []
    for collector_type in collector_types:
        collector_class = COLLECTORS.get(collector_type.lower())
        if collector_class is None:
            logger.error("Collector type not found: %s. Available collectors: %s",
                         collector_type, list(COLLECTORS))
            continue
        collectors.append(collector_class(prefix=prefix))
        logger.info("Registered collector: %s", collector_type)
    return collectors


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description='Collect host metrics and push them to Graphite.',
        formatter_class=argparse.ArgumentDefaultsHelpFormatter
    )

    # General options
    parser.add_argument('--log-level', type=str, default=pusher_config.LOG_LEVEL,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        help='Log level')
    parser.add_argument('--interval', type=int, default=60,
                        help='Interval between collections in seconds')
    parser.add_argument('--count', type=int, default=0,
                        help='Number of collection rounds (0 for infinite)')
    parser.add_argument('--dry-run', action='store_true',
                        help='Do not push samples, just log them')
    parser.add_argument('--collectors', type=str, nargs='*', default=['system'],
                        help='Collectors to run')
    parser.add_argument('--prefix', type=str, default=None,
                        help='Metric path prefix (default: servers.<hostname>)')

    # Pusher configuration
    parser.add_argument('--host', type=str, default=pusher_config.HOST,
                        help='Carbon host')
    parser.add_argument('--port', type=int, default=pusher_config.PORT,
                        help='Carbon pickle receiver port')
    parser.add_argument('--frequency', type=float, default=pusher_config.FREQUENCY,
                        help='Flushes per minute')
    parser.add_argument('--shutdown-timeout', type=float, default=30,
                        help='Seconds to wait for queued samples to be sent on exit')

    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level)

    collectors = build_collectors(args.collectors, args.prefix)
    if not collectors:
        logger.error("No collectors to run.")
        return 1

    pusher = GraphitePusher(host=args.host, port=args.port, frequency=args.frequency)
    if not args.dry_run:
        pusher.start()

    # Run collection rounds
    round_count = 0
    next_collection_time = time.time()
    try:
        while args.count == 0 or round_count < args.count:
            current_time = time.time()

            # Ensure we're on schedule
            if current_time > next_collection_time:
                next_collection_time = current_time

            round_count += 1
            logger.info("Collection round %s%s", round_count,
                        ("/%s" % args.count if args.count > 0 else ""))

            for collector in collectors:
                collector.collect_and_push(pusher, dry_run=args.dry_run)

            if args.count == 0 or round_count < args.count:
                next_collection_time += args.interval
                wait_time = next_collection_time - time.time()

                if wait_time > 0:
                    logger.debug("Waiting %.2f seconds until next collection...", wait_time)
                    time.sleep(wait_time)
                else:
                    logger.warning("Collection took longer than interval. Next collection will start immediately.")

    except KeyboardInterrupt:
        logger.info("Collection interrupted by user.")

    if not args.dry_run:
        logger.info("Flushing %s queued samples...", pusher.get_queued_count())
        pusher.shutdown(timeout=args.shutdown_timeout)

    queued_count = pusher.get_queued_count()
    if queued_count > 0:
        logger.warning("%s samples were not sent.", queued_count)

    logger.info("Collection completed.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
