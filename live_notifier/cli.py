"""
Command-line entry point.

Usage:
    live-notifier
    live-notifier some_streamer
    live-notifier some_streamer --config /etc/live-notifier/config.json
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from live_notifier.config import AppConfig, config_path_from_env, write_template
from live_notifier.errors import LiveNotifierError
from live_notifier.log import setup_logging
from live_notifier.runner import LiveCheckRunner

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="live-notifier",
        description="Announce new Twitch live broadcasts to a Discord webhook",
    )
    parser.add_argument(
        "username",
        nargs="?",
        help="Broadcaster login to check (default: target_user from the config file)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Config file path (default: $LIVE_NOTIFIER_CONFIG or config.json)",
    )
    parser.add_argument(
        "--state",
        type=Path,
        default=None,
        help="State file path (default: $LIVE_NOTIFIER_STATE or state.json)",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """
    Run one live check.

    Returns:
        Process exit status
    """
    args = parse_args(argv)
    setup_logging()

    config_path = args.config or config_path_from_env()
    if not config_path.exists():
        if write_template(config_path):
            logger.info(f"Created template config at {config_path}, fill it in and run again")
        return 0

    try:
        config = AppConfig.from_file(config_path)
        if args.username:
            config.target_user = args.username
        if args.state:
            config.state_path = args.state
        config.validate()
    except LiveNotifierError as e:
        logger.error(f"Configuration error: {e}")
        return 1

    logger.debug(f"Loaded {config!r}")

    try:
        outcome = asyncio.run(LiveCheckRunner(config).run())
    except LiveNotifierError as e:
        logger.error(f"Aborting: {e}")
        return 1

    logger.info(f"Run finished: {outcome.value}")
    return 0 if outcome.ok else 1


if __name__ == "__main__":
    sys.exit(main())
