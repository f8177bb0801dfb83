"""Capture today's WebUntis timetable and append it to the archive.

Meant to run from cron, possibly on several hosts. Settings come from the
environment and a .env file (values in the .env file win).

Run with: python scripts/collect_snapshot.py
Env file: python scripts/collect_snapshot.py --env-file /srv/school-mining/.env
Debug:    python scripts/collect_snapshot.py --log-level DEBUG

Exit codes:
  0 = snapshot archived, or skipped because another host covers this hour
  1 = run failed (message in the log and in the status file)
  2 = configuration error
"""

import argparse
import os
import sys

from dotenv import load_dotenv

# Add project root to path for src imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from src.school_mining.collector import RunOutcome, run_collection  # noqa: E402
from src.school_mining.config import load_config  # noqa: E402
from src.school_mining.errors import ConfigError  # noqa: E402
from src.school_mining.logging import get_logger, setup_logging  # noqa: E402

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments using argparse."""
    parser = argparse.ArgumentParser(
        description="Archive a pseudonymized snapshot of today's timetable.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--env-file",
        type=str,
        default=".env",
        help="Path of the .env file (default: .env).",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        help="Override LOG_LEVEL (DEBUG, INFO, WARNING, ERROR).",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Log in JSON format.",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)

    if not load_dotenv(args.env_file, override=True):
        print(f'Failed to load "{args.env_file}" file.', file=sys.stderr)

    overrides: dict[str, object] = {}
    if args.log_level:
        overrides["log_level"] = args.log_level
    if args.json_logs:
        overrides["log_json"] = True

    try:
        config = load_config(env_file=None, **overrides)
    except ConfigError as e:
        # Logging is configured from the config, so this goes to stderr directly
        setup_logging(log_level="ERROR")
        get_logger(__name__).error("config_invalid", error=str(e))
        return EXIT_CONFIG

    setup_logging(
        json_output=config.log_json,
        log_level=config.log_level,
        log_dir=config.log_path,
    )
    log = get_logger(__name__)
    log.info("logging_configured", log_dir=config.log_path)

    result = run_collection(config)
    if result.outcome is RunOutcome.FAILED:
        return EXIT_FAILED
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
