"""Structured logging configuration using structlog.

Provides JSON output for production and human-readable console output for
development. Log lines go to stderr and, when a log directory is given, to a
file rotated every midnight (ten old files are kept).
All logging throughout the project should use get_logger() instead of print().
"""

import logging
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

import structlog

LOG_FILE_NAME = "school_mining.log"
LOG_BACKUP_COUNT = 10


def setup_logging(
    json_output: bool = False,
    log_level: str = "WARNING",
    log_dir: str | Path | None = None,
) -> None:
    """Configure structlog with appropriate processors and output format.

    Args:
        json_output: If True, output JSON (production). If False, console format (dev).
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_dir: Directory for the rotated log file. None logs to stderr only.
    """
    # Convert string log level to logging constant
    numeric_level = getattr(logging, log_level.upper(), logging.WARNING)

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    if json_output:
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        # Escape codes would end up in the log file
        processors.append(structlog.dev.ConsoleRenderer(colors=log_dir is None))

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_dir is not None:
        directory = Path(log_dir)
        directory.mkdir(parents=True, exist_ok=True)
        handlers.append(
            TimedRotatingFileHandler(
                filename=str(directory / LOG_FILE_NAME),
                when="midnight",
                backupCount=LOG_BACKUP_COUNT,
                encoding="utf-8",
            )
        )

    # structlog renders the line, stdlib logging fans it out to the handlers
    logging.basicConfig(
        format="%(message)s",
        handlers=handlers,
        level=numeric_level,
        force=True,
    )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.BoundLogger:
    """Get a logger instance bound with the module name.

    Args:
        name: Logger name (typically __name__ from calling module).

    Returns:
        Configured structlog logger with module name context.
    """
    return structlog.get_logger(name)
