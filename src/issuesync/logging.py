"""Logging configuration for issuesync."""

import logging
import sys
from datetime import UTC, datetime
from pathlib import Path

LOGGER_NAME = "issuesync"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def _level_for(verbose: int) -> int:
    """Map -v count to a level; file-only logging runs at INFO."""
    return logging.DEBUG if verbose >= 2 else logging.INFO


def setup_logging(verbose: int = 0, log_file: Path | None = None, command: str | None = None) -> None:
    """Configure logging based on verbosity level and optional file output.

    Warnings about skipped or best-effort work are reported by the CLI from
    command results, so nothing is logged to the terminal unless asked for.

    Args:
        verbose: Verbosity level (0=off, 1=INFO, 2+=DEBUG)
        log_file: Optional path to write logs to file
        command: Subcommand name, included in the startup banner
    """
    logger = logging.getLogger(LOGGER_NAME)

    # Repeated setup (tests, sync running push then pull) must not stack handlers
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    if verbose == 0 and log_file is None:
        logger.addHandler(logging.NullHandler())
        return

    level = _level_for(verbose)
    logger.setLevel(level)
    logger.propagate = False
    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    if verbose > 0:
        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setLevel(level)
        stderr_handler.setFormatter(formatter)
        logger.addHandler(stderr_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    # Startup delimiter makes separate runs easy to find in a shared log file
    timestamp = datetime.now(UTC).strftime("%Y-%m-%d %H:%M:%S UTC")
    logger.info("=" * 60)
    logger.info(
        "issuesync %s | %s | level=%s",
        command or "starting",
        timestamp,
        logging.getLevelName(level),
    )
    logger.info("=" * 60)
