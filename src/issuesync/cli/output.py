"""Terminal output for command results: one marker, then the message."""

import os
import sys

# ANSI color codes
GREEN = "\033[32m"
YELLOW = "\033[33m"
BLUE = "\033[34m"
RED = "\033[31m"
DIM = "\033[2m"
RESET = "\033[0m"

CHECK = "\u2713"  # ✓
BULLET = "\u2022"  # •
CROSS = "\u2717"  # ✗
WARN = "!"

# Record markers: added, updated, restored, modified, conflict
MARKER_COLORS = {"A": GREEN, "U": BLUE, "R": BLUE, "M": YELLOW, "C": RED}


def _supports_color() -> bool:
    if os.environ.get("NO_COLOR"):
        return False
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _colorize(text: str, color: str) -> str:
    return f"{color}{text}{RESET}" if _supports_color() else text


def _marked(symbol: str, color: str, message: str) -> None:
    print(f"{_colorize(symbol, color)} {message}")


def success(message: str) -> None:
    _marked(CHECK, GREEN, message)


def info(message: str) -> None:
    _marked(BULLET, YELLOW, message)


def warn(message: str) -> None:
    _marked(WARN, YELLOW, message)


def error(message: str) -> None:
    _marked(CROSS, RED, message)


def header(message: str) -> None:
    print(_colorize(message, BLUE))


def record(marker: str, message: str, details: list[str] | None = None) -> None:
    """Print one record line ("U #12 Title") followed by its indented details."""
    _marked(marker, MARKER_COLORS.get(marker, RESET), message)
    for line in details or []:
        print(_colorize(f"    {line}", DIM))
