"""Advisory file locking for commands that mutate the local store."""

from __future__ import annotations

import fcntl
import logging
import os
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_LOCK_TIMEOUT = 10.0


class LockTimeoutError(Exception):
    """The lock could not be acquired within the timeout."""

    pass


@contextmanager
def file_lock(
    lock_path: Path,
    timeout: float = DEFAULT_LOCK_TIMEOUT,
    poll_interval: float = 0.05,
) -> Iterator[None]:
    """Hold an exclusive advisory lock on lock_path for the duration of the block.

    Args:
        lock_path: Path to the lock file (created if missing)
        timeout: Maximum time to wait for the lock (seconds)
        poll_interval: Delay between acquisition attempts (seconds)

    Raises:
        LockTimeoutError: If the lock is still held elsewhere after timeout

    Usage:
        with file_lock(Path(".issues/.sync/lock")):
            # Critical section
            pass
    """
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    fd = os.open(lock_path, os.O_RDWR | os.O_CREAT, 0o644)
    try:
        start_time = time.monotonic()
        while True:
            try:
                fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
                break
            except BlockingIOError:
                if time.monotonic() - start_time >= timeout:
                    logger.error("Lock %s still held after %.1fs", lock_path, timeout)
                    raise LockTimeoutError(
                        f"Could not acquire lock on {lock_path} within {timeout}s "
                        "(is another issuesync command running?)"
                    ) from None
                time.sleep(poll_interval)

        logger.debug("Acquired lock %s", lock_path)
        try:
            yield
        finally:
            fcntl.flock(fd, fcntl.LOCK_UN)
            logger.debug("Released lock %s", lock_path)
    finally:
        os.close(fd)
