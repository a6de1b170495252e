# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Background refresh worker.

Started detached by QuotaCoordinator with its configuration passed through
environment variables:

    python -m quota_library.worker

Runs one fetch attempt, writes the cache, and removes the lock marker it
owns. Exit code 0 when the fetch succeeded, 1 when a stale record was
written instead.
"""

import asyncio
import logging
import os
import sys
from typing import Optional

from .config import QuotaConfig
from .coordinator import refresh_once
from .lock import RefreshLock

lib_logger = logging.getLogger("quota_library")


def _configure_logging(config: QuotaConfig) -> None:
    if not config.log_file:
        return
    try:
        config.log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(config.log_file, encoding="utf-8")
    except OSError:
        return
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s [pid %(process)d] %(message)s")
    )
    lib_logger.addHandler(handler)
    lib_logger.setLevel(logging.DEBUG)


def run_worker(config: Optional[QuotaConfig] = None) -> int:
    """
    Refresh the cache once and release the lock.

    Returns:
        Process exit code
    """
    config = config or QuotaConfig.from_env()
    _configure_logging(config)

    lock = RefreshLock(config.lock_file)
    pid = os.getpid()
    lib_logger.debug(f"Background quota refresh started (pid {pid})")
    try:
        record = asyncio.run(refresh_once(config))
    finally:
        lock.release(pid)

    if record.get("valid") is True:
        lib_logger.debug("Background quota refresh succeeded")
        return 0
    lib_logger.info(f"Background quota refresh degraded: {record.get('error')}")
    return 1


def main() -> None:
    sys.exit(run_worker())


if __name__ == "__main__":
    main()
