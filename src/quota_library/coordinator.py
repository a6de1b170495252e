# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Refresh coordination for the cached quota record.

QuotaCoordinator.get() is called once per status line render and must
return quickly. It decides whether the cache is fresh enough, whether a
refresh is already running, and whether to fetch inline (cold start) or
hand the fetch to a detached worker process. Whatever happens, the
caller gets a projection of what is on disk right now.

Usage:
    coordinator = QuotaCoordinator()
    result = coordinator.get(ttl=60)
    print(result.pct, result.resets_in)
"""

import asyncio
import logging
import os
import subprocess
import sys
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Any, Callable, Dict, Optional

import httpx

from .config import QuotaConfig
from .core.types import QuotaResult
from .fetcher import UsageFetcher
from .lock import RefreshLock
from .payload import build_degraded, build_success
from .projector import project
from .storage import QuotaCacheStore
from .utils.time_format import utc_now

lib_logger = logging.getLogger("quota_library")

WORKER_MODULE = "quota_library.worker"


async def refresh_once(
    config: QuotaConfig,
    store: Optional[QuotaCacheStore] = None,
    fetcher: Optional[UsageFetcher] = None,
    client: Optional[httpx.AsyncClient] = None,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """
    Perform one fetch attempt and write the resulting record.

    Fetch failures produce a stale record built from the previous one;
    nothing is raised for them.

    Args:
        config: Resolved configuration
        store: Cache store (default: one for config.cache_file)
        fetcher: Usage fetcher (default: one for config)
        client: Optional HTTP client for the fetch
        now: Attempt timestamp (default: current time)

    Returns:
        The record that was written
    """
    store = store or QuotaCacheStore(config.cache_file)
    fetcher = fetcher or UsageFetcher(config)
    now = now or utc_now()

    outcome = await fetcher.fetch(client)

    if outcome.ok:
        record = build_success(outcome.body or {}, now, config.api_url)
    else:
        record = build_degraded(
            store.read(), now, outcome.error, outcome.status_code, config.api_url
        )

    try:
        store.write(record)
    except OSError as e:
        lib_logger.error(f"Failed to write quota cache {store.path}: {e}")
    return record


class QuotaCoordinator:
    """
    Decides when to refresh the quota cache and serves the cached result.

    At most one refresh runs at a time on the machine, tracked by a PID
    lock marker shared by every process using the same lock file.
    """

    def __init__(
        self,
        config: Optional[QuotaConfig] = None,
        store: Optional[QuotaCacheStore] = None,
        lock: Optional[RefreshLock] = None,
        fetcher: Optional[UsageFetcher] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize QuotaCoordinator.

        Args:
            config: Configuration (default: QuotaConfig.from_env())
            store: Cache store override
            lock: Lock marker override
            fetcher: Fetcher used for inline refreshes
            clock: Returns the current aware datetime (default: utc_now)
        """
        self.config = config or QuotaConfig.from_env()
        self.store = store or QuotaCacheStore(self.config.cache_file)
        self.lock = lock or RefreshLock(self.config.lock_file)
        self.fetcher = fetcher or UsageFetcher(self.config)
        self.clock = clock or utc_now
        self._worker: Optional[subprocess.Popen] = None

    # =========================================================================
    # DECISIONS
    # =========================================================================

    def needs_refresh(self, ttl: int) -> bool:
        """True when the cache file is missing or at least ``ttl`` seconds old."""
        age = self.store.age_seconds(self.clock().timestamp())
        return age is None or age >= ttl

    def refresh_in_flight(self) -> bool:
        self._reap_worker()
        return self.lock.is_held()

    def _reap_worker(self) -> None:
        """
        Collect the last spawned worker if it has exited.

        An exited child stays a zombie until reaped and would still pass
        the liveness check, so a marker it left behind is removed here.
        """
        if self._worker is None or self._worker.poll() is None:
            return
        if self.lock.holder_pid() == self._worker.pid:
            self.lock.release(self._worker.pid)
            lib_logger.debug(f"Released refresh lock of finished worker (pid {self._worker.pid})")
        self._worker = None

    # =========================================================================
    # REFRESH PATHS
    # =========================================================================

    def _refresh_sync(self) -> Dict[str, Any]:
        def run() -> Dict[str, Any]:
            return asyncio.run(
                refresh_once(self.config, self.store, self.fetcher, now=self.clock())
            )

        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return run()

        # Called from inside an event loop: run the fetch on its own loop in a thread
        with ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(run).result()

    def _spawn_background_refresh(self) -> int:
        """
        Start a detached worker process that refreshes the cache.

        Returns:
            PID of the worker

        Raises:
            OSError: if the process could not be started
        """
        env = dict(os.environ)
        env.update(self.config.to_env())

        kwargs: Dict[str, Any] = {
            "stdin": subprocess.DEVNULL,
            "stdout": subprocess.DEVNULL,
            "stderr": subprocess.DEVNULL,
            "close_fds": True,
            "env": env,
        }
        if os.name == "nt":
            kwargs["creationflags"] = (
                subprocess.DETACHED_PROCESS | subprocess.CREATE_NEW_PROCESS_GROUP
            )
        else:
            kwargs["start_new_session"] = True

        self._worker = subprocess.Popen([sys.executable, "-m", WORKER_MODULE], **kwargs)
        return self._worker.pid

    def _dispatch_background(self) -> None:
        try:
            pid = self._spawn_background_refresh()
        except OSError as e:
            lib_logger.warning(
                f"Could not start background quota refresh ({e}); refreshing inline"
            )
            self._refresh_sync()
            return

        try:
            self.lock.claim(pid)
        except OSError as e:
            lib_logger.warning(f"Could not write refresh lock {self.lock.path}: {e}")
        lib_logger.debug(f"Started background quota refresh (pid {pid})")

        # A fast worker may have released the marker before it was claimed
        self._reap_worker()

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    def get(self, ttl: Optional[int] = None) -> QuotaResult:
        """
        Return the cached quota, refreshing first if needed.

        - Cache younger than ``ttl``: no refresh.
        - Refresh already running (live PID in the lock): no refresh.
        - No usable cache: fetch inline so the first call is not empty.
        - Otherwise: start a background refresh and serve the current cache.

        Args:
            ttl: Freshness window in seconds (default: config.default_ttl)

        Returns:
            Projection of the cache file as it is after the decision
        """
        ttl = self.config.default_ttl if ttl is None else ttl

        if self.needs_refresh(ttl) and not self.refresh_in_flight():
            if self.store.read() is None:
                lib_logger.debug("No usable quota cache, refreshing inline")
                self._refresh_sync()
            else:
                self._dispatch_background()

        return project(self.store.read(), now=self.clock())

    def refresh_now(self) -> QuotaResult:
        """Fetch inline regardless of cache age and return the new result."""
        self._refresh_sync()
        return project(self.store.read(), now=self.clock())

    def read(self) -> Optional[Dict[str, Any]]:
        """Raw cached record, for diagnostics."""
        return self.store.read()


def get_quota(ttl: Optional[int] = None, config: Optional[QuotaConfig] = None) -> QuotaResult:
    """One-call entry point for status line scripts."""
    return QuotaCoordinator(config).get(ttl)
