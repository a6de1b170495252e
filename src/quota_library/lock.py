# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
PID-file marker for the in-flight background refresh.

The marker holds the process id of the worker doing the refresh. It is
advisory: ownership is judged by whether that process is still alive, so
a marker left behind by a crashed worker is simply ignored. Checking and
claiming are two separate steps and two callers may both get through;
the cost is a duplicate fetch, never a corrupt cache.
"""

import logging
import os
from pathlib import Path
from typing import Optional, Union

lib_logger = logging.getLogger("quota_library")


def pid_is_alive(pid: int) -> bool:
    """Return True if a process with this id currently exists."""
    if pid <= 0:
        return False
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        # Exists but belongs to another user
        return True
    except OSError:
        return False
    return True


class RefreshLock:
    """Lock marker file naming the refresh worker's PID."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def holder_pid(self) -> Optional[int]:
        """PID recorded in the marker, or None if absent or unreadable."""
        try:
            text = self.path.read_text(encoding="utf-8").strip()
        except (OSError, UnicodeDecodeError):
            return None
        if not text.isdigit():
            return None
        return int(text)

    def is_held(self) -> bool:
        """True when the marker names a live process."""
        pid = self.holder_pid()
        if pid is None:
            return False
        if pid_is_alive(pid):
            return True
        lib_logger.debug(f"Ignoring stale refresh lock for dead pid {pid}")
        return False

    def claim(self, pid: int) -> None:
        """Record ``pid`` as the in-flight refresh."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(f"{pid}\n", encoding="utf-8")

    def release(self, pid: Optional[int] = None) -> bool:
        """
        Remove the marker.

        Args:
            pid: When given, only remove the marker if it still names this pid

        Returns:
            True if a marker was removed
        """
        if pid is not None:
            holder = self.holder_pid()
            if holder is not None and holder != pid:
                return False
        try:
            self.path.unlink()
        except FileNotFoundError:
            return False
        return True
