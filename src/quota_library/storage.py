# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Single-record JSON cache file.

The whole record is replaced on every write; there are no partial updates.
A missing, unreadable, or corrupt file reads as "no cache" so the next
refresh behaves like a cold start.
"""

import json
import logging
import os
import time
from pathlib import Path
from typing import Any, Dict, Optional, Union

lib_logger = logging.getLogger("quota_library")


class QuotaCacheStore:
    """Read/write access to the cached quota record."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.is_file()

    def mtime(self) -> Optional[float]:
        """Last-modified time as a POSIX timestamp, or None if absent."""
        try:
            return self.path.stat().st_mtime
        except OSError:
            return None

    def age_seconds(self, now: Optional[float] = None) -> Optional[float]:
        """
        Seconds since the cache file was last written.

        Args:
            now: POSIX timestamp to measure against (default: time.time())

        Returns:
            Age in seconds, or None when there is no cache file
        """
        mtime = self.mtime()
        if mtime is None:
            return None
        current = time.time() if now is None else now
        return current - mtime

    def read(self) -> Optional[Dict[str, Any]]:
        """
        Load the cached record.

        Returns:
            The record as a dict, or None if missing or not a JSON object
        """
        if not self.path.exists():
            return None

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return None
        except (json.JSONDecodeError, UnicodeDecodeError, OSError) as e:
            lib_logger.warning(f"Ignoring unreadable quota cache {self.path}: {e}")
            return None

        if not isinstance(data, dict):
            lib_logger.warning(
                f"Ignoring quota cache {self.path}: expected an object, got {type(data).__name__}"
            )
            return None
        return data

    def write(self, record: Dict[str, Any]) -> None:
        """
        Replace the cached record.

        The parent directory is created if needed. Content goes to a
        temporary sibling first and is renamed over the target.
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)

        temp_path = self.path.with_name(f"{self.path.name}.{os.getpid()}.tmp")
        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(record, f, indent=2)
                f.write("\n")
            temp_path.replace(self.path)
        except OSError:
            temp_path.unlink(missing_ok=True)
            raise

        lib_logger.debug(f"Wrote quota cache {self.path}")
