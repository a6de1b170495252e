# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
Runtime configuration for the quota cache.

Precedence (highest first):
    1. Process environment
    2. .env file (QUOTA_ENV_FILE, default ~/.claude/quota.env)
    3. Built-in defaults

Environment variables:
    CLAUDE_CONFIG_DIR: Base directory for all files (default: ~/.claude)
    QUOTA_CACHE_FILE: Cache record path (default: <base>/quota-data.json)
    QUOTA_LOCK_FILE: Lock marker path (default: <base>/.quota-fetch.lock)
    QUOTA_CREDENTIALS_FILE: OAuth credentials (default: <base>/.credentials.json)
    QUOTA_API_URL: Usage endpoint
    QUOTA_BETA: Beta identifier sent in the anthropic-beta header
    QUOTA_FETCH_TIMEOUT: Fetch timeout in seconds (default: 20)
    QUOTA_TTL: Default freshness window in seconds (default: 60)
    QUOTA_LOG_FILE: Optional log file for the background worker
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional

from dotenv import dotenv_values

from .core.constants import (
    DEFAULT_CACHE_FILENAME,
    DEFAULT_CLAUDE_DIR_NAME,
    DEFAULT_CREDENTIALS_FILENAME,
    DEFAULT_ENV_FILENAME,
    DEFAULT_FETCH_TIMEOUT_SECONDS,
    DEFAULT_LOCK_FILENAME,
    DEFAULT_TTL_SECONDS,
    USAGE_API_BETA,
    USAGE_API_URL,
)

lib_logger = logging.getLogger("quota_library")


def _lookup(name: str, env: Mapping[str, str], file_values: Mapping[str, Optional[str]]) -> Optional[str]:
    value = env.get(name)
    if value is None or value == "":
        value = file_values.get(name)
    if value is None or str(value).strip() == "":
        return None
    return str(value).strip()


def _parse_int(name: str, raw: Optional[str], default: int, minimum: int = 0) -> int:
    """Parse an integer setting with fallback to default."""
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        lib_logger.warning(f"Invalid {name} value {raw!r}, using default {default}")
        return default
    if value < minimum:
        lib_logger.warning(f"{name} must be >= {minimum}, using default {default}")
        return default
    return value


@dataclass
class QuotaConfig:
    """Resolved locations and tunables for one coordinator."""

    cache_file: Path
    lock_file: Path
    credentials_file: Path
    api_url: str = USAGE_API_URL
    beta: str = USAGE_API_BETA
    fetch_timeout: int = DEFAULT_FETCH_TIMEOUT_SECONDS
    default_ttl: int = DEFAULT_TTL_SECONDS
    log_file: Optional[Path] = None

    @classmethod
    def for_directory(cls, base_dir: Path, **overrides) -> "QuotaConfig":
        """Build a config with every file placed under ``base_dir``."""
        base_dir = Path(base_dir)
        values = {
            "cache_file": base_dir / DEFAULT_CACHE_FILENAME,
            "lock_file": base_dir / DEFAULT_LOCK_FILENAME,
            "credentials_file": base_dir / DEFAULT_CREDENTIALS_FILENAME,
        }
        values.update(overrides)
        return cls(**values)

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        env_file: Optional[Path] = None,
    ) -> "QuotaConfig":
        """
        Resolve configuration from the environment and an optional .env file.

        Args:
            environ: Mapping to read instead of os.environ
            env_file: Explicit .env path (overrides QUOTA_ENV_FILE)

        Returns:
            QuotaConfig
        """
        env = os.environ if environ is None else environ

        base_raw = env.get("CLAUDE_CONFIG_DIR")
        base_dir = Path(base_raw).expanduser() if base_raw else Path.home() / DEFAULT_CLAUDE_DIR_NAME

        if env_file is None:
            env_file_raw = env.get("QUOTA_ENV_FILE")
            env_file = Path(env_file_raw).expanduser() if env_file_raw else base_dir / DEFAULT_ENV_FILENAME

        file_values: Dict[str, Optional[str]] = {}
        if env_file.is_file():
            file_values = dict(dotenv_values(env_file))
            lib_logger.debug(f"Loaded quota settings from {env_file}")

        def path_setting(name: str, default: Path) -> Path:
            raw = _lookup(name, env, file_values)
            return Path(raw).expanduser() if raw else default

        log_raw = _lookup("QUOTA_LOG_FILE", env, file_values)

        return cls(
            cache_file=path_setting("QUOTA_CACHE_FILE", base_dir / DEFAULT_CACHE_FILENAME),
            lock_file=path_setting("QUOTA_LOCK_FILE", base_dir / DEFAULT_LOCK_FILENAME),
            credentials_file=path_setting(
                "QUOTA_CREDENTIALS_FILE", base_dir / DEFAULT_CREDENTIALS_FILENAME
            ),
            api_url=_lookup("QUOTA_API_URL", env, file_values) or USAGE_API_URL,
            beta=_lookup("QUOTA_BETA", env, file_values) or USAGE_API_BETA,
            fetch_timeout=_parse_int(
                "QUOTA_FETCH_TIMEOUT",
                _lookup("QUOTA_FETCH_TIMEOUT", env, file_values),
                DEFAULT_FETCH_TIMEOUT_SECONDS,
                minimum=1,
            ),
            default_ttl=_parse_int(
                "QUOTA_TTL",
                _lookup("QUOTA_TTL", env, file_values),
                DEFAULT_TTL_SECONDS,
            ),
            log_file=Path(log_raw).expanduser() if log_raw else None,
        )

    def to_env(self) -> Dict[str, str]:
        """Serialize as environment variables so a worker process resolves the same config."""
        env = {
            "QUOTA_CACHE_FILE": str(self.cache_file),
            "QUOTA_LOCK_FILE": str(self.lock_file),
            "QUOTA_CREDENTIALS_FILE": str(self.credentials_file),
            "QUOTA_API_URL": self.api_url,
            "QUOTA_BETA": self.beta,
            "QUOTA_FETCH_TIMEOUT": str(self.fetch_timeout),
            "QUOTA_TTL": str(self.default_ttl),
        }
        if self.log_file:
            env["QUOTA_LOG_FILE"] = str(self.log_file)
        return env
