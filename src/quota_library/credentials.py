# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 Mirrowel

"""
OAuth token loading from the Claude credentials file.

File format:
    {"claudeAiOauth": {"accessToken": "...", "refreshToken": "...", ...}}
"""

import json
import logging
from pathlib import Path
from typing import Union

from .core.errors import CredentialUnavailableError

lib_logger = logging.getLogger("quota_library")


def load_access_token(path: Union[str, Path]) -> str:
    """
    Read the OAuth access token.

    Args:
        path: Credentials JSON file

    Returns:
        The bearer token

    Raises:
        CredentialUnavailableError: file missing, unparsable, or without a token
    """
    path = Path(path)
    if not path.is_file():
        lib_logger.debug(f"No credentials file at {path}")
        raise CredentialUnavailableError()

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, UnicodeDecodeError, OSError) as e:
        lib_logger.warning(f"Failed to read credentials file {path}: {e}")
        raise CredentialUnavailableError() from e

    oauth = data.get("claudeAiOauth") if isinstance(data, dict) else None
    token = oauth.get("accessToken") if isinstance(oauth, dict) else None
    if not isinstance(token, str) or not token.strip():
        lib_logger.debug(f"Credentials file {path} has no claudeAiOauth.accessToken")
        raise CredentialUnavailableError()
    return token.strip()


def has_access_token(path: Union[str, Path]) -> bool:
    """True if ``path`` holds a usable access token."""
    try:
        load_access_token(path)
    except CredentialUnavailableError:
        return False
    return True
