"""
PURPOSE: Version information for the Checkout Relay gateway.

Reads backend/version.json when running from a source checkout and falls back
to the installed distribution metadata otherwise. The result is cached after
the first call.
"""

import json
from importlib import metadata
from pathlib import Path
from typing import Any, Dict, Optional

DISTRIBUTION_NAME = "checkout-relay"
VERSION_FILE: Path = Path(__file__).parent.parent / "version.json"

_version_cache: Optional[Dict[str, Any]] = None


def get_version() -> Dict[str, Any]:
    """
    PURPOSE: Retrieve version information for the gateway.

    Returns:
        Dict[str, Any]: At least a "version" key; "codename", "updated_at"
            and "changelog" when version.json is present.

    Raises:
        json.JSONDecodeError: If version.json exists but is invalid JSON.
    """
    global _version_cache

    if _version_cache is not None:
        return _version_cache

    if VERSION_FILE.is_file():
        with open(VERSION_FILE, "r") as f:
            _version_cache = json.load(f)
        return _version_cache

    try:
        _version_cache = {"version": metadata.version(DISTRIBUTION_NAME)}
    except metadata.PackageNotFoundError:
        _version_cache = {"version": "unknown"}
    return _version_cache
