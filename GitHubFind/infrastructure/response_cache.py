"""
On-disk cache for GitHub REST responses.
"""

import hashlib
import json
import logging
import os
import tempfile
import time
from datetime import timedelta
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)

DEFAULT_TTL = timedelta(hours=24)


def default_cache_dir() -> Path:
    """Return $XDG_CACHE_HOME/gh-find, falling back to ~/.cache/gh-find."""
    base = os.environ.get("XDG_CACHE_HOME")
    return (Path(base) if base else Path.home() / ".cache") / "gh-find"


class ResponseCache:
    """
    Stores decoded JSON bodies as one file per request key.

    Entries older than ttl are treated as missing. Writes go through a
    temporary file and os.replace, so readers in other threads never see
    a partial entry. Cache failures are logged and never fail a request.
    """

    def __init__(self, directory: Optional[Path] = None, ttl: timedelta = DEFAULT_TTL):
        """
        Args:
            directory: Cache directory (default: default_cache_dir())
            ttl: Maximum age of a usable entry
        """
        self.directory = Path(directory) if directory else default_cache_dir()
        self.ttl = ttl

    def _path(self, key: str) -> Path:
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()
        return self.directory / f"{digest}.json"

    def get(self, key: str) -> Optional[Any]:
        """Return the cached value for key, or None if missing or expired."""
        path = self._path(key)
        try:
            age = time.time() - path.stat().st_mtime
        except OSError:
            return None

        if age > self.ttl.total_seconds():
            logger.debug(f"Cache entry {path.name} expired ({age:.0f}s old)")
            return None

        try:
            with path.open(encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Ignoring unreadable cache entry {path}: {e}")
            return None

    def set(self, key: str, value: Any) -> None:
        """Store value under key."""
        path = self._path(key)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(value, f)
            os.replace(tmp_path, path)
        except OSError as e:
            logger.warning(f"Could not write cache entry {path}: {e}")
