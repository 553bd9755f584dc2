"""
Tests for the on-disk response cache.
"""

import logging
import os
import time

from datetime import timedelta
from pathlib import Path
from unittest.mock import patch

from infrastructure.response_cache import DEFAULT_TTL, ResponseCache, default_cache_dir


class TestResponseCache:
    """Test ResponseCache."""

    def test_miss(self, tmp_path):
        assert ResponseCache(tmp_path).get("key") is None

    def test_set_then_get(self, tmp_path):
        cache = ResponseCache(tmp_path)
        cache.set("key", {"tree": [1, 2, 3], "truncated": False})
        assert cache.get("key") == {"tree": [1, 2, 3], "truncated": False}

    def test_keys_are_independent(self, tmp_path):
        cache = ResponseCache(tmp_path)
        cache.set("a", [1])
        cache.set("b", [2])
        assert cache.get("a") == [1]
        assert cache.get("b") == [2]

    def test_creates_directory(self, tmp_path):
        cache = ResponseCache(tmp_path / "nested" / "cache")
        cache.set("key", 1)
        assert cache.get("key") == 1

    def test_expired_entry(self, tmp_path):
        cache = ResponseCache(tmp_path, ttl=timedelta(minutes=5))
        cache.set("key", "value")

        stale = time.time() - 600
        for path in tmp_path.iterdir():
            os.utime(path, (stale, stale))

        assert cache.get("key") is None

    def test_corrupt_entry(self, tmp_path, caplog):
        cache = ResponseCache(tmp_path)
        cache.set("key", "value")
        for path in tmp_path.iterdir():
            path.write_text("{not json")

        with caplog.at_level(logging.WARNING):
            assert cache.get("key") is None
        assert "unreadable cache entry" in caplog.text

    def test_write_failure_is_logged(self, tmp_path, caplog):
        blocker = tmp_path / "file"
        blocker.write_text("")
        cache = ResponseCache(blocker)

        with caplog.at_level(logging.WARNING):
            cache.set("key", "value")

        assert "Could not write cache entry" in caplog.text
        assert cache.get("key") is None

    def test_no_temporary_files_left(self, tmp_path):
        cache = ResponseCache(tmp_path)
        cache.set("key", "value")
        assert [p.suffix for p in tmp_path.iterdir()] == [".json"]


class TestDefaults:
    """Test default cache settings."""

    def test_xdg_cache_home(self, tmp_path):
        with patch.dict(os.environ, {"XDG_CACHE_HOME": str(tmp_path)}):
            assert default_cache_dir() == tmp_path / "gh-find"

    def test_home_fallback(self):
        with patch.dict(os.environ, {}, clear=True):
            with patch("infrastructure.response_cache.Path.home", return_value=Path("/home/user")):
                assert default_cache_dir() == Path("/home/user/.cache/gh-find")

    def test_default_ttl(self):
        assert DEFAULT_TTL == timedelta(hours=24)
        assert ResponseCache().ttl == DEFAULT_TTL
