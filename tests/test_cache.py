"""Tests for the parsed title TTL cache."""

import json
from unittest.mock import patch

from anitrack.parsing import TTLCache


class TestMemoryCache:
    """Tests for a cache without a backing file."""

    def test_set_and_get(self):
        cache = TTLCache(ttl=60)
        cache.set("title", {"parsed": None})
        assert cache.get("title") == {"parsed": None}
        assert len(cache) == 1

    def test_missing_key(self):
        assert TTLCache().get("nope") is None

    def test_expired_entry_dropped_on_read(self):
        cache = TTLCache(ttl=60)
        with patch("anitrack.parsing.cache.time.time", return_value=1000.0):
            cache.set("title", "value")
        with patch("anitrack.parsing.cache.time.time", return_value=1061.0):
            assert cache.get("title") is None
        assert len(cache) == 0

    def test_entry_alive_within_ttl(self):
        cache = TTLCache(ttl=60)
        with patch("anitrack.parsing.cache.time.time", return_value=1000.0):
            cache.set("title", "value")
        with patch("anitrack.parsing.cache.time.time", return_value=1060.0):
            assert cache.get("title") == "value"

    def test_clear(self):
        cache = TTLCache()
        cache.set("a", 1)
        cache.clear()
        assert len(cache) == 0


class TestPersistentCache:
    """Tests for loading and saving the cache file."""

    def test_save_and_load(self, tmp_path):
        path = tmp_path / "cache" / "parsed.json"
        cache = TTLCache(path=path)
        cache.set("title", {"parsed": {"show_name": "X"}})

        assert path.exists()
        reloaded = TTLCache(path=path)
        reloaded.load()
        assert reloaded.get("title") == {"parsed": {"show_name": "X"}}

    def test_load_missing_file(self, tmp_path):
        cache = TTLCache(path=tmp_path / "missing.json")
        cache.load()
        assert len(cache) == 0

    def test_load_corrupt_file(self, tmp_path):
        path = tmp_path / "parsed.json"
        path.write_text("{not json", encoding="utf-8")
        cache = TTLCache(path=path)
        cache.load()
        assert len(cache) == 0

    def test_load_drops_expired_and_malformed(self, tmp_path):
        path = tmp_path / "parsed.json"
        path.write_text(
            json.dumps(
                {
                    "fresh": {"timestamp": 1000.0, "data": 1},
                    "stale": {"timestamp": 0.0, "data": 2},
                    "broken": "oops",
                }
            ),
            encoding="utf-8",
        )
        cache = TTLCache(ttl=100, path=path)
        with patch("anitrack.parsing.cache.time.time", return_value=1050.0):
            cache.load()
            assert cache.get("fresh") == 1

        assert len(cache) == 1
        # Expired entries are pruned from disk as well
        assert set(json.loads(path.read_text(encoding="utf-8"))) == {"fresh"}
