"""Tests for the generation response cache."""

import time

import pytest

from recruit_analysis.cache.response_cache import ResponseCache, fingerprint


@pytest.fixture
def cache(tmp_path):
    return ResponseCache(db_path=tmp_path / "test_cache.db", ttl_seconds=60)


class TestFingerprint:
    def test_same_prompt_same_key(self):
        assert fingerprint("analyze this") == fingerprint("analyze this")

    def test_different_prompts_differ(self):
        assert fingerprint("analyze candidate A") != fingerprint("analyze candidate B")

    def test_length_disambiguates_shared_prefix(self):
        base = "x" * 100
        assert fingerprint(base + "tail one", leading_chars=100) != fingerprint(
            base + "tail two!", leading_chars=100
        )

    def test_key_is_short_hex(self):
        key = fingerprint("prompt")
        assert len(key) == 32
        int(key, 16)


class TestResponseCache:
    def test_put_and_get(self, cache):
        cache.put("prompt", '{"score": 1}')
        cached = cache.get("prompt")
        assert cached is not None
        assert cached.response_text == '{"score": 1}'
        assert cached.prompt_fingerprint == cache.key_for("prompt")

    def test_get_nonexistent(self, cache):
        assert cache.get("never stored") is None

    def test_empty_response_not_stored(self, cache):
        cache.put("prompt", "")
        assert cache.get("prompt") is None

    def test_expired_entry_is_miss_and_removed(self, tmp_path):
        cache = ResponseCache(db_path=tmp_path / "c.db", ttl_seconds=0)
        cache.put("prompt", "text")
        assert cache.get("prompt") is None
        assert cache.stats()["total"] == 0

    def test_delete(self, cache):
        cache.put("prompt", "text")
        cache.delete("prompt")
        assert cache.get("prompt") is None

    def test_clear(self, cache):
        cache.put("one", "a")
        cache.put("two", "b")
        assert cache.clear() == 2
        assert cache.get("one") is None

    def test_purge_expired(self, cache):
        cache.put("fresh", "a")
        cache.put("stale", "b")
        with cache._connect() as conn:
            conn.execute(
                "UPDATE generation_cache SET created_at = ? WHERE prompt_fingerprint = ?",
                (time.time() - 120, cache.key_for("stale")),
            )
        assert cache.purge_expired() == 1
        assert cache.get("fresh") is not None

    def test_stats(self, cache):
        cache.put("one", "a")
        stats = cache.stats()
        assert stats == {"total": 1, "expired": 0, "active": 1}
