"""
Tests for the response cache.
"""

from hubspot_bridge.process.cache import ResponseCache


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestMakeKey:
    """Tests for cache key construction."""

    def test_key_is_independent_of_param_order(self):
        """Test that equal params in different order share a key."""
        a = ResponseCache.make_key("tools/call", {"name": "x", "arguments": {"b": 1, "a": 2}})
        b = ResponseCache.make_key("tools/call", {"arguments": {"a": 2, "b": 1}, "name": "x"})
        assert a == b

    def test_key_includes_method(self):
        """Test that the method name distinguishes keys."""
        assert ResponseCache.make_key("tools/list", {}) != ResponseCache.make_key("prompts/list", {})

    def test_none_params_same_as_empty(self):
        """Test that missing params behave like an empty object."""
        assert ResponseCache.make_key("tools/list") == ResponseCache.make_key("tools/list", {})
        assert ResponseCache.make_key("tools/list") == "tools/list:{}"


class TestGetPut:
    """Tests for expiry-on-read semantics."""

    def test_miss_on_empty_cache(self):
        """Test that an unknown key is a miss."""
        cache = ResponseCache(ttl_seconds=300)
        assert cache.get("tools/list:{}") is None
        assert cache.misses == 1

    def test_hit_within_ttl(self):
        """Test that a fresh entry is returned."""
        clock = FakeClock()
        cache = ResponseCache(ttl_seconds=300, clock=clock)
        cache.put("k", {"tools": []})

        clock.now += 299
        assert cache.get("k") == {"tools": []}
        assert cache.hits == 1

    def test_expired_entry_is_absent_but_kept(self):
        """Test that entries older than the TTL read as absent and stay in memory."""
        clock = FakeClock()
        cache = ResponseCache(ttl_seconds=300, clock=clock)
        cache.put("k", {"tools": []})

        clock.now += 300
        assert cache.get("k") is None
        assert len(cache) == 1

    def test_put_overwrites_and_refreshes(self):
        """Test that a new put replaces the value and its timestamp."""
        clock = FakeClock()
        cache = ResponseCache(ttl_seconds=10, clock=clock)
        cache.put("k", 1)
        clock.now += 20
        cache.put("k", 2)

        assert cache.get("k") == 2
        assert len(cache) == 1

    def test_none_is_not_stored(self):
        """Test that None results are never cached."""
        cache = ResponseCache(ttl_seconds=300)
        cache.put("k", None)
        assert len(cache) == 0

    def test_falsy_values_are_cached(self):
        """Test that empty-but-valid results are cached."""
        cache = ResponseCache(ttl_seconds=300)
        cache.put("k", {})
        assert cache.get("k") == {}

    def test_stats(self):
        """Test the stats snapshot."""
        cache = ResponseCache(ttl_seconds=60)
        cache.put("k", 1)
        cache.get("k")
        cache.get("missing")

        assert cache.stats() == {"entries": 1, "hits": 1, "misses": 1, "ttl_seconds": 60.0}
