"""Tests for the TTL caches."""

import pytest

from finchat.caching import ContextCache, ResponseCache, TTLCache, normalize_question
from finchat.models.context import FinancialContext


class TestTTLCache:
    """Expiry and bounded eviction."""

    def test_get_returns_fresh_value(self, clock):
        """A value younger than the TTL is returned."""
        cache = TTLCache(ttl_seconds=30, max_entries=5, clock=clock)
        cache.put("a", 1)
        clock.advance(29)
        assert cache.get("a") == 1

    def test_expired_entry_is_absent_and_removed(self, clock):
        """An entry older than the TTL reads as absent and is evicted."""
        cache = TTLCache(ttl_seconds=30, max_entries=5, clock=clock)
        cache.put("a", 1)
        clock.advance(30.5)
        assert cache.get("a") is None
        assert "a" not in cache
        assert len(cache) == 0

    def test_entry_exactly_at_ttl_is_still_fresh(self, clock):
        """Expiry happens only once the age exceeds the TTL."""
        cache = TTLCache(ttl_seconds=30, max_entries=5, clock=clock)
        cache.put("a", 1)
        clock.advance(30)
        assert cache.get("a") == 1

    def test_overflow_evicts_exactly_the_oldest(self, clock):
        """Inserting past capacity drops the oldest entry and keeps the rest."""
        cache = TTLCache(ttl_seconds=60, max_entries=3, clock=clock)
        for key in ("a", "b", "c"):
            cache.put(key, key.upper())
            clock.advance(1)

        cache.put("d", "D")

        assert len(cache) == 3
        assert cache.get("a") is None
        assert [cache.get(k) for k in ("b", "c", "d")] == ["B", "C", "D"]

    def test_reput_refreshes_age_and_order(self, clock):
        """Re-inserting a key makes it the newest entry."""
        cache = TTLCache(ttl_seconds=60, max_entries=2, clock=clock)
        cache.put("a", 1)
        cache.put("b", 2)
        cache.put("a", 3)
        cache.put("c", 4)

        assert cache.get("b") is None
        assert cache.get("a") == 3
        assert cache.get("c") == 4

    def test_evict_and_clear(self, clock):
        """Entries can be dropped one by one or all at once."""
        cache = TTLCache(ttl_seconds=60, max_entries=5, clock=clock)
        cache.put("a", 1)
        cache.put("b", 2)
        cache.evict("a")
        cache.evict("missing")
        assert "a" not in cache
        cache.clear()
        assert len(cache) == 0


class TestResponseCache:
    """Final answers keyed by user and normalized question."""

    def test_normalize_question(self):
        """Case and whitespace do not matter."""
        assert normalize_question("  What's   my\tBALANCE? ") == "what's my balance?"

    def test_key_ignores_case_and_spacing(self, clock):
        """The same question typed differently hits the same entry."""
        cache = ResponseCache(clock=clock)
        cache.put("user-1", "What's my balance?", "answer")
        assert cache.get("user-1", "what's  my balance?") == "answer"

    def test_users_do_not_share_answers(self, clock):
        """Answers are per user."""
        cache = ResponseCache(clock=clock)
        cache.put("user-1", "balance", "answer")
        assert cache.get("user-2", "balance") is None

    def test_default_ttl_is_thirty_seconds(self, clock):
        """Answers expire after 30 seconds by default."""
        cache = ResponseCache(clock=clock)
        cache.put("user-1", "balance", "answer")
        clock.advance(31)
        assert cache.get("user-1", "balance") is None

    def test_default_bound_is_fifty(self, clock):
        """At most 50 answers are kept."""
        cache = ResponseCache(clock=clock)
        for i in range(51):
            cache.put("user-1", f"question {i}", "answer")
        assert len(cache) == 50
        assert cache.get("user-1", "question 0") is None


class TestContextCache:
    """Snapshots keyed by user id."""

    def test_put_and_get(self, clock):
        """Stored snapshots are returned as is."""
        cache = ContextCache(clock=clock)
        context = FinancialContext.empty()
        cache.put("user-1", context)
        assert cache.get("user-1") is context

    def test_default_ttl_is_sixty_seconds(self, clock):
        """Snapshots expire after 60 seconds by default."""
        cache = ContextCache(clock=clock)
        cache.put("user-1", FinancialContext.empty())
        clock.advance(59)
        assert cache.get("user-1") is not None
        clock.advance(2)
        assert cache.get("user-1") is None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
