"""
Tests for TTL Support

These tests verify Time-To-Live (TTL) functionality:
- set_expiry() / time_to_live() bookkeeping
- Expired keys are absent for every operation
- SET clears an expiry, INCR keeps it
- Lazy and active cleanup of expired keys

Most tests drive the store with a fake clock. Tests marked slow use the
real clock and time.sleep().

Run with: python -m pytest tests/test_ttl.py -v
"""

import time
import pytest
from respkv.cache.store import KVStore


class TestSetExpiry:
    """Test set_expiry()."""

    def test_set_expiry_missing_key(self, store: KVStore):
        assert store.set_expiry("missing", 10) is False
        assert store.size() == 0

    def test_set_expiry_existing_key(self, store: KVStore):
        store.set("foo", "bar")
        assert store.set_expiry("foo", 10) is True
        assert store.get("foo") == "bar"

    def test_set_expiry_expired_key(self, store: KVStore, clock):
        store.set("foo", "bar")
        store.set_expiry("foo", 1)
        clock.advance(1)

        assert store.set_expiry("foo", 10) is False

    def test_set_expiry_replaces_previous(self, store: KVStore, clock):
        store.set("foo", "bar")
        store.set_expiry("foo", 1)
        store.set_expiry("foo", 100)

        clock.advance(50)
        assert store.get("foo") == "bar"
        assert store.time_to_live("foo") == 50

    def test_zero_seconds_expires_immediately(self, store: KVStore):
        store.set("foo", "bar")

        assert store.set_expiry("foo", 0) is True
        assert store.get("foo") is None
        assert store.time_to_live("foo") == -2

    def test_negative_seconds_expires_immediately(self, store: KVStore):
        store.set("foo", "bar")

        assert store.set_expiry("foo", -5) is True
        assert store.exists("foo") is False


class TestTimeToLive:
    """Test time_to_live()."""

    def test_ttl_missing_key(self, store: KVStore):
        assert store.time_to_live("missing") == -2

    def test_ttl_persistent_key(self, store: KVStore):
        store.set("foo", "bar")
        assert store.time_to_live("foo") == -1

    def test_ttl_counts_down(self, store: KVStore, clock):
        store.set("foo", "bar")
        store.set_expiry("foo", 10)

        assert store.time_to_live("foo") == 10
        clock.advance(3)
        assert store.time_to_live("foo") == 7

    def test_ttl_rounds_up(self, store: KVStore, clock):
        store.set("foo", "bar")
        store.set_expiry("foo", 1)

        clock.advance(0.25)
        assert store.time_to_live("foo") == 1

    def test_ttl_after_expiry(self, store: KVStore, clock):
        store.set("foo", "bar")
        store.set_expiry("foo", 1)

        assert store.time_to_live("foo") in (0, 1)

        clock.advance(1)
        assert store.get("foo") is None
        assert store.time_to_live("foo") == -2


class TestExpiredKeysAreAbsent:
    """Test every operation treats an expired key as absent."""

    @pytest.fixture
    def expired(self, store: KVStore, clock) -> KVStore:
        store.set("key", "41")
        store.set_expiry("key", 5)
        clock.advance(5)
        return store

    def test_get(self, expired: KVStore):
        assert expired.get("key") is None

    def test_exists(self, expired: KVStore):
        assert expired.exists("key") is False

    def test_delete(self, expired: KVStore):
        assert expired.delete("key") is False

    def test_increment_starts_from_zero(self, expired: KVStore):
        assert expired.increment("key") == 1
        assert expired.time_to_live("key") == -1

    def test_set_creates_fresh_key(self, expired: KVStore):
        expired.set("key", "new")
        assert expired.get("key") == "new"
        assert expired.time_to_live("key") == -1

    def test_lazy_eviction(self, expired: KVStore):
        """Test reading an expired key removes it from internal storage."""
        assert "key" in expired._entries

        expired.get("key")

        assert "key" not in expired._entries
        assert "key" not in expired._expirations


class TestTTLUpdate:
    """Test TTL behavior on writes."""

    def test_set_clears_ttl(self, store: KVStore, clock):
        store.set("key", "value1")
        store.set_expiry("key", 1)

        store.set("key", "value2")
        assert store.time_to_live("key") == -1

        clock.advance(10)
        assert store.get("key") == "value2"

    def test_mset_clears_ttl(self, store: KVStore):
        store.set("a", "1")
        store.set_expiry("a", 10)

        store.mset([("a", "2")])

        assert store.time_to_live("a") == -1

    def test_increment_keeps_ttl(self, store: KVStore, clock):
        store.set("counter", "1")
        store.set_expiry("counter", 10)

        assert store.increment("counter") == 2
        assert store.time_to_live("counter") == 10

        clock.advance(10)
        assert store.get("counter") is None

    def test_delete_clears_ttl(self, store: KVStore):
        store.set("key", "value")
        store.set_expiry("key", 10)
        store.delete("key")
        store.set("key", "again")

        assert store.time_to_live("key") == -1


class TestTTLActiveCleanup:
    """Test active cleanup of expired keys."""

    def test_cleanup_expired_removes_keys(self, store: KVStore, clock):
        store.set("key1", "value1")
        store.set("key2", "value2")
        store.set("key3", "value3")
        store.set_expiry("key1", 1)
        store.set_expiry("key2", 1)

        clock.advance(1)
        removed = store.cleanup_expired()

        assert removed == 2
        assert store.size() == 1
        assert store.get("key3") == "value3"

    def test_cleanup_expired_empty_store(self, store: KVStore):
        assert store.cleanup_expired() == 0

    def test_cleanup_no_expired_keys(self, store: KVStore):
        store.set("key1", "value1")
        store.set("key2", "value2")
        store.set_expiry("key1", 60)

        assert store.cleanup_expired() == 0
        assert store.size() == 2


class TestTTLStats:
    """Test TTL with stats."""

    def test_get_stats_shows_expired(self, store: KVStore, clock):
        store.set("key1", "value1")
        store.set("key2", "value2")
        store.set("key3", "value3")
        store.set_expiry("key1", 1)
        store.set_expiry("key3", 100)

        clock.advance(1)
        stats = store.get_stats()

        assert stats["total_keys"] == 3
        assert stats["expired_keys"] == 1
        assert stats["active_keys"] == 2
        assert stats["volatile_keys"] == 1


class TestTTLRealClock:
    """Test expiry with the real monotonic clock."""

    @pytest.mark.slow
    def test_key_expires_after_ttl(self, real_store: KVStore):
        real_store.set("key", "value")
        real_store.set_expiry("key", 1)

        assert real_store.get("key") == "value"
        assert real_store.time_to_live("key") in (0, 1)

        time.sleep(1.1)

        assert real_store.get("key") is None
        assert real_store.time_to_live("key") == -2

    @pytest.mark.slow
    def test_exists_returns_false_after_expiry(self, real_store: KVStore):
        real_store.set("key", "value")
        real_store.set_expiry("key", 1)

        assert real_store.exists("key") is True

        time.sleep(1.1)

        assert real_store.exists("key") is False
