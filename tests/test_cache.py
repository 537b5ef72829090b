"""TTL cache: round trips, lazy expiry, malformed entries and quota eviction."""

import json

import pytest

from datadislogic import JsonFileStore, MemoryStore, TTLCache, exceptions
from datadislogic.config import CacheConfig


def test_round_trip(ttl_cache):
    value = [{"date": "2024/03/04", "time": "01:00", "consumptionKWh": 0.5}]
    assert ttl_cache.set("k", value, 1) is True
    assert ttl_cache.get("k") == value


def test_entry_shape_on_disk(ttl_cache, store, clock):
    ttl_cache.set("k", {"a": 1}, 2)
    raw = json.loads(store.get_item("k"))
    assert set(raw) == {"value", "storedAt", "expiresAt"}
    assert raw["storedAt"] == clock.now * 1000
    assert raw["expiresAt"] - raw["storedAt"] == 2 * 60 * 60 * 1000


def test_default_ttl_is_24h(ttl_cache, store, clock):
    ttl_cache.set("k", 1)
    raw = json.loads(store.get_item("k"))
    assert raw["expiresAt"] - raw["storedAt"] == 24 * 60 * 60 * 1000


def test_lazy_expiry_removes_entry(ttl_cache, store, clock):
    ttl_cache.set("k", "v", 1)
    clock.advance(3600)  # exactly at expiresAt: still valid
    assert ttl_cache.get("k") == "v"
    clock.advance(1)
    assert ttl_cache.get("k") is None
    assert "k" not in store


def test_get_missing_key(ttl_cache):
    assert ttl_cache.get("nope") is None
    assert ttl_cache.get_entry("nope") is None


@pytest.mark.parametrize("raw", ["not json", "[1, 2]", '{"value": 1}', '{"storedAt": "x"}'])
def test_malformed_entries_are_misses_and_removed(ttl_cache, store, raw):
    store.set_item("bad", raw)
    assert ttl_cache.get("bad") is None
    assert "bad" not in store


def test_get_entry_exposes_storage_time(ttl_cache, clock):
    ttl_cache.set("k", "v", 24)
    entry = ttl_cache.get_entry("k")
    assert entry.stored_datetime.timestamp() == pytest.approx(clock.now)


def test_unserialisable_value_is_dropped(ttl_cache, store):
    assert ttl_cache.set("k", object()) is False
    assert "k" not in store


def _fill(cache, clock, n, prefix="item"):
    for i in range(n):
        assert cache.set(f"{prefix}{i}", i)
        clock.advance(1)


def test_eviction_removes_three_oldest_at_small_sizes(clock):
    store = MemoryStore(max_entries=10)
    cache = TTLCache(store, clock=clock)
    _fill(cache, clock, 10)

    assert cache.set("newest", "x") is True
    assert [f"item{i}" in store for i in range(3)] == [False, False, False]
    assert all(f"item{i}" in store for i in range(3, 10))
    assert cache.get("newest") == "x"
    assert len(store) == 8


def test_eviction_removes_twenty_percent_when_larger(clock):
    store = MemoryStore(max_entries=20)
    cache = TTLCache(store, clock=clock)
    _fill(cache, clock, 20)

    assert cache.set("newest", "x") is True
    # ceil(0.2 * 20) = 4
    assert not any(f"item{i}" in store for i in range(4))
    assert len(store) == 17


def test_eviction_rounds_up(clock):
    store = MemoryStore(max_entries=16)
    cache = TTLCache(store, clock=clock)
    _fill(cache, clock, 16)
    cache.set("newest", "x")
    # ceil(0.2 * 16) = 4
    assert len(store) == 13


def test_eviction_ignores_foreign_keys(clock):
    store = MemoryStore(max_entries=5)
    store.set_item("session", "plain text")
    store.set_item("settings", json.dumps({"theme": "dark"}))
    cache = TTLCache(store, clock=clock)
    _fill(cache, clock, 3)

    assert cache.set("newest", "x") is True
    assert "session" in store and "settings" in store
    assert cache.get("newest") == "x"


def test_eviction_uses_stored_at_not_insertion_order(clock):
    store = MemoryStore(max_entries=4)
    cache = TTLCache(store, clock=clock)
    _fill(cache, clock, 4)
    clock.advance(10)
    cache.set("item0", "refreshed")  # overwrite keeps the key count, newest storedAt
    cache.set("newest", "x")
    assert "item0" in store
    assert not any(f"item{i}" in store for i in (1, 2, 3))


class AlwaysFullStore(MemoryStore):
    def set_item(self, key, value):
        raise exceptions.QuotaExceededError("full")


class BrokenStore(MemoryStore):
    def get_item(self, key):
        raise OSError("disk gone")

    def set_item(self, key, value):
        raise OSError("disk gone")


def test_write_dropped_when_retry_fails(clock):
    cache = TTLCache(AlwaysFullStore(), clock=clock)
    assert cache.set("k", "v") is False
    assert cache.get("k") is None


def test_store_failures_never_escape(clock):
    cache = TTLCache(BrokenStore(), clock=clock)
    assert cache.set("k", "v") is False
    assert cache.get("k") is None
    assert cache.evict_oldest() == []


def test_from_config(clock):
    cache = TTLCache.from_config(
        CacheConfig(default_ttl_hours=2, evict_min=1, evict_fraction=0.5), clock=clock
    )
    assert cache.default_ttl_hours == 2
    assert cache.evict_min == 1 and cache.evict_fraction == 0.5


def test_json_file_store_persists(tmp_path, clock):
    path = tmp_path / "cache" / "store.json"
    TTLCache(JsonFileStore(path), clock=clock).set("consumption_data_X_2024/03", [1, 2], 24)

    reopened = TTLCache(JsonFileStore(path), clock=clock)
    assert reopened.get("consumption_data_X_2024/03") == [1, 2]
    clock.advance(25 * 3600)
    assert reopened.get("consumption_data_X_2024/03") is None
    assert JsonFileStore(path).keys() == []


def test_json_file_store_quota(tmp_path, clock):
    cache = TTLCache(JsonFileStore(tmp_path / "s.json", max_bytes=50), clock=clock)
    assert cache.set("big", "x" * 1000) is False
    assert cache.get("big") is None


def test_json_file_store_tolerates_corrupt_file(tmp_path, clock):
    path = tmp_path / "s.json"
    path.write_text("{not json")
    cache = TTLCache(JsonFileStore(path), clock=clock)
    assert cache.get("k") is None
    assert cache.set("k", "v") is True
    assert cache.get("k") == "v"
