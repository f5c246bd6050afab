"""
Tests for the correlation cache (CacheService).
"""

from concurrent.futures import ThreadPoolExecutor

import pytest

from verifiedid.lib.cache import CacheService


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def test_put_then_get():
    cache = CacheService()
    cache.put("abc", {"status": "request_created"})
    assert cache.get("abc") == {"status": "request_created"}


def test_get_unknown_key_returns_none():
    assert CacheService().get("missing") is None


def test_put_overwrites():
    cache = CacheService()
    cache.put("abc", {"status": "request_created"})
    cache.put("abc", {"status": "request_retrieved"})
    assert cache.get("abc")["status"] == "request_retrieved"


def test_entry_expires_after_ttl():
    clock = FakeClock()
    cache = CacheService(expire_after_write=900, timer=clock)
    cache.put("abc", {"status": "request_created"})

    clock.advance(899)
    assert cache.get("abc") is not None

    clock.advance(1)
    assert cache.get("abc") is None


def test_write_restarts_ttl():
    clock = FakeClock()
    cache = CacheService(expire_after_write=900, timer=clock)
    cache.put("abc", {"status": "request_created"})
    clock.advance(600)
    cache.put("abc", {"status": "request_retrieved"})
    clock.advance(600)
    assert cache.get("abc") == {"status": "request_retrieved"}


def test_read_does_not_extend_ttl():
    clock = FakeClock()
    cache = CacheService(expire_after_write=900, timer=clock)
    cache.put("abc", "value")
    clock.advance(600)
    assert cache.get("abc") == "value"
    clock.advance(300)
    assert cache.get("abc") is None


def test_capacity_evicts_least_recently_used():
    cache = CacheService(maximum_size=3)
    cache.put("a", 1)
    cache.put("b", 2)
    cache.put("c", 3)
    cache.get("a")  # "b" is now the least recently used
    cache.put("d", 4)

    assert len(cache) == 3
    assert cache.get("b") is None
    assert cache.get("a") == 1
    assert cache.get("c") == 3
    assert cache.get("d") == 4


def test_invalid_maximum_size():
    with pytest.raises(ValueError):
        CacheService(maximum_size=0)


def test_get_returns_a_copy():
    cache = CacheService()
    cache.put("abc", {"status": "request_created"})
    record = cache.get("abc")
    record["status"] = "tampered"
    assert cache.get("abc")["status"] == "request_created"


def test_update_merges_existing_record():
    cache = CacheService()
    cache.put("abc", {"status": "request_created", "message": "waiting"})

    def merge(record):
        record["status"] = "request_retrieved"
        return record

    updated = cache.update("abc", merge)
    assert updated == {"status": "request_retrieved", "message": "waiting"}
    assert cache.get("abc") == updated


def test_update_missing_key_does_not_write():
    cache = CacheService()
    assert cache.update("nope", lambda record: {"status": "x"}) is None
    assert cache.get("nope") is None
    assert len(cache) == 0


def test_update_expired_key_does_not_write():
    clock = FakeClock()
    cache = CacheService(expire_after_write=10, timer=clock)
    cache.put("abc", {"status": "request_created"})
    clock.advance(10)
    assert cache.update("abc", lambda record: record) is None
    assert cache.get("abc") is None


def test_update_exception_leaves_record_unchanged():
    cache = CacheService()
    cache.put("abc", {"status": "issuance_successful"})

    def fail(record):
        record["status"] = "changed"
        raise RuntimeError("abort")

    with pytest.raises(RuntimeError):
        cache.update("abc", fail)
    assert cache.get("abc") == {"status": "issuance_successful"}


def test_delete():
    cache = CacheService()
    cache.put("abc", 1)
    cache.delete("abc")
    cache.delete("never-there")
    assert cache.get("abc") is None


def test_len_ignores_expired_entries():
    clock = FakeClock()
    cache = CacheService(expire_after_write=10, timer=clock)
    cache.put("old", 1)
    clock.advance(5)
    cache.put("new", 2)
    clock.advance(5)
    assert len(cache) == 1


def test_concurrent_updates_on_one_key_are_not_lost():
    cache = CacheService()
    cache.put("counter", {"count": 0})

    def increment(_):
        def bump(record):
            record["count"] += 1
            return record

        cache.update("counter", bump)

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(increment, range(200)))

    assert cache.get("counter") == {"count": 200}


def test_concurrent_writers_on_distinct_keys_are_independent():
    cache = CacheService(maximum_size=500)

    def write(i):
        cache.put(f"key-{i}", {"status": f"status-{i}"})

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(write, range(300)))

    assert len(cache) == 300
    for i in range(300):
        assert cache.get(f"key-{i}") == {"status": f"status-{i}"}
