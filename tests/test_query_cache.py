import pytest

from core.cache import QueryCache, make_cache_key
from core.exceptions import CacheCorruptionError


class FakeClock:
    def __init__(self) -> None:
        self.now = 1_000_000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


def _counting_compute(payload):
    calls = {"count": 0}

    async def compute():
        calls["count"] += 1
        return payload

    return compute, calls


def test_make_cache_key_is_order_independent() -> None:
    first = make_cache_key("trips", {"a": 1, "b": 2})
    second = make_cache_key("trips", {"b": 2, "a": 1})
    assert first == second
    assert first.startswith("cache:trips:")
    assert make_cache_key("trips", {"a": 2}) != first


@pytest.mark.asyncio
async def test_hit_within_ttl_skips_compute() -> None:
    clock = FakeClock()
    cache = QueryCache(ttl_ms=1000, clock=clock)
    compute, calls = _counting_compute({"n": 1})

    assert await cache.get_or_compute("k", compute) == {"n": 1}
    clock.advance(999)
    assert await cache.get_or_compute("k", compute) == {"n": 1}
    assert calls["count"] == 1


@pytest.mark.asyncio
async def test_mutating_returned_payload_leaves_cache_intact() -> None:
    cache = QueryCache(ttl_ms=1000, clock=FakeClock())
    compute, calls = _counting_compute({"totalTrips": 1, "trips": [{"tripId": "t1"}]})

    first = await cache.get_or_compute("k", compute)
    first["totalTrips"] = -1
    first["trips"].append({"tripId": "injected"})

    second = await cache.get_or_compute("k", compute)
    assert second == {"totalTrips": 1, "trips": [{"tripId": "t1"}]}
    second["trips"].clear()

    assert await cache.get("k") == {"totalTrips": 1, "trips": [{"tripId": "t1"}]}
    assert calls["count"] == 1


@pytest.mark.asyncio
async def test_expired_entry_recomputes() -> None:
    clock = FakeClock()
    cache = QueryCache(ttl_ms=1000, clock=clock)
    compute, calls = _counting_compute({"n": 1})

    await cache.get_or_compute("k", compute)
    clock.advance(1000)
    await cache.get_or_compute("k", compute)
    assert calls["count"] == 2


@pytest.mark.asyncio
async def test_read_path_rejects_stale_entry_without_sweep() -> None:
    clock = FakeClock()
    cache = QueryCache(ttl_ms=1000, clock=clock)
    await cache.set("k", "v")
    clock.advance(5000)
    assert await cache.get("k") is None
    assert len(cache) == 0


@pytest.mark.asyncio
async def test_write_sweeps_stale_entries() -> None:
    clock = FakeClock()
    cache = QueryCache(ttl_ms=1000, clock=clock)
    await cache.set("old-1", 1)
    await cache.set("old-2", 2)
    clock.advance(1500)
    await cache.set("new", 3)
    assert len(cache) == 1
    assert await cache.get("new") == 3


@pytest.mark.asyncio
async def test_explicit_sweep_and_invalidate() -> None:
    clock = FakeClock()
    cache = QueryCache(ttl_ms=1000, clock=clock)
    await cache.set("a", 1)
    await cache.set("b", 2)
    await cache.invalidate("a")
    assert await cache.get("a") is None
    clock.advance(2000)
    assert await cache.sweep() == 1
    await cache.set("c", 3)
    await cache.clear()
    assert len(cache) == 0


@pytest.mark.asyncio
async def test_corrupt_entry_raises() -> None:
    cache = QueryCache(ttl_ms=1000)
    cache._entries["k"] = "not-an-entry"
    with pytest.raises(CacheCorruptionError):
        await cache.get("k")


def test_ttl_must_be_positive() -> None:
    with pytest.raises(ValueError):
        QueryCache(ttl_ms=0)
