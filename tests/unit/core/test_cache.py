"""Tests for the TTL cache."""

from grindflow.core.cache import TTLCache


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


def test_entries_expire_after_ttl():
    clock = FakeClock()
    cache = TTLCache(ttl=300, clock=clock)

    cache.set("documents", True)
    clock.now += 299
    assert cache.get("documents") is True

    clock.now += 2
    assert cache.get("documents") is None
    assert "documents" not in cache


def test_false_is_a_cached_value():
    cache = TTLCache(ttl=60)

    cache.set("private-bucket", False)

    assert cache.get("private-bucket") is False


def test_invalidate_and_clear():
    cache = TTLCache(ttl=60)
    cache.set("a", 1)
    cache.set("b", 2)

    cache.invalidate("a")
    assert cache.get("a") is None
    assert cache.get("b") == 2

    cache.clear()
    assert cache.get("b") is None
