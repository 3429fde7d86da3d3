"""
Unit tests for CandleCache
"""

import threading

import pytest

from burst_scanner.models.candle import Candle
from burst_scanner.processing.cache import DEFAULT_TTL, CandleCache


class FakeClock:
    """Manually advanced clock (seconds)."""

    def __init__(self, now: float = 1_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def create_test_candles(count: int = 3) -> list:
    return [
        Candle(
            timestamp=1_700_000_000_000 + i * 60_000,
            open=100.0 + i,
            high=101.0 + i,
            low=99.0 + i,
            close=100.5 + i,
            volume=10.0,
        )
        for i in range(count)
    ]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return CandleCache(ttl=60.0, clock=clock)


class TestCandleCache:
    """Test get/set/expiry behaviour"""

    def test_default_ttl(self):
        assert CandleCache().ttl == DEFAULT_TTL == 60.0

    def test_invalid_ttl(self):
        with pytest.raises(ValueError):
            CandleCache(ttl=0)

    def test_miss(self, cache):
        assert cache.get("BTCUSDT:1m") is None

    def test_hit_within_ttl(self, cache, clock):
        candles = create_test_candles()
        cache.set("BTCUSDT:1m", candles)
        clock.advance(59.9)

        assert cache.get("BTCUSDT:1m") == tuple(candles)

    def test_expired_on_read(self, cache, clock):
        """Entry at or past TTL is a miss and is removed"""
        cache.set("BTCUSDT:1m", create_test_candles())
        clock.advance(60.0)

        assert cache.get("BTCUSDT:1m") is None
        assert len(cache) == 0

    def test_set_replaces_entry(self, cache, clock):
        """Rewriting a key refreshes its capture time"""
        cache.set("BTCUSDT:1m", create_test_candles(1))
        clock.advance(50.0)
        cache.set("BTCUSDT:1m", create_test_candles(2))
        clock.advance(50.0)

        cached = cache.get("BTCUSDT:1m")
        assert cached is not None
        assert len(cached) == 2

    def test_stored_sequence_is_immutable_copy(self, cache):
        """Mutating the caller's list does not affect the entry"""
        candles = create_test_candles()
        cache.set("ETHUSDT:5m", candles)
        candles.clear()

        assert len(cache.get("ETHUSDT:5m")) == 3


class TestCacheSweep:
    """Test sweep() and stats()"""

    def test_sweep_removes_only_expired(self, cache, clock):
        cache.set("OLDUSDT:1m", create_test_candles())
        clock.advance(45.0)
        cache.set("NEWUSDT:1m", create_test_candles())
        clock.advance(20.0)

        removed = cache.sweep()

        assert removed == 1
        assert cache.get("NEWUSDT:1m") is not None
        assert cache.get("OLDUSDT:1m") is None

    def test_sweep_empty(self, cache):
        assert cache.sweep() == 0

    def test_stats(self, cache):
        cache.set("BTCUSDT:1m", create_test_candles())
        cache.set("ETHUSDT:1m", create_test_candles())

        stats = cache.stats()

        assert stats.size == 2
        assert sorted(stats.keys) == ["BTCUSDT:1m", "ETHUSDT:1m"]

    def test_concurrent_writes(self, cache):
        """Parallel writers never lose entries"""
        candles = create_test_candles()

        def writer(offset: int) -> None:
            for i in range(100):
                cache.set(f"SYM{offset}_{i}USDT:1m", candles)

        threads = [threading.Thread(target=writer, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert cache.stats().size == 800
