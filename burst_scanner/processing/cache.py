"""Candle cache with TTL-based expiration.

This module provides CandleCache, a small in-memory store that keeps recently
fetched candle sequences so repeated scans inside the refresh interval do not
hit the exchange client again.

Key features:
- TTL-based expiry (default 60s), checked lazily on every read
- Eager sweep of expired entries via ``sweep()``
- Mutex-guarded map; entries are immutable once written
- Injectable clock for deterministic tests
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Protocol, Sequence, Tuple

from burst_scanner.models.candle import Candle

DEFAULT_TTL = 60.0


@dataclass(frozen=True)
class CacheEntry:
    """Candle sequence with the time it was captured (seconds)."""

    candles: Tuple[Candle, ...]
    captured_at: float


@dataclass(frozen=True)
class CacheStats:
    size: int
    keys: List[str]


class CandleStore(Protocol):
    """Storage interface used by SymbolProcessor."""

    def get(self, key: str) -> Optional[Tuple[Candle, ...]]: ...

    def set(self, key: str, candles: Sequence[Candle]) -> None: ...

    def sweep(self) -> int: ...

    def stats(self) -> CacheStats: ...


class CandleCache:
    """Thread-safe TTL cache of candle sequences.

    Attributes:
        _entries: Cache map (key -> CacheEntry)
        _ttl: Time-to-live in seconds
        _clock: Callable returning the current time in seconds
    """

    def __init__(self, ttl: float = DEFAULT_TTL, clock: Callable[[], float] = time.time):
        if ttl <= 0:
            raise ValueError(f"Cache TTL must be > 0, got {ttl}")
        self._entries: Dict[str, CacheEntry] = {}
        self._ttl = ttl
        self._clock = clock
        self._lock = threading.Lock()
        self.logger = logging.getLogger(__name__)

    @property
    def ttl(self) -> float:
        return self._ttl

    def _is_expired(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.captured_at >= self._ttl

    def get(self, key: str) -> Optional[Tuple[Candle, ...]]:
        """
        Get cached candles for key.

        Args:
            key: Cache key (symbol or symbol:timeframe)

        Returns:
            Candles if present and within TTL, None on a miss. An expired
            entry found here is dropped.
        """
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._is_expired(entry, now):
                del self._entries[key]
                self.logger.debug(f"Cache entry expired on read: {key}")
                return None
            return entry.candles

    def set(self, key: str, candles: Sequence[Candle]) -> None:
        """Store candles under key, replacing any previous entry."""
        entry = CacheEntry(candles=tuple(candles), captured_at=self._clock())
        with self._lock:
            self._entries[key] = entry

    def sweep(self) -> int:
        """
        Remove every expired entry, leaving fresh ones.

        Returns:
            Number of entries removed
        """
        now = self._clock()
        with self._lock:
            expired = [k for k, e in self._entries.items() if self._is_expired(e, now)]
            for key in expired:
                del self._entries[key]
        if expired:
            self.logger.debug(f"Swept {len(expired)} expired cache entries")
        return len(expired)

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(size=len(self._entries), keys=list(self._entries))

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
