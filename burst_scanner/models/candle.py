"""
Candlestick data model
"""

import math
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Mapping

from burst_scanner.core.exceptions import DataValidationError


@dataclass(frozen=True)
class Candle:
    """
    OHLCV candlestick from a perpetual-futures market.

    Immutable once produced by the data source. Sequences are expected in
    ascending timestamp order; gaps are not checked.

    Attributes:
        timestamp: Candle opening time (epoch milliseconds, UTC)
        open: Opening price
        high: Highest price in period
        low: Lowest price in period
        close: Closing/current price
        volume: Trading volume in contracts or base asset
    """

    timestamp: int
    open: float
    high: float
    low: float
    close: float
    volume: float

    def __post_init__(self) -> None:
        """Validate price coherence."""
        fields = (self.open, self.high, self.low, self.close, self.volume)
        if not all(math.isfinite(v) for v in fields):
            raise DataValidationError(
                f"Candle fields must be finite, got open={self.open}, high={self.high}, "
                f"low={self.low}, close={self.close}, volume={self.volume}"
            )
        if min(self.open, self.high, self.low, self.close) <= 0:
            raise DataValidationError(
                f"Prices must be > 0, got open={self.open}, high={self.high}, "
                f"low={self.low}, close={self.close}"
            )
        if self.high < max(self.open, self.close):
            raise DataValidationError(
                f"High ({self.high}) must be >= max(open={self.open}, close={self.close})"
            )
        if self.low > min(self.open, self.close):
            raise DataValidationError(
                f"Low ({self.low}) must be <= min(open={self.open}, close={self.close})"
            )
        if self.volume < 0:
            raise DataValidationError(f"Volume ({self.volume}) cannot be negative")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Candle":
        """
        Build a candle from the exchange client's kline dict.

        Accepts either ``timestamp`` or ``open_time`` for the opening time and
        numeric strings for the price fields.
        """
        try:
            timestamp = data["timestamp"] if "timestamp" in data else data["open_time"]
            return cls(
                timestamp=int(timestamp),
                open=float(data["open"]),
                high=float(data["high"]),
                low=float(data["low"]),
                close=float(data["close"]),
                volume=float(data["volume"]),
            )
        except DataValidationError:
            raise
        except (KeyError, TypeError, ValueError) as e:
            raise DataValidationError(f"Invalid candle payload {dict(data)!r}: {e}") from e

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @property
    def open_time(self) -> datetime:
        """Opening time as an aware UTC datetime."""
        return datetime.fromtimestamp(self.timestamp / 1000, tz=timezone.utc)

    def true_range(self, prev_close: float) -> float:
        """Range including any gap from the previous close."""
        return max(
            self.high - self.low,
            abs(self.high - prev_close),
            abs(self.low - prev_close),
        )
