"""
Indicator and volatility snapshot models.

Both models are derived values computed from the trailing window ending at the
last candle of a sequence. They carry no state between calculations; a new
snapshot is built from scratch on every call.
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict


@dataclass(frozen=True)
class IndicatorSnapshot:
    """
    Latest value of each technical indicator for one candle window.

    Attributes:
        rsi14: 14-period RSI (0-100)
        atr: 14-period Average True Range in price units
        atr_percent: ATR as a percentage of the last close
        adx14: 14-period Average Directional Index
        ema20: 20-period EMA of closes
        ema50: 50-period EMA of closes
        donchian_high20: Highest high of the last 20 candles
        donchian_low20: Lowest low of the last 20 candles
        volume_ema: 20-period EMA of volume
    """

    rsi14: float
    atr: float
    atr_percent: float
    adx14: float
    ema20: float
    ema50: float
    donchian_high20: float
    donchian_low20: float
    volume_ema: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class VolatilityMetrics:
    """
    Volatility, volume and momentum features feeding the burst score.

    Normalized fields are clamped: ``volatility_score`` to [0, 100], every
    ``*_normalized`` field and ``breakout_score`` to [0, 1].
    """

    realized_volatility: float
    volatility_zscore: float
    volatility_score: float
    volume_surge: float
    volume_surge_normalized: float
    breakout_proximity: float
    breakout_score: float
    momentum: float
    momentum_normalized: float
    trend_quality: float
    trend_quality_normalized: float

    def __post_init__(self) -> None:
        if not 0.0 <= self.volatility_score <= 100.0:
            raise ValueError(f"volatility_score must be 0-100, got {self.volatility_score}")
        for name in (
            "volume_surge_normalized",
            "breakout_score",
            "momentum_normalized",
            "trend_quality_normalized",
        ):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ValueError(f"{name} must be 0.0-1.0, got {value}")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
