"""
Indicator snapshot builder
"""

from typing import Optional, Sequence

from burst_scanner.config.scoring import FeatureWindows
from burst_scanner.core.exceptions import InsufficientDataError
from burst_scanner.indicators import technical as ti
from burst_scanner.models.candle import Candle
from burst_scanner.models.indicators import IndicatorSnapshot

# Longest default window (EMA50); scoring requires at least this many candles
MIN_CANDLES = FeatureWindows().min_candles


def calculate_indicators(
    candles: Sequence[Candle], windows: Optional[FeatureWindows] = None
) -> IndicatorSnapshot:
    """
    Compute the latest value of every indicator over ``candles``.

    Args:
        candles: Candles in ascending timestamp order
        windows: Indicator periods (defaults to FeatureWindows())

    Returns:
        IndicatorSnapshot for the window ending at the last candle

    Raises:
        InsufficientDataError: If fewer candles than the longest window needs
    """
    windows = windows or FeatureWindows()
    required = windows.min_candles
    if len(candles) < required:
        raise InsufficientDataError(
            f"Indicator snapshot needs {required} candles, got {len(candles)}",
            required=required,
            actual=len(candles),
        )

    closes = [c.close for c in candles]
    volumes = [c.volume for c in candles]
    last_close = closes[-1]

    atr_value = float(ti.atr(candles, windows.atr)[-1])
    channel = ti.donchian(candles, windows.donchian)

    return IndicatorSnapshot(
        rsi14=float(ti.rsi(closes, windows.rsi)[-1]),
        atr=atr_value,
        atr_percent=atr_value / last_close * 100.0,
        adx14=float(ti.adx(candles, windows.adx).adx[-1]),
        ema20=float(ti.ema(closes, windows.ema_fast)[-1]),
        ema50=float(ti.ema(closes, windows.ema_slow)[-1]),
        donchian_high20=float(channel.high[-1]),
        donchian_low20=float(channel.low[-1]),
        volume_ema=float(ti.ema(volumes, windows.volume)[-1]),
    )
