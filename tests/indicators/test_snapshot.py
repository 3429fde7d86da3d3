"""
Unit tests for the indicator snapshot builder
"""

import math

import numpy as np
import pytest

from burst_scanner.config.scoring import FeatureWindows
from burst_scanner.core.exceptions import InsufficientDataError
from burst_scanner.indicators import technical as ti
from burst_scanner.indicators.snapshot import MIN_CANDLES, calculate_indicators
from burst_scanner.models.candle import Candle


def create_test_candles(count: int, seed: int = 7, step_vol: float = 0.01) -> list:
    """Seeded random walk of valid candles."""
    rng = np.random.default_rng(seed)
    candles = []
    close = 100.0
    for i in range(count):
        open_ = close
        close = open_ * math.exp(rng.normal(0.0, step_vol))
        candles.append(
            Candle(
                timestamp=1_700_000_000_000 + i * 60_000,
                open=open_,
                high=max(open_, close) * (1 + step_vol / 2),
                low=min(open_, close) * (1 - step_vol / 2),
                close=close,
                volume=1000.0 * (1 + rng.random()),
            )
        )
    return candles


class TestCalculateIndicators:
    """Test calculate_indicators()"""

    def test_min_candles_is_50(self):
        """EMA50 is the longest default window"""
        assert MIN_CANDLES == 50

    def test_insufficient_candles(self):
        """49 candles raise with required/actual set"""
        with pytest.raises(InsufficientDataError) as exc_info:
            calculate_indicators(create_test_candles(49))

        assert exc_info.value.required == 50
        assert exc_info.value.actual == 49

    def test_exactly_min_candles(self):
        """50 candles are enough for every indicator"""
        snapshot = calculate_indicators(create_test_candles(50))

        assert 0.0 <= snapshot.rsi14 <= 100.0
        assert snapshot.atr > 0
        assert snapshot.adx14 >= 0

    def test_snapshot_matches_latest_values(self):
        """Snapshot holds the last value of each series"""
        candles = create_test_candles(80)
        closes = [c.close for c in candles]
        volumes = [c.volume for c in candles]

        snapshot = calculate_indicators(candles)

        assert snapshot.rsi14 == pytest.approx(ti.rsi(closes, 14)[-1])
        assert snapshot.atr == pytest.approx(ti.atr(candles, 14)[-1])
        assert snapshot.adx14 == pytest.approx(ti.adx(candles, 14).adx[-1])
        assert snapshot.ema20 == pytest.approx(ti.ema(closes, 20)[-1])
        assert snapshot.ema50 == pytest.approx(ti.ema(closes, 50)[-1])
        assert snapshot.donchian_high20 == pytest.approx(max(c.high for c in candles[-20:]))
        assert snapshot.donchian_low20 == pytest.approx(min(c.low for c in candles[-20:]))
        assert snapshot.volume_ema == pytest.approx(ti.ema(volumes, 20)[-1])

    def test_atr_percent(self):
        """ATR% is ATR relative to the last close"""
        candles = create_test_candles(60)
        snapshot = calculate_indicators(candles)

        assert snapshot.atr_percent == pytest.approx(snapshot.atr / candles[-1].close * 100)

    def test_custom_windows(self):
        """Shorter windows lower the candle requirement"""
        windows = FeatureWindows(ema_slow=30)
        snapshot = calculate_indicators(create_test_candles(30), windows)

        assert snapshot.ema50 > 0

    def test_deterministic(self):
        """Same candles always give the same snapshot"""
        candles = create_test_candles(60)
        assert calculate_indicators(candles) == calculate_indicators(candles)
