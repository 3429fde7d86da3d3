"""
Unit tests for technical indicator calculators
"""

import math

import numpy as np
import pytest

from burst_scanner.core.exceptions import InsufficientDataError
from burst_scanner.indicators import technical as ti
from burst_scanner.models.candle import Candle


def create_test_candle(close: float, spread: float = 1.0, index: int = 0, open_=None) -> Candle:
    """Create a candle around close with high/low spread on either side."""
    open_ = close if open_ is None else open_
    return Candle(
        timestamp=1_700_000_000_000 + index * 60_000,
        open=open_,
        high=max(open_, close) + spread,
        low=min(open_, close) - spread,
        close=close,
        volume=1000.0,
    )


def create_trending_candles(count: int) -> list:
    """Steady uptrend: every high and low one point above the previous."""
    return [
        create_test_candle(100.0 + i, spread=0.5, index=i, open_=99.5 + i)
        for i in range(count)
    ]


class TestMovingAverages:
    """Test SMA and EMA"""

    def test_sma_values(self):
        """SMA of 1..5 over 3 periods"""
        result = ti.sma([1, 2, 3, 4, 5], 3)
        np.testing.assert_allclose(result, [2.0, 3.0, 4.0])

    def test_sma_length(self):
        """Output length is L - P + 1"""
        assert len(ti.sma(list(range(30)), 10)) == 21

    def test_sma_insufficient_data(self):
        """Fewer values than the period raises"""
        with pytest.raises(InsufficientDataError) as exc_info:
            ti.sma([1, 2], 3)

        assert exc_info.value.required == 3
        assert exc_info.value.actual == 2

    def test_invalid_period(self):
        """Period below 1 is rejected"""
        with pytest.raises(ValueError):
            ti.sma([1, 2, 3], 0)
        with pytest.raises(ValueError):
            ti.ema([1, 2, 3], -1)

    def test_ema_seeded_with_sma(self):
        """First EMA value equals the SMA of the first period values"""
        values = [3.0, 7.0, 2.0, 9.0, 4.0, 6.0]
        result = ti.ema(values, 4)

        assert result[0] == pytest.approx(sum(values[:4]) / 4)
        assert len(result) == 3

    def test_ema_values(self):
        """EMA(3) of 1..5 uses multiplier 0.5"""
        result = ti.ema([1, 2, 3, 4, 5], 3)
        np.testing.assert_allclose(result, [2.0, 3.0, 4.0])

    def test_ema_constant_series(self):
        """EMA of a constant series is that constant"""
        result = ti.ema([5.0] * 25, 20)
        np.testing.assert_allclose(result, 5.0)


class TestRSI:
    """Test RSI"""

    def test_rsi_length(self):
        """Output length is L - P"""
        closes = [100 + (i % 3) for i in range(30)]
        assert len(ti.rsi(closes, 14)) == 16

    def test_rsi_all_gains_is_100(self):
        """No losses means RSI 100"""
        closes = [100.0 + i for i in range(30)]
        np.testing.assert_allclose(ti.rsi(closes, 14), 100.0)

    def test_rsi_all_losses_is_0(self):
        """No gains means RSI 0"""
        closes = [200.0 - i for i in range(30)]
        np.testing.assert_allclose(ti.rsi(closes, 14), 0.0)

    def test_rsi_bounded(self):
        """RSI stays within [0, 100] on a choppy series"""
        closes = [100 + 5 * math.sin(i / 2.0) for i in range(60)]
        result = ti.rsi(closes, 14)

        assert np.all(result >= 0.0)
        assert np.all(result <= 100.0)

    def test_rsi_flat_series(self):
        """Flat closes have zero average loss, so RSI is 100"""
        result = ti.rsi([50.0] * 20, 14)
        np.testing.assert_allclose(result, 100.0)

    def test_rsi_insufficient_data(self):
        """RSI needs period + 1 closes"""
        with pytest.raises(InsufficientDataError):
            ti.rsi([1.0] * 14, 14)


class TestATR:
    """Test true range and ATR"""

    def test_true_range_includes_gap(self):
        """Gap from previous close widens the range"""
        candles = [
            create_test_candle(100.0, spread=1.0),
            create_test_candle(110.0, spread=1.0, index=1),
        ]
        # high 111, low 109, prev close 100 -> |111 - 100| = 11
        np.testing.assert_allclose(ti.true_range(candles), [11.0])

    def test_atr_constant_range(self):
        """Constant 2-point range gives ATR 2"""
        candles = [create_test_candle(100.0, spread=1.0, index=i) for i in range(30)]
        result = ti.atr(candles, 14)

        assert len(result) == 16
        np.testing.assert_allclose(result, 2.0)

    def test_atr_insufficient_data(self):
        candles = [create_test_candle(100.0, index=i) for i in range(14)]
        with pytest.raises(InsufficientDataError):
            ti.atr(candles, 14)


class TestADX:
    """Test ADX and directional indicators"""

    def test_adx_lengths(self):
        """DI has L - P values and ADX has L - 2P + 1"""
        result = ti.adx(create_trending_candles(40), 14)

        assert len(result.plus_di) == 26
        assert len(result.minus_di) == 26
        assert len(result.adx) == 13

    def test_strong_uptrend(self):
        """Pure uptrend has no -DM, so DX and ADX are 100"""
        result = ti.adx(create_trending_candles(40), 14)

        np.testing.assert_allclose(result.minus_di, 0.0)
        assert np.all(result.plus_di > 0)
        assert result.adx[-1] == pytest.approx(100.0)

    def test_flat_market_is_zero(self):
        """Zero true range yields zero DI and ADX instead of NaN"""
        candles = [
            Candle(timestamp=i, open=100.0, high=100.0, low=100.0, close=100.0, volume=1.0)
            for i in range(30)
        ]
        result = ti.adx(candles, 14)

        np.testing.assert_allclose(result.adx, 0.0)
        np.testing.assert_allclose(result.plus_di, 0.0)
        assert not np.any(np.isnan(result.adx))

    def test_adx_non_negative(self):
        candles = [
            create_test_candle(100 + 3 * math.sin(i / 3.0), index=i) for i in range(60)
        ]
        result = ti.adx(candles, 14)

        assert np.all(result.adx >= 0)
        assert np.all(result.plus_di >= 0)
        assert np.all(result.minus_di >= 0)

    def test_adx_needs_two_periods(self):
        with pytest.raises(InsufficientDataError) as exc_info:
            ti.adx(create_trending_candles(27), 14)

        assert exc_info.value.required == 28


class TestDonchian:
    """Test Donchian channel"""

    def test_channel_values(self):
        """Rolling max high, min low and midpoint"""
        candles = [
            create_test_candle(c, spread=1.0, index=i)
            for i, c in enumerate([10.0, 12.0, 11.0, 15.0, 13.0])
        ]
        channel = ti.donchian(candles, 3)

        np.testing.assert_allclose(channel.high, [13.0, 16.0, 16.0])
        np.testing.assert_allclose(channel.low, [9.0, 10.0, 10.0])
        np.testing.assert_allclose(channel.middle, [11.0, 13.0, 13.0])

    def test_high_above_low(self):
        candles = [create_test_candle(100 + i % 7, index=i) for i in range(40)]
        channel = ti.donchian(candles, 20)

        assert len(channel.high) == 21
        assert np.all(channel.high >= channel.low)


class TestROC:
    """Test rate of change"""

    def test_roc_values(self):
        """10% steps"""
        np.testing.assert_allclose(ti.roc([100.0, 110.0, 121.0], 1), [10.0, 10.0])

    def test_roc_length(self):
        assert len(ti.roc(list(range(1, 11)), 3)) == 7

    def test_roc_zero_reference(self):
        """Zero reference value yields 0 instead of dividing by zero"""
        np.testing.assert_allclose(ti.roc([0.0, 5.0], 1), [0.0])


class TestStatistics:
    """Test std dev, z-score, median, MAD and normalize"""

    def test_std_dev_population(self):
        """Population std dev of 1, 2, 3"""
        result = ti.std_dev([1.0, 2.0, 3.0, 4.0], 3)
        np.testing.assert_allclose(result, [math.sqrt(2 / 3)] * 2)

    def test_z_score(self):
        assert ti.z_score(5.0, 3.0, 2.0) == pytest.approx(1.0)
        assert ti.z_score(1.0, 3.0, 2.0) == pytest.approx(-1.0)

    def test_z_score_zero_std(self):
        """Zero dispersion yields 0"""
        assert ti.z_score(5.0, 3.0, 0.0) == 0.0

    def test_median_even_length(self):
        """Even-length median averages the middle values"""
        assert ti.median([4.0, 1.0, 3.0, 2.0]) == pytest.approx(2.5)

    def test_mad_robust_to_outlier(self):
        """One outlier barely moves MAD"""
        assert ti.mad([1.0, 2.0, 3.0, 4.0, 100.0]) == pytest.approx(1.0)

    def test_mad_identical_values(self):
        assert ti.mad([0.5, 0.5, 0.5]) == 0.0

    def test_empty_sample_raises(self):
        with pytest.raises(InsufficientDataError):
            ti.median([])
        with pytest.raises(InsufficientDataError):
            ti.mad([])

    def test_normalize_midpoint(self):
        assert ti.normalize(0.0) == pytest.approx(0.5)

    def test_normalize_bounded_and_monotonic(self):
        """Output stays in [0, 1] and preserves order"""
        values = [-1000.0, -2.0, -0.5, 0.0, 0.5, 2.0, 1000.0]
        normalized = [ti.normalize(v) for v in values]

        assert all(0.0 <= n <= 1.0 for n in normalized)
        assert normalized == sorted(normalized)

    def test_normalize_scale(self):
        """Larger scale compresses the response"""
        assert ti.normalize(1.0, scale=10.0) < ti.normalize(1.0)

    def test_normalize_invalid_scale(self):
        with pytest.raises(ValueError):
            ti.normalize(1.0, scale=0.0)

    def test_clamp(self):
        assert ti.clamp(5.0, 0.0, 1.0) == 1.0
        assert ti.clamp(-5.0, 0.0, 1.0) == 0.0
        assert ti.clamp(0.3, 0.0, 1.0) == 0.3

    def test_clamp_rejects_nan(self):
        with pytest.raises(ValueError):
            ti.clamp(math.nan, 0.0, 100.0)

    def test_normalize_nan_raises(self):
        with pytest.raises(ValueError):
            ti.normalize(math.nan)


class TestRealizedVolatility:
    """Test annualized realized volatility"""

    def test_constant_prices(self):
        """Constant closes have zero volatility"""
        result = ti.realized_volatility([100.0] * 25, 20)

        assert len(result) == 5
        np.testing.assert_allclose(result, 0.0)

    def test_constant_growth(self):
        """Constant log return has zero sample variance"""
        closes = [100.0 * math.exp(0.01 * i) for i in range(30)]
        np.testing.assert_allclose(ti.realized_volatility(closes, 20), 0.0, atol=1e-9)

    def test_known_value(self):
        """Returns +r, -r: sample variance 2r^2, annualized by 252"""
        r = 0.01
        closes = [100.0, 100.0 * math.exp(r), 100.0]
        result = ti.realized_volatility(closes, 2)

        assert len(result) == 1
        assert result[0] == pytest.approx(r * math.sqrt(2 * ti.ANNUALIZATION_FACTOR))

    def test_non_positive_close(self):
        with pytest.raises(ValueError):
            ti.realized_volatility([100.0, 0.0, 101.0, 102.0], 2)

    def test_period_too_small(self):
        with pytest.raises(ValueError):
            ti.realized_volatility([100.0, 101.0, 102.0], 1)

    def test_insufficient_data(self):
        """Needs period + 1 closes"""
        with pytest.raises(InsufficientDataError):
            ti.realized_volatility([100.0] * 20, 20)
