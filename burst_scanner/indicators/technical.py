"""
Technical indicator calculators.

Stateless functions over ordered price/volume series. Every window-based
function uses the same convention: a trailing window that includes the
current index, so series built from each other (e.g. ADX from smoothed DM and
TR) stay aligned index for index with their inputs' tails.

Inputs shorter than a function needs raise InsufficientDataError rather than
returning a placeholder value.
"""

import math
from typing import NamedTuple, Sequence, Union

import numpy as np
from numpy.lib.stride_tricks import sliding_window_view

from burst_scanner.core.exceptions import InsufficientDataError
from burst_scanner.models.candle import Candle

# Periods per year used to annualize realized volatility
ANNUALIZATION_FACTOR = 252

Series = Union[Sequence[float], np.ndarray]


class AdxResult(NamedTuple):
    """ADX with its directional indicators (each >= 0)."""

    adx: np.ndarray
    plus_di: np.ndarray
    minus_di: np.ndarray


class DonchianChannel(NamedTuple):
    """Rolling high/low envelope and its midpoint."""

    high: np.ndarray
    low: np.ndarray
    middle: np.ndarray


def _as_array(values: Series) -> np.ndarray:
    return np.asarray(values, dtype=float)


def _require(name: str, available: int, required: int) -> None:
    if available < required:
        raise InsufficientDataError(
            f"{name} needs at least {required} values, got {available}",
            required=required,
            actual=available,
        )


def _check_period(period: int) -> None:
    if period < 1:
        raise ValueError(f"Period must be >= 1, got {period}")


def clamp(value: float, lo: float, hi: float) -> float:
    """
    Clamp ``value`` into [lo, hi].

    Raises:
        ValueError: If ``value`` is NaN
    """
    if math.isnan(value):
        raise ValueError("Cannot clamp NaN")
    return max(lo, min(hi, value))


def sma(values: Series, period: int) -> np.ndarray:
    """
    Simple moving average.

    Args:
        values: Ordered input series
        period: Window size

    Returns:
        Array of length ``len(values) - period + 1``

    Raises:
        InsufficientDataError: If ``len(values) < period``
    """
    _check_period(period)
    arr = _as_array(values)
    _require("SMA", len(arr), period)
    return sliding_window_view(arr, period).mean(axis=1)


def ema(values: Series, period: int) -> np.ndarray:
    """
    Exponential moving average seeded with the SMA of the first ``period`` values.

    Multiplier is ``2 / (period + 1)``.

    Returns:
        Array of length ``len(values) - period + 1``; element 0 is the seed
    """
    _check_period(period)
    arr = _as_array(values)
    _require("EMA", len(arr), period)

    multiplier = 2.0 / (period + 1)
    result = np.empty(len(arr) - period + 1)
    result[0] = arr[:period].sum() / period
    for i, value in enumerate(arr[period:], start=1):
        result[i] = (value - result[i - 1]) * multiplier + result[i - 1]
    return result


def rsi(closes: Series, period: int = 14) -> np.ndarray:
    """
    Relative Strength Index with EMA-smoothed gains and losses.

    RSI is 100 wherever the average loss is exactly zero.

    Returns:
        Array of length ``len(closes) - period`` with values in [0, 100]
    """
    _check_period(period)
    arr = _as_array(closes)
    _require("RSI", len(arr), period + 1)

    changes = np.diff(arr)
    avg_gains = ema(np.where(changes > 0, changes, 0.0), period)
    avg_losses = ema(np.where(changes < 0, -changes, 0.0), period)

    result = np.full(len(avg_gains), 100.0)
    nonzero = avg_losses != 0
    rs = avg_gains[nonzero] / avg_losses[nonzero]
    result[nonzero] = 100.0 - 100.0 / (1.0 + rs)
    return np.clip(result, 0.0, 100.0)


def true_range(candles: Sequence[Candle]) -> np.ndarray:
    """True range of every candle after the first (length ``len(candles) - 1``)."""
    return np.array(
        [curr.true_range(prev.close) for prev, curr in zip(candles, candles[1:])],
        dtype=float,
    )


def atr(candles: Sequence[Candle], period: int = 14) -> np.ndarray:
    """
    Average True Range: EMA of true range.

    Returns:
        Array of length ``len(candles) - period``
    """
    _check_period(period)
    _require("ATR", len(candles), period + 1)
    return ema(true_range(candles), period)


def adx(candles: Sequence[Candle], period: int = 14) -> AdxResult:
    """
    Average Directional Index (Wilder's directional movement).

    +DM/-DM come from consecutive high/low moves. DM and true range are
    EMA-smoothed, DI = smoothed DM / smoothed TR * 100, DX is the normalized DI
    spread and ADX is the EMA of DX. A zero smoothed TR or zero DI sum yields 0.

    Returns:
        AdxResult; ``plus_di``/``minus_di`` have ``len(candles) - period``
        values, ``adx`` has ``len(candles) - 2 * period + 1``

    Raises:
        InsufficientDataError: If fewer than ``2 * period`` candles
    """
    _check_period(period)
    _require("ADX", len(candles), 2 * period)

    highs = np.array([c.high for c in candles], dtype=float)
    lows = np.array([c.low for c in candles], dtype=float)
    up_moves = np.diff(highs)
    down_moves = -np.diff(lows)

    plus_dm = np.where((up_moves > down_moves) & (up_moves > 0), up_moves, 0.0)
    minus_dm = np.where((down_moves > up_moves) & (down_moves > 0), down_moves, 0.0)

    smoothed_plus = ema(plus_dm, period)
    smoothed_minus = ema(minus_dm, period)
    smoothed_tr = ema(true_range(candles), period)

    with np.errstate(divide="ignore", invalid="ignore"):
        plus_di = np.where(smoothed_tr > 0, smoothed_plus / smoothed_tr * 100.0, 0.0)
        minus_di = np.where(smoothed_tr > 0, smoothed_minus / smoothed_tr * 100.0, 0.0)
        di_sum = plus_di + minus_di
        dx = np.where(di_sum > 0, np.abs(plus_di - minus_di) / di_sum * 100.0, 0.0)

    return AdxResult(adx=ema(dx, period), plus_di=plus_di, minus_di=minus_di)


def donchian(candles: Sequence[Candle], period: int = 20) -> DonchianChannel:
    """
    Donchian channel: rolling max(high), min(low) and their average.

    Returns:
        DonchianChannel with arrays of length ``len(candles) - period + 1``
    """
    _check_period(period)
    _require("Donchian", len(candles), period)

    highs = sliding_window_view(np.array([c.high for c in candles], dtype=float), period)
    lows = sliding_window_view(np.array([c.low for c in candles], dtype=float), period)
    upper = highs.max(axis=1)
    lower = lows.min(axis=1)
    return DonchianChannel(high=upper, low=lower, middle=(upper + lower) / 2.0)


def roc(values: Series, period: int) -> np.ndarray:
    """
    Rate of change in percent vs. the value ``period`` steps back.

    A zero reference value yields 0.

    Returns:
        Array of length ``len(values) - period``
    """
    _check_period(period)
    arr = _as_array(values)
    _require("ROC", len(arr), period + 1)

    current = arr[period:]
    previous = arr[:-period]
    with np.errstate(divide="ignore", invalid="ignore"):
        return np.where(previous != 0, (current - previous) / previous * 100.0, 0.0)


def std_dev(values: Series, period: int) -> np.ndarray:
    """Population standard deviation (divide by ``period``) per trailing window."""
    _check_period(period)
    arr = _as_array(values)
    _require("StdDev", len(arr), period)
    return sliding_window_view(arr, period).std(axis=1, ddof=0)


def z_score(value: float, mean: float, std: float) -> float:
    """Standard score; defined as 0 when ``std`` is 0."""
    if std == 0:
        return 0.0
    return (value - mean) / std


def median(values: Series) -> float:
    arr = _as_array(values)
    _require("Median", len(arr), 1)
    return float(np.median(arr))


def mad(values: Series) -> float:
    """
    Median absolute deviation from the median.

    Robust dispersion estimate used for cross-sectional comparisons where a
    handful of outliers would inflate a standard deviation.
    """
    arr = _as_array(values)
    _require("MAD", len(arr), 1)
    return float(np.median(np.abs(arr - np.median(arr))))


def normalize(value: float, scale: float = 1.0) -> float:
    """Map the real line onto [0, 1] via ``0.5 + 0.5 * tanh(value / scale)``."""
    if scale <= 0:
        raise ValueError(f"Scale must be > 0, got {scale}")
    return clamp(0.5 + 0.5 * math.tanh(value / scale), 0.0, 1.0)


def realized_volatility(closes: Series, period: int = 20) -> np.ndarray:
    """
    Rolling annualized volatility of log returns.

    Uses sample variance (divide by ``period - 1``) and ``sqrt(var * 252)``.

    Returns:
        Array of length ``len(closes) - period``

    Raises:
        InsufficientDataError: If fewer than ``period + 1`` closes
        ValueError: If ``period < 2`` or any close is not positive
    """
    if period < 2:
        raise ValueError(f"Realized volatility period must be >= 2, got {period}")
    arr = _as_array(closes)
    _require("Realized volatility", len(arr), period + 1)
    if np.any(arr <= 0):
        raise ValueError("Closes must be positive to compute log returns")

    returns = np.diff(np.log(arr))
    variance = sliding_window_view(returns, period).var(axis=1, ddof=1)
    return np.sqrt(variance * ANNUALIZATION_FACTOR)
