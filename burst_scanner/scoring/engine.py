"""
Burst scoring engine.

Combines an indicator snapshot with a cross-sectional sample of realized
volatility ("the universe") into volatility metrics, a 0-100 burst score, a
market state and a leverage suggestion.

All functions are pure: the same candles, snapshot, universe and config always
produce the same output (apart from the ``last_update`` timestamp), and no
state is kept between calls. State transitions are detected by comparing two
independent evaluations.
"""

import math
import time
from typing import Optional, Sequence

import numpy as np

from burst_scanner.config.scoring import DEFAULT_SCORING_CONFIG, ScoringConfig
from burst_scanner.indicators import technical as ti
from burst_scanner.models.candle import Candle
from burst_scanner.models.indicators import IndicatorSnapshot, VolatilityMetrics
from burst_scanner.models.signal import (
    SIGNIFICANT_STATES,
    BurstAnalysis,
    RiskAssessment,
    RiskLevel,
    SignalState,
)

# (min accumulated risk score, level, max suggested leverage), highest first
_RISK_BUCKETS = (
    (6, RiskLevel.EXTREME, 3),
    (4, RiskLevel.HIGH, 5),
    (2, RiskLevel.MEDIUM, 7),
)

SHORT_TIMEFRAMES = frozenset({"1m"})


def _now_ms() -> int:
    return int(time.time() * 1000)


def calculate_volatility_metrics(
    candles: Sequence[Candle],
    indicators: IndicatorSnapshot,
    universe_volatilities: Sequence[float] = (),
    config: ScoringConfig = DEFAULT_SCORING_CONFIG,
) -> VolatilityMetrics:
    """
    Derive volatility, volume, breakout, momentum and trend features.

    Args:
        candles: Candle window the snapshot was computed from
        indicators: Snapshot for the same window
        universe_volatilities: Latest realized volatility of comparable
            symbols. When empty, z-score and volatility score are 0.
        config: Scoring configuration

    Returns:
        VolatilityMetrics with all normalized fields clamped

    Raises:
        InsufficientDataError: If the window is shorter than the realized
            volatility or ROC periods need
    """
    windows = config.windows
    closes = [c.close for c in candles]

    realized_vol = float(ti.realized_volatility(closes, windows.realized_volatility)[-1])

    volatility_zscore = 0.0
    volatility_score = 0.0
    if len(universe_volatilities) > 0:
        universe_median = ti.median(universe_volatilities)
        universe_mad = ti.mad(universe_volatilities)
        volatility_zscore = ti.z_score(realized_vol, universe_median, universe_mad)
        volatility_score = ti.clamp(50.0 + volatility_zscore * 20.0, 0.0, 100.0)

    last_volume = candles[-1].volume
    volume_surge = last_volume / indicators.volume_ema if indicators.volume_ema > 0 else 0.0
    volume_surge_normalized = ti.clamp(volume_surge / config.volume_surge_cap, 0.0, 1.0)

    current_price = closes[-1]
    distance_to_high = (indicators.donchian_high20 - current_price) / (indicators.atr or 1.0)
    breakout_proximity = max(0.0, 1.0 - abs(distance_to_high) / 2.0)
    breakout_score = 1.0 if current_price >= indicators.donchian_high20 else breakout_proximity

    rsi_normalized = (indicators.rsi14 - 50.0) / 50.0
    roc_normalized = math.tanh(float(ti.roc(closes, windows.roc)[-1]) / 5.0)
    momentum = (rsi_normalized + roc_normalized) / 2.0

    trend_quality = indicators.adx14

    return VolatilityMetrics(
        realized_volatility=realized_vol,
        volatility_zscore=volatility_zscore,
        volatility_score=volatility_score,
        volume_surge=volume_surge,
        volume_surge_normalized=volume_surge_normalized,
        breakout_proximity=breakout_proximity,
        breakout_score=breakout_score,
        momentum=momentum,
        momentum_normalized=ti.normalize(momentum),
        trend_quality=trend_quality,
        trend_quality_normalized=ti.clamp(trend_quality / 50.0, 0.0, 1.0),
    )


def calculate_raw_burst_score(
    metrics: VolatilityMetrics, config: ScoringConfig = DEFAULT_SCORING_CONFIG
) -> float:
    """Weighted sum of the normalized burst components."""
    weights = config.weights
    volatility_component = ti.normalize(metrics.volatility_zscore)

    return (
        weights.volatility * volatility_component
        + weights.volume_surge * metrics.volume_surge_normalized
        + weights.breakout * metrics.breakout_score
        + weights.momentum * metrics.momentum_normalized
        + weights.trend * metrics.trend_quality_normalized
    )


def normalize_burst_score(raw_score: float) -> float:
    """Map a raw weighted score onto [0, 100] via ``50 + 50 * tanh(raw)``."""
    return ti.clamp(50.0 + 50.0 * math.tanh(raw_score), 0.0, 100.0)


def short_term_volatility(
    candles: Sequence[Candle], config: ScoringConfig = DEFAULT_SCORING_CONFIG
) -> np.ndarray:
    """
    Realized volatility over the most recent candles with a short window.

    Defaults to the last 10 closes with a 5-period window (five samples).
    Returns an empty array when there are too few candles.
    """
    thresholds = config.thresholds
    closes = [c.close for c in candles[-thresholds.short_vol_lookback:]]
    if len(closes) <= thresholds.short_vol_period:
        return np.empty(0)
    return ti.realized_volatility(closes, thresholds.short_vol_period)


def determine_signal_state(
    candles: Sequence[Candle],
    indicators: IndicatorSnapshot,
    volatility: VolatilityMetrics,
    burst_score: float,
    config: ScoringConfig = DEFAULT_SCORING_CONFIG,
) -> SignalState:
    """
    Classify the current window; the first matching rule wins.

    1. ABOUT_TO_BURST: score >= 75, volume surge or breakout >= 0.6, and the
       short-window volatility is rising (latest > value 2 bars earlier).
    2. VOLATILE: volatility z-score >= 1.5 or ATR% >= 1.0.
    3. LOSING_VOL: short-window volatility fell by >= 80% over 5 samples.
    4. NORMAL otherwise.
    """
    thresholds = config.thresholds
    burst = thresholds.about_to_burst
    short_vols = short_term_volatility(candles, config)

    if burst_score >= burst.burst_score and (
        volatility.volume_surge_normalized >= burst.volume_surge_min
        or volatility.breakout_score >= burst.breakout_proximity_min
    ):
        bars = burst.volatility_trend_bars
        if len(short_vols) >= bars and short_vols[-1] > short_vols[-bars]:
            return SignalState.ABOUT_TO_BURST

    volatile = thresholds.volatile
    if (
        volatility.volatility_zscore >= volatile.volatility_zscore
        or indicators.atr_percent >= volatile.atr_percent_min
    ):
        return SignalState.VOLATILE

    losing = thresholds.losing_vol
    bars = losing.volatility_drop_bars
    if len(short_vols) >= bars:
        reference = float(short_vols[-bars])
        volatility_drop = reference - float(short_vols[-1])
        if volatility_drop / (reference or 1.0) >= losing.volatility_drop_threshold:
            return SignalState.LOSING_VOL

    return SignalState.NORMAL


def calculate_leverage_suggestion(
    atr_percent: float, config: ScoringConfig = DEFAULT_SCORING_CONFIG
) -> int:
    """
    Suggested leverage from ATR%.

    Tiers are checked in ascending threshold order: <=0.5 -> 10x, <=0.8 -> 7x,
    <=1.2 -> 6x, otherwise 5x.
    """
    return config.leverage.lookup(atr_percent)


def assess_risk(
    volatility: VolatilityMetrics,
    indicators: IndicatorSnapshot,
    timeframe: str,
) -> RiskAssessment:
    """
    Advisory risk bucket from volatility, ATR%, volume surge and timeframe.

    Non-blocking and independent of calculate_leverage_suggestion; callers
    may show both.
    """
    risk_factors = []
    risk_score = 0

    if volatility.volatility_zscore > 2:
        risk_factors.append("Extreme volatility")
        risk_score += 3
    elif volatility.volatility_zscore > 1.5:
        risk_factors.append("High volatility")
        risk_score += 2

    if indicators.atr_percent > 2:
        risk_factors.append("Very high ATR")
        risk_score += 2
    elif indicators.atr_percent > 1.2:
        risk_factors.append("High ATR")
        risk_score += 1

    if volatility.volume_surge > 10:
        risk_factors.append("Extreme volume surge")
        risk_score += 2
    elif volatility.volume_surge > 5:
        risk_factors.append("High volume surge")
        risk_score += 1

    if timeframe in SHORT_TIMEFRAMES:
        risk_factors.append("Short timeframe")
        risk_score += 1

    for min_score, level, max_leverage in _RISK_BUCKETS:
        if risk_score >= min_score:
            return RiskAssessment(
                risk_level=level,
                risk_factors=tuple(risk_factors),
                max_suggested_leverage=max_leverage,
                risk_score=risk_score,
            )
    return RiskAssessment(
        risk_level=RiskLevel.LOW,
        risk_factors=tuple(risk_factors),
        max_suggested_leverage=10,
        risk_score=risk_score,
    )


def calculate_burst_score(
    candles: Sequence[Candle],
    indicators: IndicatorSnapshot,
    universe_volatilities: Sequence[float] = (),
    config: ScoringConfig = DEFAULT_SCORING_CONFIG,
    metrics: Optional[VolatilityMetrics] = None,
    now: Optional[int] = None,
) -> BurstAnalysis:
    """
    Full burst analysis for one symbol.

    Args:
        candles: Candle window
        indicators: Snapshot for the same window
        universe_volatilities: Cross-sectional realized volatility sample
        config: Scoring configuration
        metrics: Precomputed metrics for the same inputs, if available
        now: Timestamp (epoch ms) to stamp the analysis with

    Returns:
        BurstAnalysis without a delta
    """
    if metrics is None:
        metrics = calculate_volatility_metrics(candles, indicators, universe_volatilities, config)

    burst_raw = calculate_raw_burst_score(metrics, config)
    burst_score = normalize_burst_score(burst_raw)

    return BurstAnalysis(
        burst_score=burst_score,
        burst_raw=burst_raw,
        state=determine_signal_state(candles, indicators, metrics, burst_score, config),
        leverage_suggestion=calculate_leverage_suggestion(indicators.atr_percent, config),
        last_update=_now_ms() if now is None else now,
    )


def detect_state_transition(previous: SignalState, current: SignalState) -> bool:
    """True when the state changed into ABOUT_TO_BURST or LOSING_VOL."""
    return previous != current and current in SIGNIFICANT_STATES


def calculate_delta(
    current: BurstAnalysis, previous: Optional[BurstAnalysis]
) -> Optional[float]:
    """Signed burst score change, or None without a previous analysis."""
    if previous is None:
        return None
    return current.burst_score - previous.burst_score
