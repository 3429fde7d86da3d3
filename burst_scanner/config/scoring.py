"""
Scoring configuration: burst weights, state thresholds, leverage table and
indicator windows.

Everything here is immutable and passed explicitly into scoring calls, so
tests and callers can vary thresholds without touching global state.

Example:
    config = ScoringConfig(
        weights=BurstWeights(volatility=0.4, volume_surge=0.25),
    )
    analysis = calculate_burst_score(candles, indicators, universe, config)
"""

import math
from dataclasses import dataclass, field
from typing import Tuple

from pydantic import BaseModel, Field

from burst_scanner.core.exceptions import ConfigurationError


@dataclass(frozen=True)
class BurstWeights:
    """
    Component weights of the raw burst score.

    The four core weights must sum to 1.0. ``trend`` is an optional additive
    term and may be set to 0 when ADX is not wanted.
    """

    volatility: float = 0.35
    volume_surge: float = 0.30
    breakout: float = 0.20
    momentum: float = 0.15
    trend: float = 0.10

    def __post_init__(self) -> None:
        core = (self.volatility, self.volume_surge, self.breakout, self.momentum)
        if any(w < 0 for w in core + (self.trend,)):
            raise ConfigurationError(f"Burst weights must be >= 0, got {self}")
        if not math.isclose(sum(core), 1.0, abs_tol=1e-9):
            raise ConfigurationError(
                f"Core burst weights must sum to 1.0, got {sum(core):.4f}"
            )


@dataclass(frozen=True)
class AboutToBurstThresholds:
    burst_score: float = 75.0
    volume_surge_min: float = 0.6
    breakout_proximity_min: float = 0.6
    # latest short-window volatility is compared with the value this many bars back (inclusive)
    volatility_trend_bars: int = 3


@dataclass(frozen=True)
class VolatileThresholds:
    volatility_zscore: float = 1.5
    atr_percent_min: float = 1.0


@dataclass(frozen=True)
class LosingVolThresholds:
    volatility_drop_bars: int = 5
    volatility_drop_threshold: float = 0.8


@dataclass(frozen=True)
class StateThresholds:
    """Classifier thresholds plus the short realized-volatility window."""

    about_to_burst: AboutToBurstThresholds = field(default_factory=AboutToBurstThresholds)
    volatile: VolatileThresholds = field(default_factory=VolatileThresholds)
    losing_vol: LosingVolThresholds = field(default_factory=LosingVolThresholds)
    short_vol_lookback: int = 10
    short_vol_period: int = 5

    def __post_init__(self) -> None:
        if self.short_vol_period < 2:
            raise ConfigurationError(
                f"short_vol_period must be >= 2, got {self.short_vol_period}"
            )
        if self.short_vol_lookback <= self.short_vol_period:
            raise ConfigurationError(
                f"short_vol_lookback ({self.short_vol_lookback}) must exceed "
                f"short_vol_period ({self.short_vol_period})"
            )
        if self.about_to_burst.volatility_trend_bars < 2:
            raise ConfigurationError("volatility_trend_bars must be >= 2")
        if self.losing_vol.volatility_drop_bars < 2:
            raise ConfigurationError("volatility_drop_bars must be >= 2")


@dataclass(frozen=True)
class LeverageTable:
    """
    ATR%-to-leverage lookup.

    ``tiers`` is an explicitly ordered tuple of ``(max_atr_percent, leverage)``
    pairs with strictly ascending thresholds. The first tier whose threshold is
    >= the ATR% wins; ``default`` applies above the last tier.
    """

    tiers: Tuple[Tuple[float, int], ...] = ((0.5, 10), (0.8, 7), (1.2, 6))
    default: int = 5

    def __post_init__(self) -> None:
        thresholds = [t for t, _ in self.tiers]
        if any(b <= a for a, b in zip(thresholds, thresholds[1:])):
            raise ConfigurationError(
                f"Leverage tiers must have strictly ascending thresholds, got {thresholds}"
            )
        if any(lev < 1 for _, lev in self.tiers) or self.default < 1:
            raise ConfigurationError("Leverage values must be >= 1")

    def lookup(self, atr_percent: float) -> int:
        for threshold, leverage in self.tiers:
            if atr_percent <= threshold:
                return leverage
        return self.default


@dataclass(frozen=True)
class FeatureWindows:
    """Indicator lookback periods."""

    rsi: int = 14
    atr: int = 14
    adx: int = 14
    ema_fast: int = 20
    ema_slow: int = 50
    donchian: int = 20
    volume: int = 20
    realized_volatility: int = 20
    roc: int = 3

    def __post_init__(self) -> None:
        for name, value in self.__dict__.items():
            if value < 1:
                raise ConfigurationError(f"Feature window '{name}' must be >= 1, got {value}")

    @property
    def min_candles(self) -> int:
        """Shortest candle history every indicator can be computed from."""
        return max(
            self.rsi + 1,
            self.atr + 1,
            2 * self.adx,
            self.ema_fast,
            self.ema_slow,
            self.donchian,
            self.volume,
            self.realized_volatility + 1,
            self.roc + 1,
        )


@dataclass(frozen=True)
class ScoringConfig:
    """Immutable bundle of every tunable used by the scoring engine."""

    weights: BurstWeights = field(default_factory=BurstWeights)
    thresholds: StateThresholds = field(default_factory=StateThresholds)
    leverage: LeverageTable = field(default_factory=LeverageTable)
    windows: FeatureWindows = field(default_factory=FeatureWindows)
    # volume surge multiple mapped to 1.0
    volume_surge_cap: float = 5.0

    class ParamSchema(BaseModel):
        """Pydantic schema for flat, user-supplied scoring parameters."""

        weight_volatility: float = Field(0.35, ge=0.0, le=1.0, description="Volatility z-score weight")
        weight_volume_surge: float = Field(0.30, ge=0.0, le=1.0, description="Volume surge weight")
        weight_breakout: float = Field(0.20, ge=0.0, le=1.0, description="Breakout proximity weight")
        weight_momentum: float = Field(0.15, ge=0.0, le=1.0, description="Momentum weight")
        weight_trend: float = Field(0.10, ge=0.0, le=1.0, description="Trend quality (ADX) weight")
        burst_threshold: float = Field(75.0, ge=50.0, le=100.0, description="ABOUT_TO_BURST minimum score")
        volume_surge_min: float = Field(0.6, ge=0.0, le=1.0)
        breakout_proximity_min: float = Field(0.6, ge=0.0, le=1.0)
        volatile_zscore: float = Field(1.5, gt=0.0)
        volatile_atr_percent: float = Field(1.0, gt=0.0)
        losing_vol_drop: float = Field(0.8, gt=0.0, le=1.0, description="Relative volatility drop")
        volume_surge_cap: float = Field(5.0, gt=0.0)

    @classmethod
    def from_validated_params(cls, params: "ScoringConfig.ParamSchema") -> "ScoringConfig":
        """Create config from Pydantic-validated params."""
        return cls(
            weights=BurstWeights(
                volatility=params.weight_volatility,
                volume_surge=params.weight_volume_surge,
                breakout=params.weight_breakout,
                momentum=params.weight_momentum,
                trend=params.weight_trend,
            ),
            thresholds=StateThresholds(
                about_to_burst=AboutToBurstThresholds(
                    burst_score=params.burst_threshold,
                    volume_surge_min=params.volume_surge_min,
                    breakout_proximity_min=params.breakout_proximity_min,
                ),
                volatile=VolatileThresholds(
                    volatility_zscore=params.volatile_zscore,
                    atr_percent_min=params.volatile_atr_percent,
                ),
                losing_vol=LosingVolThresholds(
                    volatility_drop_threshold=params.losing_vol_drop,
                ),
            ),
            volume_surge_cap=params.volume_surge_cap,
        )

    def __post_init__(self) -> None:
        if self.volume_surge_cap <= 0:
            raise ConfigurationError(
                f"volume_surge_cap must be > 0, got {self.volume_surge_cap}"
            )


DEFAULT_SCORING_CONFIG = ScoringConfig()
