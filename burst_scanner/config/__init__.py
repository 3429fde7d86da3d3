"""Scoring configuration module."""

from burst_scanner.config.scoring import (
    DEFAULT_SCORING_CONFIG,
    AboutToBurstThresholds,
    BurstWeights,
    FeatureWindows,
    LeverageTable,
    LosingVolThresholds,
    ScoringConfig,
    StateThresholds,
    VolatileThresholds,
)

__all__ = [
    "ScoringConfig",
    "DEFAULT_SCORING_CONFIG",
    "BurstWeights",
    "StateThresholds",
    "AboutToBurstThresholds",
    "VolatileThresholds",
    "LosingVolThresholds",
    "LeverageTable",
    "FeatureWindows",
]
