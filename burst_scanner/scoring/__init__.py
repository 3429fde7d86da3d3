"""
Burst scoring package
"""

from .engine import (
    assess_risk,
    calculate_burst_score,
    calculate_delta,
    calculate_leverage_suggestion,
    calculate_raw_burst_score,
    calculate_volatility_metrics,
    detect_state_transition,
    determine_signal_state,
    normalize_burst_score,
    short_term_volatility,
)

__all__ = [
    "calculate_volatility_metrics",
    "calculate_raw_burst_score",
    "normalize_burst_score",
    "short_term_volatility",
    "determine_signal_state",
    "calculate_leverage_suggestion",
    "assess_risk",
    "calculate_burst_score",
    "detect_state_transition",
    "calculate_delta",
]
