"""
Data models package
"""

from .candle import Candle
from .indicators import IndicatorSnapshot, VolatilityMetrics
from .scan import (
    NotificationPayload,
    ScanResult,
    StateTransition,
    SymbolDetail,
    SymbolInfo,
    TopPerformers,
)
from .signal import (
    SIGNIFICANT_STATES,
    BurstAnalysis,
    RiskAssessment,
    RiskLevel,
    SignalState,
)

__all__ = [
    "Candle",
    "IndicatorSnapshot",
    "VolatilityMetrics",
    "BurstAnalysis",
    "SignalState",
    "SIGNIFICANT_STATES",
    "RiskLevel",
    "RiskAssessment",
    "SymbolInfo",
    "ScanResult",
    "SymbolDetail",
    "StateTransition",
    "NotificationPayload",
    "TopPerformers",
]
