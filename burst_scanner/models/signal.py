"""
Burst signal models
"""

from dataclasses import asdict, dataclass, replace
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class SignalState(Enum):
    """
    Market state assigned by the burst classifier.

    Evaluated in priority order: ABOUT_TO_BURST, VOLATILE, LOSING_VOL, NORMAL.
    """

    ABOUT_TO_BURST = "ABOUT_TO_BURST"
    VOLATILE = "VOLATILE"
    LOSING_VOL = "LOSING_VOL"
    NORMAL = "NORMAL"


# States worth notifying when a symbol transitions into them
SIGNIFICANT_STATES = frozenset({SignalState.ABOUT_TO_BURST, SignalState.LOSING_VOL})


class RiskLevel(Enum):
    """Advisory risk buckets."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    EXTREME = "EXTREME"


@dataclass(frozen=True)
class BurstAnalysis:
    """
    Composite burst score with the derived state and leverage suggestion.

    Attributes:
        burst_score: Normalized composite score (0-100)
        burst_raw: Weighted component sum before normalization
        state: Classified market state
        leverage_suggestion: Suggested leverage multiplier from ATR%
        last_update: Calculation time (epoch milliseconds)
        delta_score: Signed burst score change vs. a previous scan, if known
    """

    burst_score: float
    burst_raw: float
    state: SignalState
    leverage_suggestion: int
    last_update: int
    delta_score: Optional[float] = None

    def __post_init__(self) -> None:
        if not 0.0 <= self.burst_score <= 100.0:
            raise ValueError(f"burst_score must be 0-100, got {self.burst_score}")

    def with_delta(self, delta_score: float) -> "BurstAnalysis":
        """Return a copy carrying ``delta_score``."""
        return replace(self, delta_score=delta_score)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["state"] = self.state.value
        return data


@dataclass(frozen=True)
class RiskAssessment:
    """
    Advisory risk bucket, independent of the leverage table.

    Attributes:
        risk_level: Bucket derived from the accumulated risk score
        risk_factors: Human readable reasons that contributed to the score
        max_suggested_leverage: Leverage cap for the bucket (10/7/5/3)
        risk_score: Accumulated score
    """

    risk_level: RiskLevel
    risk_factors: Tuple[str, ...]
    max_suggested_leverage: int
    risk_score: int = 0
