"""
Scan result models exchanged with the request-handling layer
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from burst_scanner.models.indicators import IndicatorSnapshot, VolatilityMetrics
from burst_scanner.models.signal import BurstAnalysis, SignalState


@dataclass(frozen=True)
class SymbolInfo:
    """
    Market metadata for a symbol, supplied by the exchange client.

    Attributes:
        symbol: Contract symbol (e.g., 'BTCUSDT')
        volume_24h: Quote volume over the last 24 hours
        last_price: Last traded price
        price_change_percent_24h: 24h price change in percent
        base_asset: Base asset (e.g., 'BTC')
        quote_asset: Quote asset (e.g., 'USDT')
        open_interest: Open interest, when the venue reports it
        funding_rate: Current funding rate, when the venue reports it
    """

    symbol: str
    volume_24h: float = 0.0
    last_price: float = 0.0
    price_change_percent_24h: float = 0.0
    base_asset: str = ""
    quote_asset: str = "USDT"
    open_interest: Optional[float] = None
    funding_rate: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SymbolInfo":
        known = {f for f in cls.__dataclass_fields__}
        return cls(**{k: v for k, v in data.items() if k in known})

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ScanResult:
    """
    Scoring output for one symbol on one timeframe.

    Produced fresh per scoring pass; results with the same (symbol, timeframe)
    are independent values.
    """

    symbol: str
    timeframe: str
    indicators: IndicatorSnapshot
    volatility: VolatilityMetrics
    burst: BurstAnalysis
    symbol_info: SymbolInfo
    last_update: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "timeframe": self.timeframe,
            "indicators": self.indicators.to_dict(),
            "volatility": self.volatility.to_dict(),
            "burst": self.burst.to_dict(),
            "symbol_info": self.symbol_info.to_dict(),
            "last_update": self.last_update,
        }


@dataclass(frozen=True)
class SymbolDetail:
    """
    Time series view of one symbol.

    ``indicator_series`` and ``volatility_series`` are index aligned, one entry
    per 50-candle window position. ``burst`` covers the whole history.
    """

    symbol: str
    timeframe: str
    indicator_series: Tuple[IndicatorSnapshot, ...]
    volatility_series: Tuple[VolatilityMetrics, ...]
    burst: BurstAnalysis
    symbol_info: SymbolInfo

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "timeframe": self.timeframe,
            "indicators": [s.to_dict() for s in self.indicator_series],
            "volatility": [v.to_dict() for v in self.volatility_series],
            "burst": self.burst.to_dict(),
            "symbol_info": self.symbol_info.to_dict(),
        }


@dataclass(frozen=True)
class StateTransition:
    """A symbol moving between two independently evaluated states."""

    symbol: str
    timeframe: str
    from_state: SignalState
    to_state: SignalState
    timestamp: int
    burst_score: float
    volatility_score: float


@dataclass(frozen=True)
class NotificationPayload:
    """Flat alert shape handed to the notification collaborator."""

    symbol: str
    timeframe: str
    state: str
    burst_score: float
    volatility_score: float
    volume_surge: float
    atr_percent: float
    leverage_suggestion: int
    timestamp: int

    @classmethod
    def from_scan_result(cls, result: ScanResult) -> "NotificationPayload":
        return cls(
            symbol=result.symbol,
            timeframe=result.timeframe,
            state=result.burst.state.value,
            burst_score=result.burst.burst_score,
            volatility_score=result.volatility.volatility_score,
            volume_surge=result.volatility.volume_surge,
            atr_percent=result.indicators.atr_percent,
            leverage_suggestion=result.burst.leverage_suggestion,
            timestamp=result.last_update,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class TopPerformers:
    """Top-N rankings over one result set."""

    by_burst_score: List[ScanResult] = field(default_factory=list)
    by_volatility: List[ScanResult] = field(default_factory=list)
    by_volume_surge: List[ScanResult] = field(default_factory=list)
    about_to_burst: List[ScanResult] = field(default_factory=list)
