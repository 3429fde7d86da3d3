"""
Symbol processor: drives indicator and scoring calculations across a
cross-section of symbols and across one symbol's history.

Cross-sectional scans run in two passes. Pass 1 collects the latest realized
volatility of every eligible symbol into the universe sample; pass 2 scores
each symbol against that complete sample. Pass 2 is only submitted after every
pass 1 task has finished, since the universe median and MAD depend on all of
them. Within a pass, symbols are evaluated concurrently on a bounded thread
pool.

Per-symbol failures (insufficient data, numeric errors) are logged and the
symbol is dropped from the output; they never abort the batch.
"""

import logging
import math
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from typing import (
    Callable,
    Iterable,
    List,
    Mapping,
    Optional,
    Sequence,
    Tuple,
    TypeVar,
    Union,
)

import pandas as pd

from burst_scanner.config.scoring import DEFAULT_SCORING_CONFIG, ScoringConfig
from burst_scanner.core.exceptions import (
    ConfigurationError,
    InsufficientDataError,
    ScannerError,
)
from burst_scanner.indicators import technical as ti
from burst_scanner.indicators.snapshot import calculate_indicators
from burst_scanner.models.candle import Candle
from burst_scanner.models.scan import (
    ScanResult,
    StateTransition,
    SymbolDetail,
    SymbolInfo,
    TopPerformers,
)
from burst_scanner.models.signal import SignalState
from burst_scanner.processing.cache import CacheStats, CandleCache, CandleStore
from burst_scanner.scoring.engine import (
    calculate_burst_score,
    calculate_volatility_metrics,
    detect_state_transition,
)
from burst_scanner.utils.logger import ScannerLogger, log_execution_time
from burst_scanner.utils.symbols import base_asset

T = TypeVar("T")
R = TypeVar("R")

# Errors that drop a single symbol from a batch
SYMBOL_ERRORS = (ScannerError, ArithmeticError, ValueError)


class SymbolProcessor:
    """
    Orchestrates indicator and scoring calculations for many symbols.

    Usage:
        processor = SymbolProcessor(max_workers=8)
        results = processor.process_symbols(candles_by_symbol, infos, '1m')
        alerts = processor.detect_significant_changes(results, previous)

    Attributes:
        MIN_CANDLES: Candles a symbol needs to be scored
        DETAIL_WINDOW: Window size for the single-symbol time series
        SCORE_DELTA_THRESHOLD: Absolute score move flagged as significant
    """

    MIN_CANDLES = 50
    DETAIL_WINDOW = MIN_CANDLES
    SCORE_DELTA_THRESHOLD = 10.0

    def __init__(
        self,
        cache: Optional[CandleStore] = None,
        scoring_config: ScoringConfig = DEFAULT_SCORING_CONFIG,
        max_workers: int = 4,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize processor.

        Args:
            cache: Candle store (defaults to a 60s CandleCache)
            scoring_config: Weights, thresholds and windows for scoring
            max_workers: Thread pool size per pass (1 evaluates inline)
            clock: Callable returning the current time in seconds
        """
        if max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {max_workers}")
        required = scoring_config.windows.min_candles
        if required > self.MIN_CANDLES:
            raise ConfigurationError(
                f"Indicator windows need {required} candles, more than the "
                f"{self.MIN_CANDLES}-candle scoring window"
            )
        self.cache: CandleStore = cache if cache is not None else CandleCache(clock=clock)
        self.scoring_config = scoring_config
        self.max_workers = max_workers
        self._clock = clock
        self.logger = logging.getLogger(__name__)

    @property
    def min_candles(self) -> int:
        """Candles a symbol needs to be scored; fixed regardless of indicator windows."""
        return self.MIN_CANDLES

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _map(self, fn: Callable[[T], R], items: Sequence[T]) -> List[R]:
        """Apply fn to every item, preserving order; blocks until all finish."""
        if self.max_workers == 1 or len(items) <= 1:
            return [fn(item) for item in items]
        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(items))) as executor:
            return list(executor.map(fn, items))

    # ------------------------------------------------------------------
    # Cross-sectional scan
    # ------------------------------------------------------------------

    def process_symbols(
        self,
        candles_by_symbol: Mapping[str, Sequence[Candle]],
        symbol_info: Mapping[str, SymbolInfo],
        timeframe: str,
    ) -> List[ScanResult]:
        """
        Score every symbol against the shared universe volatility sample.

        Args:
            candles_by_symbol: Candles per symbol, ascending by timestamp
            symbol_info: Market metadata per symbol; symbols without an entry
                get a minimal SymbolInfo built from their last close
            timeframe: Candle timeframe (e.g., '1m')

        Returns:
            ScanResults sorted by burst score, highest first. Symbols with
            fewer than 50 candles or failing calculations are left out.
        """
        eligible: List[Tuple[str, Sequence[Candle]]] = []
        for symbol, candles in candles_by_symbol.items():
            if len(candles) < self.min_candles:
                self.logger.debug(
                    f"Skipping {symbol}: {len(candles)} candles < {self.min_candles}"
                )
                continue
            eligible.append((symbol, candles))

        with log_execution_time(f"process_symbols[{timeframe}] ({len(eligible)} symbols)"):
            latest = self._map(self._latest_volatility, eligible)
            universe = [v for v in latest if v is not None]

            now = self._now_ms()

            def score(item: Tuple[str, Sequence[Candle]]) -> Optional[ScanResult]:
                symbol, candles = item
                return self._score_symbol(
                    symbol, candles, symbol_info.get(symbol), timeframe, universe, now
                )

            scored = self._map(score, eligible)

        results = [r for r in scored if r is not None]
        results.sort(key=lambda r: r.burst.burst_score, reverse=True)

        self.logger.info(
            f"Scanned {len(results)}/{len(candles_by_symbol)} symbols on {timeframe} "
            f"(universe size {len(universe)})"
        )
        return results

    def _latest_volatility(self, item: Tuple[str, Sequence[Candle]]) -> Optional[float]:
        symbol, candles = item
        try:
            closes = [c.close for c in candles]
            period = self.scoring_config.windows.realized_volatility
            value = float(ti.realized_volatility(closes, period)[-1])
        except SYMBOL_ERRORS as e:
            self.logger.warning(f"Error calculating volatility for {symbol}: {e}")
            return None
        if not math.isfinite(value):
            self.logger.warning(f"Non-finite volatility for {symbol}, excluded from universe")
            return None
        return value

    def _score_symbol(
        self,
        symbol: str,
        candles: Sequence[Candle],
        info: Optional[SymbolInfo],
        timeframe: str,
        universe: Sequence[float],
        now: int,
    ) -> Optional[ScanResult]:
        config = self.scoring_config
        try:
            indicators = calculate_indicators(candles, config.windows)
            metrics = calculate_volatility_metrics(candles, indicators, universe, config)
            burst = calculate_burst_score(
                candles, indicators, universe, config, metrics=metrics, now=now
            )
        except SYMBOL_ERRORS as e:
            self.logger.warning(f"Error processing {symbol}: {e}")
            return None

        return ScanResult(
            symbol=symbol,
            timeframe=timeframe,
            indicators=indicators,
            volatility=metrics,
            burst=burst,
            symbol_info=info if info is not None else self._fallback_info(symbol, candles),
            last_update=now,
        )

    def _fallback_info(self, symbol: str, candles: Sequence[Candle]) -> SymbolInfo:
        self.logger.debug(f"No market metadata for {symbol}, using last close")
        return SymbolInfo(
            symbol=symbol,
            last_price=candles[-1].close,
            base_asset=base_asset(symbol),
        )

    # ------------------------------------------------------------------
    # Single-symbol detail
    # ------------------------------------------------------------------

    def process_symbol_detail(
        self,
        symbol: str,
        candles: Sequence[Candle],
        symbol_info: Optional[SymbolInfo],
        timeframe: str,
    ) -> SymbolDetail:
        """
        Slide a 50-candle window across one symbol's history.

        For every i in [50, len(candles)) the window ``candles[i-50:i]`` yields
        one IndicatorSnapshot and one universe-less VolatilityMetrics. The
        window ending at the final candle is not part of the series, so 50
        candles give an empty series and 51 give one entry. The burst
        analysis covers the whole history.

        Raises:
            InsufficientDataError: If fewer than 50 candles are supplied
        """
        window = self.DETAIL_WINDOW
        if len(candles) < window:
            raise InsufficientDataError(
                f"Insufficient data for {symbol}: {len(candles)} candles, need {window}",
                required=window,
                actual=len(candles),
            )

        config = self.scoring_config
        candles = list(candles)
        indicator_series = []
        volatility_series = []

        with log_execution_time(f"process_symbol_detail[{symbol}]"):
            for i in range(window, len(candles)):
                window_candles = candles[i - window:i]
                indicators = calculate_indicators(window_candles, config.windows)
                indicator_series.append(indicators)
                volatility_series.append(
                    calculate_volatility_metrics(window_candles, indicators, (), config)
                )

            final_indicators = calculate_indicators(candles, config.windows)
            burst = calculate_burst_score(
                candles, final_indicators, (), config, now=self._now_ms()
            )

        return SymbolDetail(
            symbol=symbol,
            timeframe=timeframe,
            indicator_series=tuple(indicator_series),
            volatility_series=tuple(volatility_series),
            burst=burst,
            symbol_info=symbol_info if symbol_info is not None else self._fallback_info(symbol, candles),
        )

    # ------------------------------------------------------------------
    # Change detection
    # ------------------------------------------------------------------

    def detect_significant_changes(
        self, current: Iterable[ScanResult], previous: Iterable[ScanResult]
    ) -> List[ScanResult]:
        """
        Flag results worth notifying about.

        For symbols present in both sets:
        - a state change into ABOUT_TO_BURST or LOSING_VOL emits the current result
        - a burst score move of >= 10 points emits a copy with ``delta_score``

        A symbol meeting both conditions is emitted twice.
        """
        previous_by_symbol = {r.symbol: r for r in previous}
        changes: List[ScanResult] = []

        for result in current:
            prior = previous_by_symbol.get(result.symbol)
            if prior is None:
                continue

            if detect_state_transition(prior.burst.state, result.burst.state):
                changes.append(result)
                ScannerLogger.log_signal('STATE_TRANSITION', {
                    'symbol': result.symbol,
                    'timeframe': result.timeframe,
                    'from_state': prior.burst.state.value,
                    'to_state': result.burst.state.value,
                    'burst_score': round(result.burst.burst_score, 2),
                })

            delta = result.burst.burst_score - prior.burst.burst_score
            if abs(delta) >= self.SCORE_DELTA_THRESHOLD:
                changes.append(_with_burst_delta(result, delta))
                ScannerLogger.log_signal('SCORE_CHANGE', {
                    'symbol': result.symbol,
                    'timeframe': result.timeframe,
                    'burst_score': round(result.burst.burst_score, 2),
                    'delta_score': round(delta, 2),
                })

        return changes

    def detect_state_transitions(
        self, current: Iterable[ScanResult], previous: Iterable[ScanResult]
    ) -> List[StateTransition]:
        """State changes into ABOUT_TO_BURST or LOSING_VOL between two scans."""
        previous_by_symbol = {r.symbol: r for r in previous}
        transitions = []
        for result in current:
            prior = previous_by_symbol.get(result.symbol)
            if prior is None or not detect_state_transition(prior.burst.state, result.burst.state):
                continue
            transitions.append(
                StateTransition(
                    symbol=result.symbol,
                    timeframe=result.timeframe,
                    from_state=prior.burst.state,
                    to_state=result.burst.state,
                    timestamp=result.last_update,
                    burst_score=result.burst.burst_score,
                    volatility_score=result.volatility.volatility_score,
                )
            )
        return transitions

    # ------------------------------------------------------------------
    # Filtering and ranking
    # ------------------------------------------------------------------

    @staticmethod
    def filter_by_thresholds(
        results: Iterable[ScanResult],
        min_burst_score: Optional[float] = None,
        min_volatility_score: Optional[float] = None,
        min_volume_surge: Optional[float] = None,
        states: Optional[Iterable[Union[SignalState, str]]] = None,
    ) -> List[ScanResult]:
        """Keep results meeting every given threshold; None disables a check."""
        allowed = {SignalState(s) for s in states} if states is not None else None

        def keep(result: ScanResult) -> bool:
            if min_burst_score is not None and result.burst.burst_score < min_burst_score:
                return False
            if (
                min_volatility_score is not None
                and result.volatility.volatility_score < min_volatility_score
            ):
                return False
            if min_volume_surge is not None and result.volatility.volume_surge < min_volume_surge:
                return False
            if allowed is not None and result.burst.state not in allowed:
                return False
            return True

        return [r for r in results if keep(r)]

    @staticmethod
    def get_top_performers(results: Iterable[ScanResult], limit: int = 20) -> TopPerformers:
        """Top ``limit`` results by burst score, volatility score and volume surge."""
        results = list(results)
        by_burst = sorted(results, key=lambda r: r.burst.burst_score, reverse=True)
        return TopPerformers(
            by_burst_score=by_burst[:limit],
            by_volatility=sorted(
                results, key=lambda r: r.volatility.volatility_score, reverse=True
            )[:limit],
            by_volume_surge=sorted(
                results, key=lambda r: r.volatility.volume_surge, reverse=True
            )[:limit],
            about_to_burst=[
                r for r in by_burst if r.burst.state == SignalState.ABOUT_TO_BURST
            ][:limit],
        )

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------

    @staticmethod
    def cache_key(symbol: str, timeframe: Optional[str] = None) -> str:
        return f"{symbol}:{timeframe}" if timeframe else symbol

    def get_cached_candles(self, key: str) -> Optional[Tuple[Candle, ...]]:
        return self.cache.get(key)

    def set_cached_candles(self, key: str, candles: Sequence[Candle]) -> None:
        self.cache.set(key, candles)

    def clear_expired_cache(self) -> int:
        return self.cache.sweep()

    def get_cache_stats(self) -> CacheStats:
        return self.cache.stats()


def _with_burst_delta(result: ScanResult, delta: float) -> ScanResult:
    return replace(result, burst=result.burst.with_delta(delta))


def results_to_dataframe(results: Iterable[ScanResult]) -> pd.DataFrame:
    """
    Flatten scan results into a display-friendly DataFrame.

    One row per result in input order.
    """
    rows = [
        {
            "symbol": r.symbol,
            "timeframe": r.timeframe,
            "state": r.burst.state.value,
            "burst_score": round(r.burst.burst_score, 2),
            "delta_score": r.burst.delta_score,
            "volatility_score": round(r.volatility.volatility_score, 2),
            "volume_surge": round(r.volatility.volume_surge, 2),
            "atr_percent": round(r.indicators.atr_percent, 3),
            "rsi14": round(r.indicators.rsi14, 1),
            "adx14": round(r.indicators.adx14, 1),
            "leverage": r.burst.leverage_suggestion,
            "last_price": r.symbol_info.last_price,
            "volume_24h": r.symbol_info.volume_24h,
        }
        for r in results
    ]
    if not rows:
        return pd.DataFrame()
    return pd.DataFrame(rows)
