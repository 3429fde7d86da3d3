"""
Command line entry point for the burst scanner.

Reads candles that the exchange client already fetched from a JSON file, runs
a cross-sectional scan and prints the ranked table.

Input format (symbol -> candle list, or symbol -> {"candles": [...], "info": {...}}):

    {
      "BTCUSDT": [{"timestamp": 1700000000000, "open": 1, "high": 1, ...}, ...],
      "ETHUSDT": {"candles": [...], "info": {"volume_24h": 1.2e9, "last_price": 2300}}
    }
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

import pandas as pd

from burst_scanner.core.exceptions import ScannerError
from burst_scanner.models.candle import Candle
from burst_scanner.models.scan import SymbolInfo
from burst_scanner.processing.cache import CandleCache
from burst_scanner.processing.processor import SymbolProcessor, results_to_dataframe
from burst_scanner.utils.config import VALID_TIMEFRAMES, ConfigManager
from burst_scanner.utils.logger import ScannerLogger
from burst_scanner.utils.symbols import is_valid_symbol

logger = logging.getLogger(__name__)


def load_market_data(path: Path) -> Tuple[Dict[str, List[Candle]], Dict[str, SymbolInfo]]:
    """
    Parse the JSON input file.

    Raises:
        DataValidationError: If a candle payload is malformed
    """
    with open(path) as f:
        raw = json.load(f)

    candles_by_symbol: Dict[str, List[Candle]] = {}
    infos: Dict[str, SymbolInfo] = {}
    for symbol, payload in raw.items():
        if not is_valid_symbol(symbol):
            logger.warning(f"Unexpected symbol format: {symbol}")
        if isinstance(payload, dict):
            klines = payload.get("candles", [])
            if "info" in payload:
                infos[symbol] = SymbolInfo.from_dict({"symbol": symbol, **payload["info"]})
        else:
            klines = payload
        candles_by_symbol[symbol] = sorted(
            (Candle.from_dict(k) for k in klines), key=lambda c: c.timestamp
        )
    return candles_by_symbol, infos


def apply_volume_floor(
    candles_by_symbol: Dict[str, List[Candle]],
    infos: Dict[str, SymbolInfo],
    min_volume_24h: float,
) -> Dict[str, List[Candle]]:
    """Drop symbols whose reported 24h volume is below the floor; symbols without metadata are kept."""
    kept = {}
    for symbol, candles in candles_by_symbol.items():
        info = infos.get(symbol)
        if info is not None and info.volume_24h < min_volume_24h:
            logger.debug(f"Skipping {symbol}: 24h volume {info.volume_24h} < {min_volume_24h}")
            continue
        kept[symbol] = candles
    return kept


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Volatility burst scanner")
    parser.add_argument("input", type=Path, help="JSON file with candles per symbol")
    parser.add_argument("--timeframe", choices=VALID_TIMEFRAMES, help="Overrides configured timeframe")
    parser.add_argument("--config-dir", default="configs", help="Directory holding scanner_config.ini")
    parser.add_argument("--top", type=int, default=20, help="Rows to print (default: 20)")
    parser.add_argument("--min-burst-score", type=float, help="Hide results below this score")
    parser.add_argument("--detail", metavar="SYMBOL", help="Print the time series view for one symbol")
    parser.add_argument("--output", type=Path, help="Write results as JSON to this path")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    config_manager = ConfigManager(args.config_dir)
    ScannerLogger({
        'log_level': config_manager.logging_config.log_level,
        'log_dir': config_manager.logging_config.log_dir,
    })
    scanner_config = config_manager.scanner_config
    timeframe = args.timeframe or scanner_config.timeframe

    processor = SymbolProcessor(
        cache=CandleCache(ttl=scanner_config.cache_ttl),
        scoring_config=config_manager.scoring_config,
        max_workers=scanner_config.max_workers,
    )

    try:
        candles_by_symbol, infos = load_market_data(args.input)
    except (OSError, ValueError) as e:
        logger.error(f"Failed to load {args.input}: {e}")
        return 1

    candles_by_symbol = apply_volume_floor(candles_by_symbol, infos, scanner_config.min_volume_24h)

    for symbol, candles in candles_by_symbol.items():
        processor.set_cached_candles(processor.cache_key(symbol, timeframe), candles)

    if args.detail:
        candles = processor.get_cached_candles(processor.cache_key(args.detail, timeframe))
        if candles is None:
            logger.error(f"No candles for {args.detail}")
            return 1
        try:
            detail = processor.process_symbol_detail(args.detail, candles, infos.get(args.detail), timeframe)
        except ScannerError as e:
            logger.error(f"Detail view failed for {args.detail}: {e}")
            return 1
        series = pd.DataFrame([s.to_dict() for s in detail.indicator_series])
        print(series.tail(args.top).to_string())
        print(json.dumps(detail.burst.to_dict(), indent=2))
        return 0

    results = processor.process_symbols(candles_by_symbol, infos, timeframe)
    if args.min_burst_score is not None:
        results = processor.filter_by_thresholds(results, min_burst_score=args.min_burst_score)

    if not results:
        print("No symbols with enough data to score.")
        return 1

    top = processor.get_top_performers(results, limit=args.top)
    print(results_to_dataframe(top.by_burst_score).to_string(index=False))
    if top.about_to_burst:
        print(f"\nABOUT_TO_BURST: {', '.join(r.symbol for r in top.about_to_burst)}")

    if args.output:
        with open(args.output, "w") as f:
            json.dump([r.to_dict() for r in results], f, indent=2)
        print(f"\nResults saved to {args.output}")

    return 0


if __name__ == '__main__':
    sys.exit(main())
