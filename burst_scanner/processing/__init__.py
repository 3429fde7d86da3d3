"""
Symbol processing package
"""

from .cache import CacheEntry, CacheStats, CandleCache, CandleStore
from .processor import SymbolProcessor, results_to_dataframe

__all__ = [
    "SymbolProcessor",
    "results_to_dataframe",
    "CandleCache",
    "CandleStore",
    "CacheEntry",
    "CacheStats",
]
