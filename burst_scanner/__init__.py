"""
Volatility burst scanner for USDT-M perpetual futures
Main package initialization
"""

__version__ = "0.1.0"

from burst_scanner.processing.processor import SymbolProcessor
from burst_scanner.utils.config import ConfigManager

__all__ = ["SymbolProcessor", "ConfigManager"]
