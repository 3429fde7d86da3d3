"""
Custom exceptions for the burst scanner
"""


class ScannerError(Exception):
    """Base exception for scanner errors"""


class ConfigurationError(ScannerError):
    """Configuration related errors"""


class DataValidationError(ScannerError, ValueError):
    """Malformed candle or metadata input"""


class InsufficientDataError(ScannerError):
    """
    Not enough candles for the requested calculation.

    Recoverable by the caller: skip the symbol or fetch more history.

    Attributes:
        required: Minimum number of samples needed
        actual: Number of samples supplied
    """

    def __init__(self, message: str, required: int = 0, actual: int = 0):
        super().__init__(message)
        self.required = required
        self.actual = actual
