"""
Symbol helpers for USDT-margined perpetual contracts
"""

import re

_SYMBOL_PATTERN = re.compile(r"^[A-Z0-9]+USDT$")


def is_valid_symbol(symbol: str) -> bool:
    """True for upper-case USDT-quoted symbols such as 'BTCUSDT'."""
    return bool(_SYMBOL_PATTERN.match(symbol))


def base_asset(symbol: str) -> str:
    """'BTCUSDT' -> 'BTC'."""
    return symbol[:-4] if symbol.endswith("USDT") else symbol
