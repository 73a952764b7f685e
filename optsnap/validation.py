"""Input validation for the outbound surface."""
import re
from typing import Any

from .errors import ValidationError

SYMBOL_RE = re.compile(r"^[A-Z.\-]{1,8}$")


def clean_symbol(value: Any) -> str:
    """Trim and uppercase a user-supplied symbol, then validate it."""
    return validate_symbol(str(value or "").strip().upper())


def validate_symbol(symbol: Any) -> str:
    if not isinstance(symbol, str) or not SYMBOL_RE.match(symbol):
        raise ValidationError(f"Invalid or missing symbol: {symbol!r}")
    return symbol
