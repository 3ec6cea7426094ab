"""Utility functions for elementkit"""

import json
import logging
import math
import re
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)

# Numeric literal forms a form field accepts: decimal with optional exponent,
# signed Infinity, and unsigned hex, octal or binary integers.
NUMERIC_TEXT = re.compile(
    r"[+-]?(?:(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?|Infinity)"
    r"|0[xX][0-9a-fA-F]+|0[oO][0-7]+|0[bB][01]+"
)


def canonicalify(p: Path | str) -> Path:
    return Path(p).expanduser().resolve()


def ensure_path(p: Path | str) -> Path:
    path = canonicalify(p)
    path.mkdir(parents=True, exist_ok=True)
    return path


def sanitize(sensitive: str | None, keep_chars: int = 2) -> str:
    """Mask sensitive information for logging.

    Args:
        sensitive: The sensitive string to mask (e.g., bearer token)
        keep_chars: Number of leading and trailing characters to keep

    Returns:
        Masked string with middle characters replaced by asterisks.

    Examples:
        >>> sanitize("eyJhbGciOiJIUzI1NiJ9")
        'ey***J9'
        >>> sanitize(None)
        '***'
    """
    if not sensitive:
        return "***"

    if len(sensitive) <= keep_chars * 2:
        return "***"

    return f"{sensitive[:keep_chars]}***{sensitive[-keep_chars:]}"


def is_blank(value: Any) -> bool:
    """Return True for values treated as "not provided" (None or empty string)."""
    return value is None or value == ""


def coerce_number(value: Any) -> Optional[float]:
    """Coerce a payload value to a number the way a loosely-typed form would.

    Booleans count as 1/0, numeric strings are parsed after trimming and a
    whitespace-only string is zero. Only the literal forms matched by
    ``NUMERIC_TEXT`` are accepted, so Python-only spellings such as ``"1_0"``
    or ``"inf"`` are not numbers. Anything else is not a number.

    Returns:
        The numeric value, or None when the value is not a valid number

    Examples:
        >>> coerce_number("10")
        10.0
        >>> coerce_number(True)
        1.0
        >>> coerce_number("abc") is None
        True
    """
    if isinstance(value, bool):
        return 1.0 if value else 0.0

    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        if not NUMERIC_TEXT.fullmatch(text):
            return None
        if text[:2].lower() in ("0x", "0o", "0b"):
            try:
                number = float(int(text, 0))
            except OverflowError:
                number = math.inf
        else:
            number = float(text.replace("Infinity", "inf"))
    else:
        return None

    if math.isnan(number):
        return None
    return number


def to_text(value: Any) -> str:
    """Format a payload value for interpolation into markup or messages.

    Examples:
        >>> to_text(None)
        ''
        >>> to_text(True)
        'true'
        >>> to_text(10.0)
        '10'
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, dict)):
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    return str(value)
