"""Canonicalization helpers for answer values.

Provides the stable string and numeric views of an answer used by
visibility comparisons, validation and formula evaluation, plus the shared
definition of an "empty" answer.
"""

from __future__ import annotations

import math
import re
from typing import Any, Optional


_LEADING_NUMBER_RE = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")

TRUE_TOKENS = frozenset({"true", "yes", "1"})
FALSE_TOKENS = frozenset({"false", "no", "0"})


def is_empty_answer(value: Any) -> bool:
    """Return True for None, blank strings, empty lists and empty dicts.

    False and 0 are real answers and are not empty.
    """
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    if isinstance(value, (list, tuple, dict)):
        return len(value) == 0
    return False


def format_number(value: float | int) -> str:
    """Integers and integral floats without a trailing '.0'."""
    if isinstance(value, bool):
        return "true" if value else "false"
    try:
        f = float(value)
    except (TypeError, ValueError):
        return str(value)
    if math.isfinite(f) and float(int(f)) == f:
        return str(int(f))
    return str(f)


def canonicalize_answer_value(value: Any) -> Optional[str]:
    """Return a stable string representation of a scalar answer.

    - Booleans -> "true" / "false"
    - Numbers  -> integer form when integral, else decimal string
    - Text     -> as-is string
    - None     -> None
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return format_number(value)
    return str(value)


def canonical_token(value: Any) -> Optional[str]:
    """Comparison token: canonical string, lower-cased boolean-like words."""
    s = canonicalize_answer_value(value)
    if s is None:
        return None
    low = s.strip().lower()
    if low in TRUE_TOKENS - {"1"}:
        return "true"
    if low in FALSE_TOKENS - {"0"}:
        return "false"
    return s


def coerce_number(value: Any) -> Optional[float]:
    """Strict numeric view: numbers and fully numeric strings, else None."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        f = float(value)
        return f if math.isfinite(f) else None
    if isinstance(value, str):
        try:
            f = float(value.strip())
        except ValueError:
            return None
        return f if math.isfinite(f) else None
    return None


def leading_number(text: str) -> Optional[float]:
    """Parse the numeric prefix of a string ("12kg" -> 12.0), else None."""
    m = _LEADING_NUMBER_RE.match(text or "")
    if not m:
        return None
    f = float(m.group(1))
    return f if math.isfinite(f) else None


__all__ = [
    "TRUE_TOKENS",
    "FALSE_TOKENS",
    "is_empty_answer",
    "format_number",
    "canonicalize_answer_value",
    "canonical_token",
    "coerce_number",
    "leading_number",
]
