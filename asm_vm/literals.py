"""
Numeric literal resolver.

Supports:
  0xFF, 0X1f, 0xff_ff  hex (optional leading sign), wraps to signed 64 bit
  1_000, -42           decimal integer; outside the 64-bit range it becomes a float
  3.5, .5, 2., 1e3     decimal float

``_`` is a digit-group separator and is stripped anywhere in the token.
"""

from __future__ import annotations
from typing import Optional, Union
import re

from .alu import INT64_MAX, INT64_MIN, wrap64
from .faults import InvalidLiteral

__all__ = ['Number', 'parse_number', 'try_parse_number', 'format_number']

Number = Union[int, float]

_INT_RE = re.compile(r'^[+-]?\d+$')
_FLOAT_RE = re.compile(r'^[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?$')
_HEX_RE = re.compile(r'^[0-9a-fA-F]+$')
_MAX_INT_DIGITS = 19  # len(str(INT64_MAX))


def try_parse_number(token: str) -> Optional[Number]:
    """Parse a literal, returning None when the token is not numeric."""
    text = token.replace('_', '')
    sign = 1
    body = text
    if body[:1] in ('+', '-'):
        sign = -1 if body[0] == '-' else 1
        body = body[1:]

    if body[:2] in ('0x', '0X'):
        digits = body[2:]
        if not _HEX_RE.match(digits):
            return None
        # only the low 64 bits survive the wrap
        return wrap64(sign * wrap64(int(digits[-16:], 16)))

    if _INT_RE.match(text):
        if len(body.lstrip('0')) > _MAX_INT_DIGITS:
            return float(text)
        value = int(text)
        if not INT64_MIN <= value <= INT64_MAX:
            return float(text)
        return value
    if _FLOAT_RE.match(text):
        return float(text)
    return None


def parse_number(token: str) -> Number:
    """Parse a literal or raise InvalidLiteral."""
    value = try_parse_number(token)
    if value is None:
        raise InvalidLiteral(f"Invalid value: '{token}'")
    return value


def format_number(value: Number) -> str:
    """Render a value the way ``out`` prints it."""
    if isinstance(value, bool):
        return str(int(value))
    return str(value)
