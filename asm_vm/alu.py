"""
asm VM — ALU Operations

Numbers are host numbers: ints or floats. Integer results of add, sub, mul,
inc and dec wrap to signed 64 bit; as soon as a float is involved the result
is a plain float.

  div    true division, always float
  idiv   floored division, always int
  mod    floored modulo (sign follows the divisor)
  pow    always float
  sqrt   always float (nan for negative input)

Bitwise operations need integral values (3.0 is accepted as 3). They work
on 64-bit two's complement words; ``shr`` is a logical shift and a shift
count outside (-64, 64) yields 0. A negative count shifts the other way.
"""

import math

from .faults import DivisionByZero, IntegerRequired

WORD_BITS = 64
WORD_MASK = (1 << WORD_BITS) - 1
SIGN_BIT = 1 << (WORD_BITS - 1)
INT64_MAX = SIGN_BIT - 1
INT64_MIN = -SIGN_BIT


def wrap64(value: int) -> int:
    """Reduce an int to the signed 64-bit range."""
    value &= WORD_MASK
    if value & SIGN_BIT:
        value -= 1 << WORD_BITS
    return value


def _wrap(value):
    if isinstance(value, int) and not isinstance(value, bool):
        return wrap64(value)
    return value


def to_int(value) -> int:
    """Integer representation of value, or IntegerRequired."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    raise IntegerRequired(f"Number has no integer representation: {value}")


def _check_divisor(b):
    if b == 0:
        raise DivisionByZero("Attempt to divide by zero")


# ══════════════════════════════════════════════
# Arithmetic
# ══════════════════════════════════════════════

def add(a, b):
    return _wrap(a + b)


def sub(a, b):
    return _wrap(a - b)


def mul(a, b):
    return _wrap(a * b)


def div(a, b) -> float:
    _check_divisor(b)
    return a / b


def idiv(a, b):
    _check_divisor(b)
    result = a // b
    if isinstance(result, float) and not math.isfinite(result):
        return result
    return math.floor(result)


def mod(a, b):
    _check_divisor(b)
    return a % b


def pow_(a, b) -> float:
    try:
        return math.pow(a, b)
    except OverflowError:
        return float('inf')
    except ValueError:
        return float('nan')


def sqrt(a) -> float:
    if a < 0:
        return float('nan')
    return math.sqrt(a)


def inc(a):
    return _wrap(a + 1)


def dec(a):
    return _wrap(a - 1)


# ══════════════════════════════════════════════
# Bitwise
# ══════════════════════════════════════════════

def and_(a, b) -> int:
    return wrap64(to_int(a) & to_int(b))


def or_(a, b) -> int:
    return wrap64(to_int(a) | to_int(b))


def xor(a, b) -> int:
    return wrap64(to_int(a) ^ to_int(b))


def not_(a) -> int:
    return wrap64(~to_int(a))


def shl(a, b) -> int:
    count = to_int(b)
    if count < 0:
        return shr(a, -count)
    if count >= WORD_BITS:
        return 0
    return wrap64((to_int(a) & WORD_MASK) << count)


def shr(a, b) -> int:
    count = to_int(b)
    if count < 0:
        return shl(a, -count)
    if count >= WORD_BITS:
        return 0
    return wrap64((to_int(a) & WORD_MASK) >> count)
