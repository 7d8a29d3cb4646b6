from __future__ import annotations

"""
reservefi.fixedpoint
====================

Integer fixed-point helpers shared by the oracle, bond engine, treasury and
rebase ledger. All amounts are Python ints in base units; nothing here uses
floats.

Scales
------
- BPS  = 10_000         basis points (10_000 = 100%)
- PPM  = 1_000_000      parts per million (distributor rates)
- WAD  = 10**18         price scale for bond pricing
- Q112 = 2**112         UQ112x112 binary fixed point used by pool price
                        accumulators
"""

from math import isqrt
from typing import Final

from .errors import InvalidAmount, InvalidParameter

U256_MAX: Final[int] = (1 << 256) - 1
U128_MAX: Final[int] = (1 << 128) - 1

BPS: Final[int] = 10_000
PPM: Final[int] = 1_000_000
WAD: Final[int] = 10**18

RESOLUTION: Final[int] = 112
Q112: Final[int] = 1 << RESOLUTION


def require_nonneg(value: int, name: str = "amount") -> int:
    if value < 0:
        raise InvalidAmount(f"{name} must be non-negative", amount=value)
    return value


def require_bps(value: int, name: str) -> int:
    if not (0 <= value <= BPS):
        raise InvalidParameter(f"{name} must be between 0 and {BPS} bps", name=name, value=value)
    return value


def mul_div(a: int, b: int, d: int) -> int:
    """floor((a * b) / d). Python ints cannot overflow, so only d is checked."""
    if d == 0:
        raise ZeroDivisionError("mul_div by zero")
    return (a * b) // d


def apply_bps(x: int, bps: int) -> int:
    """floor(x * bps / 10_000)."""
    return (x * bps) // BPS


def rescale(amount: int, from_decimals: int, to_decimals: int) -> int:
    """Move an amount between decimal bases, truncating when scaling down."""
    if from_decimals == to_decimals:
        return amount
    if to_decimals > from_decimals:
        return amount * 10 ** (to_decimals - from_decimals)
    return amount // 10 ** (from_decimals - to_decimals)


def sqrt(x: int) -> int:
    """Integer square root (floor)."""
    return isqrt(require_nonneg(x, "sqrt operand"))


# ---------------------------------------------------------------------------
# UQ112x112
# ---------------------------------------------------------------------------


def encode_uq112x112(numerator: int, denominator: int) -> int:
    """Fraction numerator/denominator as UQ112x112. denominator must be non-zero."""
    if denominator == 0:
        raise ZeroDivisionError("uq112x112 fraction with zero denominator")
    return (numerator << RESOLUTION) // denominator


def decode_uq112x112(x: int, amount: int = 1) -> int:
    """Multiply a UQ112x112 value by an integer amount and truncate."""
    return (x * amount) >> RESOLUTION


__all__ = [
    "U256_MAX",
    "U128_MAX",
    "BPS",
    "PPM",
    "WAD",
    "RESOLUTION",
    "Q112",
    "require_nonneg",
    "require_bps",
    "mul_div",
    "apply_bps",
    "rescale",
    "sqrt",
    "encode_uq112x112",
    "decode_uq112x112",
]
