"""
Amount arithmetic and backoff helpers shared by the quote engine and the
chunked payment controller.

All amounts are ``Decimal`` values computed under a wide local context so that
rates derived from uint64 amounts never lose integer precision. Rounding is
explicit at every step:

- remaining amount to send: ceiling
- chunk growth/shrink: nearest, halves away from zero
- quoted source amount and the receiver minimum: floor
"""

from __future__ import annotations

from decimal import ROUND_CEILING, ROUND_FLOOR, ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from typing import Union

from psk2.constants import MAX_UINT64
from psk2.errors import PreconditionError

AmountLike = Union[str, int, Decimal]

PRECISION = 64
ONE = Decimal(1)
ZERO = Decimal(0)
UNBOUNDED = Decimal(MAX_UINT64)


def parse_amount(value: AmountLike, name: str) -> Decimal:
    """Parse a caller-supplied amount. Must be a positive whole number."""
    try:
        amount = Decimal(str(value).strip()) if not isinstance(value, Decimal) else value
    except InvalidOperation:
        raise PreconditionError(f"{name} must be a number, got {value!r}")
    if not amount.is_finite() or amount <= 0:
        raise PreconditionError(f"{name} must be a positive amount, got {value!r}")
    if amount != amount.to_integral_value():
        raise PreconditionError(f"{name} must be a whole number of units, got {value!r}")
    if amount > UNBOUNDED:
        raise PreconditionError(f"{name} exceeds the maximum transferable amount")
    return amount


def to_amount_string(amount: Decimal) -> str:
    """Render an amount without exponent notation."""
    if amount == amount.to_integral_value():
        return str(int(amount))
    return format(amount.normalize(), "f")


def _round(amount: Decimal, rounding: str) -> Decimal:
    with localcontext() as ctx:
        ctx.prec = PRECISION
        return amount.quantize(ONE, rounding=rounding)


def round_half_up(amount: Decimal) -> Decimal:
    return _round(amount, ROUND_HALF_UP)


def floor(amount: Decimal) -> Decimal:
    return _round(amount, ROUND_FLOOR)


def ceil(amount: Decimal) -> Decimal:
    return _round(amount, ROUND_CEILING)


def divide(numerator: Decimal, denominator: Decimal) -> Decimal:
    with localcontext() as ctx:
        ctx.prec = PRECISION
        return numerator / denominator


def multiply(a: Decimal, b: Decimal) -> Decimal:
    with localcontext() as ctx:
        ctx.prec = PRECISION
        return a * b


def grow_chunk(chunk_size: Decimal, factor: Decimal) -> Decimal:
    return round_half_up(multiply(chunk_size, factor))


def shrink_chunk(chunk_size: Decimal, factor: Decimal) -> Decimal:
    return max(ONE, round_half_up(multiply(chunk_size, factor)))


def next_backoff(time_to_wait_ms: int, minimum_ms: int) -> int:
    """Double the wait, never below the minimum."""
    return max(time_to_wait_ms * 2, minimum_ms)
