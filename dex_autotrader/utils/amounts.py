"""
Fixed-point helpers for token amounts.

Amounts travel through the engine as ``Decimal`` and are turned into the
integer base units a router expects only after passing the precision guard.
"""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation, ROUND_DOWN, localcontext
from typing import Union

from dex_autotrader.enums.error_kind import ErrorKind
from dex_autotrader.errors import TradingError

Number = Union[Decimal, float, int, str]

MIN_SAFE_AMOUNT = Decimal("0.0001")
_AMOUNT_RE = re.compile(r"^[0-9]+(\.[0-9]+)?$")


def _text(amount: Number) -> str:
    if isinstance(amount, float):
        return repr(amount)
    return str(amount)


def to_decimal(amount: Number) -> Decimal:
    try:
        value = Decimal(_text(amount))
    except InvalidOperation:
        raise TradingError(ErrorKind.INVALID_AMOUNT, f"Invalid amount: {amount!r}")
    if not value.is_finite():
        raise TradingError(ErrorKind.INVALID_AMOUNT, f"Invalid amount: {amount!r}")
    return value


def is_scientific(amount: Number) -> bool:
    """True for negative-exponent notation such as ``1e-07``."""
    return "e-" in _text(amount).lower()


def ensure_safe_amount(amount: Number, minimum: Decimal = MIN_SAFE_AMOUNT) -> Decimal:
    """Reject amounts that would not survive fixed-point conversion.

    Anything written in scientific notation or below ``minimum`` raises
    ``AMOUNT_TOO_SMALL``; nothing is rounded up silently.
    """
    if is_scientific(amount):
        raise TradingError(ErrorKind.AMOUNT_TOO_SMALL, f"Amount {amount!r} is in scientific notation")
    value = to_decimal(amount)
    if value < minimum:
        raise TradingError(ErrorKind.AMOUNT_TOO_SMALL, f"Amount {value} is below the safe minimum {minimum}")
    return value


def _precision_for(value: Decimal, decimals: int) -> int:
    # every integer digit plus every fractional place must fit, e.g. 1e11 at 18 decimals = 30 digits
    return max(28, value.adjusted() + 1 + decimals + 2)


def format_fixed(amount: Decimal, decimals: int) -> str:
    """Fixed-point string with exactly ``decimals`` places, truncated."""
    if decimals < 0:
        raise ValueError("decimals must be >= 0")
    quantum = Decimal(1).scaleb(-decimals)
    try:
        with localcontext() as ctx:
            ctx.prec = _precision_for(amount, decimals)
            text = format(amount.quantize(quantum, rounding=ROUND_DOWN), "f")
    except InvalidOperation:
        raise TradingError(ErrorKind.INVALID_AMOUNT, f"Amount {amount} cannot be expressed with {decimals} decimals")
    if not _AMOUNT_RE.match(text):
        raise TradingError(ErrorKind.INVALID_AMOUNT, f"Invalid amount format: {text}")
    return text


def to_base_units(amount_text: str, decimals: int) -> int:
    if not _AMOUNT_RE.match(amount_text):
        raise TradingError(ErrorKind.INVALID_AMOUNT, f"Invalid amount format: {amount_text}")
    value = Decimal(amount_text)
    with localcontext() as ctx:
        ctx.prec = _precision_for(value, decimals)
        units = value.scaleb(decimals)
    if units != units.to_integral_value():
        raise TradingError(ErrorKind.INVALID_AMOUNT, f"{amount_text} has more than {decimals} decimals")
    return int(units)


def from_base_units(raw: int, decimals: int) -> Decimal:
    value = Decimal(int(raw))
    with localcontext() as ctx:
        ctx.prec = _precision_for(value, 0)
        return value.scaleb(-decimals)
