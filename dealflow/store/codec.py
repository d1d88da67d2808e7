"""
Numbers cross the store boundary as decimal strings ("15.00", "680.5").
Floats are written from their shortest round-tripping repr in plain
positional notation, so reading the string back gives the same float.
Values must fit a float: anything that reads back as inf is rejected.
"""
from __future__ import annotations
from decimal import Decimal, InvalidOperation
import math
from typing import Any, Optional

# floats span about 5e-324 to 1.8e308; wider exponents only bloat the plain form
MAX_EXPONENT = 340


def to_decimal_str(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValueError("expected a number, got a boolean")
    if isinstance(value, str):
        return format(parse_decimal(value), "f")
    f = float(value)
    if not math.isfinite(f):
        raise ValueError(f"cannot store non-finite number: {value!r}")
    return format(Decimal(repr(f)), "f")


def parse_decimal(text: str) -> Decimal:
    try:
        d = Decimal(text.strip())
    except (InvalidOperation, AttributeError):
        raise ValueError(f"not a valid number: {text!r}")
    if not d.is_finite():
        raise ValueError(f"not a valid number: {text!r}")
    if abs(d.as_tuple().exponent) > MAX_EXPONENT or (d and abs(d.adjusted()) > MAX_EXPONENT):
        raise ValueError(f"number out of range: {text!r}")
    if not math.isfinite(float(d)):
        raise ValueError(f"number out of range: {text!r}")
    return d


def from_decimal_str(text: Optional[str]) -> Optional[float]:
    if text is None or text == "":
        return None
    return float(parse_decimal(text))
