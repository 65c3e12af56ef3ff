from __future__ import annotations

import math
from numbers import Real

from .errors import InvalidInput


def require_finite(name: str, value) -> float:
    """Coerce to float, rejecting None, bools, NaN and infinities."""
    if value is None or isinstance(value, bool) or not isinstance(value, Real):
        raise InvalidInput(f"{name} must be a real number, got {value!r}")
    value = float(value)
    if not math.isfinite(value):
        raise InvalidInput(f"{name} must be finite, got {value!r}")
    return value


def require_positive(name: str, value) -> float:
    value = require_finite(name, value)
    if value <= 0:
        raise InvalidInput(f"{name} must be positive, got {value!r}")
    return value


def require_frequency(value) -> int:
    """Coupon payments per year: a positive whole number."""
    freq = require_positive("payment_frequency", value)
    if freq != int(freq):
        raise InvalidInput(f"payment_frequency must be a whole number, got {value!r}")
    return int(freq)


def resolve_periods(years_to_maturity: float, freq: int) -> int:
    """
    Whole number of coupon periods for a maturity.

    years * freq is rounded half-up to the nearest coupon date, so a 2.2Y
    semiannual bond prices on 4 periods, a 2.3Y one on 5 and a 0.5Y annual
    one on 1. Counts that round to zero are rejected.
    """
    periods = int(math.floor(years_to_maturity * freq + 0.5))
    if periods < 1:
        raise InvalidInput(
            f"maturity of {years_to_maturity}y at frequency {freq} has no coupon periods"
        )
    return periods


# ---------- formatting ----------

def format_currency(value: float) -> str:
    """USD with thousands separators, e.g. $1,040.88 / -$12.50."""
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.2f}"


def format_percent(value: float, decimals: int = 2) -> str:
    """Decimal fraction as percent: 0.0425 -> 4.25%."""
    return f"{value * 100:.{decimals}f}%"


def format_percent_with_sign(value: float, decimals: int = 2) -> str:
    formatted = format_percent(value, decimals)
    return f"+{formatted}" if value >= 0 else formatted
