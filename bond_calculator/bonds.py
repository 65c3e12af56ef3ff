from __future__ import annotations

import enum
from dataclasses import dataclass, replace, fields
from typing import Optional

import numpy as np
import pandas as pd

from .config import CUSTOM_BOND_TYPE, DEFAULT_FREQUENCY
from .errors import InvalidInput
from .utils import (
    require_finite,
    require_frequency,
    require_positive,
    resolve_periods,
    format_percent,
)


class Pricing(str, enum.Enum):
    PREMIUM = "Premium"
    DISCOUNT = "Discount"
    PAR = "Par"


@dataclass(frozen=True)
class BondTerms:
    face_value: float
    coupon_rate: float          # annual, decimal (0.05 = 5%)
    years_to_maturity: float
    market_yield: float         # annual, decimal
    payment_frequency: int = DEFAULT_FREQUENCY

    def __post_init__(self) -> None:
        object.__setattr__(self, "face_value", require_positive("face_value", self.face_value))
        object.__setattr__(self, "years_to_maturity", require_positive("years_to_maturity", self.years_to_maturity))
        object.__setattr__(self, "payment_frequency", require_frequency(self.payment_frequency))

        coupon = require_finite("coupon_rate", self.coupon_rate)
        if not (0.0 <= coupon <= 1.0):
            raise InvalidInput(f"coupon_rate must be within [0, 1], got {coupon!r}")
        object.__setattr__(self, "coupon_rate", coupon)

        y = require_finite("market_yield", self.market_yield)
        if 1.0 + y / self.payment_frequency <= 0.0:
            raise InvalidInput(f"market_yield {y!r} gives a non-positive discount base")
        object.__setattr__(self, "market_yield", y)

        resolve_periods(self.years_to_maturity, self.payment_frequency)

    @property
    def periods(self) -> int:
        return resolve_periods(self.years_to_maturity, self.payment_frequency)

    @property
    def coupon_payment(self) -> float:
        return self.coupon_rate * self.face_value / self.payment_frequency

    def with_yield(self, market_yield: float) -> "BondTerms":
        return replace(self, market_yield=market_yield)


@dataclass(frozen=True)
class PricedBond:
    face_value: float
    coupon_rate: float
    years_to_maturity: float
    market_yield: float
    payment_frequency: int
    price: float
    ytm: float                  # approximate, see estimate_ytm
    price_change_from_par: float
    computed_at: pd.Timestamp
    bond_type: str = CUSTOM_BOND_TYPE

    @property
    def terms(self) -> BondTerms:
        return BondTerms(
            face_value=self.face_value,
            coupon_rate=self.coupon_rate,
            years_to_maturity=self.years_to_maturity,
            market_yield=self.market_yield,
            payment_frequency=self.payment_frequency,
        )

    @property
    def pricing(self) -> Pricing:
        return classify_pricing(self.price, self.face_value)

    def to_dict(self) -> dict:
        out = {f.name: getattr(self, f.name) for f in fields(self)}
        out["computed_at"] = pd.Timestamp(self.computed_at).isoformat()
        return out


def discount_factors(terms: BondTerms) -> np.ndarray:
    """(1 + y/f)^-i for i = 1..n."""
    r = terms.market_yield / terms.payment_frequency
    i = np.arange(1, terms.periods + 1, dtype=float)
    return np.power(1.0 + r, -i)


def calculate_price(terms: BondTerms) -> float:
    """
    Present value of the coupon stream plus redemption:

      P = sum_{i=1..n} C/(1+r)^i + F/(1+r)^n,  C = c*F/f, r = y/f, n = round(T*f)

    Strictly decreasing in market_yield for fixed terms.
    """
    dfs = discount_factors(terms)
    pv = terms.coupon_payment * float(np.sum(dfs)) + terms.face_value * float(dfs[-1])
    return float(pv)


def estimate_ytm(price: float, face_value: float, coupon_rate: float, years_to_maturity: float) -> float:
    """
    Approximate yield to maturity (decimal):

      ytm ~ (C + (F - P)/T) / ((F + P)/2),  C = c*F

    Closed form, NOT an IRR solve. Close to the true yield near par; drifts
    for deep discount / premium bonds and long maturities.
    """
    price = require_finite("price", price)
    face_value = require_finite("face_value", face_value)
    coupon_rate = require_finite("coupon_rate", coupon_rate)
    years_to_maturity = require_finite("years_to_maturity", years_to_maturity)

    if years_to_maturity == 0:
        raise InvalidInput("years_to_maturity must be non-zero for YTM estimate")

    denom = (face_value + price) / 2.0
    if denom == 0:
        raise InvalidInput("face_value + price must be non-zero for YTM estimate")

    coupon_payment = coupon_rate * face_value
    return (coupon_payment + (face_value - price) / years_to_maturity) / denom


def classify_pricing(price: float, face_value: float) -> Pricing:
    """Exact comparison; no tolerance band around par."""
    if price > face_value:
        return Pricing.PREMIUM
    if price < face_value:
        return Pricing.DISCOUNT
    return Pricing.PAR


def price_bond(
    terms: BondTerms,
    bond_type: str = CUSTOM_BOND_TYPE,
    now: Optional[pd.Timestamp] = None,
) -> PricedBond:
    price = calculate_price(terms)
    ytm = estimate_ytm(price, terms.face_value, terms.coupon_rate, terms.years_to_maturity)

    if now is None:
        now = pd.Timestamp.now(tz="UTC")

    return PricedBond(
        face_value=terms.face_value,
        coupon_rate=terms.coupon_rate,
        years_to_maturity=terms.years_to_maturity,
        market_yield=terms.market_yield,
        payment_frequency=terms.payment_frequency,
        price=price,
        ytm=ytm,
        price_change_from_par=(price - terms.face_value) / terms.face_value,
        computed_at=pd.Timestamp(now),
        bond_type=bond_type,
    )


def explain_pricing(price: float, face_value: float, market_yield: float, coupon_rate: float) -> str:
    coupon_s = format_percent(coupon_rate)
    yield_s = format_percent(market_yield)

    kind = classify_pricing(price, face_value)
    if kind is Pricing.PREMIUM:
        text = (
            f"This bond is trading at a premium (above par value). The coupon rate ({coupon_s}) "
            f"is higher than the market yield ({yield_s}), so investors pay more for the larger "
            "interest payments."
        )
    elif kind is Pricing.DISCOUNT:
        text = (
            f"This bond is trading at a discount (below par value). The coupon rate ({coupon_s}) "
            f"is lower than the market yield ({yield_s}), so it must sell below face value to "
            "match current market rates."
        )
    else:
        text = (
            f"This bond is trading at par value. The coupon rate ({coupon_s}) equals the market "
            f"yield ({yield_s}), so the price equals the face value."
        )

    return (
        text
        + "\n\nKey relationship: bond prices and yields move in opposite directions. "
        "When yields rise, prices fall, and vice versa."
    )
