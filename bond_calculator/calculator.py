from __future__ import annotations

import logging
from typing import Callable, List, Optional

from .bonds import BondTerms, PricedBond, explain_pricing, price_bond
from .config import CUSTOM_BOND_TYPE, DEFAULT_FREQUENCY
from .curves import PriceYieldCurve, locate_nearest_sample, sample_curve
from .errors import IncompleteState, InvalidInput
from .market_data import fetch_live_yield
from .portfolio import Portfolio, PortfolioEntry
from .utils import require_finite

logger = logging.getLogger(__name__)


def validate_inputs(face_value, coupon_rate_pct, years_to_maturity, yield_pct) -> None:
    """Form-level checks on user inputs in percent units."""
    def in_range(value, lo, hi, lo_open=False) -> bool:
        try:
            v = require_finite("value", value)
        except InvalidInput:
            return False
        return (v > lo if lo_open else v >= lo) and v <= hi

    if not in_range(face_value, 0, float("inf"), lo_open=True):
        raise InvalidInput("Face value must be a positive number")
    if not in_range(coupon_rate_pct, 0, 100):
        raise InvalidInput("Coupon rate must be between 0% and 100%")
    if not in_range(years_to_maturity, 0, float("inf"), lo_open=True):
        raise InvalidInput("Maturity must be greater than 0 years")
    if not in_range(yield_pct, 0, 100):
        raise InvalidInput("Yield must be between 0% and 100%")


class BondCalculator:
    """
    One user session: price bonds from percent inputs, remember the last
    result and notify observers (chart refresh) after each calculation.

    yield_source maps a market symbol to a decimal yield; defaults to the
    live provider with static fallback.
    """

    def __init__(
        self,
        yield_source: Optional[Callable[[str], float]] = None,
        payment_frequency: int = DEFAULT_FREQUENCY,
    ):
        self.yield_source = yield_source or fetch_live_yield
        self.payment_frequency = payment_frequency
        self.last_priced: Optional[PricedBond] = None
        self._observers: List[Callable[[PricedBond], None]] = []

    def subscribe(self, callback: Callable[[PricedBond], None]) -> None:
        self._observers.append(callback)

    def resolve_yield_pct(self, bond_type: str, yield_pct: Optional[float]) -> float:
        if yield_pct is not None:
            return yield_pct
        if bond_type == CUSTOM_BOND_TYPE:
            raise InvalidInput("Yield must be between 0% and 100%")
        return self.yield_source(bond_type) * 100.0

    def calculate(
        self,
        face_value: float,
        coupon_rate_pct: float,
        years_to_maturity: float,
        yield_pct: Optional[float] = None,
        bond_type: str = CUSTOM_BOND_TYPE,
    ) -> PricedBond:
        yield_pct = self.resolve_yield_pct(bond_type, yield_pct)
        validate_inputs(face_value, coupon_rate_pct, years_to_maturity, yield_pct)

        terms = BondTerms(
            face_value=face_value,
            coupon_rate=coupon_rate_pct / 100.0,
            years_to_maturity=years_to_maturity,
            market_yield=yield_pct / 100.0,
            payment_frequency=self.payment_frequency,
        )
        priced = price_bond(terms, bond_type=bond_type)
        self.last_priced = priced

        logger.info(
            "Priced %s: face=%.2f coupon=%.4f T=%.2f y=%.4f -> %.4f",
            bond_type, terms.face_value, terms.coupon_rate, terms.years_to_maturity,
            terms.market_yield, priced.price,
        )

        for callback in list(self._observers):
            callback(priced)
        return priced

    def _require_priced(self) -> PricedBond:
        if self.last_priced is None:
            raise IncompleteState("Please calculate a bond first")
        return self.last_priced

    def explanation(self) -> str:
        b = self._require_priced()
        return explain_pricing(b.price, b.face_value, b.market_yield, b.coupon_rate)

    def curve(self) -> PriceYieldCurve:
        b = self._require_priced()
        return sample_curve(b.face_value, b.coupon_rate, b.years_to_maturity, b.payment_frequency)

    def highlight_index(self, curve: Optional[PriceYieldCurve] = None) -> int:
        """Curve sample nearest the last priced bond's market yield."""
        b = self._require_priced()
        curve = curve if curve is not None else self.curve()
        return locate_nearest_sample(curve, b.market_yield * 100.0)

    def add_to_portfolio(self, portfolio: Portfolio) -> PortfolioEntry:
        return portfolio.add(self.last_priced)

    def reset(self) -> None:
        self.last_priced = None
