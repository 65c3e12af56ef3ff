from __future__ import annotations

import numpy as np
import pandas as pd
from dataclasses import dataclass
from typing import Iterator, Sequence, Tuple, Union

from .bonds import BondTerms, calculate_price
from .config import CURVE_STEP_PCT, CURVE_YIELD_RANGE_PCT, DEFAULT_FREQUENCY
from .errors import InvalidInput
from .utils import require_finite


@dataclass(frozen=True)
class PriceYieldCurve:
    """
    Price/yield samples for fixed bond terms, yield ascending.

    yields_pct are in percent (4.5 = 4.5%), prices in currency units.
    """
    face_value: float
    coupon_rate: float
    years_to_maturity: float
    payment_frequency: int
    yields_pct: np.ndarray
    prices: np.ndarray

    def __len__(self) -> int:
        return len(self.yields_pct)

    def __iter__(self) -> Iterator[Tuple[float, float]]:
        for y, p in zip(self.yields_pct, self.prices):
            yield float(y), float(p)

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({"yield_pct": self.yields_pct, "price": self.prices})


def yield_grid_pct(
    yield_range_pct: Tuple[float, float] = CURVE_YIELD_RANGE_PCT,
    step_pct: float = CURVE_STEP_PCT,
) -> np.ndarray:
    """
    Inclusive grid lo, lo+step, ..., hi.

    Built from a point count rather than repeated addition so the endpoint is
    hit exactly (0..10 by 0.5 -> 21 points).
    """
    lo = require_finite("yield_range_pct[0]", yield_range_pct[0])
    hi = require_finite("yield_range_pct[1]", yield_range_pct[1])
    step = require_finite("step_pct", step_pct)

    if step <= 0:
        raise InvalidInput(f"step_pct must be positive, got {step!r}")
    if hi < lo:
        raise InvalidInput(f"yield range is reversed: {lo!r} > {hi!r}")

    n = int(np.floor((hi - lo) / step + 1e-9)) + 1
    return lo + step * np.arange(n, dtype=float)


def sample_curve(
    face_value: float,
    coupon_rate: float,
    years_to_maturity: float,
    payment_frequency: int = DEFAULT_FREQUENCY,
    yield_range_pct: Tuple[float, float] = CURVE_YIELD_RANGE_PCT,
    step_pct: float = CURVE_STEP_PCT,
) -> PriceYieldCurve:
    """Reprice the bond at every grid yield. Recomputed on each call."""
    yields = yield_grid_pct(yield_range_pct, step_pct)

    base = BondTerms(
        face_value=face_value,
        coupon_rate=coupon_rate,
        years_to_maturity=years_to_maturity,
        market_yield=float(yields[0]) / 100.0,
        payment_frequency=payment_frequency,
    )
    prices = np.array([calculate_price(base.with_yield(float(y) / 100.0)) for y in yields], dtype=float)

    return PriceYieldCurve(
        face_value=base.face_value,
        coupon_rate=base.coupon_rate,
        years_to_maturity=base.years_to_maturity,
        payment_frequency=base.payment_frequency,
        yields_pct=yields,
        prices=prices,
    )


def locate_nearest_sample(samples: Union[PriceYieldCurve, Sequence[float]], target_yield_pct: float) -> int:
    """
    Index of the sample yield closest to target_yield_pct.

    Ties go to the lowest index (argmin returns the first minimum).
    """
    target = require_finite("target_yield_pct", target_yield_pct)
    yields = samples.yields_pct if isinstance(samples, PriceYieldCurve) else np.asarray(samples, dtype=float)

    if yields.size == 0:
        raise InvalidInput("cannot locate a sample in an empty curve")

    return int(np.argmin(np.abs(yields - target)))
