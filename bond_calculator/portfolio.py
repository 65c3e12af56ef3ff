from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Iterable, Iterator, List, Optional, Union

import numpy as np
import pandas as pd

from .bonds import PricedBond
from .errors import IncompleteState, InvalidInput, StorageError
from .market_data import bond_display_name

if TYPE_CHECKING:
    from .storage import PortfolioRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PortfolioEntry:
    entry_id: str
    bond: PricedBond


@dataclass(frozen=True)
class PortfolioMetrics:
    total_value: float
    avg_yield: float                # price-weighted ytm, decimal
    expected_annual_return: float   # sum of annual coupons
    bond_count: int


def _bonds(entries: Iterable[Union[PortfolioEntry, PricedBond]]) -> List[PricedBond]:
    return [e.bond if isinstance(e, PortfolioEntry) else e for e in entries]


def compute_metrics(entries: Iterable[Union[PortfolioEntry, PricedBond]]) -> PortfolioMetrics:
    """
    total_value = sum(price)
    avg_yield = sum(price * ytm) / total_value, or 0 when total_value is 0
    expected_annual_return = sum(face * coupon_rate)
    """
    bonds = _bonds(entries)
    if not bonds:
        return PortfolioMetrics(total_value=0.0, avg_yield=0.0, expected_annual_return=0.0, bond_count=0)

    prices = np.array([b.price for b in bonds], dtype=float)
    ytms = np.array([b.ytm for b in bonds], dtype=float)
    faces = np.array([b.face_value for b in bonds], dtype=float)
    coupons = np.array([b.coupon_rate for b in bonds], dtype=float)

    total_value = float(np.sum(prices))
    weighted_yield = float(np.sum(prices * ytms))
    avg_yield = weighted_yield / total_value if total_value != 0 else 0.0

    return PortfolioMetrics(
        total_value=total_value,
        avg_yield=avg_yield,
        expected_annual_return=float(np.sum(faces * coupons)),
        bond_count=len(bonds),
    )


def compare_to_benchmark(metrics: PortfolioMetrics, benchmark_yield: float) -> dict:
    """Portfolio average yield against a benchmark yield (both decimal)."""
    return {
        "portfolio_yield": metrics.avg_yield,
        "benchmark_yield": float(benchmark_yield),
        "spread_bp": (metrics.avg_yield - float(benchmark_yield)) * 10000.0,
    }


def portfolio_frame(entries: Iterable[PortfolioEntry]) -> pd.DataFrame:
    """One row per entry, in portfolio order."""
    rows = [
        {
            "entry_id": e.entry_id,
            "name": bond_display_name(e.bond),
            "bond_type": e.bond.bond_type,
            "face_value": e.bond.face_value,
            "coupon_rate": e.bond.coupon_rate,
            "years_to_maturity": e.bond.years_to_maturity,
            "market_yield": e.bond.market_yield,
            "price": e.bond.price,
            "ytm": e.bond.ytm,
            "computed_at": e.bond.computed_at,
        }
        for e in entries
    ]
    columns = [
        "entry_id", "name", "bond_type", "face_value", "coupon_rate", "years_to_maturity",
        "market_yield", "price", "ytm", "computed_at",
    ]
    return pd.DataFrame(rows, columns=columns)


class Portfolio:
    """
    Session-owned, ordered collection of priced bonds.

    Every mutation is saved through the optional repository; storage failures
    are logged and the in-memory state stays authoritative. Observers are
    called with the portfolio after each mutation.
    """

    def __init__(
        self,
        entries: Optional[Iterable[PortfolioEntry]] = None,
        repository: Optional["PortfolioRepository"] = None,
    ):
        self._entries: List[PortfolioEntry] = list(entries or [])
        ids = [e.entry_id for e in self._entries]
        if len(set(ids)) != len(ids):
            raise InvalidInput("portfolio entries must have unique ids")

        self.repository = repository
        self.last_save_error: Optional[StorageError] = None
        self._observers: List[Callable[["Portfolio"], None]] = []

    @classmethod
    def load(cls, repository: "PortfolioRepository") -> "Portfolio":
        try:
            entries = repository.load()
        except StorageError as exc:
            logger.error("Error loading portfolio, starting empty: %s", exc)
            entries = []
        logger.info("Loaded portfolio with %d entries", len(entries))
        return cls(entries, repository=repository)

    @property
    def entries(self) -> List[PortfolioEntry]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[PortfolioEntry]:
        return iter(list(self._entries))

    def __contains__(self, entry_id: object) -> bool:
        return any(e.entry_id == entry_id for e in self._entries)

    def subscribe(self, callback: Callable[["Portfolio"], None]) -> None:
        self._observers.append(callback)

    def unsubscribe(self, callback: Callable[["Portfolio"], None]) -> None:
        if callback in self._observers:
            self._observers.remove(callback)

    def add(self, bond: Optional[PricedBond]) -> PortfolioEntry:
        if bond is None:
            raise IncompleteState("Please calculate a bond first before adding to portfolio")

        entry_id = uuid.uuid4().hex
        while entry_id in self:
            entry_id = uuid.uuid4().hex

        entry = PortfolioEntry(entry_id=entry_id, bond=bond)
        self._entries.append(entry)
        logger.info("Added %s to portfolio (price %.2f)", entry_id, bond.price)
        self._changed()
        return entry

    def remove(self, entry_id: str) -> bool:
        """Drop the entry with this id; unknown ids are a no-op."""
        kept = [e for e in self._entries if e.entry_id != entry_id]
        if len(kept) == len(self._entries):
            logger.debug("Remove ignored, no entry %s", entry_id)
            return False

        self._entries = kept
        logger.info("Removed %s from portfolio", entry_id)
        self._changed()
        return True

    def clear(self) -> None:
        self._entries = []
        logger.info("Cleared portfolio")
        self._changed()

    def metrics(self) -> PortfolioMetrics:
        return compute_metrics(self._entries)

    def to_frame(self) -> pd.DataFrame:
        return portfolio_frame(self._entries)

    def _changed(self) -> None:
        self._persist()
        for callback in list(self._observers):
            callback(self)

    def _persist(self) -> None:
        if self.repository is None:
            return
        try:
            self.repository.save(self._entries)
        except StorageError as exc:
            logger.error("Error saving portfolio: %s", exc)
            self.last_save_error = exc
        else:
            self.last_save_error = None
