import itertools
import json
import logging

import pandas as pd
import pytest

from bond_calculator.bonds import BondTerms, PricedBond, price_bond
from bond_calculator.errors import IncompleteState, InvalidInput, StorageError
from bond_calculator.portfolio import (
    Portfolio,
    PortfolioEntry,
    PortfolioMetrics,
    compare_to_benchmark,
    compute_metrics,
)
from bond_calculator.storage import InMemoryStore, PortfolioRepository


NOW = pd.Timestamp("2026-02-13 12:00", tz="UTC")


def make_bond(price, ytm, face=1000.0, coupon=0.05, bond_type="CUSTOM"):
    return PricedBond(
        face_value=face,
        coupon_rate=coupon,
        years_to_maturity=10.0,
        market_yield=ytm,
        payment_frequency=2,
        price=price,
        ytm=ytm,
        price_change_from_par=(price - face) / face,
        computed_at=NOW,
        bond_type=bond_type,
    )


@pytest.fixture(scope="module")
def bonds():
    return [
        make_bond(1000.0, 0.05, face=1000.0, coupon=0.05),
        make_bond(500.0, 0.02, face=500.0, coupon=0.04),
        make_bond(1039.9, 0.0449, face=1000.0, coupon=0.05, bond_type="US10Y"),
    ]


class BrokenStore:
    def get(self, key):
        raise StorageError("disk on fire")

    def set(self, key, value):
        raise OSError("read-only filesystem")


def test_empty_metrics_are_zero():
    m = compute_metrics([])
    assert m == PortfolioMetrics(total_value=0.0, avg_yield=0.0, expected_annual_return=0.0, bond_count=0)


def test_metrics_values(bonds):
    m = compute_metrics(bonds[:2])
    assert m.total_value == pytest.approx(1500.0)
    assert m.avg_yield == pytest.approx((1000.0 * 0.05 + 500.0 * 0.02) / 1500.0)
    assert m.expected_annual_return == pytest.approx(50.0 + 20.0)
    assert m.bond_count == 2


def test_zero_total_value_gives_zero_yield():
    m = compute_metrics([make_bond(0.0, 0.07)])
    assert m.avg_yield == 0.0
    assert m.bond_count == 1


def test_metrics_order_independent(bonds):
    base = compute_metrics(bonds)
    for perm in itertools.permutations(bonds):
        m = compute_metrics(list(perm))
        assert m.total_value == pytest.approx(base.total_value)
        assert m.avg_yield == pytest.approx(base.avg_yield)
        assert m.expected_annual_return == pytest.approx(base.expected_annual_return)
        assert m.bond_count == base.bond_count


def test_metrics_idempotent(bonds):
    p = Portfolio()
    for b in bonds:
        p.add(b)
    assert p.metrics() == p.metrics()
    assert compute_metrics(p.entries) == compute_metrics([e.bond for e in p.entries])


def test_add_assigns_unique_ids(bonds):
    p = Portfolio()
    entries = [p.add(b) for b in bonds * 3]
    ids = [e.entry_id for e in entries]
    assert len(set(ids)) == len(ids)
    assert [e.bond for e in p] == bonds * 3, "Entries keep insertion order"


def test_add_without_price_is_rejected():
    p = Portfolio()
    with pytest.raises(IncompleteState):
        p.add(None)
    assert len(p) == 0


def test_remove_missing_id_is_noop(bonds):
    p = Portfolio()
    for b in bonds:
        p.add(b)
    before = p.entries

    assert p.remove("does-not-exist") is False
    assert p.entries == before
    assert len(p) == 3


def test_remove_by_id(bonds):
    p = Portfolio()
    entries = [p.add(b) for b in bonds]

    assert p.remove(entries[1].entry_id) is True
    assert [e.entry_id for e in p] == [entries[0].entry_id, entries[2].entry_id]
    assert entries[1].entry_id not in p


def test_clear(bonds):
    p = Portfolio()
    for b in bonds:
        p.add(b)
    p.clear()
    assert len(p) == 0
    assert p.metrics().bond_count == 0


def test_observers_notified_on_each_mutation(bonds):
    seen = []
    p = Portfolio()
    p.subscribe(lambda pf: seen.append(len(pf)))

    e = p.add(bonds[0])
    p.add(bonds[1])
    p.remove("missing")
    p.remove(e.entry_id)
    p.clear()

    assert seen == [1, 2, 1, 0]


def test_unsubscribe(bonds):
    seen = []
    cb = lambda pf: seen.append(len(pf))  # noqa: E731
    p = Portfolio()
    p.subscribe(cb)
    p.add(bonds[0])
    p.unsubscribe(cb)
    p.add(bonds[1])
    assert seen == [1]


def test_mutations_are_persisted(bonds):
    store = InMemoryStore()
    repo = PortfolioRepository(store)
    p = Portfolio.load(repo)
    assert len(p) == 0

    e = p.add(bonds[0])
    p.add(bonds[2])
    saved = json.loads(store.get("bondPortfolio"))
    assert len(saved["bonds"]) == 2

    p.remove(e.entry_id)
    reloaded = Portfolio.load(repo)
    assert reloaded.entries == p.entries


def test_storage_failure_is_not_fatal(bonds, caplog):
    repo = PortfolioRepository(BrokenStore())

    with caplog.at_level(logging.ERROR, logger="bond_calculator.portfolio"):
        p = Portfolio.load(repo)
        p.add(bonds[0])

    assert len(p) == 1, "In-memory portfolio must survive storage errors"
    assert "Error loading portfolio" in caplog.text
    assert "Error saving portfolio" in caplog.text
    assert isinstance(p.last_save_error, StorageError)


def test_successful_save_clears_last_error(bonds):
    p = Portfolio(repository=PortfolioRepository(InMemoryStore()))
    assert p.last_save_error is None
    p.add(bonds[0])
    assert p.last_save_error is None


def test_duplicate_entry_ids_rejected(bonds):
    with pytest.raises(InvalidInput):
        Portfolio([PortfolioEntry("x", bonds[0]), PortfolioEntry("x", bonds[1])])

    p = Portfolio([PortfolioEntry("x", bonds[0]), PortfolioEntry("y", bonds[1])])
    p.remove("x")
    assert [e.entry_id for e in p] == ["y"]


def test_corrupt_payload_loads_empty():
    store = InMemoryStore({"bondPortfolio": "{not json"})
    p = Portfolio.load(PortfolioRepository(store))
    assert len(p) == 0


def test_compare_to_benchmark():
    m = PortfolioMetrics(total_value=1500.0, avg_yield=0.05, expected_annual_return=70.0, bond_count=2)
    cmp = compare_to_benchmark(m, 0.0425)
    assert cmp["portfolio_yield"] == 0.05
    assert cmp["benchmark_yield"] == 0.0425
    assert cmp["spread_bp"] == pytest.approx(75.0)


def test_portfolio_frame(bonds):
    p = Portfolio()
    for b in bonds:
        p.add(b)
    df = p.to_frame()

    assert len(df) == 3
    assert {"entry_id", "name", "price", "ytm", "face_value", "coupon_rate"}.issubset(df.columns)
    assert df["name"].tolist() == [
        "Custom Bond (1000 @ 5.00%)",
        "Custom Bond (500 @ 4.00%)",
        "10-Year Treasury",
    ]
    assert df["price"].sum() == pytest.approx(p.metrics().total_value)


def test_empty_portfolio_frame_has_columns():
    df = Portfolio().to_frame()
    assert df.empty
    assert "price" in df.columns


def test_priced_bonds_aggregate_end_to_end():
    premium = price_bond(BondTerms(1000.0, 0.05, 10, 0.045, 2), now=NOW)
    discount = price_bond(BondTerms(1000.0, 0.04, 10, 0.05, 2), now=NOW)
    m = compute_metrics([premium, discount])

    assert m.total_value == pytest.approx(premium.price + discount.price)
    assert min(premium.ytm, discount.ytm) <= m.avg_yield <= max(premium.ytm, discount.ytm)
    assert m.expected_annual_return == pytest.approx(90.0)
