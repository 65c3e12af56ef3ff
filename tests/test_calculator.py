import pytest

from bond_calculator.calculator import BondCalculator, validate_inputs
from bond_calculator.errors import IncompleteState, InvalidInput
from bond_calculator.portfolio import Portfolio


@pytest.fixture
def calc():
    quotes = {"US10Y": 0.045, "US2Y": 0.05}
    return BondCalculator(yield_source=lambda symbol: quotes[symbol])


def test_custom_yield_in_percent(calc):
    b = calc.calculate(1000.0, 5.0, 10, yield_pct=4.5)
    assert b.coupon_rate == pytest.approx(0.05)
    assert b.market_yield == pytest.approx(0.045)
    assert b.price > 1000.0
    assert b.bond_type == "CUSTOM"
    assert calc.last_priced is b


def test_symbol_yield_comes_from_source(calc):
    b = calc.calculate(1000.0, 4.0, 2, bond_type="US2Y")
    assert b.market_yield == pytest.approx(0.05)
    assert b.bond_type == "US2Y"
    assert b.price < 1000.0


def test_explicit_yield_wins_over_symbol(calc):
    b = calc.calculate(1000.0, 5.0, 10, yield_pct=5.0, bond_type="US10Y")
    assert b.market_yield == pytest.approx(0.05)
    assert b.price == pytest.approx(1000.0)


def test_custom_without_yield_rejected(calc):
    with pytest.raises(InvalidInput):
        calc.calculate(1000.0, 5.0, 10)
    assert calc.last_priced is None


@pytest.mark.parametrize(
    "args, message",
    [
        ((0, 5, 10, 4), "Face value"),
        ((1000, -1, 10, 4), "Coupon rate"),
        ((1000, 101, 10, 4), "Coupon rate"),
        ((1000, 5, 0, 4), "Maturity"),
        ((1000, 5, 10, -0.5), "Yield"),
        ((1000, 5, 10, 100.5), "Yield"),
        ((float("nan"), 5, 10, 4), "Face value"),
        ((float("inf"), 5, 10, 4), "Face value"),
        ((1000, 5, float("inf"), 4), "Maturity"),
        ((1000, 5, 10, None), "Yield"),
        ((True, 5, 10, 4), "Face value"),
    ],
)
def test_validate_inputs(args, message):
    with pytest.raises(InvalidInput, match=message):
        validate_inputs(*args)


def test_failed_calculation_keeps_previous_result(calc):
    first = calc.calculate(1000.0, 5.0, 10, yield_pct=4.5)
    with pytest.raises(InvalidInput):
        calc.calculate(-5.0, 5.0, 10, yield_pct=4.5)
    assert calc.last_priced is first


def test_observers_receive_priced_bond(calc):
    seen = []
    calc.subscribe(seen.append)
    b = calc.calculate(1000.0, 5.0, 10, yield_pct=4.5)
    assert seen == [b]


def test_curve_and_highlight(calc):
    calc.calculate(1000.0, 5.0, 10, yield_pct=4.5)
    curve = calc.curve()
    assert len(curve) == 21
    idx = calc.highlight_index(curve)
    assert idx == 9
    assert curve.prices[idx] == pytest.approx(calc.last_priced.price)


def test_explanation_requires_price(calc):
    with pytest.raises(IncompleteState):
        calc.explanation()
    calc.calculate(1000.0, 4.0, 10, yield_pct=5.0)
    assert "discount" in calc.explanation()


def test_add_to_portfolio_requires_price(calc):
    p = Portfolio()
    with pytest.raises(IncompleteState):
        calc.add_to_portfolio(p)
    assert len(p) == 0

    b = calc.calculate(1000.0, 5.0, 10, yield_pct=4.5)
    entry = calc.add_to_portfolio(p)
    assert entry.bond is b
    assert len(p) == 1


def test_reset_forgets_last_price(calc):
    calc.calculate(1000.0, 5.0, 10, yield_pct=4.5)
    calc.reset()
    with pytest.raises(IncompleteState):
        calc.add_to_portfolio(Portfolio())
