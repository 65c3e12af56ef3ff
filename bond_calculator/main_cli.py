# bond_calculator/main_cli.py
import argparse
import logging
from typing import List, Optional

import numpy as np

from . import config
from .calculator import BondCalculator
from .curves import locate_nearest_sample, sample_curve
from .errors import BondCalculatorError
from .market_data import bond_display_name, display_symbol, fallback_yield, fetch_live_yield
from .portfolio import Portfolio, compare_to_benchmark
from .storage import JsonFileStore, PortfolioRepository
from .utils import format_currency, format_percent, format_percent_with_sign


# ---------- helpers ----------
def _open_portfolio(store_path: str) -> Portfolio:
    return Portfolio.load(PortfolioRepository(JsonFileStore(store_path)))


def _print_kv(title: str, mapping: dict) -> None:
    print(f"\n{title}:")
    width = max(len(k) for k in mapping)
    for k, v in mapping.items():
        print(f"  {k:<{width}}  {v}")


# ---------- commands ----------
def cmd_price(args) -> None:
    calc = BondCalculator(payment_frequency=args.freq)
    bond_type = config.CUSTOM_BOND_TYPE if args.yield_pct is not None else args.symbol

    bond = calc.calculate(args.face, args.coupon, args.maturity, yield_pct=args.yield_pct, bond_type=bond_type)

    _print_kv(
        bond_display_name(bond),
        {
            "Market yield": format_percent(bond.market_yield),
            "Bond price": format_currency(bond.price),
            "Approx. YTM": format_percent(bond.ytm),
            "Change from par": format_percent_with_sign(bond.price_change_from_par),
            "Pricing": bond.pricing.value,
        },
    )
    print()
    print(calc.explanation())

    if args.curve:
        curve = calc.curve()
        hi = calc.highlight_index(curve)
        print("\nPrice/yield curve:")
        for i, (y, p) in enumerate(curve):
            marker = "  <- current" if i == hi else ""
            print(f"  {y:5.1f}%  {format_currency(p):>14}{marker}")

    if args.add:
        portfolio = _open_portfolio(args.store)
        entry = calc.add_to_portfolio(portfolio)
        if portfolio.last_save_error is not None:
            print(f"\nAdded {entry.entry_id} for this session only; saving failed: {portfolio.last_save_error}")
        else:
            print(f"\nAdded to portfolio: {entry.entry_id}")


def cmd_curve(args) -> None:
    curve = sample_curve(args.face, args.coupon / 100.0, args.maturity, args.freq)
    df = curve.to_frame()

    if args.highlight is not None:
        idx = locate_nearest_sample(curve, args.highlight)
        df["current"] = np.arange(len(df)) == idx

    print(df.to_string(index=False, float_format=lambda v: f"{v:,.2f}"))

    if args.out:
        df.to_csv(args.out, index=False)
        print(f"Saved: {args.out}")


def cmd_yield(args) -> None:
    value = fetch_live_yield(args.symbol)
    print(f"Current {display_symbol(args.symbol)} Treasury yield: {format_percent(value)}")


def cmd_portfolio(args) -> None:
    portfolio = _open_portfolio(args.store)

    if args.action == "remove":
        if not args.id:
            raise SystemExit("Error: --id is required for remove")
        if not portfolio.remove(args.id):
            print(f"No entry {args.id}; portfolio unchanged")
    elif args.action == "clear":
        if len(portfolio) == 0:
            print("Portfolio is already empty")
            return
        if not args.yes:
            raise SystemExit("Refusing to clear the entire portfolio without --yes")
        portfolio.clear()
        print("Portfolio cleared")
        return

    if len(portfolio) == 0:
        print('No bonds in portfolio. Price a bond with "price ... --add" to start building one.')
        return

    df = portfolio.to_frame()
    print(df[["entry_id", "name", "face_value", "coupon_rate", "years_to_maturity", "price", "ytm"]].to_string(index=False))

    m = portfolio.metrics()
    _print_kv(
        "Portfolio",
        {
            "Total value": format_currency(m.total_value),
            "Average yield": format_percent(m.avg_yield),
            "Bond count": m.bond_count,
            "Expected annual income": format_currency(m.expected_annual_return),
        },
    )

    cmp = compare_to_benchmark(m, fallback_yield(config.BENCHMARK_SYMBOL))
    _print_kv(
        f"vs {display_symbol(config.BENCHMARK_SYMBOL)} Treasury benchmark",
        {
            "Portfolio": format_percent(cmp["portfolio_yield"]),
            "Benchmark": format_percent(cmp["benchmark_yield"]),
            "Spread": f"{cmp['spread_bp']:+.1f}bp",
        },
    )

    if args.out:
        df.to_csv(args.out, index=False)
        print(f"Saved: {args.out}")


# ---------- cli ----------
def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Bond Price Calculator")
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    sub = p.add_subparsers(dest="cmd", required=True)

    def bond_args(sp: argparse.ArgumentParser) -> None:
        sp.add_argument("--face", type=float, default=config.DEFAULT_FACE_VALUE, help="Face value (default: 1000)")
        sp.add_argument("--coupon", type=float, default=config.DEFAULT_COUPON_PCT, help="Annual coupon rate in percent (default: 5)")
        sp.add_argument("--maturity", type=float, default=config.DEFAULT_MATURITY_YEARS, help="Years to maturity (default: 10)")
        sp.add_argument("--freq", type=int, default=config.DEFAULT_FREQUENCY, help="Coupon payments per year (default: 2)")

    # price
    pr = sub.add_parser("price", help="Price a bond")
    bond_args(pr)
    src = pr.add_mutually_exclusive_group()
    src.add_argument("--yield", dest="yield_pct", type=float, default=None, help="Custom market yield in percent")
    src.add_argument("--symbol", default=config.DEFAULT_SYMBOL, help="Treasury symbol for the market yield (default: US10Y)")
    pr.add_argument("--curve", action="store_true", help="Print the price/yield curve")
    pr.add_argument("--add", action="store_true", help="Add the priced bond to the portfolio")
    pr.add_argument("--store", default=config.STORE_PATH, help="Portfolio store file")

    # curve
    cu = sub.add_parser("curve", help="Price/yield curve over 0-10%% yield")
    bond_args(cu)
    cu.add_argument("--highlight", type=float, default=None, help="Mark the sample nearest this yield (percent)")
    cu.add_argument("--out", default=None, help="Optional output CSV filename")

    # yield
    yi = sub.add_parser("yield", help="Look up a Treasury yield")
    yi.add_argument("symbol", help="e.g. US10Y, US3M")

    # portfolio
    po = sub.add_parser("portfolio", help="Show or edit the saved portfolio")
    po.add_argument("action", nargs="?", choices=["list", "remove", "clear"], default="list")
    po.add_argument("--id", default=None, help="Entry id for remove")
    po.add_argument("--yes", action="store_true", help="Confirm clear")
    po.add_argument("--store", default=config.STORE_PATH, help="Portfolio store file")
    po.add_argument("--out", default=None, help="Optional output CSV filename")

    return p


def main(argv: Optional[List[str]] = None) -> None:
    p = build_parser()
    args = p.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else config.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    commands = {
        "price": cmd_price,
        "curve": cmd_curve,
        "yield": cmd_yield,
        "portfolio": cmd_portfolio,
    }
    try:
        commands[args.cmd](args)
    except BondCalculatorError as exc:
        raise SystemExit(f"Error: {exc}")


if __name__ == "__main__":
    main()
