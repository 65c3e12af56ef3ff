"""
Bond Price Calculator

Modules:
- bonds: bond terms + discounted cash flow pricing + approximate YTM
- curves: price/yield curve sampling over a yield sweep
- portfolio: session portfolio + weighted aggregate metrics
- storage: key-value persistence for the portfolio
- market_data: Treasury yield lookup with static fallback
- calculator: session glue (input checks, last result, observers)
- main_cli: command line entry point
"""
from .bonds import BondTerms, PricedBond, Pricing, calculate_price, estimate_ytm, classify_pricing, price_bond
from .curves import PriceYieldCurve, sample_curve, locate_nearest_sample
from .errors import InvalidInput, IncompleteState, StorageError
from .portfolio import Portfolio, PortfolioEntry, PortfolioMetrics, compute_metrics

__version__ = "0.1.0"
