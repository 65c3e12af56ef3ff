# config.py
# Central configuration for the bond calculator: pricing defaults, curve sweep,
# storage location and market-data provider settings.

from __future__ import annotations

import os

# Pricing defaults
DEFAULT_FREQUENCY = 2
DEFAULT_FACE_VALUE = 1000.0
DEFAULT_COUPON_PCT = 5.0
DEFAULT_MATURITY_YEARS = 10.0
CUSTOM_BOND_TYPE = "CUSTOM"

# Price/yield curve sweep, in percent
CURVE_YIELD_RANGE_PCT = (0.0, 10.0)
CURVE_STEP_PCT = 0.5

# Persistence
PORTFOLIO_STORAGE_KEY = "bondPortfolio"
STORE_PATH = os.environ.get(
    "BOND_CALCULATOR_STORE",
    os.path.join(os.path.expanduser("~"), ".bond_calculator", "storage.json"),
)

# Market data
MARKET_DATA_URL = "https://finnhub.io/api/v1/bond/yield"
MARKET_DATA_API_KEY_ENV = "FINNHUB_API_KEY"
MARKET_DATA_TIMEOUT = 10
BENCHMARK_SYMBOL = "US10Y"
DEFAULT_SYMBOL = "US10Y"

# Static yield table used when the provider is unavailable (decimal fractions).
FALLBACK_YIELDS = {
    "US1M": 0.0500,
    "US3M": 0.0480,
    "US6M": 0.0470,
    "US1Y": 0.0460,
    "US2Y": 0.0450,
    "US3Y": 0.0445,
    "US5Y": 0.0435,
    "US7Y": 0.0430,
    "US10Y": 0.0425,
    "US20Y": 0.0435,
    "US30Y": 0.0440,
}
DEFAULT_FALLBACK_YIELD = 0.0425

LOG_LEVEL = os.environ.get("BOND_CALCULATOR_LOG_LEVEL", "WARNING")
