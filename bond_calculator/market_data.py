from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING, Optional

import requests

from .config import (
    CUSTOM_BOND_TYPE,
    DEFAULT_FALLBACK_YIELD,
    FALLBACK_YIELDS,
    MARKET_DATA_API_KEY_ENV,
    MARKET_DATA_TIMEOUT,
    MARKET_DATA_URL,
)
from .errors import InvalidInput

if TYPE_CHECKING:
    from .bonds import PricedBond

logger = logging.getLogger(__name__)


def fallback_yield(symbol: str) -> float:
    """Static yield for a Treasury symbol; unknown symbols get the default."""
    return FALLBACK_YIELDS.get(symbol.upper(), DEFAULT_FALLBACK_YIELD)


def fetch_live_yield(
    symbol: str,
    api_key: Optional[str] = None,
    session=None,
    url: str = MARKET_DATA_URL,
    timeout: float = MARKET_DATA_TIMEOUT,
) -> float:
    """
    Current yield (decimal) for a Treasury symbol such as 'US10Y'.

    Any provider problem (no API key, network error, non-2xx, payload without
    a numeric 'yield') is logged and answered from the fallback table.
    """
    if not symbol or not symbol.strip():
        raise InvalidInput("symbol is required")
    symbol = symbol.strip().upper()

    if api_key is None:
        api_key = os.environ.get(MARKET_DATA_API_KEY_ENV)
    if not api_key:
        logger.info("%s not configured, using fallback yield for %s", MARKET_DATA_API_KEY_ENV, symbol)
        return fallback_yield(symbol)

    http = session if session is not None else requests
    try:
        response = http.get(url, params={"symbol": symbol, "token": api_key}, timeout=timeout)
        response.raise_for_status()
        data = response.json()
    except (requests.exceptions.RequestException, ValueError) as exc:
        logger.warning("Error fetching live yield for %s: %s; using fallback", symbol, exc)
        return fallback_yield(symbol)

    value = data.get("yield") if isinstance(data, dict) else None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        logger.warning("No yield in provider response for %s; using fallback", symbol)
        return fallback_yield(symbol)

    logger.debug("Live yield for %s: %.6f", symbol, value)
    return float(value)


def display_symbol(symbol: str) -> str:
    """'US10Y' -> '10-Year', 'US3M' -> '3-Month'."""
    s = symbol.upper()
    if s.startswith("US"):
        s = s[2:]
    if s.endswith("M"):
        return s[:-1] + "-Month"
    if s.endswith("Y"):
        return s[:-1] + "-Year"
    return s


def bond_display_name(bond: "PricedBond") -> str:
    if bond.bond_type == CUSTOM_BOND_TYPE:
        return f"Custom Bond ({bond.face_value:.0f} @ {bond.coupon_rate * 100:.2f}%)"
    return f"{display_symbol(bond.bond_type)} Treasury"
