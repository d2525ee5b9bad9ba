"""Quote refresh for positions with a ticker symbol, via yfinance."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable

import yfinance as yf

from stakehold.ledger.positions import list_positions, price_or_none, set_price

logger = logging.getLogger(__name__)

# Quote fields tried in order; funds and some ETFs only fill the later ones.
_PRICE_FIELDS = ("regularMarketPrice", "currentPrice", "navPrice", "previousClose")


@dataclass
class RefreshResult:
    """Result of a price refresh run."""

    updated: dict[str, Decimal] = field(default_factory=dict)
    """symbol → new price."""
    skipped: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)


def fetch_latest_price(symbol: str) -> Decimal | None:
    """Latest quote for ``symbol``, or None when unavailable."""
    try:
        info = yf.Ticker(symbol).info or {}
    except Exception as e:
        logger.warning("Failed to fetch quote for %s: %s", symbol, e)
        return None

    for name in _PRICE_FIELDS:
        price = price_or_none(info.get(name))
        if price is not None:
            return price

    logger.warning("No price found for %s", symbol)
    return None


def refresh_prices(
    db: Any,
    *,
    user_id: str | None = None,
    account_id: str | None = None,
    fetch: Callable[[str], Decimal | None] = fetch_latest_price,
) -> RefreshResult:
    """Set the current price of every position that has a symbol.

    Each symbol is fetched once even if it is held in several accounts.
    Positions without a symbol are skipped.
    """
    result = RefreshResult()
    quotes: dict[str, Decimal | None] = {}

    for position in list_positions(db, user_id=user_id, account_id=account_id):
        if not position.symbol:
            result.skipped.append(position.name)
            continue
        symbol = position.symbol
        if symbol not in quotes:
            quotes[symbol] = fetch(symbol)
        price = quotes[symbol]
        if price is None:
            result.errors.append(f"{symbol}: no quote")
            continue
        set_price(db, position.id, price)
        result.updated[symbol] = price

    logger.info(
        "Price refresh: %d updated, %d skipped, %d failed",
        len(result.updated), len(result.skipped), len(result.errors),
    )
    return result
