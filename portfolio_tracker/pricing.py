from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Protocol

from portfolio_tracker.quotes import QuoteIndex

logger = logging.getLogger(__name__)


class PriceResolver(Protocol):
    name: str

    def try_resolve(self, symbol: str, as_of: Optional[str] = None) -> Optional[float]:
        raise NotImplementedError


@dataclass(frozen=True)
class LatestQuoteResolver:
    quotes: QuoteIndex
    name: str = "latest_quote"

    def try_resolve(self, symbol: str, as_of: Optional[str] = None) -> Optional[float]:
        q = self.quotes.latest.get(symbol)
        if q is None or not q.valid:
            return None
        if as_of is not None and q.date > as_of:
            return None
        return q.close


@dataclass(frozen=True)
class QuoteHistoryResolver:
    quotes: QuoteIndex
    name: str = "quote_history"

    def try_resolve(self, symbol: str, as_of: Optional[str] = None) -> Optional[float]:
        q = self.quotes.max_date_quote(symbol, as_of=as_of)
        return q.close if q is not None else None


@dataclass(frozen=True)
class PrefixQuoteResolver:
    """Matches "BOND@2027" style symbols against any quote sharing the part before "@"."""

    quotes: QuoteIndex
    name: str = "prefix_quote"

    def try_resolve(self, symbol: str, as_of: Optional[str] = None) -> Optional[float]:
        base = symbol.split("@")[0]
        if not base:
            return None
        q = self.quotes.max_date_quote_by_prefix(base, as_of=as_of)
        return q.close if q is not None else None


@dataclass(frozen=True)
class NetPriceResolver:
    net_price: float
    name: str = "net_price"

    def try_resolve(self, symbol: str, as_of: Optional[str] = None) -> Optional[float]:
        return self.net_price if self.net_price else None


@dataclass(frozen=True)
class ConstantResolver:
    value: float = 1.0
    name: str = "default"

    def try_resolve(self, symbol: str, as_of: Optional[str] = None) -> Optional[float]:
        return self.value


def price_chain(quotes: QuoteIndex, *, net_price: float = 0.0, fixed_income: bool = False) -> list[PriceResolver]:
    chain: list[PriceResolver] = [LatestQuoteResolver(quotes), QuoteHistoryResolver(quotes)]
    if fixed_income:
        chain.append(PrefixQuoteResolver(quotes))
    chain.append(NetPriceResolver(net_price))
    chain.append(ConstantResolver(1.0))
    return chain


def resolve_price(symbol: str, chain: list[PriceResolver], *, as_of: Optional[str] = None) -> tuple[float, str]:
    """First resolver in `chain` that yields a price wins; returns (price, resolver name)."""
    for resolver in chain:
        price = resolver.try_resolve(symbol, as_of)
        if price is not None:
            if resolver.name != "latest_quote":
                logger.debug("Priced %s via %s: %s", symbol, resolver.name, price)
            return float(price), resolver.name
    return 0.0, "none"
