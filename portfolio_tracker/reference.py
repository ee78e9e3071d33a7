from __future__ import annotations

import logging
from dataclasses import dataclass

from portfolio_tracker.quotes import Quote, QuoteIndex
from portfolio_tracker.symbols import SymbolIndex, SymbolMeta

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReferenceData:
    """Read-only lookup tables shared by every account in a run."""

    symbols: SymbolIndex
    quotes: QuoteIndex
    benchmark_symbol: str = "EGX30"

    def meta(self, symbol: str) -> SymbolMeta:
        return self.symbols.get(symbol)


def build_reference(symbols: list[SymbolMeta], quotes: list[Quote], *, benchmark_symbol: str = "EGX30") -> ReferenceData:
    sym_index = SymbolIndex.build(symbols)
    quote_index = QuoteIndex.build(quotes, benchmark_symbol=benchmark_symbol)
    logger.info(
        "Reference data: %d symbols, %d quotes over %d dates, %d benchmark points",
        len(sym_index),
        len(quote_index.quotes),
        len(quote_index.by_date),
        len(quote_index.benchmark),
    )
    return ReferenceData(symbols=sym_index, quotes=quote_index, benchmark_symbol=benchmark_symbol)
