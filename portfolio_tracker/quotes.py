from __future__ import annotations

import logging
from dataclasses import dataclass

from portfolio_tracker.util import clean_str, is_canonical_date, normalize_date, parse_number, pick, read_rows

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Quote:
    symbol: str
    date: str
    close: float

    @property
    def valid(self) -> bool:
        return self.close > 0


def load_quotes(text: str) -> tuple[list[Quote], list[str]]:
    """
    Parse the daily quotes extract (Symbol, Date, Close).

    Rows without a symbol or date are dropped. Non-positive closes are kept so
    that a date still counts as quoted, but they never price anything.
    """
    warnings: list[str] = []
    out: list[Quote] = []
    skipped = 0
    bad_dates: set[str] = set()
    for row in read_rows(text):
        symbol = clean_str(pick(row, ["symbol", "ticker"]))
        raw_date = clean_str(pick(row, ["date", "as_of", "day"]))
        if not symbol or not raw_date:
            skipped += 1
            continue
        date = normalize_date(raw_date)
        if not is_canonical_date(date) and raw_date not in bad_dates:
            bad_dates.add(raw_date)
            logger.warning("Could not standardize date: %s", raw_date)
        close = parse_number(pick(row, ["close", "adj_close", "price", "value"]))
        out.append(Quote(symbol=symbol, date=date, close=close))
    if skipped:
        warnings.append(f"Skipped {skipped} quote row(s) without symbol or date.")
    if bad_dates:
        sample = ", ".join(sorted(bad_dates)[:5])
        suffix = "..." if len(bad_dates) > 5 else ""
        warnings.append(f"Could not standardize {len(bad_dates)} quote date(s): {sample}{suffix}")
    if not out:
        warnings.append("No quotes parsed (check delimiter/headers).")
    return out, warnings


@dataclass(frozen=True)
class QuoteIndex:
    quotes: list[Quote]
    latest: dict[str, Quote]  # symbol -> max-date quote with a canonical date
    by_date: dict[str, dict[str, float]]  # date -> symbol -> close
    history: dict[str, list[Quote]]  # symbol -> positive-close quotes with canonical dates, date ascending
    benchmark: dict[str, float]  # date -> positive benchmark close

    @classmethod
    def build(cls, quotes: list[Quote], *, benchmark_symbol: str = "") -> "QuoteIndex":
        latest: dict[str, Quote] = {}
        by_date: dict[str, dict[str, float]] = {}
        history: dict[str, list[Quote]] = {}
        benchmark: dict[str, float] = {}
        for q in quotes:
            by_date.setdefault(q.date, {})[q.symbol] = q.close
            # Unparsed dates still mark a quoted day but never compete on recency.
            if not is_canonical_date(q.date):
                continue
            existing = latest.get(q.symbol)
            # Strict ">": on equal dates the first row seen is retained.
            if existing is None or q.date > existing.date:
                latest[q.symbol] = q
            if q.valid:
                history.setdefault(q.symbol, []).append(q)
                if benchmark_symbol and q.symbol == benchmark_symbol:
                    benchmark[q.date] = q.close
        for sym in history:
            # Stable sort keeps input order among equal dates.
            history[sym].sort(key=lambda x: x.date)
        return cls(quotes=list(quotes), latest=latest, by_date=by_date, history=history, benchmark=benchmark)

    def dates(self) -> list[str]:
        return sorted(self.by_date)

    def has_quotes(self, date: str) -> bool:
        return bool(self.by_date.get(date))

    def close_on(self, date: str, symbol: str) -> float | None:
        day = self.by_date.get(date)
        if not day:
            return None
        return day.get(symbol)

    def max_date_quote(self, symbol: str, *, as_of: str | None = None) -> Quote | None:
        """Highest-dated positive quote for `symbol`; equal dates keep the earliest row."""
        best: Quote | None = None
        for q in self.history.get(symbol, []):
            if as_of is not None and q.date > as_of:
                break
            if best is None or q.date > best.date:
                best = q
        return best

    def max_date_quote_by_prefix(self, prefix: str, *, as_of: str | None = None) -> Quote | None:
        """Highest-dated positive quote whose symbol starts with `prefix`, scanning rows in input order."""
        best: Quote | None = None
        for q in self.quotes:
            if not q.valid or not q.symbol.startswith(prefix) or not is_canonical_date(q.date):
                continue
            if as_of is not None and q.date > as_of:
                continue
            if best is None or q.date > best.date:
                best = q
        return best
