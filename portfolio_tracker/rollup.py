from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Iterable, TypeVar

from portfolio_tracker.timeseries import TimeSeriesPoint

T = TypeVar("T")


@dataclass(frozen=True)
class SummaryMetrics:
    total_value: float = 0.0
    cash_balance: float = 0.0
    equity_value: float = 0.0
    realized_gain: float = 0.0
    unrealized_gain: float = 0.0


def merge_time_series(series_list: list[list[TimeSeriesPoint]]) -> list[TimeSeriesPoint]:
    """
    Combine per-account series into one portfolio series.

    Dates are the union of all series. Each date sums the accounts present on
    it, keeps the last non-zero benchmark found and ORs `has_quotes`.
    """
    if not series_list:
        return []
    indexed = [{p.date: p for p in series} for series in series_list]
    dates = sorted({d for idx in indexed for d in idx})

    out: list[TimeSeriesPoint] = []
    for d in dates:
        cash = equity = total = realized = unrealized = benchmark = 0.0
        has_quotes = False
        account_values: dict[str, float] = {}
        for idx in indexed:
            p = idx.get(d)
            if p is None:
                continue
            cash += p.cash_value
            equity += p.equity_value
            total += p.total_value
            realized += p.realized_gain
            unrealized += p.unrealized_gain
            benchmark = p.benchmark or benchmark
            has_quotes = has_quotes or p.has_quotes
            if p.account:
                account_values[p.account] = p.total_value
        out.append(
            TimeSeriesPoint(
                date=d,
                cash_value=cash,
                equity_value=equity,
                total_value=total,
                realized_gain=realized,
                unrealized_gain=unrealized,
                benchmark=benchmark,
                has_quotes=has_quotes,
                account=None,
                account_values=account_values,
            )
        )
    return out


def flatten_holdings(per_account: Iterable[list[T]]) -> list[T]:
    out: list[T] = []
    for items in per_account:
        out.extend(items)
    return out


def sum_summaries(summaries: Iterable[SummaryMetrics]) -> SummaryMetrics:
    totals = {f.name: 0.0 for f in fields(SummaryMetrics)}
    for s in summaries:
        for name in totals:
            totals[name] += getattr(s, name)
    totals["total_value"] = totals["equity_value"] + totals["cash_balance"]
    return SummaryMetrics(**totals)
