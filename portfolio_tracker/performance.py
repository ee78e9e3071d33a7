from __future__ import annotations

import math
from dataclasses import dataclass

from portfolio_tracker.timeseries import TimeSeriesPoint

TRADING_DAYS_PER_YEAR = 252


def _mean(xs: list[float]) -> float | None:
    if not xs:
        return None
    return sum(xs) / float(len(xs))


def _population_std(xs: list[float]) -> float | None:
    m = _mean(xs)
    if m is None:
        return None
    var = sum((x - m) ** 2 for x in xs) / float(len(xs))
    return math.sqrt(var)


def quoted_points(series: list[TimeSeriesPoint]) -> list[TimeSeriesPoint]:
    return [p for p in series if p.has_quotes]


def daily_returns(values: list[float]) -> list[float]:
    """Simple period-over-period returns; steps from a non-positive value are skipped."""
    out: list[float] = []
    for prev, cur in zip(values, values[1:]):
        if prev > 0:
            out.append((cur - prev) / prev)
    return out


def annualized_volatility(series: list[TimeSeriesPoint], *, periods_per_year: int = TRADING_DAYS_PER_YEAR) -> float:
    """Population std of daily total-value returns on quoted dates, annualized, in percent."""
    rets = daily_returns([p.total_value for p in quoted_points(series)])
    sigma = _population_std(rets)
    if sigma is None:
        return 0.0
    return sigma * math.sqrt(periods_per_year) * 100.0


def benchmark_return(series: list[TimeSeriesPoint]) -> float:
    """Percent change of the benchmark between the first and last quoted points."""
    pts = quoted_points(series)
    if not pts:
        return 0.0
    first, last = pts[0], pts[-1]
    if first.benchmark <= 0:
        return 0.0
    return (last.benchmark - first.benchmark) / first.benchmark * 100.0


def max_drawdown(values: list[float]) -> float | None:
    """Largest peak-to-trough fall of a value path, as a negative fraction."""
    rets = daily_returns(values)
    if not rets:
        return None
    peak = 1.0
    eq = 1.0
    mdd = 0.0
    for r in rets:
        eq *= 1.0 + r
        if eq > peak:
            peak = eq
        dd = (eq / peak) - 1.0
        if dd < mdd:
            mdd = dd
    return float(mdd)


@dataclass(frozen=True)
class PerformanceStats:
    total_deposits: float
    total_return: float
    realized_return: float
    unrealized_return: float
    portfolio_return_pct: float
    total_return_pct: float
    realized_return_pct: float
    unrealized_return_pct: float
    benchmark_return_pct: float
    alpha: float
    volatility: float
    max_drawdown: float | None
