from __future__ import annotations

from dataclasses import asdict, dataclass, replace
from typing import Optional

from portfolio_tracker.aggregate import OPEN_DEPOSIT, classify_status
from portfolio_tracker.config import Settings
from portfolio_tracker.performance import PerformanceStats, annualized_volatility, benchmark_return, max_drawdown, quoted_points
from portfolio_tracker.pipeline import ALL_ACCOUNTS, AccountPortfolio, PortfolioData
from portfolio_tracker.rollup import merge_time_series
from portfolio_tracker.util import safe_pct
from portfolio_tracker.valuation import Holding

STOCKS = "Stocks"
FIXED_INCOME = "Fixed Income"

CLOSED_BUCKETS = ("YTD Clear", "PYD Clear", "Cleared")


@dataclass(frozen=True)
class Metrics:
    total_value: float = 0.0
    cash_balance: float = 0.0
    unrealized_gain: float = 0.0
    realized_gain: float = 0.0
    total_cost: float = 0.0
    total_return: float = 0.0


@dataclass(frozen=True)
class DepositSummary:
    value: float
    cost: float
    total_cost: float
    unrealized_gain: float
    realized_gain: float
    total_return: float
    unrealized_gain_pct: float
    realized_gain_pct: float
    total_return_pct: float


@dataclass(frozen=True)
class AllocationSlice:
    name: str
    value: float
    percentage: float


@dataclass(frozen=True)
class Performer:
    symbol: str
    account: str
    name: str
    total_return: float
    return_pct: float


def _accounts(data: PortfolioData, account: str) -> list[AccountPortfolio]:
    if account == ALL_ACCOUNTS:
        return list(data.accounts)
    return [a for a in data.accounts if a.name == account]


def _settings(settings: Optional[Settings]) -> Settings:
    return settings or Settings()


def _slices(values: dict[str, float]) -> list[AllocationSlice]:
    total = sum(values.values())
    out = [
        AllocationSlice(name=k, value=v, percentage=(v / total * 100.0) if total > 0 else 0.0) for k, v in values.items()
    ]
    return sorted(out, key=lambda s: s.value, reverse=True)


def positions_metrics(data: PortfolioData, account: str = ALL_ACCOUNTS, settings: Optional[Settings] = None) -> Metrics:
    """Equity positions and their cash, leaving out bank accounts."""
    banks = set(_settings(settings).bank_accounts)
    accounts = [a for a in _accounts(data, account) if a.name not in banks]
    current = [h for a in accounts for h in a.current_holdings]
    closed = [h for a in accounts for h in a.closed_positions]
    cash = sum(a.summary.cash_balance for a in accounts)

    unrealized = sum(h.unrealized_gain for h in current)
    realized = sum(h.realized_gain for h in current) + sum(h.realized_gain for h in closed)
    return Metrics(
        total_value=sum(h.value for h in current) + cash,
        cash_balance=cash,
        unrealized_gain=unrealized,
        realized_gain=realized,
        total_cost=sum(abs(h.cost) for h in current) + sum(abs(h.total_cost) for h in closed),
        total_return=unrealized + realized,
    )


def deposits_metrics(data: PortfolioData, account: str = ALL_ACCOUNTS, settings: Optional[Settings] = None) -> Metrics:
    """Open deposits plus everything held in bank accounts."""
    banks = set(_settings(settings).bank_accounts)
    accounts = _accounts(data, account)
    names = {a.name for a in accounts}
    open_deposits = [h for a in accounts for h in a.open_deposits]
    open_deposits += [h for a in accounts if a.name in banks for h in a.current_holdings]
    bank_cash = sum(a.summary.cash_balance for a in accounts if a.name in banks)

    realized = sum(
        t.realized
        for t in data.transactions
        if t.account in names and (classify_status(t.status) == OPEN_DEPOSIT or t.account in banks)
    )
    realized += sum(h.realized_gain for a in accounts for h in a.closed_deposits)
    unrealized = sum(h.unrealized_gain for h in open_deposits)
    return Metrics(
        total_value=sum(h.value for h in open_deposits) + bank_cash,
        cash_balance=bank_cash,
        unrealized_gain=unrealized,
        realized_gain=realized,
        total_cost=sum(abs(h.total_cost) for h in open_deposits),
        total_return=unrealized + realized,
    )


def deposit_summary(holdings: list[Holding]) -> DepositSummary:
    value = sum(h.value for h in holdings)
    cost = sum(h.cost for h in holdings)
    total_cost = sum(abs(h.total_cost) for h in holdings)
    unrealized = sum(h.unrealized_gain for h in holdings)
    realized = sum(h.realized_gain for h in holdings)
    total_return = unrealized + realized
    return DepositSummary(
        value=value,
        cost=cost,
        total_cost=total_cost,
        unrealized_gain=unrealized,
        realized_gain=realized,
        total_return=total_return,
        unrealized_gain_pct=safe_pct(unrealized, total_cost),
        realized_gain_pct=safe_pct(realized, total_cost),
        total_return_pct=safe_pct(total_return, total_cost),
    )


def allocation_by_sector(
    data: PortfolioData, account: str = ALL_ACCOUNTS, settings: Optional[Settings] = None
) -> list[AllocationSlice]:
    banks = set(_settings(settings).bank_accounts)
    values: dict[str, float] = {}
    for a in _accounts(data, account):
        if a.name in banks:
            continue
        for h in a.current_holdings:
            sector = h.sector or "Unknown"
            values[sector] = values.get(sector, 0.0) + h.value
    return _slices(values)


def allocation_by_account(data: PortfolioData, account: str = ALL_ACCOUNTS) -> list[AllocationSlice]:
    values: dict[str, float] = {}
    for a in _accounts(data, account):
        values[a.name] = values.get(a.name, 0.0) + a.summary.total_value
    return _slices(values)


def allocation_by_asset_type(
    data: PortfolioData, account: str = ALL_ACCOUNTS, settings: Optional[Settings] = None
) -> list[AllocationSlice]:
    banks = set(_settings(settings).bank_accounts)
    stocks = 0.0
    fixed_income = 0.0
    for a in _accounts(data, account):
        fixed_income += sum(h.value for h in a.open_deposits)
        if a.name in banks:
            fixed_income += sum(h.value for h in a.current_holdings) + a.summary.cash_balance
        else:
            stocks += sum(h.value for h in a.current_holdings)
    return _slices({STOCKS: stocks, FIXED_INCOME: fixed_income})


def top_bottom_performers(
    data: PortfolioData, account: str = ALL_ACCOUNTS, n: int = 5
) -> tuple[list[Performer], list[Performer]]:
    """Best and worst current holdings by (unrealized + realized) / abs(open cost)."""
    rows: list[Performer] = []
    for a in _accounts(data, account):
        for h in a.current_holdings:
            if abs(h.cost) <= 0.01:
                continue
            total = h.unrealized_gain + h.realized_gain
            rows.append(
                Performer(
                    symbol=h.symbol, account=h.account, name=h.name, total_return=total, return_pct=total / abs(h.cost) * 100.0
                )
            )
    top = sorted(rows, key=lambda p: p.return_pct, reverse=True)[:n]
    bottom = sorted(rows, key=lambda p: p.return_pct)[:n]
    return top, bottom


def performance_stats(
    data: PortfolioData, account: str = ALL_ACCOUNTS, settings: Optional[Settings] = None
) -> PerformanceStats:
    s = _settings(settings)
    accounts = _accounts(data, account)
    names = {a.name for a in accounts}
    deposit_symbols = set(s.deposit_symbols)
    deposits = sum(t.cash_impact for t in data.transactions if t.account in names and t.symbol in deposit_symbols)

    current = [h for a in accounts for h in a.current_holdings]
    closed = [h for a in accounts for h in a.closed_positions]
    realized = sum(h.realized_gain for h in closed) + sum(h.realized_gain for h in current)
    unrealized = sum(h.unrealized_gain for h in current)
    total = realized + unrealized

    if account == ALL_ACCOUNTS:
        series = merge_time_series([a.time_series for a in accounts])
    else:
        series = accounts[0].time_series if accounts else []

    def over_deposits(x: float) -> float:
        return x / deposits * 100.0 if deposits != 0 else 0.0

    portfolio_pct = total / deposits * 100.0 if deposits > 0 else 0.0
    bench_pct = benchmark_return(series)
    return PerformanceStats(
        total_deposits=deposits,
        total_return=total,
        realized_return=realized,
        unrealized_return=unrealized,
        portfolio_return_pct=portfolio_pct,
        total_return_pct=over_deposits(total),
        realized_return_pct=over_deposits(realized),
        unrealized_return_pct=over_deposits(unrealized),
        benchmark_return_pct=bench_pct,
        alpha=portfolio_pct - bench_pct,
        volatility=annualized_volatility(series),
        max_drawdown=max_drawdown([p.total_value for p in quoted_points(series)]),
    )


def closed_status_counts(data: PortfolioData, account: str = ALL_ACCOUNTS) -> dict[str, int]:
    """Unique symbols per closed bucket, plus "all" across buckets."""
    buckets: dict[str, set[str]] = {b: set() for b in CLOSED_BUCKETS}
    for a in _accounts(data, account):
        for h in a.closed_positions:
            if h.status in buckets:
                buckets[h.status].add(h.symbol)
    out = {b: len(syms) for b, syms in buckets.items()}
    out[ALL_ACCOUNTS] = len(set().union(*buckets.values()))
    return out


def aggregate_closed_positions(holdings: list[Holding]) -> list[Holding]:
    """
    Merge closed holdings across accounts by (symbol, status).

    The first holding seen supplies the descriptive fields; amounts are summed
    and the realized percentage is recomputed over abs(total cost).
    """
    merged: dict[tuple[str, str], Holding] = {}
    for h in holdings:
        key = (h.symbol, h.status)
        prev = merged.get(key)
        if prev is None:
            merged[key] = h
            continue
        merged[key] = replace(
            prev,
            quantity=prev.quantity + h.quantity,
            cost=prev.cost + h.cost,
            total_cost=prev.total_cost + h.total_cost,
            realized_gain=prev.realized_gain + h.realized_gain,
            total_return=prev.total_return + h.total_return,
            debit=prev.debit + h.debit,
        )
    out: list[Holding] = []
    for h in merged.values():
        out.append(replace(h, realized_gain_pct=safe_pct(h.realized_gain, h.total_cost)))
    return out


def measures_report(data: PortfolioData, account: str = ALL_ACCOUNTS, settings: Optional[Settings] = None) -> dict:
    top, bottom = top_bottom_performers(data, account)
    return {
        "account": account,
        "positions": asdict(positions_metrics(data, account, settings)),
        "deposits": asdict(deposits_metrics(data, account, settings)),
        "fixed_income": asdict(deposit_summary([h for a in _accounts(data, account) for h in a.open_deposits])),
        "allocation": {
            "sector": [asdict(x) for x in allocation_by_sector(data, account, settings)],
            "account": [asdict(x) for x in allocation_by_account(data, account)],
            "asset_type": [asdict(x) for x in allocation_by_asset_type(data, account, settings)],
        },
        "performers": {"top": [asdict(x) for x in top], "bottom": [asdict(x) for x in bottom]},
        "performance": asdict(performance_stats(data, account, settings)),
        "closed_status_counts": closed_status_counts(data, account),
    }
