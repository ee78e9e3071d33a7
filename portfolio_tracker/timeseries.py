from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Iterable, Optional

from portfolio_tracker.aggregate import QTY_EPSILON, is_time_deposit
from portfolio_tracker.quotes import QuoteIndex
from portfolio_tracker.reference import ReferenceData
from portfolio_tracker.transactions import Transaction

logger = logging.getLogger(__name__)

DEFAULT_CASH_SYMBOLS = ("Deposit", "DEPOSIT", "Cash", "CASH", "Expenses", "EXPENSES", "")


@dataclass(frozen=True)
class TimeSeriesPoint:
    date: str
    cash_value: float
    equity_value: float
    total_value: float
    realized_gain: float
    unrealized_gain: float
    benchmark: float
    has_quotes: bool
    account: Optional[str] = None
    account_values: dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class RunningHolding:
    quantity: float = 0.0
    cost_change_sum: float = 0.0
    realized: float = 0.0
    debit: float = 0.0
    last_known_price: float = 0.0

    @property
    def open_cost(self) -> float:
        return self.cost_change_sum + self.realized

    def apply(self, t: Transaction) -> "RunningHolding":
        return replace(
            self,
            quantity=self.quantity + t.qty_change,
            cost_change_sum=self.cost_change_sum + t.cost_change,
            realized=self.realized + t.realized,
            debit=self.debit + t.debit,
        )


@dataclass(frozen=True)
class ReplayState:
    cash: float = 0.0
    realized: float = 0.0
    holdings: dict[str, RunningHolding] = field(default_factory=dict)
    time_deposits: dict[str, RunningHolding] = field(default_factory=dict)
    last_equity: float = 0.0
    last_unrealized: float = 0.0
    last_total: float = 0.0
    last_benchmark: float = 0.0


@dataclass(frozen=True)
class _Valuation:
    equity: float
    unrealized: float
    holdings: dict[str, RunningHolding]
    all_prices: bool


def _apply_transactions(state: ReplayState, day_txs: Iterable[Transaction], cash_symbols: frozenset[str]) -> ReplayState:
    cash = state.cash
    realized = state.realized
    holdings = dict(state.holdings)
    time_deposits = dict(state.time_deposits)
    for t in day_txs:
        cash += t.cash_impact
        realized += t.realized
        if not t.symbol or t.symbol in cash_symbols:
            continue
        book = time_deposits if is_time_deposit(t) else holdings
        updated = book.get(t.symbol, RunningHolding()).apply(t)
        if abs(updated.quantity) < QTY_EPSILON:
            book.pop(t.symbol, None)
        else:
            book[t.symbol] = updated
    return replace(state, cash=cash, realized=realized, holdings=holdings, time_deposits=time_deposits)


def _value_book(book: dict[str, RunningHolding], date: str, quotes: QuoteIndex) -> _Valuation:
    """
    Mark a holdings map to market on `date`.

    Same-day positive close, else the holding's last known price, else the
    global latest quote. Anything other than a same-day close clears
    `all_prices`.
    """
    equity = 0.0
    unrealized = 0.0
    all_prices = True
    out: dict[str, RunningHolding] = {}
    for symbol, h in book.items():
        price = 0.0
        same_day = quotes.close_on(date, symbol)
        if same_day is not None and same_day > 0:
            price = same_day
            h = replace(h, last_known_price=price)
        elif h.last_known_price > 0:
            price = h.last_known_price
            all_prices = False
        elif symbol in quotes.latest:
            price = quotes.latest[symbol].close
            h = replace(h, last_known_price=price)
            all_prices = False

        if price > 0:
            value = h.quantity * price
            equity += value
            unrealized += value - h.open_cost
        else:
            all_prices = False
        out[symbol] = h
    return _Valuation(equity=equity, unrealized=unrealized, holdings=out, all_prices=all_prices)


def replay_day(
    state: ReplayState,
    date: str,
    day_txs: list[Transaction],
    reference: ReferenceData,
    *,
    account: Optional[str] = None,
    cash_symbols: Iterable[str] = DEFAULT_CASH_SYMBOLS,
) -> tuple[ReplayState, TimeSeriesPoint]:
    """Advance the replay by one date and emit that date's point."""
    quotes = reference.quotes
    state = _apply_transactions(state, day_txs, frozenset(cash_symbols))

    regular = _value_book(state.holdings, date, quotes)
    # Time deposits never clear the all-prices flag.
    deposits = _value_book(state.time_deposits, date, quotes)

    equity = regular.equity + deposits.equity
    unrealized = regular.unrealized
    last_equity = state.last_equity
    last_unrealized = state.last_unrealized
    if (not regular.all_prices or equity == 0) and last_equity > 0:
        equity = last_equity
        unrealized = last_unrealized
    elif equity > 0:
        last_equity = equity
        last_unrealized = unrealized

    bench = quotes.benchmark.get(date)
    last_benchmark = bench if bench is not None else state.last_benchmark

    total_unrealized = unrealized + deposits.unrealized
    if total_unrealized != 0:
        last_unrealized = total_unrealized

    total = equity + state.cash
    last_total = state.last_total
    if total == 0 and last_total > 0:
        point = TimeSeriesPoint(
            date=date,
            cash_value=state.cash,
            equity_value=last_equity,
            total_value=last_total,
            realized_gain=state.realized,
            unrealized_gain=last_unrealized,
            benchmark=last_benchmark,
            has_quotes=quotes.has_quotes(date),
            account=account,
        )
    else:
        last_total = total
        point = TimeSeriesPoint(
            date=date,
            cash_value=state.cash,
            equity_value=equity,
            total_value=total,
            realized_gain=state.realized,
            unrealized_gain=total_unrealized,
            benchmark=last_benchmark,
            has_quotes=quotes.has_quotes(date),
            account=account,
        )

    state = replace(
        state,
        holdings=regular.holdings,
        time_deposits=deposits.holdings,
        last_equity=last_equity,
        last_unrealized=last_unrealized,
        last_total=last_total,
        last_benchmark=last_benchmark,
    )
    return state, point


def build_time_series(
    txs: list[Transaction],
    reference: ReferenceData,
    *,
    account: Optional[str] = None,
    cash_symbols: Iterable[str] = DEFAULT_CASH_SYMBOLS,
) -> list[TimeSeriesPoint]:
    """
    Replay an account's transactions over every transaction date and every quote date.

    Dates sort as strings; unparseable transaction dates therefore still take
    part, in lexical order.
    """
    by_date: dict[str, list[Transaction]] = {}
    for t in txs:
        if t.date:
            by_date.setdefault(t.date, []).append(t)
    dates = sorted(set(by_date) | set(reference.quotes.by_date))
    cash_symbols = tuple(cash_symbols)

    state = ReplayState()
    points: list[TimeSeriesPoint] = []
    for d in dates:
        state, point = replay_day(state, d, by_date.get(d, []), reference, account=account, cash_symbols=cash_symbols)
        points.append(point)

    if points:
        logger.info(
            "Time series for %s: %d points from %s to %s (%d with quotes)",
            account or "portfolio",
            len(points),
            points[0].date,
            points[-1].date,
            sum(1 for p in points if p.has_quotes),
        )
    return points
