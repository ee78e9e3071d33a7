from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from portfolio_tracker.aggregate import QTY_EPSILON, AggregatedGroup, aggregate, is_time_deposit
from portfolio_tracker.pricing import price_chain, resolve_price
from portfolio_tracker.reference import ReferenceData
from portfolio_tracker.transactions import Transaction
from portfolio_tracker.util import safe_pct

FIXED_INCOME_SECTOR = "Fixed Income"


@dataclass(frozen=True)
class Holding:
    symbol: str
    account: str
    name: str
    sector: str
    status: str
    quantity: float
    cost: float  # open cost: cost changes plus realized
    total_cost: float  # cost changes only
    avg_cost: float
    price: float
    price_source: str
    value: float
    unrealized_gain: float
    unrealized_gain_pct: float
    realized_gain: float
    realized_gain_pct: float
    total_return: float
    total_return_pct: float
    debit: float
    cash_balance: float = 0.0


def value_group(
    group: AggregatedGroup,
    reference: ReferenceData,
    *,
    closed: bool = False,
    fixed_income: bool = False,
    status: Optional[str] = None,
    cash_balance: float = 0.0,
    as_of: Optional[str] = None,
) -> Holding:
    """
    Price and value one aggregated group.

    Closed groups and zero-quantity groups carry no unrealized gain, so their
    total return is the realized gain alone. Percentages are taken over
    abs(debit).
    """
    meta = reference.meta(group.symbol)
    chain = price_chain(reference.quotes, net_price=group.net_price, fixed_income=fixed_income)
    price, source = resolve_price(group.symbol, chain, as_of=as_of)

    quantity = group.quantity
    open_cost = group.open_cost
    value = quantity * price
    zero = abs(quantity) < QTY_EPSILON
    unrealized = 0.0 if (closed or zero) else value - open_cost
    realized = group.realized
    total_return = realized + unrealized

    if meta.synthetic:
        name = group.name or group.symbol
        sector = FIXED_INCOME_SECTOR if fixed_income else meta.sector
    else:
        name = meta.name
        sector = meta.sector

    return Holding(
        symbol=group.symbol,
        account=group.account,
        name=name,
        sector=sector,
        status=status or group.status,
        quantity=quantity,
        cost=open_cost,
        total_cost=group.cost_change_sum,
        avg_cost=0.0 if zero else abs(open_cost / quantity),
        price=price,
        price_source=source,
        value=value,
        unrealized_gain=unrealized,
        unrealized_gain_pct=safe_pct(unrealized, group.debit),
        realized_gain=realized,
        realized_gain_pct=safe_pct(realized, group.debit),
        total_return=total_return,
        total_return_pct=safe_pct(total_return, group.debit),
        debit=group.debit,
        cash_balance=cash_balance,
    )


def cash_balance_of(txs: list[Transaction]) -> float:
    """Cash impact of everything except time-deposit placements."""
    return sum(t.cash_impact for t in txs if not is_time_deposit(t))


def build_holdings(
    txs: list[Transaction],
    reference: ReferenceData,
    *,
    status: Optional[str] = None,
    include_zero: bool = False,
    closed: bool = False,
    fixed_income: bool = False,
    by_status: bool = False,
) -> list[Holding]:
    """
    Aggregate, value and filter one holding view.

    `status` overrides the display status of every holding; otherwise each
    group keeps its own. Zero-quantity groups are dropped unless
    `include_zero` is set.
    """
    cash = cash_balance_of(txs)
    out: list[Holding] = []
    for g in aggregate(txs, by_status=by_status):
        if not include_zero and g.is_zero:
            continue
        out.append(value_group(g, reference, closed=closed, fixed_income=fixed_income, status=status, cash_balance=cash))
    return out
