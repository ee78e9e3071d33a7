from __future__ import annotations

from dataclasses import dataclass, field

from portfolio_tracker.transactions import Transaction

# abs(quantity) below this is a closed/zero position.
QTY_EPSILON = 1e-4

OPEN_POSITION = "open_position"
CLOSED_POSITION = "closed_position"
OPEN_DEPOSIT = "open_deposit"
CLOSED_DEPOSIT = "closed_deposit"

TIME_DEPOSIT = "Time Deposit"

_STATUS_CLASSES: dict[str, str] = {
    "Open Items": OPEN_POSITION,
    "YTD Clear": CLOSED_POSITION,
    "PYD Clear": CLOSED_POSITION,
    "Cleared": CLOSED_POSITION,
    "Cleared-RE": CLOSED_POSITION,
    "Clered -RE": CLOSED_POSITION,
    TIME_DEPOSIT: CLOSED_POSITION,
    "Open Deposits": OPEN_DEPOSIT,
    "Closed Deposits": CLOSED_DEPOSIT,
}

# Both spellings occur in broker extracts.
_DISPLAY_ALIASES = {"Cleared-RE": "Cleared", "Clered -RE": "Cleared"}


def classify_status(tag: str) -> str | None:
    """Status class for a raw status tag; None when the tag is unrecognized."""
    return _STATUS_CLASSES.get((tag or "").strip())


def display_status(tag: str) -> str:
    tag = (tag or "").strip()
    return _DISPLAY_ALIASES.get(tag, tag)


def is_time_deposit(t: Transaction) -> bool:
    return t.status == TIME_DEPOSIT


def split_by_status(txs: list[Transaction]) -> dict[str, list[Transaction]]:
    out: dict[str, list[Transaction]] = {
        OPEN_POSITION: [],
        CLOSED_POSITION: [],
        OPEN_DEPOSIT: [],
        CLOSED_DEPOSIT: [],
    }
    for t in txs:
        cls = classify_status(t.status)
        if cls is not None:
            out[cls].append(t)
    return out


@dataclass
class AggregatedGroup:
    symbol: str
    account: str
    status: str
    quantity: float = 0.0
    debit: float = 0.0
    cost_change_sum: float = 0.0
    realized: float = 0.0
    net_price: float = 0.0
    name: str = ""
    transaction_count: int = 0
    transactions: list[Transaction] = field(default_factory=list, repr=False)

    @property
    def open_cost(self) -> float:
        return self.cost_change_sum + self.realized

    @property
    def is_zero(self) -> bool:
        return abs(self.quantity) < QTY_EPSILON


def aggregate(txs: list[Transaction], *, by_status: bool = False) -> list[AggregatedGroup]:
    """
    Sum signed changes per (symbol, account), or per (symbol, account, display status).

    Groups come back in first-seen order. Within a group transactions are
    ordered by date (stable), and the first one supplies the net price, name
    hint and, when not grouping by status, the status.
    """
    buckets: dict[tuple[str, ...], list[Transaction]] = {}
    for t in txs:
        account = t.account or "Unknown"
        key: tuple[str, ...] = (t.symbol, account, display_status(t.status)) if by_status else (t.symbol, account)
        buckets.setdefault(key, []).append(t)

    groups: list[AggregatedGroup] = []
    for key, items in buckets.items():
        items = sorted(items, key=lambda x: x.date)
        first = items[0]
        g = AggregatedGroup(
            symbol=key[0],
            account=key[1],
            status=key[2] if by_status else display_status(first.status),
            net_price=first.net_price,
            name=first.name,
            transactions=items,
        )
        for t in items:
            g.quantity += t.qty_change
            g.debit += t.debit
            g.cost_change_sum += t.cost_change
            g.realized += t.realized
            g.transaction_count += 1
        groups.append(g)
    return groups
