from __future__ import annotations

from dataclasses import dataclass

from portfolio_tracker.util import clean_str, pick, read_rows

UNKNOWN_SECTOR = "Unknown"


@dataclass(frozen=True)
class SymbolMeta:
    symbol: str
    name: str
    sector: str
    group: str = ""
    synthetic: bool = False


def fallback_meta(symbol: str) -> SymbolMeta:
    return SymbolMeta(symbol=symbol, name=symbol, sector=UNKNOWN_SECTOR, synthetic=True)


def load_symbols(text: str) -> tuple[list[SymbolMeta], list[str]]:
    warnings: list[str] = []
    out: list[SymbolMeta] = []
    skipped = 0
    for row in read_rows(text):
        symbol = clean_str(pick(row, ["symbol", "ticker"]))
        if not symbol:
            skipped += 1
            continue
        out.append(
            SymbolMeta(
                symbol=symbol,
                name=clean_str(pick(row, ["sh_name_eng", "name", "description"])) or symbol,
                sector=clean_str(pick(row, ["sector"])) or UNKNOWN_SECTOR,
                group=clean_str(pick(row, ["symbol_group", "group"])),
            )
        )
    if skipped:
        warnings.append(f"Skipped {skipped} symbol row(s) without a symbol.")
    if not out:
        warnings.append("No symbols parsed (check headers).")
    return out, warnings


@dataclass(frozen=True)
class SymbolIndex:
    by_symbol: dict[str, SymbolMeta]

    @classmethod
    def build(cls, symbols: list[SymbolMeta]) -> "SymbolIndex":
        index: dict[str, SymbolMeta] = {}
        for s in symbols:
            # Last write wins.
            index[s.symbol] = s
        return cls(by_symbol=index)

    def get(self, symbol: str) -> SymbolMeta:
        meta = self.by_symbol.get(symbol)
        if meta is None:
            return fallback_meta(symbol)
        return meta

    def __contains__(self, symbol: object) -> bool:
        return symbol in self.by_symbol

    def __len__(self) -> int:
        return len(self.by_symbol)
