from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from portfolio_tracker.exceptions import ConfigError


class Settings(BaseModel):
    benchmark_symbol: str = Field(default="EGX30", description="Quote symbol carried alongside the value series")
    # Rows with these symbols move cash only; they never become holdings.
    cash_symbols: list[str] = Field(
        default_factory=lambda: ["Deposit", "DEPOSIT", "Cash", "CASH", "Expenses", "EXPENSES", ""]
    )
    deposit_symbols: list[str] = Field(
        default_factory=lambda: ["Deposit", "DEPOSIT"], description="Symbols whose cash impact counts as paid-in capital"
    )
    bank_accounts: list[str] = Field(
        default_factory=list, description="Accounts reported under deposits rather than positions"
    )
    excluded_account_names: list[str] = Field(default_factory=lambda: ["all", "All Accounts"])
    max_workers: int = Field(default=4, ge=1)
    log_level: str = "INFO"


_ENV_PREFIX = "PORTFOLIO_TRACKER_"
_LIST_KEYS = {"cash_symbols", "deposit_symbols", "bank_accounts", "excluded_account_names"}


def _candidate_paths() -> list[Path]:
    paths = [Path("portfolio_tracker.yaml")]
    home = Path(os.path.expanduser("~"))
    paths.append(home / ".portfolio_tracker" / "config.yaml")
    return paths


def _env_overrides() -> dict:
    out: dict = {}
    for key in Settings.model_fields:
        raw = os.getenv(_ENV_PREFIX + key.upper())
        if raw is None:
            continue
        if key in _LIST_KEYS:
            out[key] = [part.strip() for part in raw.split(",") if part.strip()]
        else:
            out[key] = raw
    return out


def load_settings(path: Optional[Path] = None) -> tuple[Settings, Optional[str]]:
    """
    Load settings from YAML (if present), then apply PORTFOLIO_TRACKER_* env overrides.

    Search paths when `path` is not given (first match wins):
      - ./portfolio_tracker.yaml
      - ~/.portfolio_tracker/config.yaml
    """
    load_dotenv()
    data: dict = {}
    source: Optional[str] = None
    candidates = [Path(path)] if path is not None else _candidate_paths()
    for p in candidates:
        if p.exists():
            try:
                loaded = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid YAML in {p}: {e}") from e
            if not isinstance(loaded, dict):
                raise ConfigError(f"Settings file {p} must contain a mapping, got {type(loaded).__name__}")
            data = loaded
            source = str(p)
            break
    data.update(_env_overrides())
    try:
        return Settings.model_validate(data), source
    except ValidationError as e:
        raise ConfigError(f"Invalid settings: {e}") from e
