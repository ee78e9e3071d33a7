from __future__ import annotations

__all__ = [
    "PortfolioData",
    "AccountPortfolio",
    "Holding",
    "TimeSeriesPoint",
    "Settings",
    "PortfolioError",
    "MissingInputError",
    "EnvelopeError",
    "load_settings",
    "process_portfolio",
    "export_inputs",
    "reprocess_envelope",
]

from portfolio_tracker.config import Settings, load_settings
from portfolio_tracker.exceptions import EnvelopeError, MissingInputError, PortfolioError
from portfolio_tracker.exports import export_inputs, reprocess_envelope
from portfolio_tracker.pipeline import AccountPortfolio, PortfolioData, process_portfolio
from portfolio_tracker.timeseries import TimeSeriesPoint
from portfolio_tracker.valuation import Holding
