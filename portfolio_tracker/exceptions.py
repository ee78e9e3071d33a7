from __future__ import annotations


class PortfolioError(Exception):
    pass


class MissingInputError(PortfolioError):
    """Raised when one of the three required input tables is absent or blank."""


class EnvelopeError(PortfolioError):
    """Raised when a raw-input JSON envelope is unreadable or missing a table."""


class AccountProcessingError(PortfolioError):
    """Wraps an unexpected failure while building a single account."""

    def __init__(self, account: str, cause: BaseException):
        super().__init__(f"{account}: {type(cause).__name__}: {cause}")
        self.account = account
        self.cause = cause


class ConfigError(PortfolioError):
    """Raised when the settings file or PORTFOLIO_TRACKER_* overrides are invalid."""
