"""Exceptions raised by the BMSB engine and its collaborators.

Core errors are raised to the immediate caller and never folded into a
zeroed or partial result; the orchestrator decides what to do with them.
"""

from datetime import date


class BMSBError(Exception):
    """Base exception for all BMSB errors."""


class InsufficientHistory(BMSBError):
    """Raised when fewer weekly closing points exist than the indicators need."""

    def __init__(self, available: int, required: int) -> None:
        self.available = available
        self.required = required
        super().__init__(
            f"insufficient weekly history: {available} points, {required} required"
        )


class InvalidPriceData(BMSBError):
    """Raised when a price is non-positive or non-finite."""

    def __init__(self, price: float, on: date | None = None) -> None:
        self.price = price
        self.date = on
        where = f" on {on.isoformat()}" if on is not None else ""
        super().__init__(f"invalid price {price!r}{where}")


class AmbiguousTieBreak(BMSBError):
    """Raised when a duplicate-role tie-break has no ranks and no fallback for the symbol."""

    def __init__(self, symbol: str) -> None:
        self.symbol = symbol
        super().__init__(
            f"cannot resolve duplicate-role tie-break for {symbol}: "
            "ranks unavailable and no default configured"
        )


class MarketDataError(BMSBError):
    """Raised when the market-data provider request fails or returns garbage."""


class RateLimitExceeded(MarketDataError):
    """Raised when the market-data provider answers HTTP 429."""


class SchemaVersionError(BMSBError):
    """Raised when the database file was written by a newer schema than this code knows."""

    def __init__(self, found: int, supported: int) -> None:
        self.found = found
        self.supported = supported
        super().__init__(
            f"database schema version {found} is newer than supported version {supported}"
        )
