"""Value types for the Bull Market Support Band engine.

All indicator arithmetic is plain float (IEEE double). Nothing here is
rounded; rounding belongs to whoever renders the numbers.
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum


class PricePosition(str, Enum):
    """Where the current price sits relative to the support band."""

    ABOVE_BAND = "above_band"
    IN_BAND = "in_band"
    BELOW_BAND = "below_band"


class TrendDirection(str, Enum):
    """Week-over-week direction of a moving average. There is no flat state."""

    INCREASING = "increasing"
    DECREASING = "decreasing"


class BandHealth(str, Enum):
    """Overall band classification."""

    HEALTHY = "healthy"
    WEAK = "weak"
    STABLECOIN = "stablecoin"


@dataclass(frozen=True)
class DailyPricePoint:
    """One daily price observation for an asset (UTC calendar date)."""

    date: date
    close: float


@dataclass(frozen=True)
class WeeklyClosingPoint:
    """Closing price of one ISO week, keyed by the week's Monday."""

    week_start: date
    price: float


@dataclass(frozen=True)
class IndicatorSnapshot:
    """Current and one-week-earlier moving averages of the weekly closes."""

    sma_20: float
    ema_21: float
    sma_20_prev: float
    ema_21_prev: float


@dataclass(frozen=True)
class BMSBResult:
    """Full band calculation for one asset on one calculation day."""

    sma_20: float
    ema_21: float
    sma_20_prev: float
    ema_21_prev: float
    support_lower: float
    support_upper: float
    current_price: float
    price_position: PricePosition
    sma_trend: TrendDirection
    ema_trend: TrendDirection
    band_health: BandHealth
    is_applicable: bool
