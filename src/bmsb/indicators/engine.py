"""Composed BMSB pipeline: daily prices -> weekly closes -> indicators -> band.

Every function here is pure and synchronous. They can be called for many
assets in parallel with no shared state.
"""

from bmsb.exceptions import InsufficientHistory
from bmsb.indicators.calculator import MIN_WEEKLY_POINTS, compute_indicators
from bmsb.indicators.classifier import classify_band
from bmsb.indicators.models import BMSBResult, DailyPricePoint, WeeklyClosingPoint
from bmsb.indicators.weekly import extract_weekly_closes


def compute_bmsb(
    weekly: list[WeeklyClosingPoint], is_stablecoin: bool = False
) -> BMSBResult:
    """Classify the band for a weekly closing series.

    The current price is the most recent weekly close.

    Raises:
        InsufficientHistory: with fewer than MIN_WEEKLY_POINTS weekly points.
        InvalidPriceData: if a weekly price is non-positive or non-finite.
    """
    if len(weekly) < MIN_WEEKLY_POINTS:
        raise InsufficientHistory(len(weekly), MIN_WEEKLY_POINTS)
    snapshot = compute_indicators(weekly)
    return classify_band(snapshot, weekly[-1].price, is_stablecoin)


def calculate_from_daily(
    daily: list[DailyPricePoint], is_stablecoin: bool = False
) -> BMSBResult:
    """Run the whole pipeline over a deduplicated, date-ordered daily series."""
    return compute_bmsb(extract_weekly_closes(daily), is_stablecoin)
