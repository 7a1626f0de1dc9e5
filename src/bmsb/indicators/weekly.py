"""Weekly closing-price extraction from a daily price series.

CoinGecko's daily series carries each day's *opening* price (the point
stamped 00:00 UTC), so the close of ISO week W is found on the Monday of
week W+1. Rules, in order of precedence:

1. A Monday point closes the previous week (Monday - 7 days).
2. A Sunday point closes its own week when no Monday point has already
   closed it. This covers the still-forming week whose latest point lands
   exactly on a Sunday.
3. Any other week is incomplete and yields no weekly point.

The output is sorted by ``week_start`` with each week appearing once.
"""

import math
from datetime import date, timedelta

from bmsb.exceptions import InvalidPriceData
from bmsb.indicators.models import DailyPricePoint, WeeklyClosingPoint

_MONDAY = 0
_SUNDAY = 6


def week_start_of(day: date) -> date:
    """Return the Monday (ISO week start) of the week containing ``day``."""
    return day - timedelta(days=day.weekday())


def validate_price(price: float, on: date | None = None) -> float:
    """Return ``price`` unchanged or raise InvalidPriceData."""
    if isinstance(price, bool) or not isinstance(price, (int, float)):
        raise InvalidPriceData(price, on)
    if not math.isfinite(price) or price <= 0:
        raise InvalidPriceData(price, on)
    return float(price)


def deduplicate_daily_prices(points: list[DailyPricePoint]) -> list[DailyPricePoint]:
    """Sort by date, keeping the last point seen for each date."""
    by_date: dict[date, DailyPricePoint] = {}
    for point in points:
        by_date[point.date] = point
    return [by_date[d] for d in sorted(by_date)]


def extract_weekly_closes(points: list[DailyPricePoint]) -> list[WeeklyClosingPoint]:
    """Convert a deduplicated daily series into weekly closing points, oldest first.

    Raises:
        InvalidPriceData: if any daily close is non-positive or non-finite.
    """
    closes: dict[date, float] = {}

    # Rule 1 first so it always wins over a Sunday for the same week.
    for point in points:
        validate_price(point.close, point.date)
        if point.date.weekday() == _MONDAY:
            closes[point.date - timedelta(days=7)] = float(point.close)

    for point in points:
        if point.date.weekday() == _SUNDAY:
            week_start = week_start_of(point.date)
            if week_start not in closes:
                closes[week_start] = float(point.close)

    return [
        WeeklyClosingPoint(week_start=week_start, price=closes[week_start])
        for week_start in sorted(closes)
    ]
