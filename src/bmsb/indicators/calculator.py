"""20-week SMA and 21-week EMA over weekly closing prices.

The EMA is seeded with the earliest available weekly close (not a
21-period SMA) and rolled forward through every later week, so it uses
all the history the series has. Seeding differently changes the values.
"""

from bmsb.exceptions import InsufficientHistory
from bmsb.indicators.models import IndicatorSnapshot, WeeklyClosingPoint
from bmsb.indicators.weekly import validate_price

SMA_PERIOD = 20
EMA_SPAN = 21

#: SMA(20) of the previous week needs 21 points; the EMA trend needs one more.
MIN_WEEKLY_POINTS = 22


def compute_sma(prices: list[float], period: int) -> float:
    """Arithmetic mean of the last ``period`` prices."""
    if period <= 0:
        raise ValueError("period must be positive")
    if len(prices) < period:
        raise InsufficientHistory(len(prices), period)
    window = prices[-period:]
    return sum(window) / period


def compute_ema(prices: list[float], span: int) -> float:
    """EMA of ``prices`` seeded with the first value.

    alpha = 2 / (span + 1)
    EMA_t = price_t * alpha + EMA_{t-1} * (1 - alpha)
    """
    if not prices:
        raise InsufficientHistory(0, 1)
    alpha = 2 / (span + 1)
    ema = prices[0]
    for price in prices[1:]:
        ema = price * alpha + ema * (1 - alpha)
    return ema


def compute_indicators(weekly: list[WeeklyClosingPoint]) -> IndicatorSnapshot:
    """Compute current and previous-week SMA(20)/EMA(21).

    "Previous" values drop the single most recent weekly point from the
    same series rather than recomputing as of an earlier date.

    Raises:
        InsufficientHistory: with fewer than MIN_WEEKLY_POINTS weekly points.
        InvalidPriceData: if a weekly price is non-positive or non-finite.
    """
    if len(weekly) < MIN_WEEKLY_POINTS:
        raise InsufficientHistory(len(weekly), MIN_WEEKLY_POINTS)

    prices = [validate_price(point.price, point.week_start) for point in weekly]
    previous = prices[:-1]

    return IndicatorSnapshot(
        sma_20=compute_sma(prices, SMA_PERIOD),
        ema_21=compute_ema(prices, EMA_SPAN),
        sma_20_prev=compute_sma(previous, SMA_PERIOD),
        ema_21_prev=compute_ema(previous, EMA_SPAN),
    )
