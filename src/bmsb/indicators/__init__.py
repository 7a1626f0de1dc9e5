"""Bull Market Support Band indicator engine.

Pure computation only: weekly closing-price extraction, SMA/EMA
calculation, and band classification. No I/O and no logging.
"""

from bmsb.indicators.calculator import (
    EMA_SPAN,
    MIN_WEEKLY_POINTS,
    SMA_PERIOD,
    compute_ema,
    compute_indicators,
    compute_sma,
)
from bmsb.indicators.classifier import analyze_trend, classify_band
from bmsb.indicators.engine import calculate_from_daily, compute_bmsb
from bmsb.indicators.models import (
    BandHealth,
    BMSBResult,
    DailyPricePoint,
    IndicatorSnapshot,
    PricePosition,
    TrendDirection,
    WeeklyClosingPoint,
)
from bmsb.indicators.weekly import deduplicate_daily_prices, extract_weekly_closes

__all__ = [
    "EMA_SPAN",
    "MIN_WEEKLY_POINTS",
    "SMA_PERIOD",
    "BandHealth",
    "BMSBResult",
    "DailyPricePoint",
    "IndicatorSnapshot",
    "PricePosition",
    "TrendDirection",
    "WeeklyClosingPoint",
    "analyze_trend",
    "calculate_from_daily",
    "classify_band",
    "compute_bmsb",
    "compute_ema",
    "compute_indicators",
    "compute_sma",
    "deduplicate_daily_prices",
    "extract_weekly_closes",
]
