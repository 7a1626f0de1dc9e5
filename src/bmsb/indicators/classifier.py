"""Band classification: price position, trend direction and band health."""

from bmsb.indicators.models import (
    BandHealth,
    BMSBResult,
    IndicatorSnapshot,
    PricePosition,
    TrendDirection,
)


def analyze_trend(current: float, previous: float) -> TrendDirection:
    """INCREASING only on a strict rise; an unchanged average counts as DECREASING."""
    if current > previous:
        return TrendDirection.INCREASING
    return TrendDirection.DECREASING


def classify_position(price: float, lower: float, upper: float) -> PricePosition:
    """Place ``price`` relative to [lower, upper]. Touching a bound is in band."""
    if price > upper:
        return PricePosition.ABOVE_BAND
    if price < lower:
        return PricePosition.BELOW_BAND
    return PricePosition.IN_BAND


def classify_health(
    sma_trend: TrendDirection,
    ema_trend: TrendDirection,
    is_stablecoin: bool,
) -> BandHealth:
    """HEALTHY only when both averages rise. Stablecoins override trends."""
    if is_stablecoin:
        return BandHealth.STABLECOIN
    if sma_trend is TrendDirection.INCREASING and ema_trend is TrendDirection.INCREASING:
        return BandHealth.HEALTHY
    return BandHealth.WEAK


def classify_band(
    snapshot: IndicatorSnapshot,
    current_price: float,
    is_stablecoin: bool = False,
) -> BMSBResult:
    """Build the full BMSBResult from an indicator snapshot."""
    lower = min(snapshot.sma_20, snapshot.ema_21)
    upper = max(snapshot.sma_20, snapshot.ema_21)
    sma_trend = analyze_trend(snapshot.sma_20, snapshot.sma_20_prev)
    ema_trend = analyze_trend(snapshot.ema_21, snapshot.ema_21_prev)

    return BMSBResult(
        sma_20=snapshot.sma_20,
        ema_21=snapshot.ema_21,
        sma_20_prev=snapshot.sma_20_prev,
        ema_21_prev=snapshot.ema_21_prev,
        support_lower=lower,
        support_upper=upper,
        current_price=current_price,
        price_position=classify_position(current_price, lower, upper),
        sma_trend=sma_trend,
        ema_trend=ema_trend,
        band_health=classify_health(sma_trend, ema_trend, is_stablecoin),
        is_applicable=not is_stablecoin,
    )
