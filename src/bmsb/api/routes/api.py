"""JSON endpoints: rankings, per-asset band, health summary and exclusions."""

from __future__ import annotations

import time
from datetime import datetime, timedelta, timezone
from typing import Any

import structlog
from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from bmsb.data.models import StoredCalculation
from bmsb.eligibility.filter import analyze_exclusions, should_exclude

log = structlog.get_logger(__name__)

router = APIRouter()

#: Decimal places kept when floats leave the engine.
_PRICE_DIGITS = 8


def _round(value: float) -> float:
    return round(value, _PRICE_DIGITS)


def _calculation_to_dict(calc: StoredCalculation) -> dict[str, Any]:
    result = calc.result
    return {
        "symbol": calc.asset.symbol,
        "name": calc.asset.name,
        "coingecko_id": calc.asset.coingecko_id,
        "rank": calc.asset.current_rank,
        "calculation_date": calc.calculation_date.isoformat(),
        "sma_20_week": _round(result.sma_20),
        "ema_21_week": _round(result.ema_21),
        "sma_20_week_previous": _round(result.sma_20_prev),
        "ema_21_week_previous": _round(result.ema_21_prev),
        "support_band_lower": _round(result.support_lower),
        "support_band_upper": _round(result.support_upper),
        "current_price": _round(result.current_price),
        "price_position": result.price_position.value,
        "sma_trend": result.sma_trend.value,
        "ema_trend": result.ema_trend.value,
        "band_health": result.band_health.value,
        "is_applicable": result.is_applicable,
    }


@router.get("/rankings")
async def get_rankings(
    request: Request,
    limit: int | None = Query(default=None, ge=1, le=1000),
    include_excluded: bool = False,
) -> JSONResponse:
    """Latest band per asset in rank order, with filtered-out tokens listed separately."""
    store = request.app.state.store
    limit = limit or request.app.state.settings.default_limit

    calculations = await store.get_latest_results()
    universe = await store.get_ranked_universe()
    # Symbols are not unique, so each verdict stays with its own row.
    verdicts = [
        (calc, should_exclude(calc.asset.to_meta(), universe)) for calc in calculations
    ]
    shown = [
        calc for calc, verdict in verdicts if include_excluded or not verdict.exclude
    ][:limit]

    return JSONResponse(
        content={
            "data": [_calculation_to_dict(calc) for calc in shown],
            "count": len(shown),
            "excluded": [
                {
                    "symbol": calc.asset.symbol,
                    "coingecko_id": calc.asset.coingecko_id,
                    "reason": verdict.reason,
                }
                for calc, verdict in verdicts
                if verdict.exclude
            ],
        }
    )


@router.get("/assets/{symbol}/bmsb")
async def get_asset_bmsb(request: Request, symbol: str) -> JSONResponse:
    """Latest band for one asset; 404 when unknown or not yet computable."""
    store = request.app.state.store
    asset = await store.get_asset_by_symbol(symbol)
    if asset is None:
        raise HTTPException(status_code=404, detail=f"unknown asset {symbol.upper()}")

    calculation = await store.get_latest_bmsb(asset.id)
    if calculation is None:
        raise HTTPException(
            status_code=404,
            detail=f"no BMSB calculation for {asset.symbol} yet",
        )
    return JSONResponse(content=_calculation_to_dict(calculation))


@router.get("/summary")
async def get_summary(request: Request) -> JSONResponse:
    """Band-health distribution over the summary window plus data freshness."""
    store = request.app.state.store
    window_days = request.app.state.settings.summary_window_days
    since = datetime.now(timezone.utc).date() - timedelta(days=window_days)

    distribution = await store.get_health_distribution(since)
    status = await store.get_data_status()

    last_calc_ms = status["last_calculation_ms"]
    freshness_hours = (
        round((time.time() * 1000 - last_calc_ms) / 3_600_000)
        if last_calc_ms is not None
        else None
    )

    return JSONResponse(
        content={
            "total_assets": status["active_assets"],
            "band_health_distribution": distribution,
            "window_days": window_days,
            "data_status": {**status, "data_freshness_hours": freshness_hours},
        }
    )


@router.get("/exclusions")
async def get_exclusions(request: Request) -> JSONResponse:
    """Exclusion report for the whole active universe."""
    store = request.app.state.store
    assets = await store.get_assets(active_only=True)
    report = analyze_exclusions([asset.to_meta() for asset in assets])

    log.debug("exclusion_report_built", total=report.total, excluded=report.excluded)
    return JSONResponse(
        content={
            "total": report.total,
            "included": report.included,
            "excluded": report.excluded,
            "reasons": report.reasons,
            "excluded_assets": [
                {"symbol": symbol, "reason": reason}
                for symbol, reason in report.excluded_assets
            ],
        }
    )
