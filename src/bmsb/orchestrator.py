"""Daily BMSB calculation run over the active asset universe.

For each active asset: read its daily closes from the store, run the pure
indicator engine, and upsert one result row for the calculation day.
Per-asset failures are logged and counted; the run never aborts for one
asset.

Stablecoin-flagged assets are skipped, except duplicate-role members
(tokenized gold): those are always computed as regular assets and the
eligibility tie-break decides at read time which one is displayed.
"""

from __future__ import annotations

import asyncio
from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime, timezone

from bmsb.data.models import AssetRecord
from bmsb.data.store import BMSBStore
from bmsb.eligibility.filter import duplicate_role_of
from bmsb.exceptions import InsufficientHistory, InvalidPriceData
from bmsb.indicators.engine import calculate_from_daily
from bmsb.indicators.models import BMSBResult
from bmsb.indicators.weekly import deduplicate_daily_prices
from bmsb.logging import get_logger, run_context

logger = get_logger(__name__)


@dataclass
class CalculationRunSummary:
    """Outcome counts of one calculation run."""

    calculation_date: date
    total: int = 0
    calculated: int = 0
    skipped_insufficient: int = 0
    skipped_invalid: int = 0
    skipped_stablecoin: int = 0
    errors: int = 0
    health: dict[str, int] = field(default_factory=dict)
    incomplete: list[str] = field(default_factory=list)


def _today_utc() -> date:
    return datetime.now(timezone.utc).date()


class CalculationOrchestrator:
    """Runs the BMSB engine for every active asset and persists the results.

    Args:
        store: Typed store for assets, prices and results.
        concurrency: Maximum assets computed at once (1 = sequential).
    """

    def __init__(self, store: BMSBStore, concurrency: int = 1) -> None:
        self._store = store
        self._concurrency = max(concurrency, 1)

    @staticmethod
    def _effective_stablecoin(asset: AssetRecord) -> bool:
        """Stablecoin flag with the duplicate-role override applied."""
        return asset.is_stablecoin and duplicate_role_of(asset.symbol) is None

    async def calculate_asset(
        self,
        asset: AssetRecord,
        calculation_date: date | None = None,
    ) -> BMSBResult:
        """Compute and store the result for one asset.

        Raises:
            InsufficientHistory: fewer than 22 weekly closes available.
            InvalidPriceData: a stored close is non-positive or non-finite.
        """
        calculation_date = calculation_date or _today_utc()

        daily = deduplicate_daily_prices(await self._store.get_daily_prices(asset.id))
        result = calculate_from_daily(
            daily, is_stablecoin=self._effective_stablecoin(asset)
        )
        await self._store.upsert_bmsb_result(asset.id, calculation_date, result)

        logger.debug(
            "bmsb_calculated",
            symbol=asset.symbol,
            sma_20=round(result.sma_20, 8),
            ema_21=round(result.ema_21, 8),
            position=result.price_position.value,
            health=result.band_health.value,
        )
        return result

    async def run(self, calculation_date: date | None = None) -> CalculationRunSummary:
        """Calculate every active asset for ``calculation_date`` (default: today UTC)."""
        calculation_date = calculation_date or _today_utc()
        with run_context("calculate", calculation_date=calculation_date.isoformat()):
            return await self._run(calculation_date)

    async def _run(self, calculation_date: date) -> CalculationRunSummary:
        assets = await self._store.get_assets(active_only=True)

        summary = CalculationRunSummary(calculation_date=calculation_date, total=len(assets))
        health: Counter[str] = Counter()
        semaphore = asyncio.Semaphore(self._concurrency)

        logger.info(
            "calculation_run_started",
            date=calculation_date.isoformat(),
            assets=len(assets),
            concurrency=self._concurrency,
        )

        async def _process(asset: AssetRecord) -> None:
            if self._effective_stablecoin(asset):
                summary.skipped_stablecoin += 1
                logger.debug("asset_skipped_stablecoin", symbol=asset.symbol)
                return

            async with semaphore:
                try:
                    result = await self.calculate_asset(asset, calculation_date)
                except InsufficientHistory as e:
                    summary.skipped_insufficient += 1
                    summary.incomplete.append(asset.symbol)
                    logger.info(
                        "asset_skipped_insufficient_history",
                        symbol=asset.symbol,
                        available=e.available,
                        required=e.required,
                    )
                    return
                except InvalidPriceData as e:
                    summary.skipped_invalid += 1
                    summary.incomplete.append(asset.symbol)
                    logger.warning(
                        "asset_skipped_invalid_price",
                        symbol=asset.symbol,
                        price=e.price,
                        date=e.date.isoformat() if e.date else None,
                    )
                    return
                except Exception:
                    summary.errors += 1
                    logger.exception("bmsb_calculation_error", symbol=asset.symbol)
                    return

            summary.calculated += 1
            health[result.band_health.value] += 1

        await asyncio.gather(*(_process(asset) for asset in assets))

        summary.health = dict(health)
        logger.info(
            "calculation_run_complete",
            date=calculation_date.isoformat(),
            calculated=summary.calculated,
            skipped_insufficient=summary.skipped_insufficient,
            skipped_invalid=summary.skipped_invalid,
            skipped_stablecoin=summary.skipped_stablecoin,
            errors=summary.errors,
            health=summary.health,
        )
        return summary
