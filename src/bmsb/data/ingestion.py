"""Asset discovery and daily price ingestion from CoinGecko.

Discovery pages ``/coins/markets`` to refresh the active universe and its
ranks; ingestion pulls up to a year of daily history per asset and upserts
it. Transient provider failures are retried with exponential backoff.
"""

import asyncio
import math
import time
from collections.abc import Awaitable, Callable
from typing import Any

from bmsb.config import CoinGeckoSettings
from bmsb.data.coingecko import MAX_PER_PAGE, CoinGeckoClient, market_chart_to_daily
from bmsb.data.models import AssetRecord
from bmsb.data.store import BMSBStore
from bmsb.eligibility.filter import detect_stablecoin
from bmsb.exceptions import MarketDataError, RateLimitExceeded
from bmsb.logging import get_logger, run_context

logger = get_logger(__name__)


class IngestionService:
    """Keeps the asset registry and daily price history up to date.

    Usage:
        service = IngestionService(client, store, settings.coingecko)
        await service.discover_assets(150)
        await service.ingest_all()
    """

    def __init__(
        self,
        client: CoinGeckoClient,
        store: BMSBStore,
        settings: CoinGeckoSettings,
    ) -> None:
        self._client = client
        self._store = store
        self._settings = settings

    async def discover_assets(self, limit: int) -> int:
        """Refresh the top ``limit`` assets by market cap.

        Upserts each asset (with the stablecoin heuristic), records a ranking
        snapshot, and deactivates assets that fell out of the universe.
        Returns the number of assets stored.
        """
        with run_context("discover", limit=limit):
            return await self._discover(limit)

    async def _discover(self, limit: int) -> int:
        pages = max(math.ceil(limit / MAX_PER_PAGE), 1)
        markets: list[dict] = []
        for page in range(1, pages + 1):
            per_page = min(MAX_PER_PAGE, limit - (page - 1) * MAX_PER_PAGE)
            batch = await self._fetch_with_retry(
                self._client.get_markets, per_page=per_page, page=page
            )
            markets.extend(batch)
            if len(batch) < per_page:
                break

        rankings: list[tuple[int, int | None, float | None]] = []
        coingecko_ids: list[str] = []
        for coin in markets[:limit]:
            coin_id = coin.get("id")
            symbol = coin.get("symbol")
            name = coin.get("name")
            if not coin_id or not symbol or not name:
                logger.warning("discovery_entry_skipped", entry=str(coin)[:120])
                continue

            asset_id = await self._store.upsert_asset(
                coingecko_id=coin_id,
                symbol=symbol,
                name=name,
                current_rank=coin.get("market_cap_rank"),
                is_stablecoin=detect_stablecoin(symbol, name, coin.get("categories")),
            )
            coingecko_ids.append(coin_id)
            rankings.append((asset_id, coin.get("market_cap_rank"), coin.get("market_cap")))

        await self._store.record_rankings(rankings)
        deactivated = await self._store.deactivate_assets_except(coingecko_ids)

        logger.info(
            "assets_discovered",
            stored=len(coingecko_ids),
            deactivated=deactivated,
            requested=limit,
        )
        return len(coingecko_ids)

    async def ingest_history(self, asset: AssetRecord, days: int | None = None) -> int:
        """Fetch and upsert daily history for one asset. Returns rows written."""
        chart = await self._fetch_with_retry(
            self._client.get_market_chart,
            asset.coingecko_id,
            days or self._settings.history_days,
        )
        points = market_chart_to_daily(chart)
        if not points:
            logger.warning("no_price_history", symbol=asset.symbol)
            return 0

        written = await self._store.upsert_daily_prices(asset.id, points)
        logger.debug(
            "price_history_ingested",
            symbol=asset.symbol,
            days=written,
            first=points[0].date.isoformat(),
            last=points[-1].date.isoformat(),
        )
        return written

    async def ingest_all(
        self,
        symbols: list[str] | None = None,
        days: int | None = None,
        progress_callback: Callable[[str, int, int], Awaitable[None]] | None = None,
    ) -> dict[str, int]:
        """Ingest history for every active asset (or only ``symbols``).

        A failing asset is logged and counted; the run continues.
        """
        with run_context("ingest", days=days or self._settings.history_days):
            return await self._ingest_all(symbols, days, progress_callback)

    async def _ingest_all(
        self,
        symbols: list[str] | None,
        days: int | None,
        progress_callback: Callable[[str, int, int], Awaitable[None]] | None,
    ) -> dict[str, int]:
        start_time = time.monotonic()
        assets = await self._store.get_assets(active_only=True)
        if symbols:
            wanted = {s.upper() for s in symbols}
            assets = [a for a in assets if a.symbol in wanted]

        summary = {"assets": len(assets), "succeeded": 0, "failed": 0, "rows": 0}
        for i, asset in enumerate(assets, 1):
            try:
                summary["rows"] += await self.ingest_history(asset, days)
                summary["succeeded"] += 1
            except MarketDataError as e:
                summary["failed"] += 1
                logger.error("price_history_failed", symbol=asset.symbol, error=str(e))

            if progress_callback is not None:
                await progress_callback(asset.symbol, i, len(assets))

        logger.info(
            "price_ingestion_complete",
            **summary,
            duration_seconds=round(time.monotonic() - start_time, 1),
        )
        return summary

    async def _fetch_with_retry(self, fetch_fn: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:  # type: ignore[no-untyped-def]
        """Call ``fetch_fn`` with exponential backoff on MarketDataError.

        Delays: base, 2x base, 4x base, ... Rate-limit responses wait three
        times longer. Re-raises on the final attempt.
        """
        max_retries = max(self._settings.max_retries, 1)
        base_delay = self._settings.retry_base_delay

        for attempt in range(max_retries):
            try:
                return await fetch_fn(*args, **kwargs)
            except MarketDataError as e:
                if attempt == max_retries - 1:
                    logger.error("fetch_failed_permanently", error=str(e), attempts=max_retries)
                    raise

                delay = base_delay * (2**attempt)
                if isinstance(e, RateLimitExceeded):
                    delay *= 3
                    logger.warning(
                        "rate_limit_exceeded",
                        attempt=attempt + 1,
                        max_retries=max_retries,
                        delay=delay,
                    )
                else:
                    logger.warning(
                        "fetch_retry",
                        attempt=attempt + 1,
                        max_retries=max_retries,
                        delay=delay,
                        error=str(e),
                    )
                await asyncio.sleep(delay)

        raise AssertionError("unreachable")
