"""Typed SQLite read/write abstraction for the asset registry, prices and results.

All SQL lives behind BMSBStore. Dates are stored as ISO-8601 TEXT,
prices as REAL, timestamps as epoch milliseconds.
"""

import time
from datetime import date

from bmsb.data.database import BMSBDatabase
from bmsb.data.models import AssetRecord, StoredCalculation
from bmsb.eligibility.filter import RankedSymbol
from bmsb.indicators.models import (
    BandHealth,
    BMSBResult,
    DailyPricePoint,
    PricePosition,
    TrendDirection,
)
from bmsb.logging import get_logger

logger = get_logger(__name__)

_ASSET_COLUMNS = (
    "a.id, a.coingecko_id, a.symbol, a.name, a.current_rank, "
    "a.is_stablecoin, a.is_active, a.updated_at"
)

_RESULT_COLUMNS = (
    "c.calculation_date, c.sma_20_week, c.ema_21_week, c.sma_20_week_previous, "
    "c.ema_21_week_previous, c.support_band_lower, c.support_band_upper, "
    "c.current_price, c.price_position, c.sma_trend, c.ema_trend, "
    "c.band_health, c.is_applicable, c.created_at"
)

# Unranked assets sort last
_RANK_ORDER = "a.current_rank IS NULL, a.current_rank ASC, a.symbol ASC"


def _now_ms() -> int:
    return int(time.time() * 1000)


def _asset_from_row(row) -> AssetRecord:  # type: ignore[no-untyped-def]
    return AssetRecord(
        id=row[0],
        coingecko_id=row[1],
        symbol=row[2],
        name=row[3],
        current_rank=row[4],
        is_stablecoin=bool(row[5]),
        is_active=bool(row[6]),
        updated_at=row[7],
    )


def _calculation_from_row(asset: AssetRecord, row) -> StoredCalculation:  # type: ignore[no-untyped-def]
    return StoredCalculation(
        asset=asset,
        calculation_date=date.fromisoformat(row[0]),
        result=BMSBResult(
            sma_20=row[1],
            ema_21=row[2],
            sma_20_prev=row[3],
            ema_21_prev=row[4],
            support_lower=row[5],
            support_upper=row[6],
            current_price=row[7],
            price_position=PricePosition(row[8]),
            sma_trend=TrendDirection(row[9]),
            ema_trend=TrendDirection(row[10]),
            band_health=BandHealth(row[11]),
            is_applicable=bool(row[12]),
        ),
        created_at=row[13],
    )


class BMSBStore:
    """Async SQLite store for assets, daily prices and BMSB calculations.

    Usage:
        async with BMSBDatabase("data/bmsb.db") as database:
            store = BMSBStore(database)
            asset_id = await store.upsert_asset("bitcoin", "BTC", "Bitcoin", 1)
    """

    def __init__(self, database: BMSBDatabase) -> None:
        self._database = database

    # ──────────────────────────────────────────────
    # Asset registry
    # ──────────────────────────────────────────────

    async def upsert_asset(
        self,
        coingecko_id: str,
        symbol: str,
        name: str,
        current_rank: int | None = None,
        is_stablecoin: bool = False,
        is_active: bool = True,
    ) -> int:
        """Insert or update an asset by CoinGecko id. Returns the asset id."""
        async with self._database.transaction() as db:
            await db.execute(
                "INSERT INTO assets "
                "(coingecko_id, symbol, name, current_rank, is_stablecoin, is_active, updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?) "
                "ON CONFLICT(coingecko_id) DO UPDATE SET "
                "symbol = excluded.symbol, name = excluded.name, "
                "current_rank = excluded.current_rank, "
                "is_stablecoin = excluded.is_stablecoin, "
                "is_active = excluded.is_active, updated_at = excluded.updated_at",
                (
                    coingecko_id,
                    symbol.upper(),
                    name,
                    current_rank,
                    1 if is_stablecoin else 0,
                    1 if is_active else 0,
                    _now_ms(),
                ),
            )
            cursor = await db.execute(
                "SELECT id FROM assets WHERE coingecko_id = ?", (coingecko_id,)
            )
            row = await cursor.fetchone()
        assert row is not None
        return row[0]

    async def deactivate_assets_except(self, coingecko_ids: list[str]) -> int:
        """Mark every asset not in ``coingecko_ids`` inactive. Returns rows changed."""
        query = "UPDATE assets SET is_active = 0, updated_at = ? WHERE is_active = 1"
        params: list = [_now_ms()]
        if coingecko_ids:
            placeholders = ", ".join("?" for _ in coingecko_ids)
            query += f" AND coingecko_id NOT IN ({placeholders})"
            params.extend(coingecko_ids)

        async with self._database.transaction() as db:
            cursor = await db.execute(query, params)
        return cursor.rowcount

    async def get_assets(self, active_only: bool = True) -> list[AssetRecord]:
        """Get assets ordered by market-cap rank (unranked last)."""
        query = f"SELECT {_ASSET_COLUMNS} FROM assets a"
        if active_only:
            query += " WHERE a.is_active = 1"
        query += f" ORDER BY {_RANK_ORDER}"

        cursor = await self._database.db.execute(query)
        rows = await cursor.fetchall()
        return [_asset_from_row(row) for row in rows]

    async def get_asset_by_symbol(self, symbol: str) -> AssetRecord | None:
        """Best-ranked asset carrying ``symbol`` (symbols are not unique)."""
        cursor = await self._database.db.execute(
            f"SELECT {_ASSET_COLUMNS} FROM assets a "
            f"WHERE a.symbol = ? ORDER BY a.is_active DESC, {_RANK_ORDER} LIMIT 1",
            (symbol.upper(),),
        )
        row = await cursor.fetchone()
        return _asset_from_row(row) if row is not None else None

    async def get_ranked_universe(self) -> list[RankedSymbol]:
        """``{symbol, rank}`` list of the active universe for tie-breaks."""
        return [
            RankedSymbol(symbol=asset.symbol, rank=asset.current_rank)
            for asset in await self.get_assets(active_only=True)
        ]

    async def record_rankings(
        self, rankings: list[tuple[int, int | None, float | None]]
    ) -> int:
        """Append a ranking snapshot of ``(asset_id, rank, market_cap)`` rows."""
        if not rankings:
            return 0
        recorded_at = _now_ms()
        async with self._database.transaction() as db:
            await db.executemany(
                "INSERT INTO market_cap_rankings (asset_id, rank, market_cap, recorded_at) "
                "VALUES (?, ?, ?, ?)",
                [(asset_id, rank, cap, recorded_at) for asset_id, rank, cap in rankings],
            )
        logger.debug("rankings_recorded", count=len(rankings))
        return len(rankings)

    # ──────────────────────────────────────────────
    # Daily prices
    # ──────────────────────────────────────────────

    async def upsert_daily_prices(
        self, asset_id: int, points: list[DailyPricePoint]
    ) -> int:
        """Insert daily closes; a reload for an existing date supersedes it."""
        if not points:
            return 0

        async with self._database.transaction() as db:
            await db.executemany(
                "INSERT INTO daily_prices (asset_id, date, close_price) VALUES (?, ?, ?) "
                "ON CONFLICT(asset_id, date) DO UPDATE SET close_price = excluded.close_price",
                [(asset_id, p.date.isoformat(), p.close) for p in points],
            )

        logger.debug("upserted_daily_prices", asset_id=asset_id, total=len(points))
        return len(points)

    async def get_daily_prices(
        self, asset_id: int, since: date | None = None
    ) -> list[DailyPricePoint]:
        """Daily closes for an asset, oldest first."""
        query = "SELECT date, close_price FROM daily_prices WHERE asset_id = ?"
        params: list = [asset_id]
        if since is not None:
            query += " AND date >= ?"
            params.append(since.isoformat())
        query += " ORDER BY date ASC"

        cursor = await self._database.db.execute(query, params)
        rows = await cursor.fetchall()
        return [
            DailyPricePoint(date=date.fromisoformat(row[0]), close=row[1])
            for row in rows
        ]

    # ──────────────────────────────────────────────
    # BMSB calculations
    # ──────────────────────────────────────────────

    async def upsert_bmsb_result(
        self, asset_id: int, calculation_date: date, result: BMSBResult
    ) -> None:
        """Store one result per asset per day, overwriting a same-day rerun."""
        async with self._database.transaction() as db:
            await db.execute(
                "INSERT OR REPLACE INTO bmsb_calculations "
                "(asset_id, calculation_date, sma_20_week, ema_21_week, "
                "sma_20_week_previous, ema_21_week_previous, support_band_lower, "
                "support_band_upper, current_price, price_position, sma_trend, "
                "ema_trend, band_health, is_applicable, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    asset_id,
                    calculation_date.isoformat(),
                    result.sma_20,
                    result.ema_21,
                    result.sma_20_prev,
                    result.ema_21_prev,
                    result.support_lower,
                    result.support_upper,
                    result.current_price,
                    result.price_position.value,
                    result.sma_trend.value,
                    result.ema_trend.value,
                    result.band_health.value,
                    1 if result.is_applicable else 0,
                    _now_ms(),
                ),
            )

    async def get_latest_bmsb(self, asset_id: int) -> StoredCalculation | None:
        """Most recent calculation for one asset, or None if never computed."""
        cursor = await self._database.db.execute(
            f"SELECT {_ASSET_COLUMNS}, {_RESULT_COLUMNS} "
            "FROM bmsb_calculations c JOIN assets a ON a.id = c.asset_id "
            "WHERE c.asset_id = ? ORDER BY c.calculation_date DESC LIMIT 1",
            (asset_id,),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return _calculation_from_row(_asset_from_row(row[:8]), row[8:])

    async def get_latest_results(self, limit: int | None = None) -> list[StoredCalculation]:
        """Latest calculation per active asset, in rank order."""
        query = (
            f"SELECT {_ASSET_COLUMNS}, {_RESULT_COLUMNS} "
            "FROM bmsb_calculations c JOIN assets a ON a.id = c.asset_id "
            "WHERE a.is_active = 1 AND c.calculation_date = ("
            "  SELECT MAX(c2.calculation_date) FROM bmsb_calculations c2 "
            "  WHERE c2.asset_id = c.asset_id"
            f") ORDER BY {_RANK_ORDER}"
        )
        params: list = []
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)

        cursor = await self._database.db.execute(query, params)
        rows = await cursor.fetchall()
        return [
            _calculation_from_row(_asset_from_row(row[:8]), row[8:]) for row in rows
        ]

    async def get_health_distribution(self, since: date) -> dict[str, int]:
        """Band-health counts over each asset's latest calculation since ``since``."""
        cursor = await self._database.db.execute(
            "SELECT c.band_health, COUNT(*) FROM bmsb_calculations c "
            "WHERE c.calculation_date >= ? AND c.calculation_date = ("
            "  SELECT MAX(c2.calculation_date) FROM bmsb_calculations c2 "
            "  WHERE c2.asset_id = c.asset_id"
            ") GROUP BY c.band_health",
            (since.isoformat(),),
        )
        rows = await cursor.fetchall()
        counts = {health.value: 0 for health in BandHealth}
        for health, count in rows:
            counts[health] = count
        return counts

    async def get_data_status(self) -> dict:
        """Aggregate counts and freshness for the summary endpoint and CLI."""
        db = self._database.db

        cursor = await db.execute("SELECT COUNT(*) FROM assets WHERE is_active = 1")
        active_assets = (await cursor.fetchone())[0]

        cursor = await db.execute("SELECT COUNT(*), MIN(date), MAX(date) FROM daily_prices")
        total_prices, earliest_date, latest_date = await cursor.fetchone()

        cursor = await db.execute(
            "SELECT COUNT(*), MAX(created_at) FROM bmsb_calculations"
        )
        total_calculations, last_calculation_ms = await cursor.fetchone()

        cursor = await db.execute("SELECT MAX(recorded_at) FROM market_cap_rankings")
        last_ranking_ms = (await cursor.fetchone())[0]

        return {
            "active_assets": active_assets,
            "total_daily_prices": total_prices,
            "earliest_price_date": earliest_date,
            "latest_price_date": latest_date,
            "total_calculations": total_calculations,
            "last_calculation_ms": last_calculation_ms,
            "last_ranking_ms": last_ranking_ms,
        }
