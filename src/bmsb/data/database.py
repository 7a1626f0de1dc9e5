"""SQLite schema and connection lifecycle for the BMSB tracker.

One file holds the asset registry, the daily close history, one BMSB row
per asset per calculation day, and append-only market-cap ranking
snapshots. WAL mode lets the API read while the daily run writes.
"""

import asyncio
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Self

import aiosqlite

from bmsb.exceptions import SchemaVersionError
from bmsb.logging import get_logger

logger = get_logger(__name__)

SCHEMA_VERSION = 1

_CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY
);

CREATE TABLE IF NOT EXISTS assets (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    coingecko_id TEXT NOT NULL UNIQUE,
    symbol TEXT NOT NULL,
    name TEXT NOT NULL,
    current_rank INTEGER,
    is_stablecoin INTEGER NOT NULL DEFAULT 0,
    is_active INTEGER NOT NULL DEFAULT 1,
    updated_at INTEGER
);

CREATE TABLE IF NOT EXISTS daily_prices (
    asset_id INTEGER NOT NULL REFERENCES assets(id),
    date TEXT NOT NULL,
    close_price REAL NOT NULL,
    PRIMARY KEY (asset_id, date)
);

CREATE TABLE IF NOT EXISTS bmsb_calculations (
    asset_id INTEGER NOT NULL REFERENCES assets(id),
    calculation_date TEXT NOT NULL,
    sma_20_week REAL NOT NULL,
    ema_21_week REAL NOT NULL,
    sma_20_week_previous REAL NOT NULL,
    ema_21_week_previous REAL NOT NULL,
    support_band_lower REAL NOT NULL,
    support_band_upper REAL NOT NULL,
    current_price REAL NOT NULL,
    price_position TEXT NOT NULL,
    sma_trend TEXT NOT NULL,
    ema_trend TEXT NOT NULL,
    band_health TEXT NOT NULL,
    is_applicable INTEGER NOT NULL,
    created_at INTEGER NOT NULL,
    PRIMARY KEY (asset_id, calculation_date)
);

CREATE TABLE IF NOT EXISTS market_cap_rankings (
    asset_id INTEGER NOT NULL REFERENCES assets(id),
    rank INTEGER,
    market_cap REAL,
    recorded_at INTEGER NOT NULL
);
"""

_CREATE_INDEXES_SQL = """
CREATE INDEX IF NOT EXISTS idx_assets_rank
    ON assets(current_rank);

CREATE INDEX IF NOT EXISTS idx_bmsb_date
    ON bmsb_calculations(calculation_date);

CREATE INDEX IF NOT EXISTS idx_rankings_recorded
    ON market_cap_rankings(recorded_at);
"""


#: The daily cron job and the API server open the same file.
_BUSY_TIMEOUT_MS = 5_000


class BMSBDatabase:
    """Owns the single aiosqlite connection to the BMSB database file.

    Readers use ``db`` directly. Writers go through ``transaction()``, which
    serializes them on one lock so concurrent per-asset calculations never
    interleave a commit with another asset's half-written rows.

    Usage:
        async with BMSBDatabase(settings.database.path) as database:
            async with database.transaction() as db:
                await db.execute(...)
    """

    def __init__(self, db_path: str = "data/bmsb.db") -> None:
        self._db_path = db_path
        self._connection: aiosqlite.Connection | None = None
        self._write_lock = asyncio.Lock()

    @property
    def path(self) -> str:
        return self._db_path

    @property
    def db(self) -> aiosqlite.Connection:
        if self._connection is None:
            raise RuntimeError(f"BMSB database {self._db_path} is not open")
        return self._connection

    async def connect(self) -> None:
        """Open the file (creating its directory), apply pragmas and the schema.

        Raises:
            SchemaVersionError: the file carries a newer schema version.
        """
        directory = os.path.dirname(self._db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)

        connection = await aiosqlite.connect(self._db_path)
        try:
            for pragma in (
                "journal_mode=WAL",
                "synchronous=NORMAL",
                "foreign_keys=ON",
                f"busy_timeout={_BUSY_TIMEOUT_MS}",
            ):
                await connection.execute(f"PRAGMA {pragma}")
            await connection.executescript(_CREATE_TABLES_SQL + _CREATE_INDEXES_SQL)
            version = await self._stamp_schema_version(connection)
        except BaseException:
            await connection.close()
            raise

        self._connection = connection
        logger.info("bmsb_db_opened", db_path=self._db_path, schema_version=version)

    async def close(self) -> None:
        if self._connection is None:
            return
        await self._connection.close()
        self._connection = None
        logger.info("bmsb_db_closed", db_path=self._db_path)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """Serialized write scope: commit on success, roll back on any error."""
        async with self._write_lock:
            connection = self.db
            try:
                yield connection
            except BaseException:
                await connection.rollback()
                raise
            await connection.commit()

    @staticmethod
    async def _stamp_schema_version(connection: aiosqlite.Connection) -> int:
        cursor = await connection.execute("SELECT MAX(version) FROM schema_version")
        row = await cursor.fetchone()
        found = row[0] if row is not None else None

        if found is not None and found > SCHEMA_VERSION:
            raise SchemaVersionError(found, SCHEMA_VERSION)
        if found is None:
            await connection.execute(
                "INSERT INTO schema_version (version) VALUES (?)", (SCHEMA_VERSION,)
            )
            logger.info("schema_version_set", version=SCHEMA_VERSION)
        await connection.commit()
        return found or SCHEMA_VERSION

    async def __aenter__(self) -> Self:
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # type: ignore[no-untyped-def]
        await self.close()
