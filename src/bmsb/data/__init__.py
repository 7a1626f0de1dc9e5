"""Persistence and market-data acquisition.

Provides row models, SQLite database management, the typed store, the
CoinGecko client, and the discovery/ingestion service that fills the
store with daily price history.
"""

from bmsb.data.coingecko import CoinGeckoClient, market_chart_to_daily
from bmsb.data.database import BMSBDatabase
from bmsb.data.ingestion import IngestionService
from bmsb.data.models import AssetRecord, StoredCalculation
from bmsb.data.store import BMSBStore

__all__ = [
    "AssetRecord",
    "BMSBDatabase",
    "BMSBStore",
    "CoinGeckoClient",
    "IngestionService",
    "StoredCalculation",
    "market_chart_to_daily",
]
