"""Shared test fixtures for the BMSB tracker."""

from collections.abc import AsyncIterator, Callable
from datetime import date, timedelta

import pytest
import pytest_asyncio

from bmsb.config import AppSettings, CoinGeckoSettings, DatabaseSettings
from bmsb.data.database import BMSBDatabase
from bmsb.data.store import BMSBStore
from bmsb.indicators.models import DailyPricePoint

#: A Monday, so day offsets map onto weekdays predictably.
MONDAY = date(2024, 1, 1)


@pytest.fixture
def mock_settings(tmp_path) -> AppSettings:  # type: ignore[no-untyped-def]
    """Return AppSettings pointing at a temporary database, with no retry delay."""
    return AppSettings(
        log_level="DEBUG",
        coingecko=CoinGeckoSettings(
            api_key="test-api-key",  # type: ignore[arg-type]
            max_retries=3,
            retry_base_delay=0.0,
        ),
        database=DatabaseSettings(path=str(tmp_path / "bmsb.db")),
    )


@pytest_asyncio.fixture
async def store(tmp_path) -> AsyncIterator[BMSBStore]:  # type: ignore[no-untyped-def]
    """BMSBStore over a fresh SQLite file."""
    async with BMSBDatabase(str(tmp_path / "bmsb.db")) as database:
        yield BMSBStore(database)


@pytest.fixture
def daily_series() -> Callable[..., list[DailyPricePoint]]:
    """Factory for consecutive daily points starting on a Monday.

    ``daily_series(days, start=100.0, step=1.0)`` gives a linear price ramp.
    """

    def _build(
        days: int, start: float = 100.0, step: float = 1.0, first_day: date = MONDAY
    ) -> list[DailyPricePoint]:
        return [
            DailyPricePoint(date=first_day + timedelta(days=i), close=start + step * i)
            for i in range(days)
        ]

    return _build
