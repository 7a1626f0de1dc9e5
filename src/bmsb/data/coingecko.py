"""CoinGecko market-data client for asset discovery and daily price history.

Uses urllib.request (stdlib) in a worker thread so the async callers are
not blocked. A sliding one-minute budget keeps requests under the
configured per-minute limit; the free/demo tier allows 50 and caps
history at 365 days.

The ``market_chart`` daily series is stamped 00:00 UTC and carries the
*opening* price of that day. The weekly extractor accounts for this.
"""

import asyncio
import json
import time
import urllib.error
import urllib.parse
import urllib.request
from collections import deque
from collections.abc import Callable
from datetime import date, datetime, timezone

from bmsb.config import CoinGeckoSettings
from bmsb.exceptions import MarketDataError, RateLimitExceeded
from bmsb.indicators.models import DailyPricePoint
from bmsb.logging import get_logger

logger = get_logger(__name__)

MAX_HISTORY_DAYS = 365
MAX_PER_PAGE = 250

_RATE_WINDOW_SECONDS = 60.0


def market_chart_to_daily(chart: dict) -> list[DailyPricePoint]:
    """Convert a ``market_chart`` payload into daily points keyed by UTC date.

    Several points can fall on one date (the last entry is the live price);
    the last one wins. Non-numeric entries are dropped; price validation
    is left to the indicator engine.
    """
    by_date: dict[date, DailyPricePoint] = {}
    for entry in chart.get("prices") or []:
        if not isinstance(entry, (list, tuple)) or len(entry) < 2:
            continue
        timestamp_ms, price = entry[0], entry[1]
        if price is None or isinstance(price, bool):
            continue
        try:
            day = datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc).date()
            close = float(price)
        except (TypeError, ValueError, OverflowError, OSError):
            logger.debug("market_chart_entry_dropped", entry=str(entry)[:80])
            continue
        by_date[day] = DailyPricePoint(date=day, close=close)
    return [by_date[day] for day in sorted(by_date)]


class CoinGeckoClient:
    """Thin CoinGecko REST client with a per-minute request budget.

    Args:
        settings: Base URL, API key, rate limit and timeout.
        clock: Monotonic clock, injectable for tests.
    """

    def __init__(
        self,
        settings: CoinGeckoSettings,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._settings = settings
        self._clock = clock
        self._request_times: deque[float] = deque()
        self._lock = asyncio.Lock()

    def _build_url(self, endpoint: str, params: dict) -> str:
        query = urllib.parse.urlencode(
            {k: v for k, v in params.items() if v is not None}
        )
        return f"{self._settings.base_url.rstrip('/')}{endpoint}?{query}"

    def _fetch_json(self, url: str):  # type: ignore[no-untyped-def]
        """Blocking GET returning decoded JSON. Runs in a worker thread."""
        headers = {"Accept": "application/json", "User-Agent": "BMSBTracker/1.0"}
        api_key = self._settings.api_key.get_secret_value()
        if api_key:
            headers["x-cg-demo-api-key"] = api_key

        req = urllib.request.Request(url, headers=headers)
        try:
            with urllib.request.urlopen(req, timeout=self._settings.request_timeout) as resp:
                return json.loads(resp.read())
        except urllib.error.HTTPError as e:
            if e.code == 429:
                raise RateLimitExceeded(f"rate limited: {url}") from e
            raise MarketDataError(f"HTTP {e.code} for {url}") from e
        except (urllib.error.URLError, TimeoutError) as e:
            raise MarketDataError(f"request failed for {url}: {e}") from e
        except json.JSONDecodeError as e:
            raise MarketDataError(f"malformed JSON from {url}") from e

    async def _throttle(self) -> None:
        """Wait until another request fits in the sliding one-minute window."""
        async with self._lock:
            limit = max(self._settings.rate_limit_per_minute, 1)
            while True:
                now = self._clock()
                while self._request_times and now - self._request_times[0] >= _RATE_WINDOW_SECONDS:
                    self._request_times.popleft()
                if len(self._request_times) < limit:
                    self._request_times.append(now)
                    return
                wait = _RATE_WINDOW_SECONDS - (now - self._request_times[0])
                logger.debug("coingecko_rate_limit_wait", seconds=round(wait, 2))
                await asyncio.sleep(wait)

    async def _get(self, endpoint: str, params: dict):  # type: ignore[no-untyped-def]
        await self._throttle()
        url = self._build_url(endpoint, params)
        return await asyncio.to_thread(self._fetch_json, url)

    async def get_markets(self, per_page: int = 100, page: int = 1) -> list[dict]:
        """One page of ``/coins/markets`` ordered by market cap, descending."""
        data = await self._get(
            "/coins/markets",
            {
                "vs_currency": "usd",
                "order": "market_cap_desc",
                "per_page": min(per_page, MAX_PER_PAGE),
                "page": page,
                "sparkline": "false",
            },
        )
        if not isinstance(data, list):
            raise MarketDataError("unexpected /coins/markets payload")
        return data

    async def get_market_chart(self, coin_id: str, days: int = MAX_HISTORY_DAYS) -> dict:
        """Daily ``market_chart`` for a coin, limited to the API's history cap."""
        data = await self._get(
            f"/coins/{urllib.parse.quote(coin_id)}/market_chart",
            {
                "vs_currency": "usd",
                "days": min(days, MAX_HISTORY_DAYS),
                "interval": "daily",
            },
        )
        if not isinstance(data, dict) or "prices" not in data:
            raise MarketDataError(f"unexpected market_chart payload for {coin_id}")
        return data
