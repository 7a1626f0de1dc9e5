"""Command-line entry point for the BMSB tracker.

Subcommands:
    discover    Refresh the top-N asset universe and ranks from CoinGecko.
    ingest      Fetch daily price history for active assets.
    calculate   Compute and store today's band for every active asset.
    exclusions  Print the eligibility report for the active universe.
    serve       Run the read-only JSON API.

Every command loads AppSettings, configures logging, and opens the SQLite
database through its async context manager.
"""

import argparse
import asyncio
import json
from datetime import date

import uvicorn

from bmsb.api.app import create_app, database_lifespan
from bmsb.config import AppSettings
from bmsb.data.coingecko import CoinGeckoClient
from bmsb.data.database import BMSBDatabase
from bmsb.data.ingestion import IngestionService
from bmsb.data.store import BMSBStore
from bmsb.eligibility.filter import analyze_exclusions
from bmsb.logging import get_logger, setup_logging
from bmsb.orchestrator import CalculationOrchestrator


async def _discover(settings: AppSettings, limit: int | None) -> int:
    async with BMSBDatabase(settings.database.path) as database:
        service = IngestionService(
            CoinGeckoClient(settings.coingecko), BMSBStore(database), settings.coingecko
        )
        await service.discover_assets(limit or settings.calculation.universe_size)
    return 0


async def _ingest(settings: AppSettings, symbols: list[str], days: int | None) -> int:
    async with BMSBDatabase(settings.database.path) as database:
        service = IngestionService(
            CoinGeckoClient(settings.coingecko), BMSBStore(database), settings.coingecko
        )
        summary = await service.ingest_all(symbols or None, days)
    return 1 if summary["failed"] and not summary["succeeded"] else 0


async def _calculate(settings: AppSettings, on: date | None) -> int:
    async with BMSBDatabase(settings.database.path) as database:
        orchestrator = CalculationOrchestrator(
            BMSBStore(database), concurrency=settings.calculation.concurrency
        )
        summary = await orchestrator.run(on)
    return 1 if summary.errors else 0


async def _exclusions(settings: AppSettings) -> int:
    async with BMSBDatabase(settings.database.path) as database:
        assets = await BMSBStore(database).get_assets(active_only=True)
    report = analyze_exclusions([asset.to_meta() for asset in assets])
    print(
        json.dumps(
            {
                "total": report.total,
                "included": report.included,
                "excluded": report.excluded,
                "reasons": report.reasons,
                "excluded_assets": report.excluded_assets,
            },
            indent=2,
        )
    )
    return 0


async def _serve(settings: AppSettings) -> int:
    logger = get_logger("bmsb.main")
    if not settings.api.enabled:
        logger.warning("api_disabled")
        return 1

    app = create_app(settings.api, lifespan=database_lifespan(settings.database.path))
    logger.info("starting_api", host=settings.api.host, port=settings.api.port)

    config = uvicorn.Config(
        app,
        host=settings.api.host,
        port=settings.api.port,
        log_level="warning",  # structlog handles our own events
    )
    await uvicorn.Server(config).serve()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="bmsb", description="Bull Market Support Band tracker")
    sub = parser.add_subparsers(dest="command", required=True)

    discover = sub.add_parser("discover", help="refresh the asset universe")
    discover.add_argument("--limit", type=int, default=None, help="universe size")

    ingest = sub.add_parser("ingest", help="fetch daily price history")
    ingest.add_argument("symbols", nargs="*", help="only these symbols (default: all active)")
    ingest.add_argument("--days", type=int, default=None, help="days of history (max 365)")

    calculate = sub.add_parser("calculate", help="compute today's bands")
    calculate.add_argument(
        "--date",
        type=date.fromisoformat,
        default=None,
        help="calculation date, YYYY-MM-DD (default: today UTC)",
    )

    sub.add_parser("exclusions", help="print the eligibility report")
    sub.add_parser("serve", help="run the JSON API")
    return parser


async def run(args: argparse.Namespace) -> int:
    settings = AppSettings()
    setup_logging(settings.log_level)

    if args.command == "discover":
        return await _discover(settings, args.limit)
    if args.command == "ingest":
        return await _ingest(settings, args.symbols, args.days)
    if args.command == "calculate":
        return await _calculate(settings, args.date)
    if args.command == "exclusions":
        return await _exclusions(settings)
    return await _serve(settings)


def main(argv: list[str] | None = None) -> int:
    """Synchronous entry point."""
    args = build_parser().parse_args(argv)
    return asyncio.run(run(args))


if __name__ == "__main__":
    raise SystemExit(main())
