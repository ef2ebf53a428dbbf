"""Command-line entrypoint.

    python -m screener scan
    python -m screener track-returns
    python -m screener accuracy
    python -m screener test-channels
    python -m screener serve --port 8000
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys

import httpx

from screener.core.config import settings
from screener.core.logging import get_logger, setup_logging
from screener.core.rate_limiter import ProviderLimiters


logger = get_logger("cli")


async def run_scan(args: argparse.Namespace) -> int:
    from screener.database.connection import close_database, create_tables
    from screener.repositories.alerts_orm import AlertLog
    from screener.scoring.analysis import OpenAIReviewer
    from screener.services.data_providers import ApeWisdomProvider, YFinanceProvider
    from screener.services.notifications import build_channels
    from screener.services.pipeline import ScanPipeline

    limiters = ProviderLimiters()
    await create_tables()
    try:
        async with httpx.AsyncClient() as client:
            yfinance = YFinanceProvider(limiters.yfinance)
            pipeline = ScanPipeline(
                sentiment_providers=[ApeWisdomProvider(client, limiters.apewisdom)],
                market_data=yfinance,
                candles=yfinance if args.technicals else None,
                reviewer=OpenAIReviewer() if settings.openai_api_key else None,
                channels=build_channels(),
                recorder=AlertLog(),
                max_tickers=args.max_tickers,
                test_mode=True if args.test_mode else None,
            )
            report = await pipeline.run()
    finally:
        await close_database()

    print(
        f"Run {report.run_id}: {report.status}, {len(report.analyses)} analyzed, "
        f"{report.alerts_sent} alerts, {report.duration_ms}ms"
    )
    return 0 if report.status == "completed" else 1


async def run_track_returns(args: argparse.Namespace) -> int:
    from screener.database.connection import close_database
    from screener.services.data_providers import YFinanceProvider
    from screener.services.returns import ReturnTracker

    limiters = ProviderLimiters()
    try:
        stats = await ReturnTracker(YFinanceProvider(limiters.yfinance)).run()
    finally:
        await close_database()

    print(
        f"Processed {stats.processed}/{stats.pending}: {stats.updated} updated, "
        f"{stats.skipped} skipped, {stats.errors} errors"
    )
    return 0


async def run_accuracy(args: argparse.Namespace) -> int:
    from screener.database.connection import close_database
    from screener.services import returns

    try:
        by_classification = await returns.calculate_classification_accuracy()
        targets = await returns.calculate_target_accuracy()
    finally:
        await close_database()

    print(
        json.dumps(
            {
                "classifications": [a.model_dump() for a in by_classification],
                "targets": targets.model_dump(),
            },
            indent=2,
        )
    )
    return 0


async def run_test_channels(args: argparse.Namespace) -> int:
    from screener.services.notifications import build_channels, evaluator

    results = await evaluator.test_notification_channels(build_channels())
    for name, ok in results.items():
        print(f"{name}: {'ok' if ok else 'failed'}")
    return 0 if any(results.values()) else 1


def serve(args: argparse.Namespace) -> int:
    import uvicorn

    from screener.api import create_api_app

    uvicorn.run(
        create_api_app(),
        host=args.host,
        port=args.port,
        log_level=settings.log_level.lower(),
    )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="screener", description="Signal screener")
    sub = parser.add_subparsers(dest="command", required=True)

    scan = sub.add_parser("scan", help="Run one scan pipeline")
    scan.add_argument("--max-tickers", type=int, default=None, help="Override MAX_TICKERS")
    scan.add_argument("--test-mode", action="store_true", help="Skip universe filters")
    scan.add_argument("--technicals", action="store_true", help="Compute technical overlays")

    sub.add_parser("track-returns", help="Grade pending picks with forward returns")
    sub.add_parser("accuracy", help="Print classification and target accuracy")
    sub.add_parser("test-channels", help="Send a test alert to every channel")

    api = sub.add_parser("serve", help="Run the HTTP API")
    api.add_argument("--host", default="0.0.0.0")
    api.add_argument("--port", type=int, default=8000)
    return parser


COMMANDS = {
    "scan": run_scan,
    "track-returns": run_track_returns,
    "accuracy": run_accuracy,
    "test-channels": run_test_channels,
}


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging()

    if args.command == "serve":
        return serve(args)
    return asyncio.run(COMMANDS[args.command](args))


if __name__ == "__main__":
    sys.exit(main())
