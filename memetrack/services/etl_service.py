"""Runs one ingestion pass over all feeds (new tokens, prices, market data)."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Literal, Optional

from sqlalchemy.orm import Session

from memetrack.core.config import settings
from memetrack.core.cursors import CursorStore
from memetrack.core.logging import get_logger, logger
from memetrack.ingestion.archive import ResultArchiver
from memetrack.ingestion.bitquery import BitqueryClient
from memetrack.ingestion.market_data import MarketDataSource
from memetrack.ingestion.memecoins import NewTokenSource
from memetrack.ingestion.prices import PriceSource
from memetrack.services.market_data_service import MarketDataService
from memetrack.services.price_pipeline import PricePipeline

log = get_logger("etl_service")

PassName = Literal["memecoins", "prices", "market-data"]
PASSES: tuple[PassName, ...] = ("memecoins", "prices", "market-data")


class ETLService:
    """Sequences the ingestion passes for a single scheduled run.

    Responsibilities:
    - Load each feed's cursor, fetch, archive the raw response
    - Persist the advanced cursor only after a successful fetch
    - Push price trades through the price pipeline
    - Refresh stale token market data

    There is no scheduling loop and no run exclusion; the external
    trigger must not start overlapping runs.
    """

    def __init__(
        self,
        db: Session,
        client: Optional[BitqueryClient] = None,
        archiver: Optional[ResultArchiver] = None,
        cursor_store: Optional[CursorStore] = None,
        market_data: Optional[MarketDataService] = None,
    ):
        self.db = db
        self.client = client or BitqueryClient()
        self.archiver = archiver or ResultArchiver(settings.RESULTS_DIR)
        self.cursor_store = cursor_store or CursorStore(settings.RESULTS_DIR)
        self.market_data = market_data or MarketDataService(db, MarketDataSource(self.client))

    async def run_new_tokens(self) -> Dict[str, Any]:
        source = NewTokenSource(self.client)
        cursor = self.cursor_store.load(source.name)

        feed, next_cursor = await source.fetch(cursor)
        self.archiver.archive(source.name, feed.raw)
        self.cursor_store.save(source.name, next_cursor)

        # Token rows are created elsewhere; creations are archived only.
        log.info(f"Number of instructions: {len(feed.tokens)}")
        return {"success": True, "records": len(feed.tokens)}

    async def run_prices(self) -> Dict[str, Any]:
        source = PriceSource(self.client)
        cursor = self.cursor_store.load(source.name)

        feed, next_cursor = await source.fetch(cursor)
        if not feed.received:
            self.cursor_store.save(source.name, next_cursor)
            log.info("Cursor advanced - no trades to process")
            return {"success": True, "records": 0}

        self.archiver.archive(source.name, feed.raw)
        self.cursor_store.save(source.name, next_cursor)

        log.info(f"Found {len(feed.trades)} DEX trades, pushing to store")
        result = PricePipeline(self.db).push(feed)
        return {"success": True, "records": len(feed.trades), **result.as_dict()}

    async def run_market_data(self) -> Dict[str, Any]:
        summary = await self.market_data.refresh()
        return {"success": True, **summary}

    async def run(self, name: PassName) -> Dict[str, Any]:
        runners = {
            "memecoins": self.run_new_tokens,
            "prices": self.run_prices,
            "market-data": self.run_market_data,
        }
        if name not in runners:
            raise ValueError(f"Unsupported pass: {name}")

        # Every record logged while the pass runs carries its name
        with logger.contextualize(pass_=name):
            try:
                return await runners[name]()
            except Exception as exc:
                log.error(f"Pass {name} failed: {exc!r}")
                raise

    async def run_all(self) -> Dict[str, Any]:
        """Run every pass in order; the first failure aborts the remaining passes."""
        started = datetime.now(timezone.utc)
        results: Dict[str, Any] = {}

        for index, name in enumerate(PASSES, start=1):
            log.info(f"Step {index}/{len(PASSES)}: {name}")
            results[name] = await self.run(name)

        elapsed = (datetime.now(timezone.utc) - started).total_seconds()
        log.info(f"All data collection completed in {elapsed:.1f}s")
        return results
