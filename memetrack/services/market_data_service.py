"""Periodic refresh of token supply, market cap and metadata."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import or_, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from memetrack.core.config import settings
from memetrack.core.logging import get_logger
from memetrack.ingestion.market_data import MarketDataSource
from memetrack.models.token import Token
from memetrack.schemas.bitquery import MarketData

log = get_logger("market_data_service")


class MarketDataService:
    """Selects stale tokens and refreshes them from Bitquery.

    Rate limiting is a fixed sleep after every per-token call and between
    batches; there is no retry or backoff.
    """

    def __init__(
        self,
        db: Session,
        source: MarketDataSource,
        limit: Optional[int] = None,
        batch_size: Optional[int] = None,
        stale_after: Optional[timedelta] = None,
        call_delay: Optional[float] = None,
        batch_delay: Optional[float] = None,
    ):
        self.db = db
        self.source = source
        self.limit = limit or settings.MARKET_DATA_LIMIT
        self.batch_size = batch_size or settings.MARKET_DATA_BATCH_SIZE
        self.stale_after = stale_after or timedelta(hours=settings.MARKET_DATA_STALE_HOURS)
        self.call_delay = settings.MARKET_DATA_CALL_DELAY_SECONDS if call_delay is None else call_delay
        self.batch_delay = settings.MARKET_DATA_BATCH_DELAY_SECONDS if batch_delay is None else batch_delay

    def select_candidates(self, now: Optional[datetime] = None) -> List[Token]:
        """Tokens missing market fields or not refreshed within ``stale_after``."""
        cutoff = (now or datetime.now(timezone.utc)) - self.stale_after
        stmt = (
            select(Token)
            .where(
                or_(
                    Token.market_cap.is_(None),
                    Token.total_supply.is_(None),
                    Token.last_updated < cutoff,
                )
            )
            .where(Token.address.is_not(None))
            .order_by(Token.id)
            .limit(self.limit)
        )
        try:
            return list(self.db.execute(stmt).scalars().all())
        except SQLAlchemyError as exc:
            self.db.rollback()
            log.error(f"Error fetching tokens for market data update: {exc}")
            return []

    async def refresh(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        tokens = self.select_candidates(now)
        if not tokens:
            log.info("No tokens found that need market data updates")
            return {"candidates": 0, "refreshed": 0}

        log.info(f"Found {len(tokens)} tokens to update with market data")
        total_batches = (len(tokens) + self.batch_size - 1) // self.batch_size
        refreshed = 0

        for start in range(0, len(tokens), self.batch_size):
            batch = tokens[start : start + self.batch_size]
            log.info(f"Processing batch {start // self.batch_size + 1}/{total_batches}")

            outcomes = await asyncio.gather(*(self._refresh_token(t) for t in batch))
            refreshed += sum(1 for ok in outcomes if ok)

            if start + self.batch_size < len(tokens):
                log.debug(f"Waiting {self.batch_delay}s before next batch...")
                await asyncio.sleep(self.batch_delay)

        log.info(f"Market data update completed. Processed {refreshed} tokens.")
        return {"candidates": len(tokens), "refreshed": refreshed}

    async def _refresh_token(self, token: Token) -> bool:
        label = token.symbol or token.uri
        try:
            log.info(f"Fetching market data for {label} ({token.address})")
            data = await self.source.fetch(token.address)

            if data.has_data:
                self.apply(data)
                log.info(
                    f"Market data stored for {label}: supply={data.supply} "
                    f"market_cap={data.market_cap} name={data.name} symbol={data.symbol}"
                )
                return True

            log.warning(f"No market data available for {label}")
            return False
        except Exception as exc:  # noqa: BLE001
            log.error(f"Error processing token {label}: {exc}")
            return False
        finally:
            await asyncio.sleep(self.call_delay)

    def apply(self, data: MarketData, now: Optional[datetime] = None) -> None:
        """Write fetched fields back to the token identified by mint address."""
        values: Dict[str, Any] = {"last_updated": now or datetime.now(timezone.utc)}
        if data.supply is not None:
            values["total_supply"] = data.supply
        if data.market_cap is not None:
            values["market_cap"] = data.market_cap
        if data.name:
            values["name"] = data.name
        if data.symbol:
            values["symbol"] = data.symbol

        try:
            self.db.execute(update(Token).where(Token.address == data.address).values(**values))
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
