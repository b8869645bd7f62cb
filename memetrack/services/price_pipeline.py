"""Normalizes DEX trades into price rows and appends them to the store."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import insert, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from memetrack.core.config import settings
from memetrack.core.logging import get_logger
from memetrack.models.price import Price
from memetrack.models.token import Token
from memetrack.schemas.bitquery import PriceFeed, TradeRecord

log = get_logger("price_pipeline")


def sanitize(value: Any) -> Any:
    """Strip NUL characters, which Postgres text columns reject."""
    if isinstance(value, str):
        return value.replace("\x00", "")
    return value


@dataclass
class PriceCandidate:
    uri: str
    mint_address: Optional[str]
    name: Optional[str]
    symbol: Optional[str]
    price_usd: Optional[float]
    price_sol: Optional[float]
    block_time: datetime


@dataclass
class TokenPatch:
    token_id: int
    name: Optional[str]
    symbol: Optional[str]
    last_updated: datetime

    def values(self) -> Dict[str, Any]:
        values: Dict[str, Any] = {"last_updated": self.last_updated}
        if self.name:
            values["name"] = self.name
        if self.symbol:
            values["symbol"] = self.symbol
        return values


@dataclass
class PushResult:
    inserted: int = 0
    skipped: int = 0
    missing: int = 0
    failed_batches: int = 0
    token_updates: int = 0
    token_update_failures: int = 0

    def as_dict(self) -> Dict[str, int]:
        return asdict(self)


def normalize_trades(trades: Iterable[TradeRecord]) -> Tuple[List[PriceCandidate], int]:
    """Turn trades into price candidates; returns (candidates, skipped)."""
    candidates: List[PriceCandidate] = []
    skipped = 0

    for trade in trades:
        buy = trade.trade.buy
        uri = sanitize(buy.currency.uri)
        if not uri:
            log.warning("Skipping record with missing URI")
            skipped += 1
            continue

        if buy.price is None and buy.price_in_usd is None:
            log.warning(f"Skipping record without price: uri={uri}")
            skipped += 1
            continue

        candidates.append(
            PriceCandidate(
                uri=uri,
                mint_address=sanitize(buy.currency.mint_address),
                name=sanitize(buy.currency.name),
                symbol=sanitize(buy.currency.symbol),
                price_usd=buy.price_in_usd,
                price_sol=buy.price,
                block_time=trade.block_time,
            )
        )

    return candidates, skipped


class PricePipeline:
    """Appends price rows in batches and patches token metadata.

    Price rows are never deduplicated and every insert carries
    ``is_latest=True``; rows already in the store are left untouched.
    """

    def __init__(self, db: Session, batch_size: Optional[int] = None):
        self.db = db
        self.batch_size = batch_size or settings.PRICE_BATCH_SIZE

    def push(self, feed: PriceFeed) -> PushResult:
        candidates, skipped = normalize_trades(feed.trades)
        result = PushResult(skipped=skipped)

        log.info(f"Processing {len(candidates)} records in batches of {self.batch_size}...")
        for start in range(0, len(candidates), self.batch_size):
            self._process_batch(start, candidates[start : start + self.batch_size], result)

        log.info(f"Price push finished: {result.as_dict()}")
        return result

    def lookup_token_ids(self, uris: List[str]) -> Dict[str, int]:
        """Map token uri to id with a single IN query."""
        stmt = select(Token.id, Token.uri).where(Token.uri.in_(uris))
        return {uri: token_id for token_id, uri in self.db.execute(stmt).all()}

    def _process_batch(self, start: int, batch: List[PriceCandidate], result: PushResult) -> None:
        try:
            uri_to_id = self.lookup_token_ids(sorted({c.uri for c in batch}))
        except SQLAlchemyError as exc:
            self.db.rollback()
            log.error(f"Error fetching tokens for batch starting at index {start}: {exc}")
            result.failed_batches += 1
            return

        rows: List[Dict[str, Any]] = []
        patches: List[TokenPatch] = []
        for candidate in batch:
            token_id = uri_to_id.get(candidate.uri)
            if token_id is None:
                log.warning(f"No token found for uri={candidate.uri}; dropping price record")
                result.missing += 1
                continue

            rows.append(
                {
                    "token_id": token_id,
                    "token_uri": candidate.uri,
                    "price_usd": candidate.price_usd,
                    "price_sol": candidate.price_sol,
                    "trade_at": candidate.block_time,
                    "timestamp": candidate.block_time,
                    "is_latest": True,
                }
            )
            if candidate.name or candidate.symbol:
                patches.append(
                    TokenPatch(
                        token_id=token_id,
                        name=candidate.name,
                        symbol=candidate.symbol,
                        last_updated=candidate.block_time,
                    )
                )

        if not rows:
            log.info(f"Batch starting at index {start} had no matching tokens")
            return

        try:
            self.db.execute(insert(Price), rows)
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            log.error(f"Error inserting batch starting at index {start}: {exc}")
            result.failed_batches += 1
            return

        result.inserted += len(rows)
        self._drain_token_patches(patches, result)
        log.info(f"Batch starting at index {start} inserted {len(rows)} prices")

    def _drain_token_patches(self, patches: List[TokenPatch], result: PushResult) -> None:
        """Apply best-effort token patches; each failure is isolated and logged."""
        for patch in patches:
            try:
                with self.db.begin_nested():
                    self._apply_token_patch(patch)
                result.token_updates += 1
            except SQLAlchemyError as exc:
                log.warning(f"Could not update token {patch.token_id}: {exc}")
                result.token_update_failures += 1

        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            log.warning(f"Could not commit token updates: {exc}")
            result.token_update_failures += result.token_updates
            result.token_updates = 0

    def _apply_token_patch(self, patch: TokenPatch) -> None:
        self.db.execute(update(Token).where(Token.id == patch.token_id).values(**patch.values()))
