"""Data Service - Query logic for the token and price endpoints."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from memetrack.core.logging import get_logger
from memetrack.models.price import Price
from memetrack.models.token import Token

log = get_logger("data_service")

SEARCH_LIMIT = 10


class DataService:
    """Reads tokens/prices and records manual price updates."""

    def __init__(self, db: Session):
        self.db = db

    # -------------------------------------------------------------------------
    # Tokens
    # -------------------------------------------------------------------------
    def search_tokens(self, term: str, limit: int = SEARCH_LIMIT) -> List[Token]:
        """Case-insensitive partial match on symbol or name."""
        pattern = f"%{term}%"
        stmt = (
            select(Token)
            .where(or_(Token.symbol.ilike(pattern), Token.name.ilike(pattern)))
            .order_by(Token.id)
            .limit(limit)
        )
        return list(self.db.execute(stmt).scalars().all())

    def get_token(self, token_id: int) -> Optional[Token]:
        return self.db.get(Token, token_id)

    # -------------------------------------------------------------------------
    # Prices
    # -------------------------------------------------------------------------
    def get_prices(self, token_id: int, limit: int = 100) -> List[Price]:
        """Most recent price rows of a token, newest first."""
        stmt = (
            select(Price)
            .where(Price.token_id == token_id)
            .order_by(Price.trade_at.desc().nullslast(), Price.id.desc())
            .limit(limit)
        )
        return list(self.db.execute(stmt).scalars().all())

    def record_manual_price(
        self,
        token: Token,
        price_usd: Optional[float] = None,
        price_sol: Optional[float] = None,
    ) -> Price:
        """Insert one price row directly, bypassing the ingestion pipeline."""
        price = Price(
            token_id=token.id,
            price_usd=price_usd,
            price_sol=price_sol,
            trade_at=datetime.now(timezone.utc),
            is_latest=True,
        )
        self.db.add(price)
        self.db.commit()
        self.db.refresh(price)
        log.info(f"Updated price for {token.symbol} (ID: {token.id}): USD {price_usd or 'N/A'}, SOL {price_sol or 'N/A'}")
        return price
