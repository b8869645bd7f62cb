"""Token routes - search and price history."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from memetrack.api.deps import get_db
from memetrack.core.logging import get_logger
from memetrack.schemas.api import PriceHistoryResponse, PriceOut, TokenOut, TokenSearchResult
from memetrack.services.data_service import DataService

router = APIRouter(prefix="/tokens", tags=["tokens"])
log = get_logger("token_routes")


@router.get("/search", response_model=list[TokenSearchResult])
def search_tokens(
    search_term: Optional[str] = Query(None, alias="searchTerm", description="Partial symbol or name"),
    db: Session = Depends(get_db),
):
    """Search tokens by symbol or name (case-insensitive, max 10 results)."""
    request_id = uuid.uuid4().hex[:12]
    log.info(f"[{request_id}] Search term: {search_term}")

    if not search_term:
        log.warning(f"[{request_id}] No search term provided")
        raise HTTPException(status_code=400, detail="Search term is required")

    tokens = DataService(db).search_tokens(search_term)
    log.info(f"[{request_id}] {len(tokens)} tokens matched")
    return [TokenSearchResult.model_validate(t) for t in tokens]


@router.get("/{token_id}/prices", response_model=PriceHistoryResponse)
def get_token_prices(
    token_id: int,
    limit: int = Query(100, ge=1, le=1000, description="Number of price rows to return"),
    db: Session = Depends(get_db),
):
    """Price observations of one token, newest first."""
    service = DataService(db)
    token = service.get_token(token_id)
    if not token:
        raise HTTPException(status_code=404, detail=f"Token '{token_id}' not found")

    prices = service.get_prices(token_id, limit=limit)
    return PriceHistoryResponse(
        token=TokenOut.model_validate(token),
        data=[PriceOut.model_validate(p) for p in prices],
    )
