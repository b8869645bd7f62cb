"""Price routes - manual price updates from the dashboard."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from memetrack.api.deps import get_db
from memetrack.core.logging import get_logger
from memetrack.schemas.api import PriceOut, TokenOut, UpdatePriceData, UpdatePriceRequest, UpdatePriceResponse
from memetrack.services.data_service import DataService

router = APIRouter(prefix="/prices", tags=["prices"])
log = get_logger("price_routes")


@router.post("/update", response_model=UpdatePriceResponse)
def update_price(payload: UpdatePriceRequest, db: Session = Depends(get_db)):
    """
    Insert a price row for a token directly.

    Requires `tokenId` and at least one of `priceUsd` / `priceSol`.
    """
    if not payload.token_id:
        raise HTTPException(status_code=400, detail="Token ID is required")

    if not payload.price_usd and not payload.price_sol:
        raise HTTPException(status_code=400, detail="At least one price (USD or SOL) is required")

    service = DataService(db)
    token = service.get_token(payload.token_id)
    if not token:
        log.error(f"Token not found: {payload.token_id}")
        raise HTTPException(status_code=404, detail="Token not found")

    try:
        price = service.record_manual_price(token, price_usd=payload.price_usd, price_sol=payload.price_sol)
    except SQLAlchemyError as exc:
        db.rollback()
        log.error(f"Error inserting price for token {payload.token_id}: {exc}")
        raise HTTPException(status_code=500, detail="Failed to update price") from exc

    return UpdatePriceResponse(
        success=True,
        message="Price updated successfully",
        data=UpdatePriceData(token=TokenOut.model_validate(token), price=PriceOut.model_validate(price)),
    )
