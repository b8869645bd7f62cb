from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class TokenSearchResult(BaseModel):
    id: int
    name: Optional[str] = None
    symbol: Optional[str] = None
    uri: str
    image: str = ""

    model_config = ConfigDict(from_attributes=True)


class TokenOut(BaseModel):
    id: int
    name: Optional[str] = None
    symbol: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class PriceOut(BaseModel):
    id: int
    token_id: int
    token_uri: Optional[str] = None
    price_usd: Optional[float] = None
    price_sol: Optional[float] = None
    trade_at: Optional[datetime] = None
    timestamp: Optional[datetime] = None
    is_latest: bool

    model_config = ConfigDict(from_attributes=True)


class PriceHistoryResponse(BaseModel):
    token: TokenOut
    data: list[PriceOut]


class UpdatePriceRequest(BaseModel):
    """Manual price update. Field names match the dashboard's payload."""

    token_id: Optional[int] = Field(None, alias="tokenId")
    price_usd: Optional[float] = Field(None, alias="priceUsd")
    price_sol: Optional[float] = Field(None, alias="priceSol")

    model_config = ConfigDict(populate_by_name=True)


class UpdatePriceData(BaseModel):
    token: TokenOut
    price: PriceOut


class UpdatePriceResponse(BaseModel):
    success: bool
    message: str
    data: UpdatePriceData


class HealthResponse(BaseModel):
    database: str


class ETLRunResponse(BaseModel):
    success: bool
    results: dict[str, Any] = Field(default_factory=dict)
    error: Optional[str] = None
