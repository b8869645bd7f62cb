"""Typed views of Bitquery feed responses."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class _BitqueryModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class BlockInfo(_BitqueryModel):
    time: datetime = Field(alias="Time")


class Currency(_BitqueryModel):
    uri: Optional[str] = Field(None, alias="Uri")
    mint_address: Optional[str] = Field(None, alias="MintAddress")
    name: Optional[str] = Field(None, alias="Name")
    symbol: Optional[str] = Field(None, alias="Symbol")


# -----------------------------------------------------------------------------
# Price feed (DEXTrades)
# -----------------------------------------------------------------------------


class TradeBuy(_BitqueryModel):
    price: Optional[float] = Field(None, alias="Price")
    price_in_usd: Optional[float] = Field(None, alias="PriceInUSD")
    currency: Currency = Field(default_factory=Currency, alias="Currency")


class TradeSide(_BitqueryModel):
    buy: TradeBuy = Field(alias="Buy")


class TradeRecord(_BitqueryModel):
    """Latest trade for one bought mint."""

    trade: TradeSide = Field(alias="Trade")
    block: BlockInfo = Field(alias="Block")

    @property
    def block_time(self) -> datetime:
        return self.block.time


class PriceFeed(BaseModel):
    trades: list[TradeRecord]
    raw: dict[str, Any]
    # items in the response, valid or not
    received: int = 0


# -----------------------------------------------------------------------------
# New-token feed (Instructions)
# -----------------------------------------------------------------------------


class ProgramInfo(_BitqueryModel):
    address: Optional[str] = Field(None, alias="Address")
    arguments: list[dict[str, Any]] = Field(default_factory=list, alias="Arguments")


class InstructionInfo(_BitqueryModel):
    program: ProgramInfo = Field(alias="Program")


class TransactionInfo(_BitqueryModel):
    signature: Optional[str] = Field(None, alias="Signature")


class NewTokenRecord(_BitqueryModel):
    """One token-creation instruction."""

    instruction: InstructionInfo = Field(alias="Instruction")
    transaction: TransactionInfo = Field(default_factory=TransactionInfo, alias="Transaction")
    block: BlockInfo = Field(alias="Block")

    @property
    def block_time(self) -> datetime:
        return self.block.time


class NewTokenFeed(BaseModel):
    tokens: list[NewTokenRecord]
    raw: dict[str, Any]
    received: int = 0


# -----------------------------------------------------------------------------
# Market data (TokenSupplyUpdates)
# -----------------------------------------------------------------------------


class SupplyUpdate(_BitqueryModel):
    post_balance: Optional[float] = Field(None, alias="PostBalance")
    post_balance_in_usd: Optional[float] = Field(None, alias="PostBalanceInUSD")
    currency: Currency = Field(default_factory=Currency, alias="Currency")


class SupplyUpdateRecord(_BitqueryModel):
    update: SupplyUpdate = Field(alias="TokenSupplyUpdate")


class MarketData(BaseModel):
    address: str
    supply: Optional[float] = None
    market_cap: Optional[float] = None
    name: Optional[str] = None
    symbol: Optional[str] = None

    @property
    def has_data(self) -> bool:
        return any(v not in (None, "") for v in (self.supply, self.market_cap, self.name, self.symbol))

    @classmethod
    def from_update(cls, address: str, record: Optional[SupplyUpdateRecord]) -> "MarketData":
        if record is None:
            return cls(address=address)
        update = record.update
        return cls(
            address=address,
            supply=update.post_balance,
            market_cap=update.post_balance_in_usd,
            name=update.currency.name or None,
            symbol=update.currency.symbol or None,
        )
