"""Latest pump.fun DEX trade price per bought mint."""

from __future__ import annotations

from typing import Tuple

from memetrack.core.cursors import Cursor
from memetrack.core.logging import get_logger
from memetrack.schemas.bitquery import PriceFeed, TradeRecord
from .base import BaseFeed, isoformat_utc
from .bitquery import extract_feed, observed_block_times, parse_records

log = get_logger("ingestion.prices")

# System program address reported as the "native" SOL mint
NATIVE_MINT = "11111111111111111111111111111111"

PRICES_QUERY = """
query ($since: DateTime, $excluded: [String!]) {
  Solana {
    DEXTrades(
      limitBy: {by: Trade_Buy_Currency_MintAddress, count: 1}
      orderBy: {descending: Block_Time}
      where: {
        Trade: {
          Dex: {ProtocolName: {is: "pump"}}
          Buy: {Currency: {MintAddress: {notIn: $excluded}}}
        }
        Transaction: {Result: {Success: true}}
        Block: {Time: {since: $since}}
      }
    ) {
      Trade {
        Buy {
          Price
          PriceInUSD
          Currency {
            Uri
            MintAddress
            Name
            Symbol
          }
        }
      }
      Block {
        Time
      }
    }
  }
}
"""


class PriceSource(BaseFeed):
    """DEX trades limited to one (the newest) per bought currency."""

    name = "prices"

    async def fetch(self, cursor: Cursor) -> Tuple[PriceFeed, Cursor]:
        since = cursor.lower_bound()
        log.info(f"Fetching DEX trades since {isoformat_utc(since)}")

        payload = await self.client.execute(
            PRICES_QUERY,
            {"since": isoformat_utc(since), "excluded": [NATIVE_MINT]},
        )
        items = extract_feed(payload, "DEXTrades")
        trades = parse_records(items, TradeRecord, self.name)

        if not items:
            log.warning(f"No DEX trades found between {isoformat_utc(since)} and now")

        next_cursor = cursor.advance(observed_block_times(items))
        log.info(f"Fetched {len(trades)} DEX trades (raw={len(items)})")
        return PriceFeed(trades=trades, raw=payload, received=len(items)), next_cursor
