"""Per-token supply and market cap lookups."""

from __future__ import annotations

from memetrack.core.logging import get_logger
from memetrack.schemas.bitquery import MarketData, SupplyUpdateRecord
from .bitquery import BitqueryClient, extract_feed, parse_records

log = get_logger("ingestion.market_data")

MARKET_DATA_QUERY = """
query ($mint: String) {
  Solana {
    TokenSupplyUpdates(
      where: {TokenSupplyUpdate: {Currency: {MintAddress: {is: $mint}}}}
      limit: {count: 1}
      orderBy: {descending: Block_Time}
    ) {
      TokenSupplyUpdate {
        PostBalance
        PostBalanceInUSD
        Currency {
          MintAddress
          Name
          Symbol
        }
      }
    }
  }
}
"""


class MarketDataSource:
    """Reads the newest supply update of a mint."""

    name = "market-data"

    def __init__(self, client: BitqueryClient):
        self.client = client

    async def fetch(self, address: str) -> MarketData:
        payload = await self.client.execute(MARKET_DATA_QUERY, {"mint": address})
        items = extract_feed(payload, "TokenSupplyUpdates")
        records = parse_records(items, SupplyUpdateRecord, self.name)
        if not records:
            log.info(f"No supply updates found for {address}")
            return MarketData(address=address)
        return MarketData.from_update(address, records[0])
