"""New pump.fun token creations."""

from __future__ import annotations

from typing import Tuple

from memetrack.core.cursors import Cursor
from memetrack.core.logging import get_logger
from memetrack.schemas.bitquery import NewTokenFeed, NewTokenRecord
from .base import BaseFeed, isoformat_utc
from .bitquery import extract_feed, observed_block_times, parse_records

log = get_logger("ingestion.memecoins")

NEW_TOKENS_QUERY = """
query ($since: DateTime) {
  Solana {
    Instructions(
      where: {
        Instruction: {Program: {Method: {is: "create"}, Name: {is: "pump"}}}
        Block: {Time: {since: $since}}
      }
      orderBy: {descending: Block_Time}
    ) {
      Instruction {
        Program {
          Address
          Arguments {
            Name
            Type
            Value {
              ... on Solana_ABI_Json_Value_Arg { json }
              ... on Solana_ABI_Float_Value_Arg { float }
              ... on Solana_ABI_Boolean_Value_Arg { bool }
              ... on Solana_ABI_Bytes_Value_Arg { hex }
              ... on Solana_ABI_BigInt_Value_Arg { bigInteger }
              ... on Solana_ABI_Address_Value_Arg { address }
              ... on Solana_ABI_String_Value_Arg { string }
              ... on Solana_ABI_Integer_Value_Arg { integer }
            }
          }
        }
      }
      Transaction {
        Signature
      }
      Block {
        Time
      }
    }
  }
}
"""


class NewTokenSource(BaseFeed):
    """Token-creation instructions of the pump program."""

    name = "memecoins"

    async def fetch(self, cursor: Cursor) -> Tuple[NewTokenFeed, Cursor]:
        since = cursor.lower_bound()
        log.info(f"Fetching new tokens since {isoformat_utc(since)}")

        payload = await self.client.execute(NEW_TOKENS_QUERY, {"since": isoformat_utc(since)})
        items = extract_feed(payload, "Instructions")
        tokens = parse_records(items, NewTokenRecord, self.name)

        next_cursor = cursor.advance(observed_block_times(items))
        log.info(f"Fetched {len(tokens)} new token instructions (raw={len(items)})")
        return NewTokenFeed(tokens=tokens, raw=payload, received=len(items)), next_cursor
