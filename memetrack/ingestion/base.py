"""Abstract feed interface for ingestion."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Tuple

from memetrack.core.cursors import Cursor
from .bitquery import BitqueryClient


def isoformat_utc(value: datetime) -> str:
    """Render a timestamp the way Bitquery expects it (``...Z``)."""
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


class BaseFeed(ABC):
    """A polled Bitquery feed driven by a cursor."""

    name: str

    def __init__(self, client: BitqueryClient):
        self.client = client

    @abstractmethod
    async def fetch(self, cursor: Cursor) -> Tuple[Any, Cursor]:
        """Fetch records newer than ``cursor`` and return them with the advanced cursor."""
