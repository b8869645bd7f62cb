"""Per-feed fetch cursors for incremental ingestion."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Iterable, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from memetrack.core.logging import get_logger

log = get_logger("cursors")

DEFAULT_SINCE = datetime(2024, 12, 20, 3, 46, 24, tzinfo=timezone.utc)
CURSOR_FILENAME = "metadata.json"


class Cursor(BaseModel):
    """High-water mark of one feed.

    ``since_timestamp`` is the lower bound used by the last fetch and
    ``latest_fetch_timestamp`` the newest block time it observed.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    since_timestamp: datetime = Field(default=DEFAULT_SINCE, alias="sinceTimestamp")
    latest_fetch_timestamp: Optional[datetime] = Field(default=None, alias="latestFetchTimestamp")

    def lower_bound(self) -> datetime:
        """Block time the next query starts from."""
        base = self.latest_fetch_timestamp or self.since_timestamp
        return base + timedelta(seconds=1)

    def advance(self, observed: Iterable[datetime], now: Optional[datetime] = None) -> "Cursor":
        """Return the cursor after a successful fetch.

        With no observations the cursor moves to ``now`` so an empty window
        is not scanned again on the next run.
        """
        times = list(observed)
        latest = max(times) if times else (now or datetime.now(timezone.utc))
        return Cursor(since_timestamp=self.lower_bound(), latest_fetch_timestamp=latest)

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class CursorStore:
    """Persists one cursor file per feed under the results directory."""

    def __init__(self, results_dir: str | Path = "results"):
        self.results_dir = Path(results_dir)

    def _path(self, feed: str) -> Path:
        return self.results_dir / feed / CURSOR_FILENAME

    def load(self, feed: str) -> Cursor:
        path = self._path(feed)
        if not path.exists():
            log.info(f"No cursor for {feed}; starting from {DEFAULT_SINCE.isoformat()}")
            return Cursor()

        try:
            with open(path, "r", encoding="utf-8") as f:
                return Cursor.model_validate(json.load(f))
        except (OSError, ValueError, ValidationError) as exc:
            log.error(f"Unreadable cursor file {path}: {exc}; using default")
            return Cursor()

    def save(self, feed: str, cursor: Cursor) -> None:
        path = self._path(feed)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(cursor.to_json(), f, indent=2)
        log.info(f"Cursor saved for {feed}: {cursor.to_json()}")

    def delete(self, feed: str) -> None:
        path = self._path(feed)
        if path.exists():
            path.unlink()
