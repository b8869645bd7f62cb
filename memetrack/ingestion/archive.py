"""Raw response archive, kept for audit and replay."""

from __future__ import annotations

import json
import time
from pathlib import Path
from typing import Any, Optional

from memetrack.core.logging import get_logger

log = get_logger("ingestion.archive")


class ResultArchiver:
    """Writes each raw response to ``<results_dir>/<feed>/<feed>-<epoch-ms>.json``.

    Archiving is a debugging side channel: write failures are logged and
    never fail the run.
    """

    def __init__(self, results_dir: str | Path = "results"):
        self.results_dir = Path(results_dir)
        self._last_stamp = 0

    def _next_stamp(self) -> int:
        stamp = max(int(time.time() * 1000), self._last_stamp + 1)
        self._last_stamp = stamp
        return stamp

    def archive(self, feed: str, body: Any) -> Optional[Path]:
        feed_dir = self.results_dir / feed
        path = feed_dir / f"{feed}-{self._next_stamp()}.json"
        try:
            feed_dir.mkdir(parents=True, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                json.dump(body, f, indent=2, default=str)
        except (OSError, TypeError, ValueError) as exc:
            log.error(f"Failed to archive {feed} response to {path}: {exc}")
            return None

        log.info(f"Results saved to: {path}")
        return path
