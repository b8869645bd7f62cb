"""ETL entrypoint - Standalone script for one scheduled ingestion run.

Usage:
    python -m memetrack.etl_entrypoint                  # Run all passes
    python -m memetrack.etl_entrypoint memecoins        # New-token feed only
    python -m memetrack.etl_entrypoint prices           # Price feed only
    python -m memetrack.etl_entrypoint market-data      # Market data refresh only
"""

import asyncio
import sys
from typing import Any, Dict, Optional

from memetrack.core.db import SessionLocal
from memetrack.core.logging import get_logger
from memetrack.services.etl_service import PASSES, ETLService, PassName

logger = get_logger("etl_entrypoint")


async def run_pass(name: PassName) -> Dict[str, Any]:
    """Run a single ingestion pass."""
    logger.info(f"Starting ETL pass: {name}")
    with SessionLocal() as db:
        result = await ETLService(db).run(name)
        logger.info(f"ETL pass completed for {name}: {result}")
        return result


async def run_all_passes() -> Dict[str, Any]:
    """Run every pass in order."""
    logger.info("Running ETL for all passes")
    with SessionLocal() as db:
        return await ETLService(db).run_all()


def main(argv: Optional[list] = None) -> None:
    """Main entry point for one ingestion run; exits 1 on failure."""
    argv = sys.argv[1:] if argv is None else argv
    logger.info("Starting Bitquery data collection...")

    if argv:
        name = argv[0]
        if name not in PASSES:
            logger.error(f"Invalid pass: {name}. Must be one of: {', '.join(PASSES)}")
            sys.exit(2)
        job = run_pass(name)  # type: ignore[arg-type]
    else:
        job = run_all_passes()

    try:
        result = asyncio.run(job)
    except Exception as exc:  # noqa: BLE001
        logger.exception(f"Error during data collection: {exc}")
        sys.exit(1)

    logger.info(f"ETL completed: {result}")


if __name__ == "__main__":
    main()
