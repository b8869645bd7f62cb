"""ETL routes - Trigger ingestion runs from an external scheduler."""

from typing import Literal

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from memetrack.api.deps import get_db
from memetrack.core.logging import get_logger
from memetrack.schemas.api import ETLRunResponse
from memetrack.services.etl_service import ETLService

router = APIRouter(prefix="/etl", tags=["etl"])
log = get_logger("etl_routes")


def get_etl_service(db: Session = Depends(get_db)) -> ETLService:
    return ETLService(db)


@router.post("/run", response_model=ETLRunResponse)
async def trigger_etl_all(service: ETLService = Depends(get_etl_service)):
    """
    Run one full ingestion pass.

    Steps run strictly in order (memecoins, prices, market-data); the first
    failing step aborts the rest and the error is returned with HTTP 500.
    """
    log.info("ETL triggered for all passes")
    try:
        results = await service.run_all()
    except Exception as exc:  # noqa: BLE001
        log.exception(f"ETL run failed: {exc}")
        return JSONResponse(status_code=500, content=ETLRunResponse(success=False, error=str(exc)).model_dump())

    return ETLRunResponse(success=True, results=results)


@router.post("/run/{name}", response_model=ETLRunResponse)
async def trigger_etl_pass(
    name: Literal["memecoins", "prices", "market-data"],
    service: ETLService = Depends(get_etl_service),
):
    """Run a single ingestion pass."""
    log.info(f"ETL triggered for pass: {name}")
    try:
        result = await service.run(name)
    except Exception as exc:  # noqa: BLE001
        log.exception(f"ETL pass {name} failed: {exc}")
        return JSONResponse(status_code=500, content=ETLRunResponse(success=False, error=str(exc)).model_dump())

    return ETLRunResponse(success=True, results={name: result})
