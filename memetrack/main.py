from contextlib import asynccontextmanager

from fastapi import FastAPI

from memetrack.api.routes import etl_router, health_router, prices_router, tokens_router
from memetrack.core.config import settings
from memetrack.core.db import engine
from memetrack.core.logging import get_logger

log = get_logger("memetrack")


@asynccontextmanager
async def lifespan(app: FastAPI):
    log.info(f"Starting application in {settings.ENV.upper()} mode")
    if settings.is_production:
        log.info("Production mode: Debug disabled, docs disabled, stricter logging")
    else:
        log.info("Development mode: Debug enabled, docs available")

    yield

    log.info("Shutting down, disposing database engine...")
    engine.dispose()
    log.info("Application shutdown complete")


app = FastAPI(
    title="Memetrack",
    description="Solana memecoin ingestion job and token/price API",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.docs_enabled else None,
    redoc_url="/redoc" if settings.docs_enabled else None,
    openapi_url="/openapi.json" if settings.docs_enabled else None,
    debug=settings.debug_enabled,
)


app.include_router(etl_router)
app.include_router(health_router)
app.include_router(prices_router)
app.include_router(tokens_router)
