from memetrack.api.routes.etl import router as etl_router
from memetrack.api.routes.health import router as health_router
from memetrack.api.routes.prices import router as prices_router
from memetrack.api.routes.tokens import router as tokens_router

__all__ = ["etl_router", "health_router", "prices_router", "tokens_router"]
