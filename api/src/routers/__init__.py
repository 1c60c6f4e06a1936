# FastAPI Routers
from src.routers.health import router as health_router
from src.routers.hooks import router as hooks_router
from src.routers.webhook_endpoints import router as webhook_endpoints_router

__all__ = [
    "health_router",
    "hooks_router",
    "webhook_endpoints_router",
]
