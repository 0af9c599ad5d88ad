from atk_insight.routers.health import router as health_router
from atk_insight.routers.inventory import router as inventory_router

__all__ = [
    "health_router",
    "inventory_router",
]
