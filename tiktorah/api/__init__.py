from tiktorah.api.feed import router as feed_router
from tiktorah.api.health import router as health_router

__all__ = [
    "feed_router",
    "health_router",
]
