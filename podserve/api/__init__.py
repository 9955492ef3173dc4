"""API routers for podserve."""

from podserve.api.routes_feed import router as feed_router
from podserve.api.routes_files import router as files_router
from podserve.api.routes_health import router as health_router
from podserve.api.routes_static import router as static_router

__all__ = [
    "feed_router",
    "files_router",
    "health_router",
    "static_router",
]
