"""
API routers package.
"""
from schoolshare.routers.auth import router as auth_router
from schoolshare.routers.events import router as events_router
from schoolshare.routers.health import router as health_router
from schoolshare.routers.share import router as share_router
from schoolshare.routers.shares import router as shares_router
from schoolshare.routers.tagging import router as tagging_router

__all__ = [
    "auth_router",
    "events_router",
    "health_router",
    "share_router",
    "shares_router",
    "tagging_router",
]
