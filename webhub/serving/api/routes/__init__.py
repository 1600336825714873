"""
API Routes Module
"""
from .health import router as health_router
from .accounts import router as accounts_router
from .webapps import router as webapps_router
from .reviews import router as reviews_router
from .notifications import router as notifications_router
from .collections import router as collections_router
from .admin import router as admin_router
from .stats import router as stats_router

__all__ = [
    "health_router",
    "accounts_router",
    "webapps_router",
    "reviews_router",
    "notifications_router",
    "collections_router",
    "admin_router",
    "stats_router",
]
