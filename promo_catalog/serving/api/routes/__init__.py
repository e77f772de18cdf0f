"""
API Routes Module
"""
from .health import router as health_router
from .catalog import router as catalog_router
from .admin import router as admin_router

__all__ = [
    "health_router",
    "catalog_router",
    "admin_router",
]
