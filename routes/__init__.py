"""
API route modules.

Each module defines routes for one domain area.
"""

from routes.baskets import router as baskets_router
from routes.lots import router as lots_router

__all__ = [
    "baskets_router",
    "lots_router",
]
