"""
API route modules.

Each module defines routes for one domain area.
"""

from routes.configurator import router as configurator_router
from routes.cart import router as cart_router

__all__ = [
    "configurator_router",
    "cart_router",
]
