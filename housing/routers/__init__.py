"""
API route handlers for the Student Housing application.
Provides organized routing for different API endpoints.
"""

from .auth import router as auth_router
from .listings import router as listings_router
from .amenities import router as amenities_router

__all__ = ["auth_router", "listings_router", "amenities_router"]
