"""Web routes package."""

from fastapi import APIRouter

from housing.web.routes import auth, dashboard, home, properties

web_router = APIRouter()

web_router.include_router(home.router, tags=["web-home"])
web_router.include_router(auth.router, tags=["web-auth"])
web_router.include_router(properties.router, prefix="/properties", tags=["web-properties"])
web_router.include_router(dashboard.router, prefix="/dashboard", tags=["web-dashboard"])
