"""
FastAPI application entry point.
Main application setup and configuration.
"""

from typing import Optional
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from contextlib import asynccontextmanager
from pathlib import Path
from pydantic import ValidationError as PydanticValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.sessions import SessionMiddleware
import logging

from housing.backend import BackendError, create_backend_factory
from housing.config import Settings, get_settings
from housing.middleware import RequestContextMiddleware, SessionGuardMiddleware
from housing.routers import amenities_router, auth_router, listings_router
from housing.services.error_handler import ErrorHandlerService
from housing.utils.exceptions import APIException
from housing.web.dependencies import render
from housing.web.routes import web_router

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).resolve().parent


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Opens the backend connections on startup and releases them on shutdown.
    """
    settings: Settings = app.state.settings
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.environment}, backend: {settings.backend_mode}")

    await app.state.backend.startup()
    if not await app.state.backend.health():
        logger.error("Backend is not reachable on startup")

    yield

    logger.info("Shutting down application")
    await app.state.backend.shutdown()


def _is_page_request(request: Request) -> bool:
    """Requests answered with HTML rather than JSON errors."""
    settings: Settings = request.app.state.settings
    path = request.url.path
    return not path.startswith((settings.api_v1_prefix, "/health", "/static", settings.storage_public_path))


def _render_error_page(request: Request, status_code: int, message: str):
    if status_code == 404:
        return render(request, "not_found.html", {}, status_code=404)
    return render(request, "error.html", {"message": message}, status_code=status_code)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Explicit settings, used by tests; defaults to the environment

    Returns:
        Configured FastAPI application
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="""
        Student housing listings: landlords publish off-campus accommodation, students browse it.

        ## Features

        * **Listings**: Create listings with images, map location and amenities
        * **Search**: Filter listings by location, type and price range
        * **Authentication**: Sessions issued by the backend, landlord and student roles

        ## Authentication

        Use the `/api/v1/auth/login` endpoint to obtain a token, then include it in the
        Authorization header as `Bearer <token>`. Pages use session cookies instead.
        """,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_tags=[
            {
                "name": "Authentication",
                "description": "Sign-in, sign-up and session management"
            },
            {
                "name": "Listings",
                "description": "Listing search, details and creation"
            },
            {
                "name": "Amenities",
                "description": "Amenities a listing can offer"
            },
            {
                "name": "Health",
                "description": "System health endpoints"
            }
        ],
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.backend = create_backend_factory(settings)

    # Innermost first: the guard needs the session and request ID set up around it
    app.add_middleware(SessionGuardMiddleware, settings=settings)
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret_key,
        session_cookie="housing_session",
        max_age=86400 * 7,  # 7 days
        same_site="lax",
        https_only=settings.is_production,
    )
    app.add_middleware(
        RequestContextMiddleware,
        max_request_size=settings.max_request_size,
        max_upload_size=settings.max_upload_size,
        enable_request_logging=settings.debug,
        quiet_prefixes=("/static", settings.storage_public_path)
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID"],
    )

    # Static assets, and blobs written by the local backend
    app.mount("/static", StaticFiles(directory=str(BASE_DIR / "static")), name="static")
    if settings.uses_local_backend:
        # The directory is created by the backend on startup
        app.mount(
            settings.storage_public_path,
            StaticFiles(directory=settings.storage_dir, check_dir=False),
            name="storage"
        )

    # Include API routers
    app.include_router(auth_router, prefix=settings.api_v1_prefix)
    app.include_router(listings_router, prefix=settings.api_v1_prefix)
    app.include_router(amenities_router, prefix=settings.api_v1_prefix)

    # Include web routes (Jinja2 frontend)
    app.include_router(web_router)

    _register_exception_handlers(app)

    @app.get("/health", tags=["Health"])
    async def health_check():
        """
        Health check endpoint with a backend connectivity test.
        """
        backend_healthy = await app.state.backend.health()
        body = {
            "status": "healthy" if backend_healthy else "unhealthy",
            "service": settings.app_name,
            "version": settings.app_version,
            "environment": settings.environment,
            "backend": settings.backend_mode,
        }
        if not backend_healthy:
            logger.error("Health check failed: backend unreachable")
            return JSONResponse(status_code=503, content=body)
        return body

    return app


def _register_exception_handlers(app: FastAPI) -> None:
    """Global exception handlers using ErrorHandlerService; pages get HTML instead of JSON."""

    @app.exception_handler(APIException)
    async def api_exception_handler(request: Request, exc: APIException):
        """Handle custom API exceptions with structured error responses."""
        if _is_page_request(request):
            return _render_error_page(request, exc.status_code, exc.detail)
        return ErrorHandlerService.handle_api_exception(exc, request)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle FastAPI request validation errors with detailed field information."""
        return ErrorHandlerService.handle_validation_error(exc, request)

    @app.exception_handler(PydanticValidationError)
    async def pydantic_validation_exception_handler(request: Request, exc: PydanticValidationError):
        """Handle Pydantic validation errors with detailed field information."""
        return ErrorHandlerService.handle_validation_error(exc, request)

    @app.exception_handler(BackendError)
    async def backend_exception_handler(request: Request, exc: BackendError):
        """Handle backend failures that escaped the service layer."""
        if _is_page_request(request):
            logger.error(f"Backend error on page {request.url.path}: {exc}")
            return _render_error_page(request, 502, "The listing service is unavailable right now.")
        return ErrorHandlerService.handle_backend_error(exc, request)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Handle HTTP exceptions with structured error responses."""
        if _is_page_request(request):
            return _render_error_page(request, exc.status_code, str(exc.detail))
        return ErrorHandlerService.handle_http_exception(exc, request)

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions with secure error responses."""
        return ErrorHandlerService.handle_unexpected_error(exc, request)


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "housing.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
