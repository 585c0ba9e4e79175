"""Stofhamp FastAPI Application Entry Point."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .config import get_settings
from .database import close_db, init_db
from .routers import (
    admin_router,
    auth_router,
    categories_router,
    contact_router,
    conversations_router,
    favorites_router,
    health_router,
    listings_router,
    materials_router,
    messages_router,
    profile_router,
    upload_router,
)
from .services.cache import Cache
from .utils.logger import setup_logger

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    yield
    await close_db()


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query"))
    message = first.get("msg", "Invalid value")
    return f"{field}: {message}" if field else message


def register_exception_handlers(app: FastAPI) -> None:
    """Render every error in the {"success": false, "message": ...} envelope."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "message": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"success": False, "message": _validation_message(exc)},
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
        return JSONResponse(
            status_code=500,
            content={"success": False, "message": "Something went wrong, please try again later"},
        )


def create_app(cache: Optional[Cache] = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Stofhamp",
        description="Marketplace API for recycled and surplus materials",
        version=__version__,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        lifespan=lifespan,
    )

    # One cache per application, shared by every request it serves
    if cache is None:
        cache = Cache(
            default_ttl=settings.cache_default_ttl,
            composite_ttl=settings.cache_composite_ttl,
            batch_ttl=settings.cache_batch_ttl,
            message_ttl=settings.cache_message_ttl,
        )
    app.state.cache = cache

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # Include routers with /api prefix
    app.include_router(health_router, prefix="/api")
    app.include_router(auth_router, prefix="/api")
    app.include_router(profile_router, prefix="/api")
    app.include_router(categories_router, prefix="/api")
    app.include_router(materials_router, prefix="/api")
    app.include_router(listings_router, prefix="/api")
    app.include_router(favorites_router, prefix="/api")
    app.include_router(conversations_router, prefix="/api")
    app.include_router(messages_router, prefix="/api")
    app.include_router(upload_router, prefix="/api")
    app.include_router(contact_router, prefix="/api")
    app.include_router(admin_router, prefix="/api")

    return app


setup_logger()
app = create_app()


def run():
    """Run the server."""
    settings = get_settings()
    logger.info(f"Stofhamp running at http://localhost:{settings.port}")
    uvicorn.run(
        "stofhamp.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    run()
