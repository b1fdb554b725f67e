"""
FastAPI Main Application
Entry point for the ShopCart API.
"""

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from .config import get_settings
from .errors import setup_error_handlers
from .middleware import RequestLoggingMiddleware, RequestTimingMiddleware
from .routers import (
    health_router,
    addresses_router,
    orders_router,
    checkout_router,
    user_router,
    user_data_router,
    admin_accounts_router,
    admin_users_router,
    admin_stats_router,
    admin_notifications_router,
    admin_subscriptions_router,
    admin_reviews_router,
    admin_employees_router,
    admin_withdrawals_router,
    employee_router,
    reviews_router,
    contact_router,
    analytics_router,
    seo_router,
)
from .services.cache_service import get_cache_service

logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Runs on startup and shutdown to initialize/cleanup resources.
    """
    logger.info("Starting ShopCart API...")

    settings = get_settings()
    if not settings.sanity_project_id:
        logger.warning("SANITY_PROJECT_ID is not set; document routes will fail")
    if not settings.clerk_secret_key:
        logger.warning("CLERK_SECRET_KEY is not set; authenticated routes will return 401")
    if not settings.admin_emails:
        logger.warning("ADMIN_EMAILS is empty; admin routes are unreachable")

    cache = get_cache_service()
    logger.info(f"Response cache {'enabled' if cache.enabled else 'disabled'}")

    yield

    logger.info("Shutting down ShopCart API...")


def create_app() -> FastAPI:
    """
    Create and configure FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description=settings.description,
        version=settings.version,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(RequestTimingMiddleware)
    app.add_middleware(RequestLoggingMiddleware)

    setup_error_handlers(app)

    app.include_router(health_router)
    app.include_router(seo_router)
    app.include_router(addresses_router)
    app.include_router(orders_router)
    app.include_router(checkout_router)
    app.include_router(user_router)
    app.include_router(user_data_router)
    app.include_router(admin_accounts_router)
    app.include_router(admin_users_router)
    app.include_router(admin_stats_router)
    app.include_router(admin_notifications_router)
    app.include_router(admin_subscriptions_router)
    app.include_router(admin_reviews_router)
    app.include_router(admin_employees_router)
    app.include_router(admin_withdrawals_router)
    app.include_router(employee_router)
    app.include_router(reviews_router)
    app.include_router(contact_router)
    app.include_router(analytics_router)

    @app.get("/")
    async def root():
        """API information."""
        return {
            "name": settings.app_name,
            "version": settings.version,
            "description": settings.description,
            "endpoints": {
                "health": "/health",
                "metrics": "/metrics",
                "docs": "/docs",
                "sitemap": "/sitemap.xml",
            },
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "shopcart.api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        log_level=settings.log_level.lower(),
    )
