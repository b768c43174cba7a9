"""Main FastAPI application."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from storefront.api.dependencies import AppServices, ChatbotFactory
from storefront.api.middleware import (
    LoggingMiddleware,
    RateLimitMiddleware,
    SessionRefreshMiddleware,
)
from storefront.api.routes import router
from storefront.config import Settings, get_settings
from storefront.models.request import ErrorResponse
from storefront.database.supabase import SupabaseClient
from storefront.utils.logger import setup_logging

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    *,
    supabase_transport: Optional[httpx.AsyncBaseTransport] = None,
    chatbot_factory: Optional[ChatbotFactory] = None,
) -> FastAPI:
    """Build the application.

    Args:
        settings: Defaults to the environment-derived settings.
        supabase_transport: Optional httpx transport for the Supabase client.
        chatbot_factory: Optional replacement for ``ChatbotService.from_settings``.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager."""
        logger.info("Starting %s v%s (%s)", settings.app_name, settings.app_version, settings.environment)
        supabase = SupabaseClient(
            url=settings.supabase_url,
            anon_key=settings.supabase_anon_key,
            service_role_key=settings.supabase_service_role_key,
            timeout=settings.supabase_timeout,
            transport=supabase_transport,
        )
        try:
            await supabase.connect()
            app.state.services = AppServices.build(settings, supabase, chatbot_factory)
            logger.info("Services ready")

            yield

        finally:
            logger.info("Shutting down application...")
            await supabase.disconnect()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Storefront with a guest/user cart and a catalog-search chat assistant",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    chat_path = f"{settings.api_prefix}/chat"

    # Last added runs first: rate limit, then logging, then session refresh
    app.add_middleware(SessionRefreshMiddleware)
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(
        RateLimitMiddleware,
        paths=[chat_path],
        max_requests=settings.rate_limit_requests,
        period=settings.rate_limit_period,
    )

    app.include_router(router, prefix=settings.api_prefix)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        # The chat widget only understands {error}
        if request.url.path != chat_path:
            return await request_validation_exception_handler(request, exc)
        logger.warning("Rejected chat request: %s", exc.errors())
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(error="Invalid chat request").model_dump(),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("Unhandled exception: %s", exc, exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal Server Error",
                "message": "An unexpected error occurred",
            },
        )

    @app.get("/")
    async def root() -> dict[str, str]:
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "status": "running",
        }

    return app


setup_logging()
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "storefront.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
