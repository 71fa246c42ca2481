"""FastAPI application entrypoint for figurine-service.

Patterns applied:
- create_app() factory plus a module-level ``app`` for uvicorn
- asynccontextmanager lifespan builds the model client, orchestrator,
  generation service and rate limiter ONCE and closes the client on shutdown
- configure_logging() called once in lifespan startup
- Docs disabled in production
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from src import __version__
from src.api.error_handlers import register_exception_handlers
from src.api.middleware import RequestIdMiddleware, SecurityHeadersMiddleware
from src.api.routes.generate import router as generate_router
from src.api.routes.health import router as health_router
from src.core.config import Settings, get_settings
from src.core.logging import configure_logging, get_logger
from src.observability.tracing import TracingMiddleware, setup_tracing, shutdown_tracing
from src.orchestration.orchestrator import ModelFallbackOrchestrator
from src.providers.base import ImageModelClient
from src.providers.gemini import GeminiClient
from src.services.generation_service import FigurineGenerationService, GenerationConfig
from src.services.rate_limiter import FixedWindowRateLimiter


# =============================================================================
# Application Metadata
# =============================================================================
APP_NAME = "figurine-service"
APP_DESCRIPTION = "Turns an uploaded photo into a boxed collectible figurine image"
APP_VERSION = __version__


def create_app(
    settings: Settings | None = None,
    model_client: ImageModelClient | None = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        settings: Settings to use. Defaults to get_settings().
        model_client: Model client to use instead of a GeminiClient built
            from settings. The app does not close an injected client.

    Returns:
        Configured FastAPI instance.
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        # =====================================================================
        # STARTUP
        # =====================================================================
        # force: importing modules may already have auto-configured defaults.
        configure_logging(
            level=settings.log_level,
            json_output=settings.environment != "development",
            force=True,
        )
        logger = get_logger(__name__)

        if settings.tracing_enabled:
            setup_tracing(settings.service_name, settings.otlp_endpoint)

        config = GenerationConfig.from_settings(settings)
        client = model_client
        owns_client = False
        if client is None and not config.demo_mode:
            client = GeminiClient(config.api_key, base_url=settings.gemini_base_url)
            owns_client = True

        orchestrator = ModelFallbackOrchestrator(client) if client is not None else None

        app.state.generation_service = FigurineGenerationService(config, orchestrator)
        app.state.rate_limiter = FixedWindowRateLimiter(
            settings.rate_limit_max, settings.rate_limit_window_seconds
        )
        app.state.max_upload_bytes = settings.max_upload_bytes
        app.state.expose_error_details = not settings.is_production
        app.state.service_name = settings.service_name
        app.state.environment = settings.environment
        app.state.initialized = True

        logger.info(
            "Application starting",
            service=settings.service_name,
            version=APP_VERSION,
            environment=settings.environment,
            port=settings.port,
            demo_mode=config.demo_mode,
            models=list(config.candidates),
            timeout_ms=config.timeout_ms,
        )
        if config.demo_mode:
            logger.warning("GOOGLE_API_KEY not set; generate returns the upload as a mock")

        yield

        # =====================================================================
        # SHUTDOWN
        # =====================================================================
        logger.info("Application shutting down", service=settings.service_name)
        if owns_client and client is not None:
            await client.aclose()
        if settings.tracing_enabled:
            shutdown_tracing()
        app.state.initialized = False

    app = FastAPI(
        title=APP_NAME,
        description=APP_DESCRIPTION,
        version=APP_VERSION,
        docs_url="/docs" if not settings.is_production else None,
        redoc_url="/redoc" if not settings.is_production else None,
        openapi_url="/openapi.json" if not settings.is_production else None,
        lifespan=lifespan,
    )

    # =========================================================================
    # Routers, then static files so /api/* wins over the catch-all mount
    # =========================================================================
    app.include_router(health_router)
    app.include_router(generate_router)

    static_dir = Path(settings.static_dir)
    if static_dir.is_dir():
        app.mount("/", StaticFiles(directory=static_dir, html=True), name="static")

    # =========================================================================
    # Middleware (last added runs outermost)
    # =========================================================================
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.origins or ["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "RateLimit-Limit", "RateLimit-Remaining", "RateLimit-Reset"],
    )
    app.add_middleware(SecurityHeadersMiddleware)
    if settings.tracing_enabled:
        app.add_middleware(TracingMiddleware, exclude_paths=["/api/health"])

    register_exception_handlers(app)

    return app


app = create_app()


def main() -> None:
    """Launch the uvicorn server (``figurine-service`` console script)."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "src.main:app",
        host=settings.host,
        port=settings.port,
        reload=False,
    )


if __name__ == "__main__":
    main()
