"""FastAPI application entry point for the inspiration API."""

import logging
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware

from config import settings
from errors import register_error_handlers
from services.context import ServiceContext, build_context

# Structured logging: JSON for production, human-readable for local
if settings.is_production:
    logging.basicConfig(
        level=logging.INFO,
        format='{"time":"%(asctime)s","level":"%(levelname)s","logger":"%(name)s","message":"%(message)s"}',
        stream=sys.stdout,
    )
else:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

logger = logging.getLogger(__name__)


def create_app(services: ServiceContext | None = None) -> FastAPI:
    """Build the app. Pass ``services`` to run against a prebuilt context (tests)."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        missing = settings.validate()
        if missing:
            logger.warning("Missing env vars (upstream features may fail): %s", ", ".join(missing))

        context = services or build_context(settings)
        await context.startup()
        app.state.services = context
        try:
            yield
        finally:
            await context.aclose()

    app = FastAPI(title="Inspiration API", version="1.0.0", lifespan=lifespan)

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Security headers
    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        response: Response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        if settings.is_production:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response

    # Centralized error handlers
    register_error_handlers(app)

    from routes.health import router as health_router
    from routes.inspiration import router as inspiration_router
    from routes.trends import router as trends_router

    app.include_router(health_router)
    app.include_router(inspiration_router)
    app.include_router(trends_router)

    return app


app = create_app()
