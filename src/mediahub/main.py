"""FastAPI application factory.

Learn: create_app(settings) is the composition root. It builds the one
Settings object, the engine and session factory, and the media storage
backend, and parks them on app.state where the dependencies in
mediahub.auth.dependencies / mediahub.db.engine pick them up.

Run with: uvicorn mediahub.main:create_app --factory
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from mediahub import __version__
from mediahub.api import api_router
from mediahub.config import Settings
from mediahub.db.engine import create_engine, create_session_factory
from mediahub.errors import install_exception_handlers
from mediahub.logging_config import configure_logging
from mediahub.middleware.request_id import RequestIdMiddleware
from mediahub.middleware.security import SecurityHeadersMiddleware
from mediahub.services.media_storage import S3MediaStorage

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle."""
    settings: Settings = app.state.settings
    logger.info(
        "mediahub.starting",
        version=__version__,
        environment=settings.environment,
        port=settings.port,
    )

    yield

    logger.info("mediahub.shutdown")
    await app.state.engine.dispose()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build and return the FastAPI application."""
    settings = settings or Settings()
    configure_logging(settings)

    app = FastAPI(
        title="MediaHub",
        description="Media-sharing backend: accounts, sessions, channels, history",
        version=__version__,
        lifespan=lifespan,
    )

    engine = create_engine(settings)
    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    app.state.media_storage = S3MediaStorage(settings)

    install_exception_handlers(app)

    # ── Middleware stack ──────────────────────────────────────
    # Starlette middleware executes in reverse order of registration.
    # Request flow: CORS → Security → RequestId → handler
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router)

    return app
