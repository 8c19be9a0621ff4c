"""FastAPI application factory."""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from swapsolver import __version__
from swapsolver.config import Settings, get_settings
from swapsolver.engine.processor import SwapEngine


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    if app.state.manage_engine:
        app.state.engine.start()
    yield
    # Shutdown
    if app.state.manage_engine:
        await app.state.engine.stop()


def create_app(
    engine: Optional[SwapEngine] = None,
    settings: Optional[Settings] = None,
    manage_engine: bool = True,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        engine: Engine to expose (built from settings if None)
        settings: Settings to use (cached settings if None)
        manage_engine: Start/stop the engine with the app lifespan
    """
    settings = settings or get_settings()
    engine = engine or SwapEngine.from_settings(settings)

    app = FastAPI(
        title="Swapsolver API",
        description="Quote ingress and swap monitoring for the liquidity solver",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )
    app.state.engine = engine
    app.state.settings = settings
    app.state.manage_engine = manage_engine

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.debug else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register routes
    from swapsolver.api.routes import health, swaps

    app.include_router(health.router, tags=["Health"])
    app.include_router(swaps.router, prefix="/api/v1", tags=["Swaps"])

    return app
