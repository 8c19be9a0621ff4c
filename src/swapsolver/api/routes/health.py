"""Health check endpoints."""

from fastapi import APIRouter, Request

from swapsolver import __version__

router = APIRouter()


@router.get("/health")
async def health_check(request: Request):
    """Basic health check endpoint."""
    engine = request.app.state.engine
    return {
        "status": "healthy",
        "service": "swapsolver",
        "engine_running": engine.is_running,
    }


@router.get("/health/detailed")
async def detailed_health(request: Request):
    """Detailed health check with configuration info and swap counts."""
    engine = request.app.state.engine
    return {
        "status": "healthy",
        "service": "swapsolver",
        "version": __version__,
        "engine_running": engine.is_running,
        "stats": engine.get_stats(),
        "config": request.app.state.settings.get_safe_dict(),
    }
