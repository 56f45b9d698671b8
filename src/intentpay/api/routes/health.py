"""Health check endpoints."""

from fastapi import APIRouter, Request

from intentpay import __version__
from intentpay.config import get_settings

router = APIRouter()


@router.get("/health")
async def health_check():
    """Basic health check endpoint."""
    return {"status": "healthy", "service": "intentpay"}


@router.get("/health/detailed")
async def detailed_health(request: Request):
    """Detailed health check with configuration info."""
    settings = get_settings()
    return {
        "status": "healthy",
        "service": "intentpay",
        "version": __version__,
        "active_sessions": len(request.app.state.sessions),
        "config": settings.get_safe_dict(),
    }
