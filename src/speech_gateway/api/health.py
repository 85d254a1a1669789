"""Health check endpoint."""

from fastapi import APIRouter

from speech_gateway import __version__
from speech_gateway.config import get_settings
from speech_gateway.dependencies import get_session_registry

router = APIRouter()


@router.get("/api/v1/health")
async def health():
    """Return health status, version, and session information."""
    registry = get_session_registry()
    return {
        "status": "ok",
        "version": __version__,
        "recognizer": get_settings().recognizer_engine,
        "active_sessions": registry.get_active_count(),
    }
