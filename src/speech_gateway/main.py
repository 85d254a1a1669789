"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from speech_gateway import __version__
from speech_gateway.api import health, sessions, speech, speech_socket
from speech_gateway.config import get_settings
from speech_gateway.core.recognizers import create_recognizer
from speech_gateway.core.session_registry import SessionRegistry
from speech_gateway.dependencies import (
    clear_dependencies,
    set_recognizer,
    set_session_registry,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler - create the recognizer and session registry."""
    config = get_settings()
    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Startup: one recognizer client shared by every request and session
    set_recognizer(create_recognizer(config))

    registry = SessionRegistry(close_grace_seconds=config.session_close_grace_seconds)
    set_session_registry(registry)
    logger.info(f"Speech gateway {__version__} started")

    yield

    # Shutdown: tear down live sessions (use the same instance from startup)
    await registry.stop()
    clear_dependencies()


app = FastAPI(
    title="Speech Gateway",
    description="Speech-to-text gateway for file uploads and live audio streams",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(health.router)
app.include_router(speech.router)
app.include_router(speech_socket.router)
app.include_router(sessions.router)


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "speech_gateway.main:app",
        host=settings.host,
        port=settings.port,
    )
