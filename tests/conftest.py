import os

# Use the in-process recognizer for every app-level test
os.environ["STT_RECOGNIZER_ENGINE"] = "mock"

import pytest
from starlette.testclient import TestClient


@pytest.fixture
def client():
    """Sync test client that triggers app lifespan."""
    from speech_gateway.config import get_settings
    from speech_gateway.main import app

    get_settings.cache_clear()
    with TestClient(app) as client:
        yield client
    get_settings.cache_clear()


@pytest.fixture
def recognizer(client):
    """The app's shared MockRecognizer."""
    from speech_gateway.dependencies import get_recognizer

    return get_recognizer()


@pytest.fixture
def pcm_frame():
    """8 KB of raw PCM audio."""
    return b"\x00\x01" * 4096

