"""Recognizer backend selection.

The recognizer handle is created once at app startup and shared, read
only, across all sessions.
"""

import logging

from speech_gateway.config import Settings
from speech_gateway.core.recognizer_protocol import Recognizer

logger = logging.getLogger(__name__)


def create_recognizer(config: Settings) -> Recognizer:
    """
    Create the recognizer selected by config.recognizer_engine.

    - "google": GoogleRecognizer (requires google-cloud-speech credentials)
    - "mock": MockRecognizer (no network access)

    Args:
        config: Application settings

    Returns:
        Recognizer implementation

    Raises:
        ValueError: If the engine name is unknown
    """
    engine = config.recognizer_engine.lower()

    if engine == "google":
        from speech_gateway.core.google_recognizer import GoogleRecognizer

        logger.info("Initializing Google Cloud Speech recognizer...")
        return GoogleRecognizer.create(
            credentials_path=config.google_credentials_path,
            credentials_json=config.google_credentials_json,
        )

    if engine == "mock":
        from speech_gateway.core.mock_recognizer import MockRecognizer

        logger.info("Using mock recognizer")
        return MockRecognizer()

    raise ValueError(f"Unknown recognizer engine: {config.recognizer_engine}")
