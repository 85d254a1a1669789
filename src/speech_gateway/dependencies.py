"""Application-wide dependencies and state management.

This module is separate from main.py to avoid circular imports.
"""

from typing import Optional

from speech_gateway.core.recognizer_protocol import Recognizer
from speech_gateway.core.session_registry import SessionRegistry


# Global instances, created once in the app lifespan
_session_registry: Optional[SessionRegistry] = None
_recognizer: Optional[Recognizer] = None


def set_session_registry(registry: SessionRegistry) -> None:
    """Set the global session registry instance."""
    global _session_registry
    _session_registry = registry


def get_session_registry() -> SessionRegistry:
    """Get the session registry instance."""
    if _session_registry is None:
        raise RuntimeError("Session registry not initialized")
    return _session_registry


def set_recognizer(recognizer: Recognizer) -> None:
    """Set the shared recognizer handle."""
    global _recognizer
    _recognizer = recognizer


def get_recognizer() -> Recognizer:
    """Get the shared recognizer handle."""
    if _recognizer is None:
        raise RuntimeError("Recognizer not initialized")
    return _recognizer


def clear_dependencies() -> None:
    """Clear the global instances."""
    global _session_registry, _recognizer
    _session_registry = None
    _recognizer = None
