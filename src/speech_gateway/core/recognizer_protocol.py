"""Recognizer protocol and the messages exchanged with it.

Defines the interface every recognizer backend (GoogleRecognizer,
MockRecognizer) implements, using plain dataclasses so the SDK's native
types never leak past the adapter.
"""

from dataclasses import dataclass, field
from typing import AsyncIterator, List, Optional, Protocol, runtime_checkable

from speech_gateway.core.recognizer_config import RecognizerConfig


class RecognizerError(Exception):
    """Raised when the recognizer call fails (transport or service error)."""

    pass


@dataclass(frozen=True)
class WordTimeInfo:
    """Word with start/end offsets in seconds."""

    word: str
    start_time: float
    end_time: float


@dataclass
class RecognitionAlternative:
    """One hypothesis for a result."""

    transcript: str
    confidence: float = 0.0
    words: List[WordTimeInfo] = field(default_factory=list)


@dataclass
class RecognitionResult:
    """A recognized segment with ordered alternatives (best first)."""

    alternatives: List[RecognitionAlternative] = field(default_factory=list)
    is_final: bool = True


@dataclass(frozen=True)
class StreamingConfig:
    """Config payload carried by the first message of a stream."""

    config: RecognizerConfig
    interim_results: bool = True
    single_utterance: bool = False


@dataclass(frozen=True)
class StreamRequest:
    """A streaming request: either a config payload or audio bytes."""

    streaming_config: Optional[StreamingConfig] = None
    audio_content: Optional[bytes] = None

    def __post_init__(self):
        if (self.streaming_config is None) == (self.audio_content is None):
            raise ValueError("StreamRequest carries exactly one of config or audio")

    @property
    def is_config(self) -> bool:
        return self.streaming_config is not None


@dataclass
class StreamResponse:
    """A batch of results delivered by the recognizer stream."""

    results: List[RecognitionResult] = field(default_factory=list)


@runtime_checkable
class Recognizer(Protocol):
    """Protocol for recognizer implementations."""

    async def recognize(
        self, config: RecognizerConfig, audio: bytes
    ) -> List[RecognitionResult]:
        """One-shot recognition of a complete audio payload."""
        ...

    def stream(
        self, requests: AsyncIterator[StreamRequest]
    ) -> AsyncIterator[StreamResponse]:
        """
        Open a bidirectional stream.

        Requests are pulled from ``requests`` until it is exhausted (half
        close). Responses are yielded as they arrive; errors are raised as
        RecognizerError from the iteration.
        """
        ...
