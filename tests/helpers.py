"""Builders shared by the test modules."""

from speech_gateway.core.recognizer_protocol import (
    RecognitionAlternative,
    RecognitionResult,
    StreamResponse,
)


def make_result(text, is_final=True, confidence=0.0):
    """A recognition result with a single alternative."""
    return RecognitionResult(
        alternatives=[RecognitionAlternative(transcript=text, confidence=confidence)],
        is_final=is_final,
    )


def make_response(*results):
    return StreamResponse(results=list(results))


class Collector:
    """Transcript callback that records events."""

    def __init__(self):
        self.events = []

    async def __call__(self, event):
        self.events.append(event)
