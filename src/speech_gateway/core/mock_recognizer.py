"""In-process recognizer that records requests and replays scripted output.

Used for local development without cloud credentials and by the test
suite. When nothing is scripted it reports how many bytes it received.
"""

import asyncio
from dataclasses import dataclass, field
from typing import AsyncIterator, List, Optional

from speech_gateway.core.recognizer_config import RecognizerConfig
from speech_gateway.core.recognizer_protocol import (
    RecognitionAlternative,
    RecognitionResult,
    RecognizerError,
    StreamRequest,
    StreamResponse,
)


@dataclass
class MockStreamCall:
    """Everything observed on one streaming call."""

    requests: List[StreamRequest] = field(default_factory=list)
    half_closed: bool = False
    completed: bool = False

    @property
    def config_requests(self) -> List[StreamRequest]:
        return [r for r in self.requests if r.is_config]

    @property
    def audio_frames(self) -> List[bytes]:
        return [r.audio_content for r in self.requests if not r.is_config]


@dataclass
class MockRecognizeCall:
    """One unary recognize call."""

    config: RecognizerConfig
    audio: bytes


class MockRecognizer:
    """
    Scriptable recognizer.

    Behavior:
    - recognize() returns ``results`` or raises ``error``
    - stream() consumes requests, yields ``stream_responses`` once
      ``respond_after_audio`` audio frames arrived (or at half close if
      fewer arrived), and raises RecognizerError once
      ``fail_after_audio`` frames arrived
    """

    def __init__(
        self,
        results: Optional[List[RecognitionResult]] = None,
        stream_responses: Optional[List[StreamResponse]] = None,
        respond_after_audio: int = 1,
        fail_after_audio: Optional[int] = None,
        error: Optional[Exception] = None,
        latency_ms: int = 0,
    ):
        self.recognize_calls: List[MockRecognizeCall] = []
        self.stream_calls: List[MockStreamCall] = []
        self.latency_ms = latency_ms
        self.script(
            results=results,
            stream_responses=stream_responses,
            respond_after_audio=respond_after_audio,
            fail_after_audio=fail_after_audio,
            error=error,
        )

    def script(
        self,
        results: Optional[List[RecognitionResult]] = None,
        stream_responses: Optional[List[StreamResponse]] = None,
        respond_after_audio: int = 1,
        fail_after_audio: Optional[int] = None,
        error: Optional[Exception] = None,
    ) -> None:
        """Replace the scripted behavior."""
        self.results = results
        self.stream_responses = stream_responses
        self.respond_after_audio = respond_after_audio
        self.fail_after_audio = fail_after_audio
        self.error = error

    def reset(self) -> None:
        """Forget recorded calls and scripted behavior."""
        self.recognize_calls.clear()
        self.stream_calls.clear()
        self.script()

    async def recognize(
        self, config: RecognizerConfig, audio: bytes
    ) -> List[RecognitionResult]:
        self.recognize_calls.append(MockRecognizeCall(config=config, audio=audio))
        await self._simulate_latency()

        if self.error is not None:
            raise self.error

        if self.results is None:
            return [_echo_result(len(audio))]
        return list(self.results)

    async def stream(
        self, requests: AsyncIterator[StreamRequest]
    ) -> AsyncIterator[StreamResponse]:
        call = MockStreamCall()
        self.stream_calls.append(call)
        responded = False
        received_bytes = 0

        async for request in requests:
            call.requests.append(request)
            if request.is_config:
                continue

            received_bytes += len(request.audio_content)
            audio_count = len(call.audio_frames)

            if self.fail_after_audio is not None and audio_count >= self.fail_after_audio:
                raise RecognizerError("Mock recognizer stream failure")

            if (
                self.stream_responses is not None
                and not responded
                and audio_count >= self.respond_after_audio
            ):
                responded = True
                for response in self.stream_responses:
                    await self._simulate_latency()
                    yield response

        call.half_closed = True

        if self.stream_responses is None:
            yield StreamResponse(results=[_echo_result(received_bytes)])
        elif not responded:
            for response in self.stream_responses:
                yield response

        call.completed = True

    async def _simulate_latency(self) -> None:
        if self.latency_ms > 0:
            await asyncio.sleep(self.latency_ms / 1000)


def _echo_result(byte_count: int) -> RecognitionResult:
    return RecognitionResult(
        alternatives=[
            RecognitionAlternative(
                transcript=f"[mock] {byte_count} bytes received", confidence=1.0
            )
        ],
        is_final=True,
    )
