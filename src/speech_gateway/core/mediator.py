"""Streaming transcription mediator.

Bridges one client audio stream to one recognizer streaming call for the
lifetime of a session: injects the recognizer config ahead of the first
audio frame, forwards frames in order, fans recognizer results out as
TranscriptEvents and tears the call down on close, error or client fault.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, List, Optional

from speech_gateway.core.recognizer_config import RecognizerConfig
from speech_gateway.core.recognizer_protocol import (
    Recognizer,
    RecognizerError,
    StreamingConfig,
    StreamRequest,
    StreamResponse,
)

logger = logging.getLogger(__name__)


class MediatorState(Enum):
    """Lifecycle states for a streaming mediator."""

    OPEN = "open"  # Stream opened, nothing sent yet
    CONFIG_SENT = "config_sent"  # Config injected, forwarding audio
    CLOSING = "closing"  # Request stream half-closed
    CLOSED = "closed"  # Terminal state


class TransportError(Exception):
    """Raised when a transcript cannot be written to the client."""

    pass


@dataclass(frozen=True)
class TranscriptEvent:
    """A transcript produced by the recognizer."""

    text: str
    is_final: bool
    confidence: Optional[float] = None

    def to_message(self) -> dict:
        """Wire format for socket clients."""
        return {"transcript": self.text, "isFinal": self.is_final}


@dataclass
class MediatorMetrics:
    """Per-mediator counters."""

    frames_sent: int = 0
    bytes_sent: int = 0
    frames_dropped: int = 0
    config_messages: int = 0
    half_closes: int = 0
    transcripts_delivered: int = 0
    finals_delivered: int = 0


TranscriptCallback = Callable[[TranscriptEvent], Awaitable[None]]

# Queued in place of a request to end the request stream
_HALF_CLOSE = object()


def demultiplex(response: StreamResponse) -> List[TranscriptEvent]:
    """Turn a response batch into events, one per result with alternatives."""
    events = []
    for result in response.results:
        if not result.alternatives:
            continue
        best = result.alternatives[0]
        events.append(
            TranscriptEvent(
                text=best.transcript,
                is_final=result.is_final,
                confidence=best.confidence if best.confidence > 0 else None,
            )
        )
    return events


class StreamingMediator:
    """
    Per-session bridge between a client stream and a recognizer stream.

    State machine: OPEN -> CONFIG_SENT (first audio frame) -> CLOSING
    (close) -> CLOSED (recognizer completion or error). Recognizer errors
    and client write failures jump straight to CLOSED. Final results do not
    end the session; the recognizer may deliver several.
    """

    def __init__(
        self,
        recognizer: Recognizer,
        config: RecognizerConfig,
        on_transcript: TranscriptCallback,
        interim_results: bool = True,
        name: str = "stream",
    ):
        """
        Initialize the mediator.

        Args:
            recognizer: Shared recognizer handle
            config: Recognition config injected ahead of the first frame
            on_transcript: Coroutine called once per transcript, in
                recognizer order
            interim_results: Ask the recognizer for non-final results
            name: Label used in log lines (usually the session id)
        """
        self.recognizer = recognizer
        self.config = config
        self.interim_results = interim_results
        self.name = name
        self.metrics = MediatorMetrics()

        self._on_transcript = on_transcript
        self._state = MediatorState.OPEN
        self._config_injected = False

        # _lock guards state; _send_lock keeps frames in submission order
        self._lock = asyncio.Lock()
        self._send_lock = asyncio.Lock()

        # At most one request in flight towards the recognizer
        self._outbound: asyncio.Queue = asyncio.Queue(maxsize=1)
        self._half_close_requested = False
        self._requests_ended = False

        self._pump_task: Optional[asyncio.Task] = None
        self._closed = asyncio.Event()

    @property
    def state(self) -> MediatorState:
        return self._state

    @property
    def config_injected(self) -> bool:
        return self._config_injected

    @property
    def is_closed(self) -> bool:
        return self._state is MediatorState.CLOSED

    async def open(self) -> None:
        """Start the recognizer stream. The config is not sent yet."""
        if self._pump_task is not None:
            raise RuntimeError("Mediator already opened")

        self._pump_task = asyncio.create_task(
            self._pump_responses(), name=f"mediator-{self.name}"
        )
        logger.info(
            f"[{self.name}] Recognizer stream opened "
            f"(interim_results={self.interim_results})"
        )

    async def send_audio(self, frame: bytes) -> bool:
        """
        Forward an audio frame.

        The first frame is preceded by the config message. Frames arriving
        after close() or a recognizer failure are dropped silently. Suspends
        while the previous request has not been taken by the recognizer.

        Returns:
            True if the frame was queued for the recognizer
        """
        if not frame:
            return False
        if self._pump_task is None:
            raise RuntimeError("Mediator not opened")

        async with self._send_lock:
            async with self._lock:
                if self._state in (MediatorState.CLOSING, MediatorState.CLOSED):
                    self.metrics.frames_dropped += 1
                    logger.debug(
                        f"[{self.name}] Dropping {len(frame)} byte frame "
                        f"in state {self._state.value}"
                    )
                    return False

                pending = []
                if not self._config_injected:
                    self._config_injected = True
                    self._state = MediatorState.CONFIG_SENT
                    self.metrics.config_messages += 1
                    pending.append(
                        StreamRequest(
                            streaming_config=StreamingConfig(
                                config=self.config,
                                interim_results=self.interim_results,
                            )
                        )
                    )
                    logger.info(
                        f"[{self.name}] First audio frame, sending config "
                        f"(encoding={self.config.encoding.value}, "
                        f"rate={self.config.sample_rate_hertz}, "
                        f"language={self.config.language_code})"
                    )
                pending.append(StreamRequest(audio_content=bytes(frame)))

            for request in pending:
                if self._state is MediatorState.CLOSED:
                    return False
                await self._outbound.put(request)
                if self._requests_ended or self._state is MediatorState.CLOSED:
                    # The request stream ended while this request was waiting
                    self.metrics.frames_dropped += 1
                    logger.debug(
                        f"[{self.name}] Dropping {len(frame)} byte frame "
                        f"queued after the request stream ended"
                    )
                    return False

            self.metrics.frames_sent += 1
            self.metrics.bytes_sent += len(frame)
            return True

    async def close(self) -> None:
        """
        Half-close the request stream. Idempotent and never waits on the
        recognizer; use wait_closed() to wait for CLOSED.
        """
        async with self._lock:
            if self._state in (MediatorState.CLOSING, MediatorState.CLOSED):
                return

            if self._pump_task is None:
                # Never opened, nothing to half-close
                self._mark_closed()
                return

            self._state = MediatorState.CLOSING
            self._half_close_requested = True
            self.metrics.half_closes += 1

        try:
            self._outbound.put_nowait(_HALF_CLOSE)
        except asyncio.QueueFull:
            # The request stream ends once the queued request is taken
            pass

        logger.info(
            f"[{self.name}] Half-closed after {self.metrics.frames_sent} frames "
            f"({self.metrics.bytes_sent} bytes)"
        )

    async def wait_closed(self, timeout: Optional[float] = None) -> bool:
        """Wait until CLOSED. Returns False on timeout."""
        try:
            await asyncio.wait_for(self._closed.wait(), timeout)
        except asyncio.TimeoutError:
            return False
        return True

    async def abort(self) -> None:
        """Cancel the recognizer call and force CLOSED."""
        if self._pump_task is not None and not self._pump_task.done():
            self._pump_task.cancel()
            try:
                await self._pump_task
            except asyncio.CancelledError:
                pass
            logger.warning(f"[{self.name}] Recognizer stream aborted")
        self._mark_closed()

    async def _request_stream(self):
        """Requests handed to the recognizer, ending at half close."""
        try:
            while True:
                if self._half_close_requested and self._outbound.empty():
                    break
                request = await self._outbound.get()
                if request is _HALF_CLOSE:
                    break
                yield request
        finally:
            self._requests_ended = True

    async def _pump_responses(self) -> None:
        """Read recognizer responses and deliver them until the call ends."""
        stream = self.recognizer.stream(self._request_stream())
        try:
            async for response in stream:
                for event in demultiplex(response):
                    if self._state is MediatorState.CLOSED:
                        return
                    if not await self._deliver(event):
                        return
            logger.info(f"[{self.name}] Recognizer stream completed")
        except asyncio.CancelledError:
            raise
        except RecognizerError as e:
            logger.error(f"[{self.name}] Recognizer stream error: {e}")
        except Exception as e:
            logger.error(f"[{self.name}] Unexpected recognizer failure: {e}", exc_info=True)
        finally:
            self._mark_closed()
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()

    async def _deliver(self, event: TranscriptEvent) -> bool:
        """Hand one event to the callback. False if the client is gone."""
        logger.debug(
            f"[{self.name}] Transcript (final={event.is_final}): '{event.text}'"
        )
        try:
            await self._on_transcript(event)
        except Exception as e:
            logger.error(f"[{self.name}] Failed to deliver transcript: {e}")
            return False

        self.metrics.transcripts_delivered += 1
        if event.is_final:
            self.metrics.finals_delivered += 1
        return True

    def _mark_closed(self) -> None:
        if self._state is MediatorState.CLOSED:
            return
        self._state = MediatorState.CLOSED
        self._half_close_requested = True

        # Release a sender suspended on the full buffer
        while True:
            try:
                self._outbound.get_nowait()
            except asyncio.QueueEmpty:
                break

        self._closed.set()
        logger.info(f"[{self.name}] Mediator closed")
