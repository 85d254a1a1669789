"""Per-connection handler for the live speech socket.

Framework-neutral: the route feeds socket events into the on_* methods and
passes a coroutine that writes one JSON text frame to the client.
"""

import asyncio
import logging
import uuid
from typing import Awaitable, Callable, Optional

from speech_gateway.core.mediator import StreamingMediator, TranscriptEvent, TransportError
from speech_gateway.core.recognizer_config import RecognizerConfig
from speech_gateway.core.recognizer_protocol import Recognizer
from speech_gateway.core.session_registry import SessionRegistry

logger = logging.getLogger(__name__)

SendJson = Callable[[dict], Awaitable[None]]

# Text control frames sent by the browser client
START_STREAM = "START_STREAM"
END_STREAM = "END_STREAM"


class SpeechSocketHandler:
    """
    Lifecycle of one socket connection.

    on_open creates and registers the mediator, on_binary forwards audio,
    on_text handles control frames, on_error and on_close tear the session
    down. Teardown detaches the session exactly once.
    """

    def __init__(
        self,
        registry: SessionRegistry,
        recognizer: Recognizer,
        config: RecognizerConfig,
        send_json: SendJson,
        interim_results: bool = True,
        session_id: Optional[str] = None,
    ):
        self.registry = registry
        self.recognizer = recognizer
        self.config = config
        self.interim_results = interim_results
        self.session_id = session_id or str(uuid.uuid4())
        self.mediator: Optional[StreamingMediator] = None

        self._send_json = send_json
        self._send_lock = asyncio.Lock()  # one writer per socket
        self._torn_down = False
        self._watcher: Optional[asyncio.Task] = None

    async def on_open(self) -> None:
        """Create the mediator for this connection and register it."""
        mediator = StreamingMediator(
            self.recognizer,
            self.config,
            on_transcript=self._send_transcript,
            interim_results=self.interim_results,
            name=self.session_id,
        )
        await mediator.open()
        try:
            await self.registry.attach(self.session_id, mediator)
        except Exception:
            await mediator.abort()
            raise
        self.mediator = mediator

        # A session whose recognizer stream ended is no longer live
        self._watcher = asyncio.create_task(
            self._watch_mediator(mediator), name=f"watch-{self.session_id}"
        )
        logger.info(f"Socket session opened: {self.session_id}")

    async def on_binary(self, frame: bytes) -> None:
        """Forward an audio frame to this session's mediator."""
        mediator = await self.registry.get(self.session_id)
        if mediator is not None:
            await mediator.send_audio(frame)

    async def on_text(self, text: str) -> None:
        """Handle a control frame. END_STREAM half-closes the recognizer stream."""
        command = text.strip()
        if command == END_STREAM:
            mediator = await self.registry.get(self.session_id)
            if mediator is not None:
                logger.info(f"Client ended stream: {self.session_id}")
                await mediator.close()
        elif command == START_STREAM:
            logger.debug(f"Client started stream: {self.session_id}")
        else:
            logger.debug(f"Ignoring text frame on {self.session_id}: {command[:50]!r}")

    async def on_error(self, error: BaseException) -> None:
        """Transport failure: log and tear down."""
        logger.error(f"Socket transport error on {self.session_id}: {error}")
        await self._teardown()

    async def on_close(self) -> None:
        """Client disconnected: tear down."""
        logger.info(f"Socket session closed: {self.session_id}")
        await self._teardown()

    @property
    def torn_down(self) -> bool:
        return self._torn_down

    async def _watch_mediator(self, mediator: StreamingMediator) -> None:
        await mediator.wait_closed()
        logger.info(f"Recognizer stream ended for {self.session_id}, detaching")
        await self._teardown()

    async def _teardown(self) -> None:
        watcher = self._watcher
        if watcher is asyncio.current_task():
            watcher = None

        if self._torn_down:
            # The watcher may still be detaching; let it finish
            if watcher is not None and not watcher.done():
                await watcher
            return

        self._torn_down = True
        if self.mediator is None:
            # Never attached; the id may belong to another connection
            return
        await self.registry.close_session(self.session_id)

        if watcher is not None and not watcher.done():
            watcher.cancel()
            try:
                await watcher
            except asyncio.CancelledError:
                pass

    async def _send_transcript(self, event: TranscriptEvent) -> None:
        async with self._send_lock:
            try:
                await self._send_json(event.to_message())
            except Exception as e:
                raise TransportError(f"Failed to send transcript: {e}") from e
