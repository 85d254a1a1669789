"""Google Cloud Speech-to-Text recognizer backend.

Wraps the v1 ``SpeechAsyncClient`` behind the Recognizer protocol. The
client is created once at startup and shared by every session.
"""

import json
import logging
from typing import AsyncIterator, List, Optional

from google.api_core import exceptions as google_exceptions
from google.cloud import speech

from speech_gateway.core.encoding import AudioEncoding
from speech_gateway.core.recognizer_config import RecognizerConfig
from speech_gateway.core.recognizer_protocol import (
    RecognitionAlternative,
    RecognitionResult,
    RecognizerError,
    StreamingConfig,
    StreamRequest,
    StreamResponse,
    WordTimeInfo,
)

logger = logging.getLogger(__name__)

_ENCODINGS = {
    AudioEncoding.LINEAR16: speech.RecognitionConfig.AudioEncoding.LINEAR16,
    AudioEncoding.FLAC: speech.RecognitionConfig.AudioEncoding.FLAC,
    AudioEncoding.MP3: speech.RecognitionConfig.AudioEncoding.MP3,
    AudioEncoding.OGG_OPUS: speech.RecognitionConfig.AudioEncoding.OGG_OPUS,
    AudioEncoding.WEBM_OPUS: speech.RecognitionConfig.AudioEncoding.WEBM_OPUS,
}


def to_recognition_config(config: RecognizerConfig) -> speech.RecognitionConfig:
    """Convert a RecognizerConfig to the SDK message."""
    return speech.RecognitionConfig(
        encoding=_ENCODINGS[config.encoding.concrete()],
        sample_rate_hertz=config.sample_rate_hertz,
        language_code=config.language_code,
        alternative_language_codes=list(config.alternative_language_codes),
        enable_automatic_punctuation=config.enable_automatic_punctuation,
        enable_word_time_offsets=config.enable_word_time_offsets,
        model=config.model,
        use_enhanced=config.use_enhanced,
    )


def to_streaming_request(request: StreamRequest) -> speech.StreamingRecognizeRequest:
    """Convert a StreamRequest to the SDK message."""
    if request.is_config:
        streaming_config: StreamingConfig = request.streaming_config
        return speech.StreamingRecognizeRequest(
            streaming_config=speech.StreamingRecognitionConfig(
                config=to_recognition_config(streaming_config.config),
                interim_results=streaming_config.interim_results,
                single_utterance=streaming_config.single_utterance,
            )
        )
    return speech.StreamingRecognizeRequest(audio_content=request.audio_content)


def _seconds(offset) -> float:
    # proto-plus exposes Duration fields as datetime.timedelta
    if offset is None:
        return 0.0
    return offset.total_seconds()


def from_result(result) -> RecognitionResult:
    """Convert an SDK (streaming) recognition result."""
    alternatives = [
        RecognitionAlternative(
            transcript=alt.transcript,
            confidence=alt.confidence,
            words=[
                WordTimeInfo(
                    word=w.word,
                    start_time=_seconds(w.start_time),
                    end_time=_seconds(w.end_time),
                )
                for w in alt.words
            ],
        )
        for alt in result.alternatives
    ]
    # Unary results carry no is_final flag; they are always final
    is_final = getattr(result, "is_final", True)
    return RecognitionResult(alternatives=alternatives, is_final=is_final)


class GoogleRecognizer:
    """Recognizer backed by Google Cloud Speech-to-Text v1."""

    def __init__(self, client: speech.SpeechAsyncClient):
        self._client = client

    @classmethod
    def create(
        cls,
        credentials_path: Optional[str] = None,
        credentials_json: Optional[str] = None,
    ) -> "GoogleRecognizer":
        """
        Create the shared client.

        Explicit service account JSON (inline or from a file) is preferred;
        otherwise application default credentials are used.
        """
        if credentials_json:
            client = speech.SpeechAsyncClient.from_service_account_info(
                json.loads(credentials_json)
            )
        elif credentials_path:
            client = speech.SpeechAsyncClient.from_service_account_file(credentials_path)
        else:
            logger.info("No service account configured, using default credentials")
            client = speech.SpeechAsyncClient()
        return cls(client)

    async def recognize(
        self, config: RecognizerConfig, audio: bytes
    ) -> List[RecognitionResult]:
        logger.debug(
            f"Google recognize: language={config.language_code}, model={config.model}"
        )
        try:
            response = await self._client.recognize(
                config=to_recognition_config(config),
                audio=speech.RecognitionAudio(content=audio),
            )
        except google_exceptions.GoogleAPIError as e:
            raise RecognizerError(f"Speech API call failed: {e}") from e

        return [from_result(r) for r in response.results]

    async def stream(
        self, requests: AsyncIterator[StreamRequest]
    ) -> AsyncIterator[StreamResponse]:
        async def native_requests():
            async for request in requests:
                yield to_streaming_request(request)

        responses = None
        try:
            responses = await self._client.streaming_recognize(requests=native_requests())
            async for response in responses:
                yield StreamResponse(results=[from_result(r) for r in response.results])
        except google_exceptions.GoogleAPIError as e:
            raise RecognizerError(f"Speech streaming call failed: {e}") from e
        finally:
            # Release the RPC when the consumer stops early
            if responses is not None and not responses.done():
                logger.debug("Cancelling unfinished streaming call")
                responses.cancel()
