"""One-shot transcription of a complete audio file."""

import logging
import time
from dataclasses import dataclass, field
from typing import List, Sequence

from speech_gateway.core.encoding import AudioEncoding
from speech_gateway.core.recognizer_config import TranscriptionOptions, config_for_options
from speech_gateway.core.recognizer_protocol import (
    RecognitionResult,
    Recognizer,
    RecognizerError,
    WordTimeInfo,
)

logger = logging.getLogger(__name__)


class EmptyResult(Exception):
    """Raised when the recognizer produced no usable text."""

    pass


@dataclass
class TranscriptionResult:
    """Aggregated transcript of a file."""

    text: str
    average_confidence: float
    result_count: int = 0
    words: List[WordTimeInfo] = field(default_factory=list)


def aggregate_results(results: Sequence[RecognitionResult]) -> TranscriptionResult:
    """
    Merge recognizer results into one transcript.

    Takes the first alternative of each result, concatenates transcripts in
    order and averages confidence over alternatives that report one (> 0).

    Raises:
        EmptyResult: If the merged text is empty
    """
    parts = []
    words: List[WordTimeInfo] = []
    total_confidence = 0.0
    confident_count = 0
    result_count = 0

    for result in results:
        if not result.alternatives:
            continue
        alternative = result.alternatives[0]
        result_count += 1

        parts.append(alternative.transcript)
        words.extend(alternative.words)

        if alternative.confidence > 0:
            total_confidence += alternative.confidence
            confident_count += 1

        logger.debug(
            f"Recognized segment: '{alternative.transcript}' "
            f"(confidence: {alternative.confidence if alternative.confidence > 0 else 'N/A'})"
        )

    text = "".join(parts).strip()
    if not text:
        raise EmptyResult("음성 내용을 텍스트로 변환할 수 없습니다.")

    average = total_confidence / confident_count if confident_count else 0.0
    return TranscriptionResult(
        text=text,
        average_confidence=average,
        result_count=result_count,
        words=words,
    )


class Transcriber:
    """Synchronous (unary) transcription through the shared recognizer."""

    def __init__(self, recognizer: Recognizer):
        self.recognizer = recognizer

    async def transcribe(
        self,
        audio: bytes,
        options: TranscriptionOptions,
        encoding: AudioEncoding = AudioEncoding.LINEAR16,
    ) -> TranscriptionResult:
        """
        Transcribe a complete audio payload.

        Args:
            audio: Raw file bytes
            options: Recognition options
            encoding: Encoding of the payload

        Returns:
            TranscriptionResult with text and average confidence

        Raises:
            EmptyResult: If nothing was recognized
            RecognizerError: If the recognizer call failed
        """
        config = config_for_options(encoding, options)
        start = time.monotonic()
        logger.info(
            f"Recognize started: {len(audio)} bytes, encoding={config.encoding.value}, "
            f"language={config.language_code}"
        )

        try:
            results = await self.recognizer.recognize(config, audio)
        except RecognizerError as e:
            logger.error(f"Recognize failed after {_elapsed_ms(start)}ms: {e}")
            raise
        except Exception as e:
            logger.error(f"Recognize failed after {_elapsed_ms(start)}ms: {e}")
            raise RecognizerError(f"음성 인식 API 호출 중 오류가 발생했습니다: {e}") from e

        if not results:
            logger.warning(f"Recognizer returned no results ({_elapsed_ms(start)}ms)")
            raise EmptyResult("음성을 인식할 수 없습니다. 오디오 파일을 확인해주세요.")

        result = aggregate_results(results)
        logger.info(
            f"Recognize completed in {_elapsed_ms(start)}ms: "
            f"text_length={len(result.text)}, confidence={result.average_confidence:.3f}"
        )
        return result


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)
