"""File upload transcription endpoints."""

import asyncio
import logging
import time
import uuid
from typing import AsyncIterator, Optional

from fastapi import APIRouter, File, Form, UploadFile
from fastapi.responses import JSONResponse, StreamingResponse

from speech_gateway.config import Settings, get_settings
from speech_gateway.core.encoding import resolve_encoding
from speech_gateway.core.mediator import StreamingMediator, TranscriptEvent
from speech_gateway.core.recognizer_config import (
    RecognizerConfig,
    TranscriptionOptions,
    config_for_options,
)
from speech_gateway.core.recognizer_protocol import Recognizer, RecognizerError
from speech_gateway.core.session_registry import close_mediator
from speech_gateway.core.transcriber import EmptyResult, Transcriber
from speech_gateway.core.validation import AudioUpload, FileValidationError, FileValidator
from speech_gateway.dependencies import get_recognizer

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/speech", tags=["speech"])


def _validator(settings: Settings) -> FileValidator:
    return FileValidator(settings.max_file_size_mb, settings.supported_format_list)


def _options(settings: Settings, punctuation: bool, word_offsets: bool) -> TranscriptionOptions:
    return TranscriptionOptions(
        language_code=settings.default_language_code,
        enable_automatic_punctuation=punctuation,
        enable_word_time_offsets=word_offsets,
        alternative_language_codes=tuple(settings.alternative_language_codes),
    )


async def _read_upload(file: Optional[UploadFile]) -> Optional[AudioUpload]:
    if file is None:
        return None
    content = await file.read()
    return AudioUpload(
        filename=file.filename,
        content_type=file.content_type,
        content=content,
    )


def _error_response(
    status_code: int,
    upload: Optional[AudioUpload],
    message: str,
    language_code: str,
    processing_time_ms: int,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "success": False,
            "originalFilename": upload.filename if upload else None,
            "transcribedText": None,
            "confidenceScore": None,
            "processingTimeMs": processing_time_ms,
            "languageCode": language_code,
            "fileSize": upload.size if upload else 0,
            "errorMessage": message,
        },
    )


@router.post("/convert")
async def convert(
    file: Optional[UploadFile] = File(None),
    punctuation: bool = Form(True, alias="enableAutomaticPunctuation"),
    word_offsets: bool = Form(False, alias="enableWordTimeOffsets"),
):
    """
    Transcribe an uploaded audio file in one recognizer call.

    Validation failures return 400, an empty recognition 422 and recognizer
    failures 502, all with success=false and an errorMessage.
    """
    settings = get_settings()
    options = _options(settings, punctuation, word_offsets)
    start = time.monotonic()
    upload = await _read_upload(file)

    try:
        _validator(settings).validate(upload)
    except FileValidationError as e:
        logger.info(f"Rejected upload {upload.filename if upload else None!r}: {e}")
        return _error_response(400, upload, str(e), options.language_code, _elapsed_ms(start))

    encoding = resolve_encoding(upload.content_type, upload.filename)
    transcriber = Transcriber(get_recognizer())

    try:
        result = await transcriber.transcribe(upload.content, options, encoding)
    except EmptyResult as e:
        return _error_response(422, upload, str(e), options.language_code, _elapsed_ms(start))
    except RecognizerError as e:
        return _error_response(502, upload, str(e), options.language_code, _elapsed_ms(start))

    response = {
        "success": True,
        "originalFilename": upload.filename,
        "transcribedText": result.text,
        "confidenceScore": result.average_confidence,
        "processingTimeMs": _elapsed_ms(start),
        "languageCode": options.language_code,
        "fileSize": upload.size,
        "encoding": encoding.value,
        "resultCount": result.result_count,
    }
    if options.enable_word_time_offsets:
        response["words"] = [
            {"word": w.word, "startTime": w.start_time, "endTime": w.end_time}
            for w in result.words
        ]
    return response


@router.post("/stream")
async def stream(
    file: Optional[UploadFile] = File(None),
    punctuation: bool = Form(True, alias="enableAutomaticPunctuation"),
    word_offsets: bool = Form(False, alias="enableWordTimeOffsets"),
):
    """
    Stream an uploaded file through the recognizer as server-sent events.

    Interim results are disabled; each event carries a final transcript and
    the stream ends after the first one.
    """
    settings = get_settings()
    options = _options(settings, punctuation, word_offsets)
    upload = await _read_upload(file)

    try:
        _validator(settings).validate(upload)
    except FileValidationError as e:
        return StreamingResponse(
            iter([format_sse(str(e), event="error")]),
            status_code=400,
            media_type="text/event-stream",
        )

    config = config_for_options(resolve_encoding(upload.content_type, upload.filename), options)
    return StreamingResponse(
        stream_transcripts(
            get_recognizer(),
            config,
            upload.content,
            chunk_bytes=settings.stream_chunk_bytes,
            interim_results=settings.upload_stream_interim_results,
            close_grace_seconds=settings.session_close_grace_seconds,
        ),
        media_type="text/event-stream",
    )


async def stream_transcripts(
    recognizer: Recognizer,
    config: RecognizerConfig,
    audio: bytes,
    chunk_bytes: int = 8192,
    interim_results: bool = False,
    close_grace_seconds: float = 5.0,
) -> AsyncIterator[str]:
    """
    Push a complete file through a mediator and yield SSE frames.

    Only final transcripts are emitted; the generator stops after the first
    final or when the recognizer stream ends.
    """
    events: asyncio.Queue = asyncio.Queue()
    mediator = StreamingMediator(
        recognizer,
        config,
        on_transcript=events.put,
        interim_results=interim_results,
        name=f"upload-{uuid.uuid4().hex[:8]}",
    )
    await mediator.open()

    feeder = asyncio.create_task(_feed_audio(mediator, audio, chunk_bytes))
    watcher = asyncio.create_task(mediator.wait_closed())
    watcher.add_done_callback(lambda _: events.put_nowait(None))

    try:
        while True:
            event: Optional[TranscriptEvent] = await events.get()
            if event is None:
                break
            if not event.is_final:
                continue
            yield format_sse(event.text)
            break
    finally:
        feeder.cancel()
        await asyncio.gather(feeder, return_exceptions=True)
        await close_mediator(mediator, close_grace_seconds)
        watcher.cancel()


async def _feed_audio(mediator: StreamingMediator, audio: bytes, chunk_bytes: int) -> None:
    """Send a file in fixed-size chunks, then half-close."""
    for offset in range(0, len(audio), chunk_bytes):
        if not await mediator.send_audio(audio[offset:offset + chunk_bytes]):
            break
    await mediator.close()


def format_sse(data: str, event: Optional[str] = None) -> str:
    """Format one server-sent event."""
    lines = []
    if event:
        lines.append(f"event: {event}")
    for line in data.split("\n"):
        lines.append(f"data: {line}")
    return "\n".join(lines) + "\n\n"


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)
