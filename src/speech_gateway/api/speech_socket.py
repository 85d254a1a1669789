"""WebSocket live transcription endpoint."""

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from speech_gateway.config import get_settings
from speech_gateway.core.encoding import AudioEncoding
from speech_gateway.core.recognizer_config import TranscriptionOptions, config_for_options
from speech_gateway.core.socket_handler import SpeechSocketHandler
from speech_gateway.dependencies import get_recognizer, get_session_registry

router = APIRouter()


@router.websocket("/ws/speech")
async def speech_socket(websocket: WebSocket):
    """
    Live transcription over a WebSocket.

    Client -> Server:
        binary frame: raw LINEAR16 audio chunk
        text frame "END_STREAM": no more audio, flush remaining results

    Server -> Client:
        { "transcript": "...", "isFinal": false }
    """
    # Any origin is accepted
    await websocket.accept()

    settings = get_settings()
    options = TranscriptionOptions(
        language_code=settings.default_language_code,
        enable_automatic_punctuation=True,
        enable_word_time_offsets=False,
        alternative_language_codes=settings.alternative_language_codes,
    )
    config = config_for_options(AudioEncoding.LINEAR16, options)
    handler = SpeechSocketHandler(
        get_session_registry(),
        get_recognizer(),
        config,
        send_json=websocket.send_json,
        interim_results=settings.socket_interim_results,
    )

    try:
        await handler.on_open()

        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break

            if message.get("bytes") is not None:
                await handler.on_binary(message["bytes"])
            elif message.get("text") is not None:
                await handler.on_text(message["text"])

    except WebSocketDisconnect:
        # Client disconnected, clean up
        pass
    except Exception as e:
        await handler.on_error(e)
    finally:
        # Always clean up
        await handler.on_close()
