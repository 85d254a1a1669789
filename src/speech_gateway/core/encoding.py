"""Audio encoding resolution from upload metadata."""

import logging
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)


class AudioEncoding(Enum):
    """Encodings understood by the recognizer."""

    LINEAR16 = "LINEAR16"
    FLAC = "FLAC"
    MP3 = "MP3"
    OGG_OPUS = "OGG_OPUS"
    WEBM_OPUS = "WEBM_OPUS"
    UNKNOWN = "UNKNOWN"

    def concrete(self) -> "AudioEncoding":
        """UNKNOWN is treated as LINEAR16 wherever a real value is needed."""
        if self is AudioEncoding.UNKNOWN:
            return AudioEncoding.LINEAR16
        return self


_CONTENT_TYPES = {
    "audio/wav": AudioEncoding.LINEAR16,
    "audio/wave": AudioEncoding.LINEAR16,
    "audio/x-wav": AudioEncoding.LINEAR16,
    "audio/flac": AudioEncoding.FLAC,
    "audio/x-flac": AudioEncoding.FLAC,
    "audio/ogg": AudioEncoding.OGG_OPUS,
    "audio/mp3": AudioEncoding.MP3,
    "audio/mpeg": AudioEncoding.MP3,
    "audio/mp4": AudioEncoding.WEBM_OPUS,
    "audio/m4a": AudioEncoding.WEBM_OPUS,
    "audio/x-m4a": AudioEncoding.WEBM_OPUS,
}

_EXTENSIONS = {
    "wav": AudioEncoding.LINEAR16,
    "flac": AudioEncoding.FLAC,
    "ogg": AudioEncoding.OGG_OPUS,
    "mp3": AudioEncoding.MP3,
    "m4a": AudioEncoding.WEBM_OPUS,
    "mp4": AudioEncoding.WEBM_OPUS,
}


def file_extension(filename: Optional[str]) -> str:
    """Return the text after the last dot, or "" if there is none."""
    if not filename:
        return ""
    dot = filename.rfind(".")
    if dot == -1 or dot == len(filename) - 1:
        return ""
    return filename[dot + 1:]


def encoding_for_content_type(content_type: Optional[str]) -> Optional[AudioEncoding]:
    """Map a MIME type (parameters ignored) to an encoding, or None."""
    if not content_type or not content_type.strip():
        return None
    media_type = content_type.split(";", 1)[0].strip().lower()
    return _CONTENT_TYPES.get(media_type)


def encoding_for_extension(extension: Optional[str]) -> Optional[AudioEncoding]:
    """Map a filename extension to an encoding, or None."""
    if not extension:
        return None
    return _EXTENSIONS.get(extension.lower())


def resolve_encoding(
    content_type: Optional[str] = None,
    filename: Optional[str] = None,
) -> AudioEncoding:
    """
    Pick the recognizer encoding for an upload.

    The content type wins when it is recognized; the filename extension is
    consulted next. Anything else falls back to LINEAR16. Never returns
    UNKNOWN.
    """
    encoding = encoding_for_content_type(content_type)
    if encoding is not None:
        return encoding

    encoding = encoding_for_extension(file_extension(filename))
    if encoding is not None:
        return encoding

    logger.warning(
        f"Could not determine audio encoding, using LINEAR16 "
        f"(content_type={content_type!r}, filename={filename!r})"
    )
    return AudioEncoding.LINEAR16
