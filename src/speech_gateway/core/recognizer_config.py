"""Recognition options and the recognizer configuration built from them."""

from dataclasses import dataclass
from typing import Sequence, Tuple

from speech_gateway.core.encoding import AudioEncoding

DEFAULT_LANGUAGE_CODE = "ko-KR"
MAX_ALTERNATIVE_LANGUAGES = 3

DEFAULT_SAMPLE_RATE = 16000
HIGH_SAMPLE_RATE = 48000

DEFAULT_MODEL = "default"
LATEST_LONG_MODEL = "latest_long"


@dataclass(frozen=True)
class TranscriptionOptions:
    """Per-request recognition options."""

    language_code: str = DEFAULT_LANGUAGE_CODE
    enable_automatic_punctuation: bool = True
    enable_word_time_offsets: bool = False
    alternative_language_codes: Tuple[str, ...] = ()

    def __post_init__(self):
        if not self.language_code or not self.language_code.strip():
            raise ValueError("language_code must not be empty")
        # Accept any sequence but store a tuple so the options stay hashable
        object.__setattr__(
            self, "alternative_language_codes", tuple(self.alternative_language_codes)
        )
        if len(self.alternative_language_codes) > MAX_ALTERNATIVE_LANGUAGES:
            raise ValueError(
                f"At most {MAX_ALTERNATIVE_LANGUAGES} alternative language codes allowed"
            )


@dataclass(frozen=True)
class RecognizerConfig:
    """SDK-neutral recognition config sent to the recognizer."""

    encoding: AudioEncoding
    sample_rate_hertz: int
    language_code: str
    alternative_language_codes: Tuple[str, ...]
    enable_automatic_punctuation: bool
    enable_word_time_offsets: bool
    model: str
    use_enhanced: bool = True


def build_recognizer_config(
    encoding: AudioEncoding,
    language_code: str,
    enable_automatic_punctuation: bool,
    enable_word_time_offsets: bool,
    alternative_language_codes: Sequence[str] = (),
) -> RecognizerConfig:
    """
    Build the recognizer config for an encoding.

    LINEAR16 audio is sent at 48 kHz with the long-form model; compressed
    encodings use 16 kHz and the default model. UNKNOWN is treated as
    LINEAR16.
    """
    encoding = encoding.concrete()

    if encoding is AudioEncoding.LINEAR16:
        sample_rate = HIGH_SAMPLE_RATE
        model = LATEST_LONG_MODEL
    else:
        sample_rate = DEFAULT_SAMPLE_RATE
        model = DEFAULT_MODEL

    return RecognizerConfig(
        encoding=encoding,
        sample_rate_hertz=sample_rate,
        language_code=language_code,
        alternative_language_codes=tuple(alternative_language_codes),
        enable_automatic_punctuation=enable_automatic_punctuation,
        enable_word_time_offsets=enable_word_time_offsets,
        model=model,
        use_enhanced=True,
    )


def config_for_options(
    encoding: AudioEncoding, options: TranscriptionOptions
) -> RecognizerConfig:
    """Build the recognizer config from request options."""
    return build_recognizer_config(
        encoding,
        options.language_code,
        options.enable_automatic_punctuation,
        options.enable_word_time_offsets,
        options.alternative_language_codes,
    )
