"""Configuration management for the speech gateway."""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings

from speech_gateway.core.recognizer_config import MAX_ALTERNATIVE_LANGUAGES


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # Upload validation
    max_file_size_mb: int = 10
    supported_formats: str = "mp3,wav,flac,ogg,m4a"  # comma separated

    # Recognition
    default_language_code: str = "ko-KR"
    alternative_language_codes: List[str] = Field(
        default_factory=list, max_length=MAX_ALTERNATIVE_LANGUAGES
    )

    # Recognizer selection
    recognizer_engine: str = "google"  # "google" or "mock"
    google_credentials_path: Optional[str] = None
    google_credentials_json: Optional[str] = None

    # Streaming
    socket_interim_results: bool = True
    upload_stream_interim_results: bool = False
    stream_chunk_bytes: int = 8192
    session_close_grace_seconds: float = 5.0

    # Server
    host: str = "0.0.0.0"
    port: int = 8099
    log_level: str = "INFO"

    model_config = {"env_prefix": "STT_", "env_file": ".env", "extra": "ignore"}

    @property
    def max_file_size_bytes(self) -> int:
        return self.max_file_size_mb * 1024 * 1024

    @property
    def supported_format_list(self) -> List[str]:
        """Allowlisted extensions, lowercased."""
        return [
            fmt.strip().lower()
            for fmt in self.supported_formats.split(",")
            if fmt.strip()
        ]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
