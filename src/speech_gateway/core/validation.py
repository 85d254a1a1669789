"""Upload validation for the file transcription endpoints."""

from dataclasses import dataclass
from typing import Iterable, Optional

from speech_gateway.core.encoding import file_extension

_MB = 1024 * 1024


class FileValidationError(Exception):
    """Base class for rejected uploads. The message is user facing."""

    pass


class EmptyInput(FileValidationError):
    """Raised when the upload has no content."""

    pass


class TooLarge(FileValidationError):
    """Raised when the upload exceeds the configured size limit."""

    pass


class MissingExtension(FileValidationError):
    """Raised when the filename has no extension."""

    pass


class UnsupportedFormat(FileValidationError):
    """Raised when the extension is not in the allowlist."""

    pass


@dataclass(frozen=True)
class AudioUpload:
    """An uploaded audio file held in memory."""

    filename: Optional[str]
    content_type: Optional[str]
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)


class FileValidator:
    """Rejects empty, oversized and unsupported uploads."""

    def __init__(self, max_file_size_mb: int, supported_formats: Iterable[str]):
        self.max_file_size_bytes = max_file_size_mb * _MB
        self.supported_formats = [
            fmt.strip().lower() for fmt in supported_formats if fmt.strip()
        ]

    def validate(self, upload: Optional[AudioUpload]) -> None:
        """
        Validate an upload.

        Raises:
            EmptyInput: No file or zero bytes
            TooLarge: Size above the limit
            MissingExtension: Filename without extension
            UnsupportedFormat: Extension not allowlisted
        """
        if upload is None or upload.size == 0:
            raise EmptyInput("파일이 비어있습니다.")

        if upload.size > self.max_file_size_bytes:
            raise TooLarge(
                "파일 크기가 제한을 초과합니다. (현재: %.2f MB, 최대: %.2f MB)"
                % (upload.size / _MB, self.max_file_size_bytes / _MB)
            )

        self.validate_format(upload.filename)

    def validate_format(self, filename: Optional[str]) -> None:
        """Check the filename extension against the allowlist."""
        extension = file_extension(filename).lower()

        if not extension:
            raise MissingExtension("파일 확장자가 없습니다.")

        if extension not in self.supported_formats:
            raise UnsupportedFormat(
                "지원되지 않는 파일 형식입니다. (입력: %s, 지원 형식: %s)"
                % (extension, ",".join(self.supported_formats))
            )
