"""Tests for the file upload endpoints."""

import pytest

from helpers import make_response, make_result
from speech_gateway.api.speech import format_sse
from speech_gateway.core.encoding import AudioEncoding
from speech_gateway.core.recognizer_protocol import (
    RecognitionAlternative,
    RecognitionResult,
    RecognizerError,
    WordTimeInfo,
)

CONVERT_URL = "/api/v1/speech/convert"
STREAM_URL = "/api/v1/speech/stream"


def wav_upload(name="hello.wav", size=32_000, content_type="audio/wav"):
    return {"file": (name, b"\x00\x01" * (size // 2), content_type)}


class TestConvert:
    """POST /api/v1/speech/convert"""

    def test_transcribes_wav(self, client, recognizer):
        recognizer.script(results=[make_result("안녕하세요.", confidence=0.92)])

        response = client.post(CONVERT_URL, files=wav_upload(size=2 * 1024 * 1024))

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["transcribedText"] == "안녕하세요."
        assert data["confidenceScore"] == pytest.approx(0.92)
        assert data["originalFilename"] == "hello.wav"
        assert data["languageCode"] == "ko-KR"
        assert data["fileSize"] == 2 * 1024 * 1024
        assert data["encoding"] == "LINEAR16"
        assert data["resultCount"] == 1
        assert "words" not in data

        config = recognizer.recognize_calls[0].config
        assert config.encoding is AudioEncoding.LINEAR16
        assert config.sample_rate_hertz == 48000
        assert config.enable_automatic_punctuation is True

    def test_unsupported_format_rejected_before_recognizer(self, client, recognizer):
        response = client.post(
            CONVERT_URL, files={"file": ("notes.txt", b"plain text", "text/plain")}
        )

        assert response.status_code == 400
        data = response.json()
        assert data["success"] is False
        assert data["errorMessage"].startswith("지원되지 않는 파일 형식입니다")
        assert recognizer.recognize_calls == []

    def test_empty_recognition_returns_422(self, client, recognizer):
        recognizer.script(results=[])

        response = client.post(CONVERT_URL, files=wav_upload(name="silence.wav"))

        assert response.status_code == 422
        data = response.json()
        assert data["success"] is False
        assert data["errorMessage"] == "음성을 인식할 수 없습니다. 오디오 파일을 확인해주세요."

    def test_recognizer_failure_returns_502(self, client, recognizer):
        recognizer.script(error=RecognizerError("service unavailable"))

        response = client.post(CONVERT_URL, files=wav_upload())

        assert response.status_code == 502
        assert response.json()["success"] is False
        assert "service unavailable" in response.json()["errorMessage"]

    def test_missing_file(self, client, recognizer):
        response = client.post(CONVERT_URL, data={"enableAutomaticPunctuation": "true"})

        assert response.status_code == 400
        assert response.json()["errorMessage"] == "파일이 비어있습니다."

    def test_oversized_file(self, client, recognizer):
        response = client.post(CONVERT_URL, files=wav_upload(size=10 * 1024 * 1024 + 2))

        assert response.status_code == 400
        assert "파일 크기가 제한을 초과합니다" in response.json()["errorMessage"]
        assert recognizer.recognize_calls == []

    def test_form_flags_reach_recognizer(self, client, recognizer):
        words = [WordTimeInfo("hello", 0.0, 0.5), WordTimeInfo("world", 0.5, 1.1)]
        recognizer.script(
            results=[
                RecognitionResult(
                    alternatives=[RecognitionAlternative("hello world", 0.8, words)]
                )
            ]
        )

        response = client.post(
            CONVERT_URL,
            files=wav_upload(name="clip.flac", content_type="audio/flac"),
            data={"enableAutomaticPunctuation": "false", "enableWordTimeOffsets": "true"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["encoding"] == "FLAC"
        assert data["words"] == [
            {"word": "hello", "startTime": 0.0, "endTime": 0.5},
            {"word": "world", "startTime": 0.5, "endTime": 1.1},
        ]

        config = recognizer.recognize_calls[0].config
        assert config.enable_automatic_punctuation is False
        assert config.enable_word_time_offsets is True
        assert config.sample_rate_hertz == 16000

    def test_unscripted_mock_echoes_size(self, client):
        response = client.post(CONVERT_URL, files=wav_upload(size=100))

        assert response.json()["transcribedText"] == "[mock] 100 bytes received"


class TestStream:
    """POST /api/v1/speech/stream"""

    def test_emits_only_the_first_final(self, client, recognizer):
        recognizer.script(
            stream_responses=[
                make_response(make_result("foo", is_final=False)),
                make_response(make_result("foo bar", is_final=True)),
                make_response(make_result("second", is_final=True)),
            ]
        )

        response = client.post(STREAM_URL, files=wav_upload())

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert response.text == "data: foo bar\n\n"

    def test_requests_no_interim_results(self, client, recognizer):
        recognizer.script(stream_responses=[make_response(make_result("ok"))])

        client.post(STREAM_URL, files=wav_upload())

        call = recognizer.stream_calls[0]
        assert call.config_requests[0].streaming_config.interim_results is False
        assert call.requests[0].is_config

    def test_file_is_sent_in_chunks(self, client, recognizer):
        recognizer.script(stream_responses=[], respond_after_audio=100)

        client.post(STREAM_URL, files=wav_upload(size=20_000))

        frames = recognizer.stream_calls[0].audio_frames
        assert [len(f) for f in frames] == [8192, 8192, 3616]
        assert recognizer.stream_calls[0].half_closed

    def test_form_flags_reach_stream_config(self, client, recognizer):
        recognizer.script(stream_responses=[make_response(make_result("ok"))])

        client.post(
            STREAM_URL,
            files=wav_upload(),
            data={"enableAutomaticPunctuation": "false", "enableWordTimeOffsets": "true"},
        )

        config = recognizer.stream_calls[0].config_requests[0].streaming_config.config
        assert config.enable_automatic_punctuation is False
        assert config.enable_word_time_offsets is True

    def test_ends_without_final(self, client, recognizer):
        recognizer.script(stream_responses=[make_response(make_result("partial", is_final=False))])

        response = client.post(STREAM_URL, files=wav_upload())

        assert response.status_code == 200
        assert response.text == ""

    def test_validation_error_is_an_sse_error(self, client, recognizer):
        response = client.post(
            STREAM_URL, files={"file": ("notes.txt", b"plain text", "text/plain")}
        )

        assert response.status_code == 400
        assert response.text.startswith("event: error\ndata: 지원되지 않는 파일 형식입니다")
        assert recognizer.stream_calls == []

    def test_recognizer_error_ends_stream(self, client, recognizer):
        recognizer.script(stream_responses=[], fail_after_audio=1)

        response = client.post(STREAM_URL, files=wav_upload())

        assert response.status_code == 200
        assert response.text == ""


class TestFormatSse:
    def test_single_line(self):
        assert format_sse("hello") == "data: hello\n\n"

    def test_event_and_multiline(self):
        assert format_sse("a\nb", event="error") == "event: error\ndata: a\ndata: b\n\n"
