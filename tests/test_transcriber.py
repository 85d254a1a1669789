"""Tests for one-shot transcription and result aggregation."""

import pytest

from helpers import make_result
from speech_gateway.core.encoding import AudioEncoding
from speech_gateway.core.mock_recognizer import MockRecognizer
from speech_gateway.core.recognizer_config import TranscriptionOptions
from speech_gateway.core.recognizer_protocol import (
    RecognitionAlternative,
    RecognitionResult,
    RecognizerError,
    WordTimeInfo,
)
from speech_gateway.core.transcriber import (
    EmptyResult,
    Transcriber,
    TranscriptionResult,
    aggregate_results,
)


class TestAggregateResults:
    """Aggregation of recognizer results."""

    def test_concatenates_first_alternatives_in_order(self):
        results = [
            RecognitionResult(
                alternatives=[
                    RecognitionAlternative("안녕", 0.9),
                    RecognitionAlternative("안녕히", 0.1),
                ]
            ),
            make_result("하세요.", confidence=0.7),
        ]

        result = aggregate_results(results)

        assert result.text == "안녕하세요."
        assert result.result_count == 2

    def test_average_counts_only_positive_confidence(self):
        results = [
            make_result("a", confidence=0.8),
            make_result("b", confidence=0.0),
            make_result("c", confidence=0.6),
        ]

        result = aggregate_results(results)

        assert result.average_confidence == pytest.approx(0.7)

    def test_average_is_zero_without_confidence(self):
        result = aggregate_results([make_result("text"), make_result(" more")])
        assert result.average_confidence == 0.0

    def test_skips_results_without_alternatives(self):
        results = [RecognitionResult(alternatives=[]), make_result("ok", confidence=0.5)]

        result = aggregate_results(results)

        assert result.text == "ok"
        assert result.result_count == 1
        assert result.average_confidence == pytest.approx(0.5)

    def test_strips_whitespace(self):
        assert aggregate_results([make_result("  hello  ")]).text == "hello"

    def test_blank_text_raises_empty_result(self):
        with pytest.raises(EmptyResult):
            aggregate_results([make_result("   "), RecognitionResult(alternatives=[])])

    def test_collects_word_offsets(self):
        words = [WordTimeInfo("안녕", 0.0, 0.4), WordTimeInfo("하세요", 0.4, 0.9)]
        results = [
            RecognitionResult(alternatives=[RecognitionAlternative("안녕 하세요", 0.9, words)])
        ]

        assert aggregate_results(results).words == words


class TestTranscriber:
    """Transcriber against the mock recognizer."""

    @pytest.mark.asyncio
    async def test_transcribe_returns_result(self):
        recognizer = MockRecognizer(results=[make_result("안녕하세요.", confidence=0.92)])
        transcriber = Transcriber(recognizer)

        result = await transcriber.transcribe(b"\x00" * 100, TranscriptionOptions())

        assert isinstance(result, TranscriptionResult)
        assert result.text == "안녕하세요."
        assert result.average_confidence == pytest.approx(0.92)

    @pytest.mark.asyncio
    async def test_transcribe_builds_config_from_options(self):
        recognizer = MockRecognizer(results=[make_result("x")])
        options = TranscriptionOptions(
            language_code="en-US",
            enable_automatic_punctuation=False,
            enable_word_time_offsets=True,
        )

        await Transcriber(recognizer).transcribe(b"abc", options, AudioEncoding.FLAC)

        call = recognizer.recognize_calls[0]
        assert call.audio == b"abc"
        assert call.config.encoding is AudioEncoding.FLAC
        assert call.config.sample_rate_hertz == 16000
        assert call.config.language_code == "en-US"
        assert call.config.enable_automatic_punctuation is False
        assert call.config.enable_word_time_offsets is True

    @pytest.mark.asyncio
    async def test_no_results_raises_empty_result(self):
        transcriber = Transcriber(MockRecognizer(results=[]))

        with pytest.raises(EmptyResult, match="음성을 인식할 수 없습니다"):
            await transcriber.transcribe(b"\x00" * 10, TranscriptionOptions())

    @pytest.mark.asyncio
    async def test_recognizer_error_propagates(self):
        transcriber = Transcriber(MockRecognizer(error=RecognizerError("down")))

        with pytest.raises(RecognizerError, match="down"):
            await transcriber.transcribe(b"\x00" * 10, TranscriptionOptions())

    @pytest.mark.asyncio
    async def test_unexpected_failure_becomes_recognizer_error(self):
        transcriber = Transcriber(MockRecognizer(error=ConnectionResetError("reset")))

        with pytest.raises(RecognizerError) as exc_info:
            await transcriber.transcribe(b"\x00" * 10, TranscriptionOptions())

        assert isinstance(exc_info.value.__cause__, ConnectionResetError)
