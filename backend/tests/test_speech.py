"""Speech-to-Text 客户端测试（客户端全部 mock，不访问网络）。"""

from types import SimpleNamespace

import pytest
from google.api_core import exceptions as api_exceptions
from google.auth.exceptions import DefaultCredentialsError
from google.cloud import speech as gspeech

from talksense.config import RecognitionConfig
from talksense.exceptions import TranscriptionServiceError
from talksense.services import speech


def _result(*texts: str) -> SimpleNamespace:
    return SimpleNamespace(alternatives=[SimpleNamespace(transcript=t) for t in texts])


def _response(*segments: list[str]) -> gspeech.RecognizeResponse:
    return gspeech.RecognizeResponse(
        results=[
            gspeech.SpeechRecognitionResult(
                alternatives=[gspeech.SpeechRecognitionAlternative(transcript=t) for t in seg]
            )
            for seg in segments
        ]
    )


class TestAssembleTranscript:
    def test_takes_top_alternative_and_joins_with_newline(self):
        results = [_result(" Hello there. ", "hello their"), _result("How are you?")]
        assert speech.assemble_transcript(results) == "Hello there.\nHow are you?"

    def test_empty_results(self):
        assert speech.assemble_transcript([]) == ""

    def test_skips_segments_without_alternatives(self):
        assert speech.assemble_transcript([_result(), _result("only")]) == "only"

    def test_line_count_matches_non_empty_segments(self):
        results = [_result("one"), _result("two"), _result(), _result("three")]
        transcript = speech.assemble_transcript(results)
        non_empty = [line for line in transcript.split("\n") if line]
        assert len(non_empty) == sum(1 for r in results if r.alternatives)


class TestRecognitionConfig:
    def test_defaults(self, settings_env):
        config = speech.build_recognition_config()
        assert config.encoding == gspeech.RecognitionConfig.AudioEncoding.FLAC
        assert config.sample_rate_hertz == 48000
        assert config.language_code == "en-US"
        assert config.enable_automatic_punctuation is True

    def test_explicit_config(self):
        config = speech.build_recognition_config(
            RecognitionConfig(language_code="en-GB", sample_rate_hertz=16000)
        )
        assert config.language_code == "en-GB"
        assert config.sample_rate_hertz == 16000


class TestTranscribe:
    @pytest.fixture
    def mock_client(self, mocker, settings_env):
        client = mocker.MagicMock()
        mocker.patch.object(speech, "get_speech_client", return_value=client)
        return client

    @pytest.mark.asyncio
    async def test_returns_joined_transcript(self, mock_client):
        mock_client.recognize.return_value = _response(["I love this. "], ["Really."])

        text = await speech.transcribe(b"fLaC...")

        assert text == "I love this.\nReally."
        kwargs = mock_client.recognize.call_args.kwargs
        assert kwargs["audio"].content == b"fLaC..."
        assert kwargs["config"].encoding == gspeech.RecognitionConfig.AudioEncoding.FLAC

    @pytest.mark.asyncio
    async def test_no_results_is_empty_string(self, mock_client):
        mock_client.recognize.return_value = _response()

        assert await speech.transcribe(b"fLaC") == ""

    @pytest.mark.asyncio
    async def test_api_error_is_wrapped(self, mock_client):
        mock_client.recognize.side_effect = api_exceptions.PermissionDenied("API not enabled")

        with pytest.raises(TranscriptionServiceError, match="API not enabled"):
            await speech.transcribe(b"fLaC")
        assert mock_client.recognize.call_count == 1

    @pytest.mark.asyncio
    async def test_missing_credentials_is_wrapped(self, mocker, settings_env):
        mocker.patch.object(
            speech, "get_speech_client", side_effect=DefaultCredentialsError("no credentials")
        )

        with pytest.raises(TranscriptionServiceError):
            await speech.transcribe(b"fLaC")
