"""Tests for transcription adapters with mocked faster-whisper and OpenAI."""

import math
from dataclasses import dataclass
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest

from concierge.config import Settings
from concierge.services.fixtures import SAMPLE_WEBHOOK
from concierge.services.transcription import (
    DEFAULT_CONFIDENCE,
    OpenAITranscriptionAdapter,
    RecordingFetcher,
    WhisperTranscriptionAdapter,
    build_transcription_adapter,
    confidence_from_segments,
)


@dataclass
class MockSegment:
    """Mock transcription segment."""

    start: float
    end: float
    text: str
    avg_logprob: float = -0.1


@dataclass
class MockTranscriptionInfo:
    """Mock transcription info."""

    language: str = "en"
    language_probability: float = 0.95
    duration: float = 30.0


def _fetcher(audio: bytes = b"\x00" * 512) -> MagicMock:
    fetcher = MagicMock(spec=RecordingFetcher)
    fetcher.fetch.return_value = audio
    return fetcher


class TestConfidenceFromSegments:
    """Tests for mapping segment scores to confidence."""

    def test_mean_logprob(self):
        """Confidence is the exponent of the mean segment logprob."""
        segments = [MockSegment(0, 1, "a", avg_logprob=-0.2), MockSegment(1, 2, "b", avg_logprob=-0.4)]
        assert confidence_from_segments(segments) == pytest.approx(math.exp(-0.3))

    def test_no_scores(self):
        """Segments without scores give the default confidence."""
        assert confidence_from_segments([]) == DEFAULT_CONFIDENCE
        assert confidence_from_segments([SimpleNamespace(text="hi")]) == DEFAULT_CONFIDENCE

    def test_clamped(self):
        """Confidence never exceeds 1."""
        assert confidence_from_segments([SimpleNamespace(avg_logprob=0.5)]) == 1.0


class TestWhisperTranscriptionAdapter:
    """Tests for local faster-whisper transcription."""

    @patch("concierge.services.transcription.WhisperTranscriptionAdapter._get_model")
    def test_transcribe_success(self, mock_get_model):
        """Segments are joined into one trimmed transcript."""
        mock_model = MagicMock()
        mock_segments = [
            MockSegment(start=0.0, end=5.0, text=" Hi, my sink is leaking."),
            MockSegment(start=5.0, end=10.0, text=" Can someone come Tuesday? "),
        ]
        mock_model.transcribe.return_value = (iter(mock_segments), MockTranscriptionInfo())
        mock_get_model.return_value = mock_model
        fetcher = _fetcher()
        adapter = WhisperTranscriptionAdapter("base", fetcher, language="en")

        result = adapter.transcribe(SAMPLE_WEBHOOK.recording_url, SAMPLE_WEBHOOK)

        fetcher.fetch.assert_called_once_with(SAMPLE_WEBHOOK.recording_url)
        assert result.text == "Hi, my sink is leaking. Can someone come Tuesday?"
        assert result.vendor == "whisper"
        assert result.confidence == pytest.approx(math.exp(-0.1))
        assert mock_model.transcribe.call_args.kwargs["language"] == "en"

    @patch("concierge.services.transcription.WhisperTranscriptionAdapter._get_model")
    def test_transcribe_failure_propagates(self, mock_get_model):
        """Model errors reach the caller."""
        mock_model = MagicMock()
        mock_model.transcribe.side_effect = RuntimeError("Model error")
        mock_get_model.return_value = mock_model
        adapter = WhisperTranscriptionAdapter("base", _fetcher())

        with pytest.raises(RuntimeError):
            adapter.transcribe(SAMPLE_WEBHOOK.recording_url, SAMPLE_WEBHOOK)

    def test_model_is_loaded_once(self):
        """The whisper model is loaded lazily and cached."""
        adapter = WhisperTranscriptionAdapter("tiny", _fetcher())
        with patch("faster_whisper.WhisperModel") as model_cls:
            first = adapter._get_model()
            second = adapter._get_model()

        assert first is second
        model_cls.assert_called_once_with("tiny", device="cpu", compute_type="int8")


class TestOpenAITranscriptionAdapter:
    """Tests for the hosted transcription endpoint."""

    def test_transcribe(self):
        """The OpenAI reply text and segment scores become a transcript."""
        client = MagicMock()
        client.audio.transcriptions.create.return_value = SimpleNamespace(
            text=" Need a plumber tomorrow. ",
            segments=[SimpleNamespace(avg_logprob=-0.05)],
        )
        adapter = OpenAITranscriptionAdapter(client, "whisper-1", _fetcher(b"audio"))

        result = adapter.transcribe(SAMPLE_WEBHOOK.recording_url, SAMPLE_WEBHOOK)

        assert result.text == "Need a plumber tomorrow."
        assert result.vendor == "openai"
        assert result.confidence == pytest.approx(math.exp(-0.05))
        kwargs = client.audio.transcriptions.create.call_args.kwargs
        assert kwargs["model"] == "whisper-1"
        assert kwargs["file"] == ("recording.mp3", b"audio")


class TestRecordingFetcher:
    """Tests for downloading recordings."""

    @patch("concierge.services.transcription.httpx.get")
    def test_fetch_with_twilio_auth(self, mock_get):
        """Recordings are fetched with Twilio basic auth when configured."""
        mock_get.return_value = MagicMock(content=b"mp3-bytes")
        fetcher = RecordingFetcher(account_sid="AC123", auth_token="secret", timeout=5)

        assert fetcher.fetch("https://api.twilio.com/rec.mp3") == b"mp3-bytes"
        mock_get.assert_called_once_with(
            "https://api.twilio.com/rec.mp3", auth=("AC123", "secret"), timeout=5, follow_redirects=True
        )
        mock_get.return_value.raise_for_status.assert_called_once()

    @patch("concierge.services.transcription.httpx.get")
    def test_fetch_without_credentials(self, mock_get):
        """Without credentials the fetch is unauthenticated."""
        mock_get.return_value = MagicMock(content=b"")
        RecordingFetcher().fetch("https://x/1.mp3")
        assert mock_get.call_args.kwargs["auth"] is None


class TestBuildTranscriptionAdapter:
    """Tests for adapter selection from settings."""

    def test_whisper_vendor(self):
        """The whisper vendor builds the local adapter."""
        settings = Settings()
        settings.TRANSCRIPTION_VENDOR = "whisper"
        settings.TRANSCRIPTION_LANGUAGE = "en-US"
        adapter = build_transcription_adapter(settings)
        assert isinstance(adapter, WhisperTranscriptionAdapter)
        assert adapter.language == "en"

    def test_openai_vendor(self):
        """The openai vendor builds the OpenAI adapter."""
        settings = Settings()
        settings.TRANSCRIPTION_VENDOR = "openai"
        settings.OPENAI_API_KEY = "sk-test"
        assert isinstance(build_transcription_adapter(settings), OpenAITranscriptionAdapter)

    def test_unknown_vendor(self):
        """An unknown vendor is a configuration error."""
        settings = Settings()
        settings.TRANSCRIPTION_VENDOR = "stenographer"
        with pytest.raises(ValueError):
            build_transcription_adapter(settings)
