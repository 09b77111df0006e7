"""Transcription adapters for call recordings (faster-whisper or the OpenAI API)."""

import io
import logging
import math
import time
from collections.abc import Iterable
from typing import Any, Protocol

import httpx
from openai import OpenAI

from concierge.config import Settings, get_settings
from concierge.schemas.voicemail import TranscriptResult, VoicemailWebhookInput

logger = logging.getLogger("concierge")

# Whisper does not always report segment scores
DEFAULT_CONFIDENCE = 0.95


class TranscriptionAdapter(Protocol):
    def transcribe(self, recording_url: str, context: VoicemailWebhookInput) -> TranscriptResult: ...


def confidence_from_segments(segments: Iterable[Any]) -> float:
    """Average segment log-probability mapped to a 0-1 confidence."""
    logprobs = []
    for seg in segments:
        lp = getattr(seg, "avg_logprob", None)
        if isinstance(lp, (int, float)):
            logprobs.append(lp)
    if not logprobs:
        return DEFAULT_CONFIDENCE
    return max(0.0, min(1.0, math.exp(sum(logprobs) / len(logprobs))))


class RecordingFetcher:
    """Downloads call recordings, using Twilio basic auth when credentials are configured."""

    def __init__(self, account_sid: str | None = None, auth_token: str | None = None, timeout: float = 30.0) -> None:
        self.auth = (account_sid, auth_token) if account_sid and auth_token else None
        self.timeout = timeout

    def fetch(self, recording_url: str) -> bytes:
        response = httpx.get(recording_url, auth=self.auth, timeout=self.timeout, follow_redirects=True)
        response.raise_for_status()
        return response.content


class WhisperTranscriptionAdapter:
    """Transcribes recordings locally with faster-whisper."""

    vendor = "whisper"

    def __init__(self, model_size: str, fetcher: RecordingFetcher, language: str | None = None) -> None:
        self.model_size = model_size
        self.fetcher = fetcher
        self.language = language
        self._model = None

    def _get_model(self):
        """Lazy-load the whisper model."""
        if self._model is None:
            from faster_whisper import WhisperModel

            self._model = WhisperModel(self.model_size, device="cpu", compute_type="int8")
        return self._model

    def transcribe(self, recording_url: str, context: VoicemailWebhookInput) -> TranscriptResult:
        audio = self.fetcher.fetch(recording_url)

        start_time = time.time()
        model = self._get_model()
        segments_iter, info = model.transcribe(io.BytesIO(audio), beam_size=5, language=self.language)
        segments = list(segments_iter)
        processing_time = time.time() - start_time

        text = " ".join(seg.text.strip() for seg in segments).strip()
        logger.info(
            "Whisper transcription for %s finished in %.2fs (%d segments, language=%s)",
            context.call_sid,
            processing_time,
            len(segments),
            getattr(info, "language", None),
        )
        return TranscriptResult(text=text, confidence=confidence_from_segments(segments), vendor=self.vendor)


class OpenAITranscriptionAdapter:
    """Transcribes recordings with the OpenAI audio transcription endpoint."""

    vendor = "openai"

    def __init__(self, client: OpenAI, model: str, fetcher: RecordingFetcher, language: str | None = None) -> None:
        self.client = client
        self.model = model
        self.fetcher = fetcher
        self.language = language

    def transcribe(self, recording_url: str, context: VoicemailWebhookInput) -> TranscriptResult:
        audio = self.fetcher.fetch(recording_url)

        start_time = time.time()
        resp = self.client.audio.transcriptions.create(
            model=self.model,
            file=("recording.mp3", audio),
            response_format="verbose_json",
            language=self.language,
            temperature=0.0,
        )
        logger.info(
            "OpenAI transcription for %s finished in %.2fs", context.call_sid, time.time() - start_time
        )

        text = (resp.text or "").strip()
        segments = getattr(resp, "segments", None) or []
        return TranscriptResult(text=text, confidence=confidence_from_segments(segments), vendor=self.vendor)


def build_transcription_adapter(settings: Settings) -> TranscriptionAdapter:
    """Create the transcription adapter named by TRANSCRIPTION_VENDOR."""
    fetcher = RecordingFetcher(
        account_sid=settings.TWILIO_ACCOUNT_SID or None,
        auth_token=settings.TWILIO_AUTH_TOKEN or None,
        timeout=settings.HTTP_TIMEOUT_SECONDS,
    )
    language = settings.TRANSCRIPTION_LANGUAGE.split("-")[0] or None
    vendor = settings.TRANSCRIPTION_VENDOR.lower()

    if vendor == "whisper":
        return WhisperTranscriptionAdapter(settings.WHISPER_MODEL_SIZE, fetcher, language=language)
    if vendor == "openai":
        client = OpenAI(
            api_key=settings.OPENAI_API_KEY,
            base_url=settings.OPENAI_BASE_URL,
            timeout=settings.HTTP_TIMEOUT_SECONDS,
        )
        return OpenAITranscriptionAdapter(client, settings.OPENAI_TRANSCRIPTION_MODEL, fetcher, language=language)
    raise ValueError(f"Unknown transcription vendor '{settings.TRANSCRIPTION_VENDOR}'")


_transcription_adapter: TranscriptionAdapter | None = None


def get_transcription_adapter() -> TranscriptionAdapter:
    """Get singleton transcription adapter instance."""
    global _transcription_adapter
    if _transcription_adapter is None:
        _transcription_adapter = build_transcription_adapter(get_settings())
    return _transcription_adapter
