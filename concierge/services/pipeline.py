"""Voicemail pipeline: ingest, transcribe, extract and persist one inbound recording.

Stages run strictly in sequence. Adapter failures are raised to the caller and
leave the record in its last persisted state, so a redelivered webhook resumes
from the existing record. Extraction always runs again on re-entry.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from concierge.errors import ExtractionError, IngestError, TranscriptionError, VoicemailFailedError
from concierge.schemas.voicemail import (
    JobExtraction,
    PipelineLogEntry,
    StoredVoicemail,
    TranscriptResult,
    VoicemailWebhookInput,
)
from concierge.services.extraction import JobExtractionAdapter
from concierge.services.repository import VoicemailRepository
from concierge.services.transcription import TranscriptionAdapter

logger = logging.getLogger("concierge")

STATUS_RANK = {"pending": 0, "transcribing": 1, "transcribed": 2, "processed": 3}


def advance_status(current: str, target: str) -> str:
    """Return ``target`` unless it would move the record backwards."""
    if target == "failed":
        return target
    if STATUS_RANK.get(current, 0) > STATUS_RANK[target]:
        return current
    return target


@dataclass
class VoicemailProcessingResult:
    record: StoredVoicemail
    transcript: TranscriptResult | None = None
    job_draft: JobExtraction | None = None
    logs: list[PipelineLogEntry] = field(default_factory=list)


class VoicemailPipeline:
    """Turns a voicemail webhook into a stored record with transcript and job draft."""

    def __init__(
        self,
        repository: VoicemailRepository,
        transcription: TranscriptionAdapter,
        extraction: JobExtractionAdapter,
        on_log: Callable[[PipelineLogEntry], None] | None = None,
        provider_confidence: float = 0.6,
        max_attempts: int = 3,
    ) -> None:
        self.repository = repository
        self.transcription = transcription
        self.extraction = extraction
        self.on_log = on_log
        self.provider_confidence = provider_confidence
        self.max_attempts = max_attempts

    def _emit(self, entry: PipelineLogEntry, call_sid: str) -> None:
        level = logging.WARNING if entry.status == "failed" else logging.INFO
        logger.log(level, "[%s] %s/%s: %s", call_sid, entry.step, entry.status, entry.message)
        if self.on_log:
            self.on_log(entry)

    def _fail_if_exhausted(self, record: StoredVoicemail) -> None:
        """Mark the record failed once it has used up its processing attempts."""
        if record.attempts < self.max_attempts:
            return
        try:
            self.repository.update(record.id, status="failed")
        except Exception:
            logger.exception("Could not mark voicemail %s as failed", record.id)
        else:
            logger.warning("Voicemail %s marked failed after %d attempts", record.id, record.attempts)

    def process(self, webhook: VoicemailWebhookInput) -> VoicemailProcessingResult:
        logs: list[PipelineLogEntry] = []

        def append(step: str, status: str, message: str, **meta: Any) -> None:
            entry = PipelineLogEntry(step=step, status=status, message=message, meta=meta)
            logs.append(entry)
            self._emit(entry, webhook.call_sid)

        # Ingest
        append(
            "ingest",
            "pending",
            "Checking for existing voicemail record",
            call_sid=webhook.call_sid,
            user_id=webhook.user_id,
        )
        try:
            record = self.repository.find_by_call_sid(webhook.call_sid, webhook.user_id)
            if record is None:
                append("ingest", "pending", "Creating new voicemail record", recording_url=webhook.recording_url)
                record, created = self.repository.upsert(webhook)
                if not created:
                    logger.info("Voicemail %s was stored by a concurrent delivery", webhook.call_sid)
        except Exception as e:
            append("ingest", "failed", f"Failed to store voicemail record: {e}")
            raise IngestError(f"Failed to store voicemail record: {e}", webhook.call_sid) from e

        if record.status == "failed":
            append("ingest", "failed", "Voicemail record is marked failed; not reprocessing", record_id=record.id)
            raise VoicemailFailedError(f"Voicemail record {record.id} is marked failed", webhook.call_sid)

        try:
            record = self.repository.update(record.id, attempts=record.attempts + 1)
        except Exception as e:
            append("ingest", "failed", f"Failed to update voicemail record: {e}")
            raise IngestError(f"Failed to update voicemail record: {e}", webhook.call_sid) from e

        append("ingest", "completed", "Voicemail stored", record_id=record.id, attempt=record.attempts)

        # Transcript acquisition
        supplied_text = (webhook.transcription_text or "").strip()
        if supplied_text:
            transcript = TranscriptResult(text=supplied_text, confidence=self.provider_confidence, vendor="provider")
            append("transcribe", "skipped", "Using transcription supplied by provider")
        else:
            append("transcribe", "pending", "Requesting transcription for recording")
            record = self.repository.update(record.id, status=advance_status(record.status, "transcribing"))
            try:
                transcript = self.transcription.transcribe(webhook.recording_url, webhook)
                if not transcript.text.strip():
                    raise TranscriptionError("Transcription returned no text", webhook.call_sid)
            except Exception as e:
                append("transcribe", "failed", f"Transcription failed: {e}")
                self._fail_if_exhausted(record)
                if isinstance(e, TranscriptionError):
                    raise
                raise TranscriptionError(f"Unable to transcribe voicemail recording: {e}", webhook.call_sid) from e
            append(
                "transcribe",
                "completed",
                "Transcription completed",
                confidence=transcript.confidence,
                vendor=transcript.vendor,
            )

        record = self.repository.update(
            record.id,
            status=advance_status(record.status, "transcribed"),
            transcript=transcript.text,
            transcript_confidence=transcript.confidence,
        )

        # Extraction
        append("extract", "pending", "Generating job draft from transcript")
        try:
            job_draft = self.extraction.extract(transcript, webhook)
            if not isinstance(job_draft, JobExtraction):
                job_draft = JobExtraction.model_validate(job_draft)
        except Exception as e:
            append("extract", "failed", f"Job extraction failed: {e}")
            self._fail_if_exhausted(record)
            if isinstance(e, ExtractionError):
                raise
            raise ExtractionError(f"Unable to extract job draft: {e}", webhook.call_sid) from e
        append(
            "extract",
            "completed",
            "Job draft generated",
            confidence=job_draft.confidence,
            client_name=job_draft.client_name,
            service_type=job_draft.service_type,
        )

        # Persist
        record = self.repository.update(
            record.id,
            status=advance_status(record.status, "processed"),
            job_draft=job_draft,
        )
        append("persist", "completed", "Updated voicemail record with job draft", record_id=record.id)

        return VoicemailProcessingResult(record=record, transcript=transcript, job_draft=job_draft, logs=logs)
