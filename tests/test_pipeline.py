"""Tests for the voicemail pipeline with in-memory storage and static adapters."""

from unittest.mock import MagicMock

import pytest

from concierge.errors import ExtractionError, IngestError, TranscriptionError, VoicemailFailedError
from concierge.schemas.voicemail import JobExtraction, PipelineLogEntry, TranscriptResult
from concierge.services.fixtures import (
    SAMPLE_TRANSCRIPT,
    SAMPLE_WEBHOOK,
    StaticExtractionAdapter,
    StaticTranscriptionAdapter,
    create_fixture_pipeline,
    run_fixture_pipeline,
)
from concierge.services.pipeline import VoicemailPipeline, advance_status
from concierge.services.repository import InMemoryVoicemailRepository


def _steps(logs: list[PipelineLogEntry]) -> list[tuple[str, str]]:
    return [(entry.step, entry.status) for entry in logs]


def _failing_transcription() -> MagicMock:
    adapter = MagicMock()
    adapter.transcribe.side_effect = RuntimeError("vendor unavailable")
    return adapter


class TestPipelineProcess:
    """Tests for a single process() call."""

    def test_recording_is_transcribed_and_drafted(self):
        """A recording is transcribed, drafted and stored as processed."""
        pipeline, repo = create_fixture_pipeline()
        result = pipeline.process(SAMPLE_WEBHOOK)

        assert result.record.status == "processed"
        assert result.record.transcript == SAMPLE_TRANSCRIPT.text
        assert result.record.transcript_confidence == pytest.approx(0.92)
        assert result.record.job_draft is not None
        assert result.record.job_draft.service_type == "Water heater leak assessment"
        assert result.transcript.vendor == "fixture"
        assert len(repo.all()) == 1

    def test_log_ordering_with_transcription(self):
        """Log entries follow the ingest, transcribe, extract, persist order."""
        pipeline, _ = create_fixture_pipeline()
        result = pipeline.process(SAMPLE_WEBHOOK)

        assert _steps(result.logs) == [
            ("ingest", "pending"),
            ("ingest", "pending"),
            ("ingest", "completed"),
            ("transcribe", "pending"),
            ("transcribe", "completed"),
            ("extract", "pending"),
            ("extract", "completed"),
            ("persist", "completed"),
        ]

    def test_provider_transcript_skips_adapter(self):
        """A transcript supplied by the provider is used as-is with a fixed low confidence."""
        result = run_fixture_pipeline()

        assert ("transcribe", "skipped") in _steps(result.logs)
        assert ("transcribe", "completed") not in _steps(result.logs)
        assert result.transcript.vendor == "provider"
        assert result.record.transcript_confidence == pytest.approx(0.6)
        assert result.record.status == "processed"

    def test_provider_transcript_does_not_call_adapter(self):
        """A provider transcript is trimmed and the adapter is never called."""
        transcription = StaticTranscriptionAdapter()
        pipeline = VoicemailPipeline(InMemoryVoicemailRepository(), transcription, StaticExtractionAdapter())
        webhook = SAMPLE_WEBHOOK.model_copy(update={"transcription_text": "  Please fix my sink  "})

        result = pipeline.process(webhook)

        assert transcription.calls == []
        assert result.transcript.text == "Please fix my sink"

    def test_on_log_receives_every_entry(self):
        """The log callback sees every entry in order."""
        seen = []
        pipeline = VoicemailPipeline(
            InMemoryVoicemailRepository(),
            StaticTranscriptionAdapter(),
            StaticExtractionAdapter(),
            on_log=seen.append,
        )
        result = pipeline.process(SAMPLE_WEBHOOK)
        assert seen == result.logs

    def test_extraction_receives_transcript(self):
        """Extraction is given the transcript text."""
        extraction = StaticExtractionAdapter()
        pipeline = VoicemailPipeline(InMemoryVoicemailRepository(), StaticTranscriptionAdapter(), extraction)
        pipeline.process(SAMPLE_WEBHOOK)
        assert extraction.calls == [SAMPLE_TRANSCRIPT.text]

    def test_dict_draft_is_validated(self):
        """A plain dict draft is validated into a JobExtraction."""
        extraction = MagicMock()
        extraction.extract.return_value = {"confidence": 0.8, "service_type": "Gutter cleaning"}
        pipeline = VoicemailPipeline(InMemoryVoicemailRepository(), StaticTranscriptionAdapter(), extraction)

        result = pipeline.process(SAMPLE_WEBHOOK)

        assert isinstance(result.job_draft, JobExtraction)
        assert result.job_draft.service_type == "Gutter cleaning"


class TestPipelineReentry:
    """Tests for redelivery of the same webhook."""

    def test_second_call_reuses_record(self):
        """Redelivery updates the existing record instead of creating one."""
        pipeline, repo = create_fixture_pipeline()
        first = pipeline.process(SAMPLE_WEBHOOK)
        second = pipeline.process(SAMPLE_WEBHOOK)

        assert len(repo.all()) == 1
        assert second.record.id == first.record.id
        assert second.record.attempts == 2
        assert ("ingest", "pending") in _steps(second.logs)
        # No "Creating new voicemail record" entry on re-entry
        assert [e.message for e in second.logs if e.step == "ingest"].count("Creating new voicemail record") == 0

    def test_same_call_for_other_user_is_separate(self):
        """The same call SID under another user is a separate record."""
        pipeline, repo = create_fixture_pipeline()
        pipeline.process(SAMPLE_WEBHOOK)
        pipeline.process(SAMPLE_WEBHOOK.model_copy(update={"user_id": "someone_else"}))
        assert len(repo.all()) == 2

    def test_reentry_runs_extraction_again(self):
        """Extraction runs again on redelivery."""
        extraction = StaticExtractionAdapter()
        pipeline = VoicemailPipeline(InMemoryVoicemailRepository(), StaticTranscriptionAdapter(), extraction)
        pipeline.process(SAMPLE_WEBHOOK)
        pipeline.process(SAMPLE_WEBHOOK)
        assert len(extraction.calls) == 2

    def test_status_does_not_move_backwards(self):
        """Status only moves forward, except to failed."""
        assert advance_status("processed", "transcribing") == "processed"
        assert advance_status("transcribed", "transcribing") == "transcribed"
        assert advance_status("pending", "transcribed") == "transcribed"
        assert advance_status("processed", "failed") == "failed"

    def test_processed_record_stays_processed_while_retranscribing(self):
        """Redelivery of a processed record does not mark it transcribing."""
        repo = InMemoryVoicemailRepository()
        statuses = []
        transcription = MagicMock()

        def transcribe(url, context):
            statuses.append(repo.find_by_call_sid(context.call_sid, context.user_id).status)
            return SAMPLE_TRANSCRIPT

        transcription.transcribe.side_effect = transcribe
        pipeline = VoicemailPipeline(repo, transcription, StaticExtractionAdapter())

        pipeline.process(SAMPLE_WEBHOOK)
        pipeline.process(SAMPLE_WEBHOOK)

        assert statuses == ["transcribing", "processed"]


class TestPipelineFailures:
    """Tests for adapter and storage failures."""

    def test_transcription_failure_keeps_record(self):
        """A transcription failure leaves the record in place for a retry."""
        repo = InMemoryVoicemailRepository()
        pipeline = VoicemailPipeline(repo, _failing_transcription(), StaticExtractionAdapter())

        with pytest.raises(TranscriptionError) as exc_info:
            pipeline.process(SAMPLE_WEBHOOK)

        assert exc_info.value.call_sid == SAMPLE_WEBHOOK.call_sid
        record = repo.find_by_call_sid(SAMPLE_WEBHOOK.call_sid, SAMPLE_WEBHOOK.user_id)
        assert record.status == "transcribing"
        assert record.transcript is None

    def test_failed_transcription_logged(self):
        """A failed transcription is logged and extraction never runs."""
        seen = []
        pipeline = VoicemailPipeline(
            InMemoryVoicemailRepository(), _failing_transcription(), StaticExtractionAdapter(), on_log=seen.append
        )
        with pytest.raises(TranscriptionError):
            pipeline.process(SAMPLE_WEBHOOK)

        assert _steps(seen)[-1] == ("transcribe", "failed")
        assert "extract" not in [e.step for e in seen]

    def test_empty_transcript_is_failure(self):
        """A blank transcript is a transcription failure."""
        transcription = StaticTranscriptionAdapter(TranscriptResult(text="   ", confidence=0.9))
        pipeline = VoicemailPipeline(InMemoryVoicemailRepository(), transcription, StaticExtractionAdapter())

        with pytest.raises(TranscriptionError):
            pipeline.process(SAMPLE_WEBHOOK)

    def test_retry_after_transcription_failure_resumes(self):
        """A retry after a transcription failure finishes on the same record."""
        repo = InMemoryVoicemailRepository()
        transcription = MagicMock()
        transcription.transcribe.side_effect = [RuntimeError("timeout"), SAMPLE_TRANSCRIPT]
        pipeline = VoicemailPipeline(repo, transcription, StaticExtractionAdapter())

        with pytest.raises(TranscriptionError):
            pipeline.process(SAMPLE_WEBHOOK)
        result = pipeline.process(SAMPLE_WEBHOOK)

        assert result.record.status == "processed"
        assert len(repo.all()) == 1

    def test_record_failed_after_max_attempts(self):
        """The record is marked failed once attempts run out."""
        repo = InMemoryVoicemailRepository()
        pipeline = VoicemailPipeline(repo, _failing_transcription(), StaticExtractionAdapter(), max_attempts=2)

        with pytest.raises(TranscriptionError):
            pipeline.process(SAMPLE_WEBHOOK)
        assert repo.all()[0].status == "transcribing"

        with pytest.raises(TranscriptionError):
            pipeline.process(SAMPLE_WEBHOOK)
        assert repo.all()[0].status == "failed"

    def test_failed_record_is_not_reprocessed(self):
        """A failed record raises a non-retryable ingest error."""
        repo = InMemoryVoicemailRepository()
        pipeline = VoicemailPipeline(repo, _failing_transcription(), StaticExtractionAdapter(), max_attempts=1)
        with pytest.raises(TranscriptionError):
            pipeline.process(SAMPLE_WEBHOOK)

        retry = VoicemailPipeline(repo, StaticTranscriptionAdapter(), StaticExtractionAdapter())
        with pytest.raises(VoicemailFailedError) as exc_info:
            retry.process(SAMPLE_WEBHOOK)
        assert isinstance(exc_info.value, IngestError)
        assert exc_info.value.status_code == 409

    def test_extraction_failure_keeps_transcript(self):
        """An extraction failure keeps the stored transcript."""
        repo = InMemoryVoicemailRepository()
        extraction = MagicMock()
        extraction.extract.side_effect = RuntimeError("rate limited")
        pipeline = VoicemailPipeline(repo, StaticTranscriptionAdapter(), extraction)

        with pytest.raises(ExtractionError):
            pipeline.process(SAMPLE_WEBHOOK)

        record = repo.all()[0]
        assert record.status == "transcribed"
        assert record.transcript == SAMPLE_TRANSCRIPT.text
        assert record.job_draft is None

    def test_malformed_draft_is_extraction_error(self):
        """A draft that fails validation is an extraction error."""
        extraction = MagicMock()
        extraction.extract.return_value = {"confidence": "very sure"}
        pipeline = VoicemailPipeline(InMemoryVoicemailRepository(), StaticTranscriptionAdapter(), extraction)

        with pytest.raises(ExtractionError):
            pipeline.process(SAMPLE_WEBHOOK)

    def test_storage_failure_is_ingest_error(self):
        """A storage failure surfaces as an ingest error."""
        repo = MagicMock()
        repo.find_by_call_sid.side_effect = ConnectionError("database is down")
        pipeline = VoicemailPipeline(repo, StaticTranscriptionAdapter(), StaticExtractionAdapter())

        with pytest.raises(IngestError) as exc_info:
            pipeline.process(SAMPLE_WEBHOOK)
        assert "database is down" in str(exc_info.value)
