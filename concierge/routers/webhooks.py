"""Voicemail webhook endpoint called by the telephony provider."""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, Form, Request
from sqlalchemy.orm import Session

from concierge.config import get_settings
from concierge.database import get_db
from concierge.dependencies import verify_twilio_signature
from concierge.rate_limit import limiter
from concierge.schemas.voicemail import PipelineLogEntry, VoicemailProcessingResponse, VoicemailWebhookInput
from concierge.services.confirmation import ConfirmationSender, get_confirmation_sender
from concierge.services.extraction import JobExtractionAdapter, get_extraction_adapter
from concierge.services.materializer import JobMaterializer, MaterializationResult
from concierge.services.pipeline import VoicemailPipeline
from concierge.services.repository import SqlAlchemyVoicemailRepository
from concierge.services.transcription import TranscriptionAdapter, get_transcription_adapter

logger = logging.getLogger("concierge")

router = APIRouter(prefix="/api/v1/webhooks", tags=["Webhooks"])

TRANSCRIPTION_STATUSES = {"none", "in-progress", "completed", "failed"}


def _notify_entry(outcome: MaterializationResult) -> PipelineLogEntry:
    """Summarize a materialization attempt as the pipeline's notify step."""
    meta = {"job_id": outcome.job_id, "calendar_event_id": outcome.calendar_event_id}
    if outcome.skipped_reason:
        return PipelineLogEntry(step="notify", status="skipped", message=f"No job created: {outcome.skipped_reason}")
    if outcome.error:
        return PipelineLogEntry(step="notify", status="failed", message=str(outcome.error), meta=meta)
    caveats = [s.step for s in outcome.steps if s.status == "failed"]
    message = "Job created" if not caveats else f"Job created with failed steps: {', '.join(caveats)}"
    return PipelineLogEntry(step="notify", status="completed", message=message, meta=meta)


@router.post(
    "/voicemail/{user_id}",
    response_model=VoicemailProcessingResponse,
    dependencies=[Depends(verify_twilio_signature)],
)
@limiter.limit("120/minute")
def voicemail_webhook(
    request: Request,
    user_id: str,
    call_sid: str = Form(..., alias="CallSid"),
    from_number: str = Form("", alias="From"),
    to_number: str = Form("", alias="To"),
    recording_url: str = Form(..., alias="RecordingUrl"),
    recording_sid: str | None = Form(None, alias="RecordingSid"),
    recording_duration: int | None = Form(None, alias="RecordingDuration"),
    transcription_text: str | None = Form(None, alias="TranscriptionText"),
    transcription_status: str | None = Form(None, alias="TranscriptionStatus"),
    db: Session = Depends(get_db),
    transcription: TranscriptionAdapter = Depends(get_transcription_adapter),
    extraction: JobExtractionAdapter = Depends(get_extraction_adapter),
    confirmation_sender: ConfirmationSender = Depends(get_confirmation_sender),
) -> VoicemailProcessingResponse:
    """Process a recorded voicemail and create a job from it when the draft is trusted."""
    settings = get_settings()
    webhook = VoicemailWebhookInput(
        call_sid=call_sid,
        user_id=user_id,
        from_number=from_number,
        to_number=to_number,
        recording_url=recording_url,
        recording_sid=recording_sid,
        recording_duration=recording_duration,
        transcription_text=transcription_text,
        transcription_status=transcription_status if transcription_status in TRANSCRIPTION_STATUSES else None,
        received_at=datetime.utcnow(),
    )

    pipeline = VoicemailPipeline(
        repository=SqlAlchemyVoicemailRepository(db),
        transcription=transcription,
        extraction=extraction,
        provider_confidence=settings.PROVIDER_TRANSCRIPT_CONFIDENCE,
        max_attempts=settings.MAX_PROCESSING_ATTEMPTS,
    )
    result = pipeline.process(webhook)

    materialization = None
    if result.job_draft is not None:
        materializer = JobMaterializer(
            db,
            confirmation_sender,
            confidence_threshold=settings.CONFIDENCE_THRESHOLD,
            event_duration_minutes=settings.DEFAULT_EVENT_DURATION_MINUTES,
        )
        outcome = materializer.materialize(result.job_draft, user_id, result.record.call_sid)
        materialization = outcome.to_response()
        result.logs.append(_notify_entry(outcome))

    return VoicemailProcessingResponse(
        record=result.record,
        transcript=result.transcript,
        job_draft=result.job_draft,
        logs=result.logs,
        materialization=materialization,
    )
