"""Pydantic schemas for voicemail ingestion, job drafts and pipeline output."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from concierge.schemas.job import MaterializationResponse

VoicemailStatus = Literal["pending", "transcribing", "transcribed", "processed", "failed"]
Urgency = Literal["low", "medium", "high", "emergency"]
PipelineStep = Literal["ingest", "transcribe", "extract", "persist", "notify"]
StepStatus = Literal["pending", "skipped", "completed", "failed"]


class VoicemailWebhookInput(BaseModel):
    """Recording callback for one missed call, already mapped from the provider payload."""

    call_sid: str
    user_id: str
    from_number: str
    to_number: str
    recording_url: str
    recording_sid: str | None = None
    recording_duration: int | None = None
    transcription_text: str | None = None
    transcription_status: Literal["none", "in-progress", "completed", "failed"] | None = None
    received_at: datetime | None = None


class TranscriptResult(BaseModel):
    text: str
    confidence: float = Field(ge=0, le=1)
    vendor: str | None = None


class JobExtraction(BaseModel):
    """Structured job fields inferred from a call transcript (the job draft)."""

    confidence: float = Field(ge=0, le=1)
    client_name: str | None = None
    client_phone: str | None = None
    client_email: str | None = None
    service_type: str | None = None
    description: str | None = None
    scheduled_date: str | None = None
    scheduled_time: str | None = None
    location: str | None = None
    estimated_price: float | None = None
    urgency: Urgency | None = None
    follow_up_required: bool | None = None
    notes: str | None = None
    extracted_at: datetime = Field(default_factory=datetime.utcnow)
    processing_time: float | None = None  # milliseconds


class PipelineLogEntry(BaseModel):
    step: PipelineStep
    status: StepStatus
    message: str
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    meta: dict[str, Any] = Field(default_factory=dict)


class StoredVoicemail(BaseModel):
    """Voicemail record as returned by a repository and by the API."""

    id: int
    call_sid: str
    user_id: str
    from_number: str
    to_number: str
    recording_url: str
    recording_sid: str | None = None
    status: VoicemailStatus
    transcript: str | None = None
    transcript_confidence: float | None = None
    job_draft: JobExtraction | None = None
    attempts: int = 0
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class VoicemailListResponse(BaseModel):
    items: list[StoredVoicemail]
    total: int


class VoicemailProcessingResponse(BaseModel):
    record: StoredVoicemail
    transcript: TranscriptResult | None = None
    job_draft: JobExtraction | None = None
    logs: list[PipelineLogEntry]
    materialization: MaterializationResponse | None = None
