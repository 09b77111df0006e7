"""Pydantic schemas for materialized jobs and saga status."""

from datetime import datetime

from pydantic import BaseModel


class MaterializationStepResponse(BaseModel):
    step: str
    status: str
    message: str
    entity_id: int | None = None


class MaterializationResponse(BaseModel):
    job_created: bool
    client_id: int | None = None
    job_id: int | None = None
    calendar_event_id: int | None = None
    confirmation_sent: bool = False
    skipped_reason: str | None = None
    error: str | None = None
    steps: list[MaterializationStepResponse] = []


class MaterializationRunResponse(BaseModel):
    id: int
    call_sid: str
    client_status: str
    client_id: int | None
    job_status: str
    job_id: int | None
    calendar_event_status: str
    calendar_event_id: int | None
    confirmation_status: str
    last_error: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
