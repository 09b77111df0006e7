"""Voicemail API endpoints polled by the job-card preview."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from concierge.config import get_settings
from concierge.database import get_db
from concierge.dependencies import CurrentUser, get_current_user
from concierge.schemas.job import MaterializationResponse, MaterializationRunResponse
from concierge.schemas.voicemail import StoredVoicemail, VoicemailListResponse
from concierge.services.confirmation import ConfirmationSender, get_confirmation_sender
from concierge.services.materializer import JobMaterializer
from concierge.services.voicemail import get_voicemail_service

router = APIRouter(prefix="/api/v1/voicemails", tags=["Voicemails"])


@router.get("/", response_model=VoicemailListResponse)
def list_voicemails(
    status: str | None = None,
    limit: int = 50,
    offset: int = 0,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> VoicemailListResponse:
    """List voicemails for the current user, optionally filtered by status."""
    service = get_voicemail_service()
    items, total = service.get_user_voicemails(db, user.user_id, status=status, limit=limit, offset=offset)
    return VoicemailListResponse(
        items=[StoredVoicemail.model_validate(v) for v in items],
        total=total,
    )


@router.get("/{voicemail_id}", response_model=StoredVoicemail)
def get_voicemail(
    voicemail_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> StoredVoicemail:
    """Get a single voicemail with its transcript and job draft."""
    service = get_voicemail_service()
    voicemail = service.get_voicemail(db, voicemail_id, user.user_id)
    if not voicemail:
        raise HTTPException(status_code=404, detail="Voicemail not found")
    return StoredVoicemail.model_validate(voicemail)


@router.post("/{voicemail_id}/materialize", response_model=MaterializationResponse)
def materialize_voicemail(
    voicemail_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    confirmation_sender: ConfirmationSender = Depends(get_confirmation_sender),
) -> MaterializationResponse:
    """Run (or resume) job materialization for a processed voicemail."""
    service = get_voicemail_service()
    voicemail = service.get_voicemail(db, voicemail_id, user.user_id)
    if not voicemail:
        raise HTTPException(status_code=404, detail="Voicemail not found")

    record = StoredVoicemail.model_validate(voicemail)
    if record.job_draft is None:
        raise HTTPException(status_code=400, detail=f"Voicemail has no job draft (status '{record.status}')")

    settings = get_settings()
    materializer = JobMaterializer(
        db,
        confirmation_sender,
        confidence_threshold=settings.CONFIDENCE_THRESHOLD,
        event_duration_minutes=settings.DEFAULT_EVENT_DURATION_MINUTES,
    )
    outcome = materializer.materialize(record.job_draft, user.user_id, record.call_sid)
    return outcome.to_response()


@router.get("/{voicemail_id}/materialization", response_model=MaterializationRunResponse)
def get_materialization(
    voicemail_id: int,
    user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> MaterializationRunResponse:
    """Get the per-step materialization status for a voicemail."""
    service = get_voicemail_service()
    voicemail = service.get_voicemail(db, voicemail_id, user.user_id)
    if not voicemail:
        raise HTTPException(status_code=404, detail="Voicemail not found")

    run = service.get_materialization_run(db, voicemail)
    if not run:
        raise HTTPException(status_code=404, detail="Voicemail has not been materialized")
    return MaterializationRunResponse.model_validate(run)
