"""Job materialization: turn a trusted job draft into client, job, calendar event and confirmation.

Materialization runs as a saga over four steps. Each step is caught on its own,
so a failing calendar event or confirmation never undoes a created job. Step
status and created ids are stored in a ``MaterializationRun`` keyed by
(user_id, call_sid); running again for the same call skips completed steps and
retries the rest.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from concierge.errors import MaterializationError
from concierge.models.job import CalendarEvent, Client, Job
from concierge.models.materialization import MaterializationRun
from concierge.schemas.job import MaterializationResponse, MaterializationStepResponse
from concierge.schemas.voicemail import JobExtraction
from concierge.services.confirmation import ConfirmationSender, render_confirmation
from concierge.services.datetime_resolver import resolve_datetime

logger = logging.getLogger("concierge")

DEFAULT_CLIENT_NAME = "Phone Call Client"
DEFAULT_JOB_TITLE = "Phone Call Job"
DEFAULT_EVENT_TITLE = "Service Call"


@dataclass
class MaterializationStep:
    step: str
    status: str  # completed, skipped, failed
    message: str
    entity_id: int | None = None
    error: MaterializationError | None = None


@dataclass
class MaterializationResult:
    """Outcome of one materialization attempt.

    ``error`` holds the job-creation failure, if any. Failures of the other
    steps are caveats listed in ``steps`` and do not make the result a failure.
    """

    job_created: bool = False
    client_id: int | None = None
    job_id: int | None = None
    calendar_event_id: int | None = None
    confirmation_sent: bool = False
    skipped_reason: str | None = None
    error: MaterializationError | None = None
    steps: list[MaterializationStep] = field(default_factory=list)

    def to_response(self) -> MaterializationResponse:
        return MaterializationResponse(
            job_created=self.job_created,
            client_id=self.client_id,
            job_id=self.job_id,
            calendar_event_id=self.calendar_event_id,
            confirmation_sent=self.confirmation_sent,
            skipped_reason=self.skipped_reason,
            error=str(self.error) if self.error else None,
            steps=[
                MaterializationStepResponse(step=s.step, status=s.status, message=s.message, entity_id=s.entity_id)
                for s in self.steps
            ],
        )


class JobMaterializer:
    """Creates business objects from a job draft that passed the confidence gate."""

    def __init__(
        self,
        db: Session,
        confirmation_sender: ConfirmationSender,
        confidence_threshold: float = 0.7,
        event_duration_minutes: int = 60,
    ) -> None:
        self.db = db
        self.confirmation_sender = confirmation_sender
        self.confidence_threshold = confidence_threshold
        self.event_duration_minutes = event_duration_minutes

    def materialize(self, extraction: JobExtraction, user_id: str, call_id: str) -> MaterializationResult:
        result = MaterializationResult()

        if not extraction.service_type and not extraction.description:
            logger.info("Insufficient job details for call %s; nothing to materialize", call_id)
            result.skipped_reason = "insufficient_details"
            return result

        if extraction.confidence <= self.confidence_threshold:
            logger.info(
                "Job draft for call %s left for review (confidence %.2f <= %.2f)",
                call_id,
                extraction.confidence,
                self.confidence_threshold,
            )
            result.skipped_reason = "below_confidence_threshold"
            return result

        run = self._load_run(user_id, call_id)

        # Client
        result.client_id = self._run_step(run, result, "client", lambda: self._resolve_client(extraction, user_id))

        # Job
        result.job_id = self._run_step(
            run,
            result,
            "job",
            lambda: self._create_job(extraction, user_id, call_id, result.client_id),
        )
        result.job_created = result.job_id is not None
        job_step = result.steps[-1]
        if job_step.status == "failed":
            result.error = job_step.error

        # Calendar event
        start_time = resolve_datetime(extraction.scheduled_date, extraction.scheduled_time)
        if not (extraction.scheduled_date or extraction.scheduled_time):
            event_skip = "No schedule in draft"
        elif result.job_id is None:
            event_skip = "No job to schedule"
        elif start_time is None:
            event_skip = "Unable to parse scheduled date/time"
        else:
            event_skip = None
        result.calendar_event_id = self._run_step(
            run,
            result,
            "calendar_event",
            lambda: self._create_calendar_event(extraction, user_id, result.job_id, result.client_id, start_time),
            skip_reason=event_skip,
        )

        # Confirmation
        if result.client_id is None or not extraction.client_phone:
            confirmation_skip = "No client phone number to confirm with"
        elif result.job_id is None:
            confirmation_skip = "No job to confirm"
        else:
            confirmation_skip = None
        self._run_step(
            run,
            result,
            "confirmation",
            lambda: self._send_confirmation(extraction, result.job_id, start_time),
            skip_reason=confirmation_skip,
        )
        result.confirmation_sent = result.steps[-1].status == "completed"

        if result.job_created:
            logger.info("Materialized call %s into job %s", call_id, result.job_id)
        return result

    def _load_run(self, user_id: str, call_id: str) -> MaterializationRun:
        query = self.db.query(MaterializationRun).filter(
            MaterializationRun.user_id == user_id, MaterializationRun.call_sid == call_id
        )
        run = query.first()
        if run is not None:
            return run

        run = MaterializationRun(user_id=user_id, call_sid=call_id)
        self.db.add(run)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            return query.one()
        self.db.refresh(run)
        return run

    def _save_run(self, run: MaterializationRun) -> None:
        run.updated_at = datetime.utcnow()
        self.db.commit()

    def _run_step(
        self,
        run: MaterializationRun,
        result: MaterializationResult,
        name: str,
        action: Callable[[], int | None],
        skip_reason: str | None = None,
    ) -> int | None:
        status_attr = f"{name}_status"
        id_attr = f"{name}_id"
        has_id = hasattr(MaterializationRun, id_attr)

        if getattr(run, status_attr) == "completed":
            entity_id = getattr(run, id_attr) if has_id else None
            result.steps.append(
                MaterializationStep(name, "completed", "Completed in an earlier run", entity_id=entity_id)
            )
            return entity_id

        if skip_reason:
            setattr(run, status_attr, "skipped")
            self._save_run(run)
            result.steps.append(MaterializationStep(name, "skipped", skip_reason))
            return None

        try:
            entity_id = action()
        except Exception as e:
            self.db.rollback()
            error = MaterializationError(f"{name} step failed: {e}", call_sid=run.call_sid, step=name)
            logger.warning("Materialization step %s failed for call %s: %s", name, run.call_sid, e)
            setattr(run, status_attr, "failed")
            run.last_error = str(error)
            self._save_run(run)
            result.steps.append(MaterializationStep(name, "failed", str(error), error=error))
            return None

        setattr(run, status_attr, "completed")
        if has_id:
            setattr(run, id_attr, entity_id)
        self._save_run(run)
        result.steps.append(MaterializationStep(name, "completed", f"{name} step completed", entity_id=entity_id))
        return entity_id

    def _resolve_client(self, extraction: JobExtraction, user_id: str) -> int:
        """Find the caller among the user's clients by phone, then by name; create one otherwise."""
        clients = self.db.query(Client).filter(Client.user_id == user_id)

        if extraction.client_phone:
            existing = clients.filter(Client.phone == extraction.client_phone).order_by(Client.id).first()
            if existing:
                return existing.id

        if extraction.client_name:
            existing = (
                clients.filter(Client.name.icontains(extraction.client_name, autoescape=True))
                .order_by(Client.id)
                .first()
            )
            if existing:
                return existing.id

        client = Client(
            user_id=user_id,
            name=extraction.client_name or DEFAULT_CLIENT_NAME,
            phone=extraction.client_phone,
            email=extraction.client_email,
            address=extraction.location,
        )
        self.db.add(client)
        self.db.commit()
        self.db.refresh(client)
        return client.id

    def _create_job(self, extraction: JobExtraction, user_id: str, call_id: str, client_id: int | None) -> int:
        notes = f"Created from phone call (Call ID: {call_id})"
        if extraction.notes:
            notes = f"{notes}\n{extraction.notes}"

        job = Job(
            user_id=user_id,
            client_id=client_id,
            call_sid=call_id,
            title=extraction.service_type or DEFAULT_JOB_TITLE,
            description=extraction.description or "",
            address=extraction.location,
            quoted_price=extraction.estimated_price,
            urgency=extraction.urgency,
            status="pending",
            notes=notes,
        )
        self.db.add(job)
        self.db.commit()
        self.db.refresh(job)
        return job.id

    def _create_calendar_event(
        self,
        extraction: JobExtraction,
        user_id: str,
        job_id: int | None,
        client_id: int | None,
        start_time: datetime | None,
    ) -> int:
        event = CalendarEvent(
            user_id=user_id,
            job_id=job_id,
            client_id=client_id,
            title=extraction.service_type or DEFAULT_EVENT_TITLE,
            description=extraction.description,
            location=extraction.location,
            start_time=start_time,
            end_time=start_time + timedelta(minutes=self.event_duration_minutes),
            reminder_minutes=30 if extraction.urgency == "high" else 60,
        )
        self.db.add(event)
        self.db.commit()
        self.db.refresh(event)
        return event.id

    def _send_confirmation(self, extraction: JobExtraction, job_id: int | None, start_time: datetime | None) -> None:
        body = render_confirmation(extraction, job_id, start=start_time)
        self.confirmation_sender.send(extraction.client_phone, body)
