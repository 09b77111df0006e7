"""Confirmation texts sent to callers once a job has been created."""

import logging
from datetime import datetime
from typing import Protocol

from jinja2 import Template
from twilio.rest import Client as TwilioClient

from concierge.config import Settings, get_settings
from concierge.schemas.voicemail import JobExtraction

logger = logging.getLogger("concierge")

CONFIRMATION_TEMPLATE = Template(
    "Hi {{ name }}, thanks for your call! "
    "We've logged your {{ service }} request"
    "{% if start %} for {{ start.strftime('%A, %B %d at %I:%M %p') }}{% endif %}."
    "{% if location %} Address: {{ location }}.{% endif %}"
    " We'll be in touch shortly to confirm. Ref #{{ job_id }}"
)


def render_confirmation(extraction: JobExtraction, job_id: int, start: datetime | None = None) -> str:
    """Render the confirmation text for a newly created job."""
    return CONFIRMATION_TEMPLATE.render(
        name=(extraction.client_name or "there").split(" ")[0],
        service=(extraction.service_type or "service").lower(),
        start=start,
        location=extraction.location,
        job_id=job_id,
    )


class ConfirmationSender(Protocol):
    def send(self, to_number: str, body: str) -> str | None: ...


class LoggingConfirmationSender:
    """Writes the confirmation to the log instead of delivering it."""

    def send(self, to_number: str, body: str) -> str | None:
        logger.info("Confirmation for %s: %s", to_number, body)
        return None


class TwilioConfirmationSender:
    """Delivers confirmations as SMS through Twilio."""

    def __init__(self, account_sid: str, auth_token: str, from_number: str) -> None:
        self.client = TwilioClient(account_sid, auth_token)
        self.from_number = from_number

    def send(self, to_number: str, body: str) -> str | None:
        message = self.client.messages.create(body=body, from_=self.from_number, to=to_number)
        logger.info("Confirmation SMS sent to %s: %s (%s)", to_number, message.sid, message.status)
        return message.sid


def build_confirmation_sender(settings: Settings) -> ConfirmationSender:
    """Create the sender named by CONFIRMATION_CHANNEL."""
    channel = settings.CONFIRMATION_CHANNEL.lower()
    if channel == "log":
        return LoggingConfirmationSender()
    if channel == "twilio":
        return TwilioConfirmationSender(
            settings.TWILIO_ACCOUNT_SID,
            settings.TWILIO_AUTH_TOKEN,
            settings.TWILIO_FROM_NUMBER,
        )
    raise ValueError(f"Unknown confirmation channel '{settings.CONFIRMATION_CHANNEL}'")


_confirmation_sender: ConfirmationSender | None = None


def get_confirmation_sender() -> ConfirmationSender:
    """Get singleton confirmation sender instance."""
    global _confirmation_sender
    if _confirmation_sender is None:
        _confirmation_sender = build_confirmation_sender(get_settings())
    return _confirmation_sender
