"""Job draft extraction from call transcripts with an OpenAI-compatible chat model."""

import json
import logging
import re
import time
from datetime import datetime
from typing import Any, Protocol

from openai import OpenAI
from pydantic import ValidationError

from concierge.config import Settings, get_settings
from concierge.errors import ExtractionError
from concierge.schemas.voicemail import JobExtraction, TranscriptResult, VoicemailWebhookInput

logger = logging.getLogger("concierge")

SYSTEM_PROMPT = """Extract job details from voicemails left for a service business.

Always respond with a single JSON object with these keys:
confidence, client_name, client_phone, client_email, service_type, description,
scheduled_date, scheduled_time, location, estimated_price, urgency, follow_up_required, notes.
Use null when a field is unknown.

- confidence is a number from 0 to 1 describing how clear and complete the request is
- service_type should be specific (e.g. "Leaky faucet repair", "Haircut and color")
- scheduled_date must be YYYY-MM-DD; resolve words like "tomorrow" against the call date
- scheduled_time must be "H:MM AM/PM"
- location should include address details if provided
- estimated_price is a number, only when the caller mentions a price
- urgency is one of low, medium, high, emergency
- notes should capture special requirements"""


class JobExtractionAdapter(Protocol):
    def extract(self, transcript: TranscriptResult, context: VoicemailWebhookInput) -> JobExtraction: ...


def sanitize_text(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    return trimmed or None


def normalize_phone(value: Any) -> str | None:
    """Keep digits and '+'; anything shorter than ten digits is not a usable number."""
    if not isinstance(value, str):
        return None
    cleaned = re.sub(r"[^0-9+]", "", value)
    if len(re.sub(r"\D", "", cleaned)) >= 10:
        return cleaned
    return None


def parse_extraction(content: str, processing_time: float | None = None) -> JobExtraction:
    """Parse the model's JSON reply into a JobExtraction. Raises ExtractionError on malformed output."""
    try:
        payload = json.loads(content)
    except json.JSONDecodeError as e:
        raise ExtractionError(f"Failed to parse job extraction JSON response: {e}") from e

    if not isinstance(payload, dict):
        raise ExtractionError("Job extraction response is not a JSON object")

    urgency = sanitize_text(payload.get("urgency"))
    fields = {
        "confidence": payload.get("confidence"),
        "client_name": sanitize_text(payload.get("client_name")),
        "client_phone": normalize_phone(payload.get("client_phone")),
        "client_email": sanitize_text(payload.get("client_email")),
        "service_type": sanitize_text(payload.get("service_type")),
        "description": sanitize_text(payload.get("description")),
        "scheduled_date": sanitize_text(payload.get("scheduled_date")),
        "scheduled_time": sanitize_text(payload.get("scheduled_time")),
        "location": sanitize_text(payload.get("location")),
        "estimated_price": payload.get("estimated_price"),
        "urgency": urgency.lower() if urgency else None,
        "follow_up_required": payload.get("follow_up_required"),
        "notes": sanitize_text(payload.get("notes")),
        "extracted_at": datetime.utcnow(),
        "processing_time": processing_time,
    }

    try:
        return JobExtraction.model_validate(fields)
    except ValidationError as e:
        raise ExtractionError(f"Job extraction output failed validation ({e.error_count()} errors)") from e


class OpenAIJobExtractionAdapter:
    """Asks a chat model for a JSON job draft."""

    def __init__(self, client: OpenAI, model: str) -> None:
        self.client = client
        self.model = model

    def extract(self, transcript: TranscriptResult, context: VoicemailWebhookInput) -> JobExtraction:
        text = sanitize_text(transcript.text)
        if not text:
            raise ExtractionError("Transcript text is required to extract job details", context.call_sid)

        call_date = (context.received_at or datetime.utcnow()).date().isoformat()
        start_time = time.time()
        completion = self.client.chat.completions.create(
            model=self.model,
            response_format={"type": "json_object"},
            temperature=0,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": f"Call date: {call_date}\nCaller number: {context.from_number}\n\nTranscript:\n{text}",
                },
            ],
        )
        processing_time = round((time.time() - start_time) * 1000, 1)

        content = completion.choices[0].message.content if completion.choices else None
        if not content:
            raise ExtractionError("Job extraction response did not include any content", context.call_sid)

        extraction = parse_extraction(content, processing_time=processing_time)
        logger.info(
            "Extracted job draft for %s (confidence=%.2f, service=%s) in %.0fms",
            context.call_sid,
            extraction.confidence,
            extraction.service_type,
            processing_time,
        )
        return extraction


def build_extraction_adapter(settings: Settings) -> JobExtractionAdapter:
    """Create the extraction adapter named by EXTRACTION_VENDOR."""
    vendor = settings.EXTRACTION_VENDOR.lower()
    if vendor == "openai":
        client = OpenAI(
            api_key=settings.OPENAI_API_KEY,
            base_url=settings.OPENAI_BASE_URL,
            timeout=settings.HTTP_TIMEOUT_SECONDS,
        )
        return OpenAIJobExtractionAdapter(client, settings.JOB_EXTRACTION_MODEL)
    raise ValueError(f"Unknown extraction vendor '{settings.EXTRACTION_VENDOR}'")


_extraction_adapter: JobExtractionAdapter | None = None


def get_extraction_adapter() -> JobExtractionAdapter:
    """Get singleton extraction adapter instance."""
    global _extraction_adapter
    if _extraction_adapter is None:
        _extraction_adapter = build_extraction_adapter(get_settings())
    return _extraction_adapter
