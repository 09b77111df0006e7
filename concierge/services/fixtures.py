"""Sample voicemail data and static adapters for running the pipeline without vendors."""

from datetime import date, datetime

from concierge.schemas.voicemail import JobExtraction, TranscriptResult, VoicemailWebhookInput
from concierge.services.pipeline import VoicemailPipeline, VoicemailProcessingResult
from concierge.services.repository import InMemoryVoicemailRepository

SAMPLE_WEBHOOK = VoicemailWebhookInput(
    call_sid="CA_fixture123",
    user_id="user_fixture",
    from_number="+15551231234",
    to_number="+15559876543",
    recording_url="https://example.com/recordings/fixture123.mp3",
    recording_sid="RE_fixture123",
    recording_duration=78,
)

SAMPLE_TRANSCRIPT = TranscriptResult(
    text=(
        "Hi, this is Sarah from Harbor Plumbing. We have a homeowner in Pacific Heights reporting a leaking "
        "water heater and they need someone out tomorrow morning around 9am if possible. The address is "
        "1829 Jackson Street, San Francisco and the phone number is 415-555-0199. Please text me a quick "
        "confirmation once it's booked. Thanks!"
    ),
    confidence=0.92,
    vendor="fixture",
)


def sample_job_extraction() -> JobExtraction:
    return JobExtraction(
        confidence=0.88,
        client_name="Sarah (Harbor Plumbing)",
        client_phone="+14155550199",
        service_type="Water heater leak assessment",
        description="Leak reported at Pacific Heights residence; requested morning visit around 9am.",
        scheduled_date=date.today().isoformat(),
        scheduled_time="9:00 AM",
        location="1829 Jackson Street, San Francisco, CA",
        follow_up_required=True,
        urgency="high",
        extracted_at=datetime.utcnow(),
    )


class StaticTranscriptionAdapter:
    """Returns the same transcript for every recording."""

    def __init__(self, transcript: TranscriptResult = SAMPLE_TRANSCRIPT) -> None:
        self.transcript = transcript
        self.calls: list[str] = []

    def transcribe(self, recording_url: str, context: VoicemailWebhookInput) -> TranscriptResult:
        self.calls.append(recording_url)
        return self.transcript


class StaticExtractionAdapter:
    """Returns the same job draft for every transcript."""

    def __init__(self, extraction: JobExtraction | None = None) -> None:
        self.extraction = extraction or sample_job_extraction()
        self.calls: list[str] = []

    def extract(self, transcript: TranscriptResult, context: VoicemailWebhookInput) -> JobExtraction:
        self.calls.append(transcript.text)
        return self.extraction


class RecordingConfirmationSender:
    """Collects confirmation texts instead of sending them."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []

    def send(self, to_number: str, body: str) -> str | None:
        self.sent.append((to_number, body))
        return f"SM{len(self.sent)}"


def create_fixture_pipeline() -> tuple[VoicemailPipeline, InMemoryVoicemailRepository]:
    repository = InMemoryVoicemailRepository()
    pipeline = VoicemailPipeline(
        repository=repository,
        transcription=StaticTranscriptionAdapter(),
        extraction=StaticExtractionAdapter(),
    )
    return pipeline, repository


def run_fixture_pipeline() -> VoicemailProcessingResult:
    """Process the sample webhook with a provider-supplied transcript."""
    pipeline, _ = create_fixture_pipeline()
    webhook = SAMPLE_WEBHOOK.model_copy(
        update={"transcription_text": SAMPLE_TRANSCRIPT.text, "transcription_status": "completed"}
    )
    return pipeline.process(webhook)
