"""Error taxonomy for the voicemail pipeline and job materialization."""


class PipelineError(Exception):
    """Base class for errors raised while turning a voicemail into a job."""

    status_code = 500
    phase = "pipeline"

    def __init__(self, message: str, call_sid: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.call_sid = call_sid


class IngestError(PipelineError):
    """Voicemail record could not be looked up or created."""

    status_code = 503
    phase = "ingest"


class TranscriptionError(PipelineError):
    """No transcript could be obtained for the recording."""

    status_code = 502
    phase = "transcribe"


class ExtractionError(PipelineError):
    """The LLM call failed or returned output that does not parse as a job draft."""

    status_code = 502
    phase = "extract"


class VoicemailFailedError(IngestError):
    """The voicemail record is already marked failed and will not be reprocessed."""

    status_code = 409


class MaterializationError(PipelineError):
    """A client, job, calendar event or confirmation step failed."""

    phase = "materialize"

    def __init__(self, message: str, call_sid: str | None = None, step: str | None = None) -> None:
        super().__init__(message, call_sid)
        self.step = step
