"""Configuration settings for the voicemail concierge service."""

import os
import secrets
from functools import lru_cache

from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Application settings loaded from environment variables."""

    # Application
    APP_ENV: str = os.getenv("APP_ENV", "development")
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./concierge.db")

    # JWT (tokens are issued by the managed auth backend)
    JWT_SECRET_KEY: str = os.getenv("JWT_SECRET_KEY", secrets.token_urlsafe(32))
    JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_AUDIENCE: str | None = os.getenv("JWT_AUDIENCE") or None
    JWT_EXPIRE_MINUTES: int = int(os.getenv("JWT_EXPIRE_MINUTES", "480"))

    # Transcription
    TRANSCRIPTION_VENDOR: str = os.getenv("TRANSCRIPTION_VENDOR", "whisper")  # whisper, openai
    WHISPER_MODEL_SIZE: str = os.getenv("WHISPER_MODEL_SIZE", "base")
    OPENAI_TRANSCRIPTION_MODEL: str = os.getenv("OPENAI_TRANSCRIPTION_MODEL", "whisper-1")
    TRANSCRIPTION_LANGUAGE: str = os.getenv("TRANSCRIPTION_LANGUAGE", "en")

    # Job extraction
    EXTRACTION_VENDOR: str = os.getenv("EXTRACTION_VENDOR", "openai")
    OPENAI_API_KEY: str = os.getenv("OPENAI_API_KEY", "")
    OPENAI_BASE_URL: str | None = os.getenv("OPENAI_BASE_URL") or None
    JOB_EXTRACTION_MODEL: str = os.getenv("JOB_EXTRACTION_MODEL", "gpt-4o-mini")

    # Pipeline
    CONFIDENCE_THRESHOLD: float = float(os.getenv("CONFIDENCE_THRESHOLD", "0.7"))
    PROVIDER_TRANSCRIPT_CONFIDENCE: float = float(os.getenv("PROVIDER_TRANSCRIPT_CONFIDENCE", "0.6"))
    MAX_PROCESSING_ATTEMPTS: int = int(os.getenv("MAX_PROCESSING_ATTEMPTS", "3"))
    DEFAULT_EVENT_DURATION_MINUTES: int = int(os.getenv("DEFAULT_EVENT_DURATION_MINUTES", "60"))
    HTTP_TIMEOUT_SECONDS: float = float(os.getenv("HTTP_TIMEOUT_SECONDS", "30"))

    # Twilio
    TWILIO_ACCOUNT_SID: str = os.getenv("TWILIO_ACCOUNT_SID", "")
    TWILIO_AUTH_TOKEN: str = os.getenv("TWILIO_AUTH_TOKEN", "")
    TWILIO_FROM_NUMBER: str = os.getenv("TWILIO_FROM_NUMBER", "")
    # On by default everywhere except local development
    VALIDATE_TWILIO_SIGNATURE: bool = (
        os.getenv("VALIDATE_TWILIO_SIGNATURE", "false" if APP_ENV == "development" else "true").lower() == "true"
    )
    CONFIRMATION_CHANNEL: str = os.getenv("CONFIRMATION_CHANNEL", "log")  # log, twilio

    def validate(self) -> list[str]:
        """Validate settings and return list of warnings."""
        errors = []
        if not os.getenv("JWT_SECRET_KEY"):
            errors.append("JWT_SECRET_KEY is not set - using auto-generated key (not persistent across restarts)")
        if self.EXTRACTION_VENDOR == "openai" and not self.OPENAI_API_KEY:
            errors.append("OPENAI_API_KEY is not set - job extraction will fail")
        if self.TRANSCRIPTION_VENDOR == "openai" and not self.OPENAI_API_KEY:
            errors.append("OPENAI_API_KEY is not set - recording transcription will fail")
        if self.CONFIRMATION_CHANNEL == "twilio" and not all(
            [self.TWILIO_ACCOUNT_SID, self.TWILIO_AUTH_TOKEN, self.TWILIO_FROM_NUMBER]
        ):
            errors.append("Twilio confirmation channel selected but TWILIO_* settings are incomplete")
        if self.VALIDATE_TWILIO_SIGNATURE and not self.TWILIO_AUTH_TOKEN:
            errors.append("VALIDATE_TWILIO_SIGNATURE is on but TWILIO_AUTH_TOKEN is not set")
        if not self.VALIDATE_TWILIO_SIGNATURE and self.APP_ENV != "development":
            errors.append("VALIDATE_TWILIO_SIGNATURE is off - the voicemail webhook accepts unsigned requests")
        return errors


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
