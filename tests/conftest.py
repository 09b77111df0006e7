"""Pytest configuration and fixtures."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from concierge.database import Base, get_db
from concierge.dependencies import verify_twilio_signature
from concierge.models.job import CalendarEvent, Client, Job  # noqa: F401
from concierge.models.materialization import MaterializationRun  # noqa: F401
from concierge.models.voicemail import VoicemailRecord  # noqa: F401
from concierge.services.confirmation import get_confirmation_sender
from concierge.services.extraction import get_extraction_adapter
from concierge.services.fixtures import (
    RecordingConfirmationSender,
    StaticExtractionAdapter,
    StaticTranscriptionAdapter,
)
from concierge.services.transcription import get_transcription_adapter


@pytest.fixture(name="db_session")
def db_session_fixture():
    """Create an in-memory SQLite database for tests."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    testing_session_local = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = testing_session_local()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(name="transcription_adapter")
def transcription_adapter_fixture():
    return StaticTranscriptionAdapter()


@pytest.fixture(name="extraction_adapter")
def extraction_adapter_fixture():
    return StaticExtractionAdapter()


@pytest.fixture(name="confirmation_sender")
def confirmation_sender_fixture():
    return RecordingConfirmationSender()


@pytest.fixture(name="client")
def client_fixture(
    db_session: Session,
    transcription_adapter: StaticTranscriptionAdapter,
    extraction_adapter: StaticExtractionAdapter,
    confirmation_sender: RecordingConfirmationSender,
):
    """Create a test client with overridden DB and vendor dependencies and disabled rate limiting."""
    from concierge.rate_limit import limiter
    from main import app

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_transcription_adapter] = lambda: transcription_adapter
    app.dependency_overrides[get_extraction_adapter] = lambda: extraction_adapter
    app.dependency_overrides[get_confirmation_sender] = lambda: confirmation_sender
    app.dependency_overrides[verify_twilio_signature] = lambda: None
    limiter.enabled = False
    with TestClient(app) as c:
        yield c
    limiter.enabled = True
    app.dependency_overrides.clear()


@pytest.fixture(name="test_user")
def test_user_fixture():
    """Return a user id and a bearer token issued for it."""
    from concierge.services.jwt import get_jwt_service

    token = get_jwt_service().create_token(user_id="u1", email="owner@example.com")
    return {"user_id": "u1", "email": "owner@example.com", "token": token}
