"""Voicemail record model."""

from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, Float, Integer, String, Text, UniqueConstraint

from concierge.database import Base


class VoicemailRecord(Base):
    """One inbound call's recording, transcript and derived job draft."""

    __tablename__ = "voicemail"
    __table_args__ = (UniqueConstraint("call_sid", "user_id", name="uq_voicemail_call_sid_user_id"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    call_sid = Column(String(64), nullable=False, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    from_number = Column(String(32), nullable=False)
    to_number = Column(String(32), nullable=False)
    recording_url = Column(String(1024), nullable=False)
    recording_sid = Column(String(64), nullable=True)
    status = Column(String(32), nullable=False, default="pending")  # pending, transcribing, transcribed, processed, failed
    transcript = Column(Text, nullable=True)
    transcript_confidence = Column(Float, nullable=True)
    job_draft = Column(JSON, nullable=True)
    attempts = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
