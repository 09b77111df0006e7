"""Materialization saga state."""

from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String, Text, UniqueConstraint

from concierge.database import Base


class MaterializationRun(Base):
    """Per-step progress of turning one call's job draft into business objects."""

    __tablename__ = "materialization_run"
    __table_args__ = (UniqueConstraint("user_id", "call_sid", name="uq_materialization_run_user_id_call_sid"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False, index=True)
    call_sid = Column(String(64), nullable=False)
    # Step status: pending, completed, skipped, failed
    client_status = Column(String(16), nullable=False, default="pending")
    client_id = Column(Integer, nullable=True)
    job_status = Column(String(16), nullable=False, default="pending")
    job_id = Column(Integer, nullable=True)
    calendar_event_status = Column(String(16), nullable=False, default="pending")
    calendar_event_id = Column(Integer, nullable=True)
    confirmation_status = Column(String(16), nullable=False, default="pending")
    last_error = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)
