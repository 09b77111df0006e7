"""Client, job and calendar event models."""

from datetime import datetime

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String, Text

from concierge.database import Base


class Client(Base):
    """Customer of a service business, owned per user."""

    __tablename__ = "client"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False, index=True)
    name = Column(String(256), nullable=False)
    phone = Column(String(32), nullable=True, index=True)
    email = Column(String(256), nullable=True)
    address = Column(String(512), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)


class Job(Base):
    """Job created from a materialized voicemail draft."""

    __tablename__ = "job"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False, index=True)
    client_id = Column(Integer, ForeignKey("client.id"), nullable=True, index=True)
    call_sid = Column(String(64), nullable=True, index=True)
    title = Column(String(256), nullable=False)
    description = Column(Text, nullable=False, default="")
    address = Column(String(512), nullable=True)
    quoted_price = Column(Float, nullable=True)
    urgency = Column(String(16), nullable=True)
    status = Column(String(32), nullable=False, default="pending")
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)


class CalendarEvent(Base):
    """Scheduled visit for a job."""

    __tablename__ = "calendar_event"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False, index=True)
    job_id = Column(Integer, ForeignKey("job.id"), nullable=False, index=True)
    client_id = Column(Integer, ForeignKey("client.id"), nullable=True)
    title = Column(String(256), nullable=False)
    description = Column(Text, nullable=True)
    location = Column(String(512), nullable=True)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    reminder_minutes = Column(Integer, nullable=False, default=60)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
