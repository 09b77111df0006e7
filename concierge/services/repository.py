"""Voicemail record persistence.

Two implementations share the ``VoicemailRepository`` protocol: an in-memory
store for fixtures and tests, and a SQLAlchemy store used by the service.
``create`` never deduplicates on its own; callers either look up first or use
``upsert``, which returns the existing record when (call_sid, user_id) is
already taken.
"""

import itertools
import threading
from datetime import datetime
from typing import Any, Protocol

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from concierge.models.voicemail import VoicemailRecord
from concierge.schemas.voicemail import JobExtraction, StoredVoicemail, VoicemailWebhookInput

UPDATABLE_FIELDS = {
    "from_number",
    "to_number",
    "recording_url",
    "recording_sid",
    "status",
    "transcript",
    "transcript_confidence",
    "job_draft",
    "attempts",
}


class VoicemailRepository(Protocol):
    def find_by_call_sid(self, call_sid: str, user_id: str) -> StoredVoicemail | None: ...

    def create(self, webhook: VoicemailWebhookInput) -> StoredVoicemail: ...

    def update(self, record_id: int, **fields: Any) -> StoredVoicemail: ...

    def upsert(self, webhook: VoicemailWebhookInput) -> tuple[StoredVoicemail, bool]: ...


def _check_fields(fields: dict[str, Any]) -> None:
    unknown = set(fields) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Cannot update voicemail fields: {', '.join(sorted(unknown))}")


class InMemoryVoicemailRepository:
    """Keeps voicemail records in a dict so the pipeline can run without a database."""

    def __init__(self) -> None:
        self._records: dict[int, StoredVoicemail] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def find_by_call_sid(self, call_sid: str, user_id: str) -> StoredVoicemail | None:
        for record in self._records.values():
            if record.call_sid == call_sid and record.user_id == user_id:
                return record
        return None

    def create(self, webhook: VoicemailWebhookInput) -> StoredVoicemail:
        now = datetime.utcnow()
        record = StoredVoicemail(
            id=next(self._ids),
            call_sid=webhook.call_sid,
            user_id=webhook.user_id,
            from_number=webhook.from_number,
            to_number=webhook.to_number,
            recording_url=webhook.recording_url,
            recording_sid=webhook.recording_sid,
            status="pending",
            created_at=now,
            updated_at=now,
        )
        self._records[record.id] = record
        return record

    def update(self, record_id: int, **fields: Any) -> StoredVoicemail:
        _check_fields(fields)
        with self._lock:
            current = self._records.get(record_id)
            if current is None:
                raise LookupError(f"Voicemail record {record_id} not found")
            updated = current.model_copy(update={**fields, "updated_at": datetime.utcnow()})
            self._records[record_id] = updated
            return updated

    def upsert(self, webhook: VoicemailWebhookInput) -> tuple[StoredVoicemail, bool]:
        with self._lock:
            existing = self.find_by_call_sid(webhook.call_sid, webhook.user_id)
            if existing is not None:
                return existing, False
            return self.create(webhook), True

    def all(self) -> list[StoredVoicemail]:
        return list(self._records.values())

    def clear(self) -> None:
        self._records.clear()


class SqlAlchemyVoicemailRepository:
    """Voicemail records stored in the ``voicemail`` table."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def _get(self, call_sid: str, user_id: str) -> VoicemailRecord | None:
        return (
            self.db.query(VoicemailRecord)
            .filter(VoicemailRecord.call_sid == call_sid, VoicemailRecord.user_id == user_id)
            .first()
        )

    def find_by_call_sid(self, call_sid: str, user_id: str) -> StoredVoicemail | None:
        record = self._get(call_sid, user_id)
        return StoredVoicemail.model_validate(record) if record else None

    def create(self, webhook: VoicemailWebhookInput) -> StoredVoicemail:
        record = VoicemailRecord(
            call_sid=webhook.call_sid,
            user_id=webhook.user_id,
            from_number=webhook.from_number,
            to_number=webhook.to_number,
            recording_url=webhook.recording_url,
            recording_sid=webhook.recording_sid,
            status="pending",
            attempts=0,
        )
        self.db.add(record)
        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        self.db.refresh(record)
        return StoredVoicemail.model_validate(record)

    def update(self, record_id: int, **fields: Any) -> StoredVoicemail:
        _check_fields(fields)
        record = self.db.get(VoicemailRecord, record_id)
        if record is None:
            raise LookupError(f"Voicemail record {record_id} not found")

        for key, value in fields.items():
            if key == "job_draft" and isinstance(value, JobExtraction):
                value = value.model_dump(mode="json")
            setattr(record, key, value)
        record.updated_at = datetime.utcnow()

        try:
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        self.db.refresh(record)
        return StoredVoicemail.model_validate(record)

    def upsert(self, webhook: VoicemailWebhookInput) -> tuple[StoredVoicemail, bool]:
        """Insert the record, or return the one a concurrent delivery already inserted."""
        try:
            return self.create(webhook), True
        except IntegrityError:
            existing = self.find_by_call_sid(webhook.call_sid, webhook.user_id)
            if existing is None:
                raise
            return existing, False
