"""Voicemail queries backing the job-card preview API."""

from sqlalchemy.orm import Session

from concierge.models.materialization import MaterializationRun
from concierge.models.voicemail import VoicemailRecord


class VoicemailService:
    """Read access to a user's voicemail records and their materialization runs."""

    def get_user_voicemails(
        self, db: Session, user_id: str, status: str | None = None, limit: int = 50, offset: int = 0
    ) -> tuple[list[VoicemailRecord], int]:
        """Get voicemails for a user, newest first. Returns (items, total_count)."""
        query = db.query(VoicemailRecord).filter(VoicemailRecord.user_id == user_id)
        if status:
            query = query.filter(VoicemailRecord.status == status)

        total = query.count()
        items = query.order_by(VoicemailRecord.created_at.desc(), VoicemailRecord.id.desc()).offset(offset).limit(limit).all()
        return items, total

    def get_voicemail(self, db: Session, voicemail_id: int, user_id: str) -> VoicemailRecord | None:
        """Get a single voicemail by ID, scoped to user."""
        return (
            db.query(VoicemailRecord)
            .filter(VoicemailRecord.id == voicemail_id, VoicemailRecord.user_id == user_id)
            .first()
        )

    def get_materialization_run(self, db: Session, voicemail: VoicemailRecord) -> MaterializationRun | None:
        """Get the saga record for a voicemail's call, if materialization has started."""
        return (
            db.query(MaterializationRun)
            .filter(MaterializationRun.user_id == voicemail.user_id, MaterializationRun.call_sid == voicemail.call_sid)
            .first()
        )


_voicemail_service: VoicemailService | None = None


def get_voicemail_service() -> VoicemailService:
    """Get singleton voicemail service instance."""
    global _voicemail_service
    if _voicemail_service is None:
        _voicemail_service = VoicemailService()
    return _voicemail_service
