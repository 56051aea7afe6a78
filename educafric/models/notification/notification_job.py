from sqlalchemy import Column, Integer, String, DateTime, Boolean, Text, ForeignKey, JSON
from educafric.db.base import BaseModel
from educafric.models.shared.enums import NotificationStatus, DEFAULT_JOB_CHANNELS

class NotificationJob(BaseModel):
    """Queued notification; rows are never deleted."""
    __tablename__ = 'notification_jobs'

    school_id = Column(Integer, ForeignKey('schools.id'), nullable=False, index=True)
    student_id = Column(Integer, ForeignKey('users.id'), nullable=True, index=True)
    assigned_fee_id = Column(Integer, ForeignKey('assigned_fees.id'), nullable=True, index=True)
    notification_type = Column(String(20), nullable=False)  # reminder, overdue, receipt, absence, grade, ...
    title = Column(String(500), nullable=False)
    message = Column(Text, nullable=False)
    channels = Column(JSON, default=lambda: list(DEFAULT_JOB_CHANNELS))
    status = Column(String(20), default=NotificationStatus.PENDING.value, nullable=False, index=True)
    scheduled_for = Column(DateTime(timezone=True))
    claimed_at = Column(DateTime(timezone=True))
    sent_at = Column(DateTime(timezone=True))
    email_sent = Column(Boolean, default=False, nullable=False)
    whatsapp_sent = Column(Boolean, default=False, nullable=False)
    pwa_sent = Column(Boolean, default=False, nullable=False)
    retry_count = Column(Integer, default=0, nullable=False)
    max_retries = Column(Integer, default=3, nullable=False)
    error_message = Column(Text)

    def channel_sent(self, channel: str) -> bool:
        return bool(getattr(self, f"{channel}_sent", False))
