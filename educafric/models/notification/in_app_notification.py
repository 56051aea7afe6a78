from sqlalchemy import Column, Integer, String, Boolean, Text, ForeignKey, JSON
from educafric.db.base import BaseModel

class InAppNotification(BaseModel):
    """Notification row fetched by the PWA client."""
    __tablename__ = 'in_app_notifications'

    user_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    title = Column(String(500), nullable=False)
    message = Column(Text, nullable=False)
    type = Column(String(30), default="info")  # info, warning, attendance, payment, grade
    priority = Column(String(20), default="normal")  # normal, high
    is_read = Column(Boolean, default=False)
    extra_data = Column("metadata", JSON)
