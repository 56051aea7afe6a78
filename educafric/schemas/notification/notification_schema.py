from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional


class NotificationEvent(BaseModel):
    """Event handed to the dispatcher; unknown types are rejected there, not here."""
    model_config = ConfigDict(populate_by_name=True)

    type: str
    data: Dict[str, Any] = Field(default_factory=dict)
    school_id: int = Field(1, alias="schoolId")
    triggered_by: Optional[int] = Field(None, alias="triggeredBy")


class DirectWhatsAppRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    phone: str
    language: str = "fr"


class NotificationJobResponse(BaseModel):
    id: int
    schoolId: int
    studentId: Optional[int] = None
    assignedFeeId: Optional[int] = None
    notificationType: str
    title: str
    message: str
    channels: List[str]
    status: str
    scheduledFor: Optional[str] = None
    sentAt: Optional[str] = None
    emailSent: bool
    whatsappSent: bool
    pwaSent: bool
    retryCount: int
    maxRetries: int
    errorMessage: Optional[str] = None


class NotificationJobListResponse(BaseModel):
    success: bool = True
    total: int
    notifications: List[NotificationJobResponse]
