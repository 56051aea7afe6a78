"""
Per-recipient, per-channel delivery for dispatcher events other than attendance.
"""
import logging
import re
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from educafric.core.platform_config import PlatformNotificationConfig
from educafric.models.notification.in_app_notification import InAppNotification
from educafric.models.shared.enums import ChannelStatus, EventType
from educafric.services.communication.email_service import EmailService
from educafric.services.communication.whatsapp_service import WhatsAppService
from educafric.services.notification.metrics import NotificationMetrics
from educafric.services.notification.recipient_service import Recipient, RecipientService
from educafric.templates.messages import MessageTemplateRegistry, message_templates, translate_payment_method
from educafric.utils.formatting import format_amount, format_date

logger = logging.getLogger(__name__)

EVENT_CHANNELS: Dict[str, Sequence[str]] = {
    EventType.GRADES.value: ("email", "whatsapp", "pwa"),
    EventType.PAYMENTS.value: ("email", "whatsapp", "pwa"),
    EventType.GEOLOCATION.value: ("email", "whatsapp"),
    EventType.ONLINE_CLASSES.value: ("email", "whatsapp", "pwa"),
    EventType.SUBSCRIPTIONS.value: ("email",),
}

# Placeholders a partial event payload falls back to
_DEFAULTS: Dict[str, Dict[str, Any]] = {
    EventType.GRADES.value: {"subject_name": "-", "grade": "-", "period": "-", "class_average": "N/A"},
    EventType.PAYMENTS.value: {"description": "-", "transaction_id": "-", "payment_method": "-"},
    EventType.GEOLOCATION.value: {"alert_type": "-", "location": "-", "timestamp": "-"},
    EventType.ONLINE_CLASSES.value: {"course_name": "-", "teacher_name": "-", "start_time": "-",
                                     "duration": "-", "join_link": "-"},
    EventType.SUBSCRIPTIONS.value: {"plan_name": "-", "subscription_status": "-", "expires_at": "-"},
}

_PRIORITY = {EventType.GEOLOCATION.value: "high"}

_CAMEL = re.compile(r"(?<!^)(?=[A-Z])")


def to_snake_case(data: Dict[str, Any]) -> Dict[str, Any]:
    return {_CAMEL.sub("_", key).lower(): value for key, value in (data or {}).items()}


class NotificationFanout:
    """Resolve recipients for an event and deliver on each enabled channel independently."""

    def __init__(
        self,
        db: AsyncSession,
        config: PlatformNotificationConfig,
        email_service: EmailService,
        whatsapp_service: WhatsAppService,
        templates: MessageTemplateRegistry = message_templates,
        metrics: Optional[NotificationMetrics] = None,
    ):
        self.db = db
        self.config = config
        self.email_service = email_service
        self.whatsapp_service = whatsapp_service
        self.templates = templates
        self.metrics = metrics
        self.recipients = RecipientService(db, config.default_language)

    async def resolve_recipients(self, data: Dict[str, Any]) -> List[Recipient]:
        if data.get("studentId"):
            return await self.recipients.get_parents_for_student(data["studentId"])
        if data.get("userId"):
            recipient = await self.recipients.get_recipient(data["userId"])
            return [recipient] if recipient else []
        return []

    def build_content(self, event_type: str, data: Dict[str, Any], recipient: Recipient,
                      language: str) -> Dict[str, str]:
        values: Dict[str, Any] = {
            "recipient_name": recipient.display_name,
            "support_phone": self.config.support_phone,
            "support_email": self.config.support_email,
        }
        values.update(_DEFAULTS.get(event_type, {}))
        values.update({k: v for k, v in to_snake_case(data).items() if v is not None})

        if "amount" in data:
            values["amount"] = format_amount(data["amount"], language, data.get("currency") or self.config.currency)
        if data.get("paymentMethod"):
            values["payment_method"] = translate_payment_method(data["paymentMethod"], language)
        if data.get("expiresAt"):
            values["expires_at"] = format_date(data["expiresAt"], language, self.config.timezone)
        values["zone_line"] = self.templates.render_optional(
            "geolocation.zone_line", language, data.get("zoneName"), "zone_name")

        return {
            "subject": self.templates.render(f"{event_type}.subject", language, values),
            "message": self.templates.render(f"{event_type}.body", language, values),
        }

    async def deliver(self, event_type: str, data: Dict[str, Any]) -> Dict[str, Any]:
        channels = [c for c in EVENT_CHANNELS[event_type] if self.config.is_channel_enabled(c)]
        if not channels:
            return {"success": False, "notificationsSent": 0, "channels": [],
                    "errors": ["No enabled channel for this event type"]}

        if data.get("studentId") and not data.get("studentName"):
            student = await self.recipients.get_user(data["studentId"])
            if student is not None:
                data = {**data, "studentName": student.full_name}

        recipients = await self.resolve_recipients(data)
        if not recipients:
            logger.warning("No recipients for %s event (student=%s, user=%s)",
                           event_type, data.get("studentId"), data.get("userId"))
            return {"success": False, "notificationsSent": 0, "channels": [],
                    "errors": ["No recipients found"]}

        sent_count = 0
        sent_channels: List[str] = []
        errors: List[str] = []
        for recipient in recipients:
            language = self.config.resolve_language(recipient.preferred_language)
            content = self.build_content(event_type, data, recipient, language)
            for channel in channels:
                try:
                    status = await self._deliver(channel, event_type, recipient, content, language)
                except Exception as e:
                    logger.exception("%s delivery on %s to user %s failed", event_type, channel, recipient.id)
                    status = ChannelStatus.FAILED.value
                    errors.append(f"User {recipient.id} {channel}: {e}")
                else:
                    if status == ChannelStatus.FAILED.value:
                        errors.append(f"User {recipient.id}: {channel} failed")
                if self.metrics:
                    self.metrics.record_delivery(channel, status)
                if status == ChannelStatus.SENT.value:
                    sent_count += 1
                    if channel not in sent_channels:
                        sent_channels.append(channel)

        await self.db.commit()
        return {
            "success": sent_count > 0,
            "notificationsSent": sent_count,
            "channels": [c for c in channels if c in sent_channels],
            "errors": errors or None,
        }

    async def _deliver(self, channel: str, event_type: str, recipient: Recipient,
                       content: Dict[str, str], language: str) -> str:
        if channel == "email":
            if not recipient.email:
                return ChannelStatus.NOT_PROVIDED.value
            html = self.email_service.render(
                "generic_notification.html",
                language=language,
                subject=content["subject"],
                body=content["message"],
                action_url=self.config.platform_url,
                action_label="Open Educafric" if language == "en" else "Ouvrir Educafric",
            )
            sent = await self.email_service.send_email(recipient.email, content["subject"], html, content["message"])
            return ChannelStatus.SENT.value if sent else ChannelStatus.FAILED.value

        if channel == "whatsapp":
            if not recipient.can_receive_whatsapp:
                return ChannelStatus.NOT_PROVIDED.value
            result = await self.whatsapp_service.send_message(recipient.phone_e164, content["message"])
            return ChannelStatus.SENT.value if result["success"] else ChannelStatus.FAILED.value

        if channel == "pwa":
            # one savepoint per row
            async with self.db.begin_nested():
                self.db.add(InAppNotification(
                    user_id=recipient.id,
                    title=content["subject"],
                    message=content["message"],
                    type=event_type,
                    priority=_PRIORITY.get(event_type, "normal"),
                ))
            return ChannelStatus.SENT.value

        return ChannelStatus.NOT_PROVIDED.value
