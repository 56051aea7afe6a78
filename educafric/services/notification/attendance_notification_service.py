import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from educafric.core.platform_config import PlatformNotificationConfig
from educafric.models.notification.in_app_notification import InAppNotification
from educafric.models.shared.enums import AttendanceStatus, ChannelStatus
from educafric.services.communication.email_service import EmailService
from educafric.services.communication.whatsapp_service import WhatsAppService
from educafric.services.notification.metrics import NotificationMetrics
from educafric.services.notification.recipient_service import Recipient, RecipientService
from educafric.templates.messages import (
    MessageTemplateRegistry,
    message_templates,
    status_color,
    translate_status,
)
from educafric.utils.formatting import format_date, utcnow
from educafric.utils.wa_link import build_wa_url

logger = logging.getLogger(__name__)

ATTENDANCE_CHANNELS = ("email", "sms", "whatsapp", "pwa")


@dataclass
class AttendanceNotificationData:
    student_id: int
    status: str
    student_name: Optional[str] = None
    class_name: Optional[str] = None
    date: Optional[Any] = None  # preformatted string or date
    notes: Optional[str] = None
    school_name: Optional[str] = None
    marked_by: Optional[str] = None

    @classmethod
    def from_event(cls, data: Dict[str, Any]) -> "AttendanceNotificationData":
        return cls(
            student_id=data["studentId"],
            status=data.get("status") or AttendanceStatus.ABSENT.value,
            student_name=data.get("studentName"),
            class_name=data.get("className"),
            date=data.get("date"),
            notes=data.get("notes"),
            school_name=data.get("schoolName"),
            marked_by=data.get("markedBy"),
        )


def _record(channels: Dict[str, str], channel: str, status: str) -> None:
    # 'sent' sticks once any parent received the channel
    if channels[channel] != ChannelStatus.SENT.value:
        channels[channel] = status


class AttendanceNotificationService:
    """Notify every parent of a student about an attendance mark."""

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

    def generate_content(self, data: AttendanceNotificationData, language: str) -> Dict[str, str]:
        values = {
            "student_name": data.student_name,
            "class_name": data.class_name or "-",
            "status_label": translate_status(data.status, language),
            "date": format_date(data.date or utcnow(), language, self.config.timezone),
            "school_name": data.school_name or self.config.platform_name,
            "notes_line": self.templates.render_optional("attendance.notes_line", language, data.notes, "notes"),
            "marked_by_line": self.templates.render_optional(
                "attendance.marked_by_line", language, data.marked_by, "marked_by"),
        }
        return {
            "subject": self.templates.render("attendance.subject", language, values),
            "message": self.templates.render("attendance.body", language, values),
            "status_label": values["status_label"],
            "date": values["date"],
            "school_name": values["school_name"],
        }

    def build_whatsapp_link(self, parent: Recipient, data: AttendanceNotificationData, language: str) -> Optional[str]:
        if not parent.can_receive_whatsapp:
            return None
        text = self.templates.render("absence_alert", language, {
            "student_name": data.student_name,
            "date": format_date(data.date or utcnow(), language, self.config.timezone),
            "reason": data.notes or translate_status(data.status, language),
        })
        return build_wa_url(parent.phone_e164, text)

    async def send_attendance_notification(self, data: AttendanceNotificationData) -> Dict[str, Any]:
        logger.info("Processing attendance notification for student %s", data.student_id)

        if not data.student_name:
            student = await self.recipients.get_user(data.student_id)
            data.student_name = student.full_name if student else f"#{data.student_id}"

        parents = await self.recipients.get_parents_for_student(data.student_id)
        channels = {channel: ChannelStatus.NOT_PROVIDED.value for channel in ATTENDANCE_CHANNELS}
        if not parents:
            logger.warning("No parent connections found for student %s", data.student_id)
            return {
                "success": False,
                "notificationsSent": 0,
                "channels": channels,
                "errors": [f"No parents found for student {data.student_id}"],
            }

        total_sent = 0
        errors: List[str] = []
        for parent in parents:
            language = self.config.resolve_language(parent.preferred_language)
            content = self.generate_content(data, language)
            for channel in ATTENDANCE_CHANNELS:
                try:
                    status = await self._deliver(channel, parent, data, content, language)
                except Exception as e:
                    logger.exception("Attendance %s delivery to parent %s failed", channel, parent.id)
                    status = ChannelStatus.FAILED.value
                    errors.append(f"Parent {parent.id} {channel}: {e}")
                else:
                    if status == ChannelStatus.FAILED.value and channel == "email":
                        errors.append(f"Email failed for {parent.email}")
                if status is None:
                    continue
                if status == ChannelStatus.SENT.value:
                    total_sent += 1
                _record(channels, channel, status)
                if self.metrics:
                    self.metrics.record_delivery(channel, status)

        await self.db.commit()
        logger.info("Sent %s attendance notifications for student %s", total_sent, data.student_name)
        return {
            "success": total_sent > 0,
            "notificationsSent": total_sent,
            "channels": channels,
            "errors": errors or None,
        }

    async def _deliver(self, channel: str, parent: Recipient, data: AttendanceNotificationData,
                       content: Dict[str, str], language: str) -> Optional[str]:
        """Returns the channel status, or None when nothing was attempted."""
        if channel == "sms":
            # SMS delivery was removed from the platform
            return ChannelStatus.FAILED.value if parent.phone else ChannelStatus.NOT_PROVIDED.value

        if not self.config.is_channel_enabled(channel):
            return None

        if channel == "email":
            if not parent.email:
                return None
            html = self.email_service.render(
                "attendance_alert.html",
                language=language,
                subject=content["subject"],
                parent_name=parent.display_name,
                student_name=data.student_name,
                class_name=data.class_name,
                status_label=content["status_label"],
                status_color=status_color(data.status),
                date=content["date"],
                notes=data.notes,
                marked_by=data.marked_by,
                body=content["message"],
                wa_url=self.build_whatsapp_link(parent, data, language),
            )
            sent = await self.email_service.send_email(parent.email, content["subject"], html, content["message"])
            return ChannelStatus.SENT.value if sent else ChannelStatus.FAILED.value

        if channel == "whatsapp":
            if not parent.can_receive_whatsapp:
                return ChannelStatus.NOT_PROVIDED.value
            result = await self.whatsapp_service.send_absence_notification(
                parent.phone_e164,
                student_name=data.student_name,
                date=content["date"],
                school_name=content["school_name"],
                period=data.class_name,
                reason=data.notes or content["status_label"],
                language=language,
            )
            if not result["success"]:
                logger.error("WhatsApp attendance notice to parent %s failed: %s", parent.id, result["error"])
            return ChannelStatus.SENT.value if result["success"] else ChannelStatus.FAILED.value

        if channel == "pwa":
            # one savepoint per row
            async with self.db.begin_nested():
                self.db.add(InAppNotification(
                    user_id=parent.id,
                    title=content["subject"],
                    message=content["message"],
                    type="attendance",
                    priority="high" if data.status == AttendanceStatus.ABSENT.value else "normal",
                    extra_data={"studentId": data.student_id, "status": data.status, "date": content["date"]},
                ))
            return ChannelStatus.SENT.value

        return None
