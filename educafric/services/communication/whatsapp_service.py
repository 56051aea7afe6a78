from datetime import datetime, timezone
from typing import Any, Dict, Optional
import logging
import httpx

from educafric.core.config import Settings, settings as default_settings
from educafric.core.exceptions import TemplateNotFoundError
from educafric.models.shared.enums import WhatsAppMessageType
from educafric.templates.messages import MessageTemplateRegistry, message_templates
from educafric.utils.wa_link import normalize_e164

logger = logging.getLogger(__name__)

# Fields a caller must provide for each education message type
REQUIRED_FIELDS: Dict[str, tuple] = {
    WhatsAppMessageType.ABSENCE.value: ("student_name", "date", "school_name"),
    WhatsAppMessageType.GRADE.value: ("student_name", "subject_name", "grade", "school_name"),
    WhatsAppMessageType.PAYMENT.value: ("student_name", "amount", "due_date", "school_name"),
    WhatsAppMessageType.MESSAGE.value: ("sender_name", "sender_role", "message_preview"),
    WhatsAppMessageType.GEOLOCATION.value: ("student_name", "alert_type", "location", "timestamp"),
    WhatsAppMessageType.ONLINE_CLASS.value: ("student_name", "course_name", "teacher_name", "start_time", "join_link"),
    WhatsAppMessageType.TIMETABLE.value: ("student_name", "change_type", "subject", "class_name", "teacher_name"),
}

TEMPLATE_IDS: Dict[str, str] = {
    WhatsAppMessageType.ABSENCE.value: "whatsapp.absence",
    WhatsAppMessageType.GRADE.value: "whatsapp.grade",
    WhatsAppMessageType.PAYMENT.value: "whatsapp.payment",
    WhatsAppMessageType.MESSAGE.value: "message.body",
    WhatsAppMessageType.GEOLOCATION.value: "geolocation.body",
    WhatsAppMessageType.ONLINE_CLASS.value: "onlineClasses.body",
    WhatsAppMessageType.TIMETABLE.value: "timetable.body",
}


def _empty_stats() -> Dict[str, Any]:
    return {
        "totalSent": 0,
        "successful": 0,
        "failed": 0,
        "byType": {t.value: 0 for t in WhatsAppMessageType},
    }


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


class WhatsAppService:
    """
    Async client for the WhatsApp Business (Cloud) API.

    Every public send returns a result dict and never raises; a service
    without a phone-number id or access token answers
    ``{"success": False, "error": "whatsapp_not_configured"}`` without
    touching the network.
    """

    def __init__(
        self,
        config: Optional[Settings] = None,
        templates: Optional[MessageTemplateRegistry] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        config = config or default_settings
        self.api_url: str = config.WHATSAPP_API_URL.rstrip("/")
        self.api_version: str = config.WHATSAPP_API_VERSION
        self.phone_number_id: Optional[str] = config.WHATSAPP_PHONE_NUMBER_ID
        self.access_token: Optional[str] = config.WHATSAPP_ACCESS_TOKEN
        self.timeout: float = config.WHATSAPP_TIMEOUT
        self.support_phone: str = config.SUPPORT_PHONE
        self.templates = templates or message_templates
        self._transport = transport
        self._stats = _empty_stats()

    @property
    def is_configured(self) -> bool:
        return bool(self.phone_number_id and self.access_token)

    @property
    def messages_url(self) -> str:
        return f"{self.api_url}/{self.api_version}/{self.phone_number_id}/messages"

    def _result(self, phone: str, success: bool, message_id: str = None, error: str = None) -> Dict[str, Any]:
        return {
            "success": success,
            "messageId": message_id,
            "error": error,
            "recipientPhone": phone,
            "timestamp": _timestamp(),
        }

    async def send_message(self, phone: str, body: str) -> Dict[str, Any]:
        """Send a free-form text message."""
        if not self.is_configured:
            logger.warning("WhatsApp configuration missing (phone_number_id/access_token).")
            return self._result(phone, False, error="whatsapp_not_configured")

        to = normalize_e164(phone)
        if to is None:
            return self._result(phone, False, error="invalid_phone_number")

        payload = {
            "messaging_product": "whatsapp",
            "to": to.lstrip("+"),
            "type": "text",
            "text": {"body": body},
        }
        headers = {"Authorization": f"Bearer {self.access_token}"}

        timeout = httpx.Timeout(self.timeout, connect=self.timeout)
        async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
            try:
                r = await client.post(self.messages_url, json=payload, headers=headers)
                is_json = r.headers.get("content-type", "").startswith("application/json")
                data = r.json() if is_json else None
                if not isinstance(data, dict):
                    data = {"text": r.text}
                if r.is_success:
                    messages = data.get("messages") or [{}]
                    return self._result(phone, True, message_id=messages[0].get("id"))
                logger.error("WhatsApp send failed: %s | %s", r.status_code, data)
                error = (data.get("error") or {}).get("message") if isinstance(data.get("error"), dict) else None
                return self._result(phone, False, error=error or f"http_{r.status_code}")
            except (httpx.HTTPError, ValueError) as e:
                logger.exception("WhatsApp send exception: %s", e)
                return self._result(phone, False, error=str(e) or e.__class__.__name__)
            except Exception as e:
                logger.exception("Unexpected WhatsApp send error: %s", e)
                return self._result(phone, False, error=f"unexpected_error: {e.__class__.__name__}")

    def build_message(self, message_type: str, data: Dict[str, Any], language: str = "fr") -> str:
        """Render the text for one of the education message types."""
        template_id = TEMPLATE_IDS.get(message_type)
        if template_id is None:
            raise TemplateNotFoundError(message_type, language)

        values = {
            "support_phone": self.support_phone,
            "school_phone": self.support_phone,
            "monthly_total": "N/A",
            "period": "-",
            "reason": "-",
            "class_average": "N/A",
            "trend": "→",
            "comment": "",
            "payment_type": "-",
        }
        values.update({k: v for k, v in data.items() if v is not None})
        values["zone_line"] = self.templates.render_optional(
            "geolocation.zone_line", language, data.get("zone_name"), "zone_name")
        values["old_time_line"] = self.templates.render_optional(
            "timetable.old_time_line", language, data.get("old_time"), "old_time")
        values["new_time_line"] = self.templates.render_optional(
            "timetable.new_time_line", language, data.get("new_time"), "new_time")
        return self.templates.render(template_id, language, values)

    async def send_education_notification(
        self,
        phone: str,
        message_type: str,
        data: Dict[str, Any],
        language: str = "fr",
    ) -> Dict[str, Any]:
        """Validate, render and send one education notification, updating stats."""
        required = REQUIRED_FIELDS.get(message_type)
        if required is None:
            result = self._result(phone, False, error=f"unknown_message_type: {message_type}")
        else:
            missing = [name for name in required if data.get(name) in (None, "")]
            if missing:
                result = self._result(phone, False, error=f"missing_fields: {', '.join(missing)}")
            else:
                language = language if language in ("fr", "en") else "fr"
                logger.info("Sending WhatsApp %s notification to %s", message_type, phone)
                result = await self.send_message(phone, self.build_message(message_type, data, language))

        self._stats["totalSent"] += 1
        if result["success"]:
            self._stats["successful"] += 1
            self._stats["byType"][message_type] += 1
        else:
            self._stats["failed"] += 1
        return result

    async def send_absence_notification(self, phone: str, student_name: str, date: str, school_name: str,
                                        period: str = None, reason: str = None, language: str = "fr"):
        return await self.send_education_notification(phone, WhatsAppMessageType.ABSENCE.value, {
            "student_name": student_name, "date": date, "school_name": school_name,
            "period": period, "reason": reason,
        }, language)

    async def send_grade_notification(self, phone: str, student_name: str, subject_name: str, grade: str,
                                      school_name: str, teacher_name: str = None, class_average: str = None,
                                      trend: str = None, comment: str = None, language: str = "fr"):
        return await self.send_education_notification(phone, WhatsAppMessageType.GRADE.value, {
            "student_name": student_name, "subject_name": subject_name, "grade": grade,
            "school_name": school_name, "teacher_name": teacher_name or "-",
            "class_average": class_average, "trend": trend, "comment": comment,
        }, language)

    async def send_payment_notification(self, phone: str, student_name: str, amount: str, due_date: str,
                                        school_name: str, payment_type: str = None, school_phone: str = None,
                                        language: str = "fr"):
        return await self.send_education_notification(phone, WhatsAppMessageType.PAYMENT.value, {
            "student_name": student_name, "amount": amount, "due_date": due_date,
            "school_name": school_name, "payment_type": payment_type, "school_phone": school_phone,
        }, language)

    async def send_geolocation_alert(self, phone: str, student_name: str, alert_type: str, location: str,
                                     timestamp: str, zone_name: str = None, language: str = "fr"):
        return await self.send_education_notification(phone, WhatsAppMessageType.GEOLOCATION.value, {
            "student_name": student_name, "alert_type": alert_type, "location": location,
            "timestamp": timestamp, "zone_name": zone_name,
        }, language)

    async def send_online_class_notification(self, phone: str, student_name: str, course_name: str,
                                             teacher_name: str, start_time: str, join_link: str,
                                             duration: str = None, language: str = "fr"):
        return await self.send_education_notification(phone, WhatsAppMessageType.ONLINE_CLASS.value, {
            "student_name": student_name, "course_name": course_name, "teacher_name": teacher_name,
            "start_time": start_time, "join_link": join_link, "duration": duration or "-",
        }, language)

    async def send_timetable_notification(self, phone: str, student_name: str, change_type: str, subject: str,
                                          class_name: str, teacher_name: str, old_time: str = None,
                                          new_time: str = None, language: str = "fr"):
        return await self.send_education_notification(phone, WhatsAppMessageType.TIMETABLE.value, {
            "student_name": student_name, "change_type": change_type, "subject": subject,
            "class_name": class_name, "teacher_name": teacher_name,
            "old_time": old_time, "new_time": new_time,
        }, language)

    async def send_direct_message(self, phone: str, sender_name: str, sender_role: str,
                                  message_preview: str, language: str = "fr"):
        return await self.send_education_notification(phone, WhatsAppMessageType.MESSAGE.value, {
            "sender_name": sender_name, "sender_role": sender_role, "message_preview": message_preview,
        }, language)

    def get_stats(self) -> Dict[str, Any]:
        total = self._stats["totalSent"]
        rate = f"{self._stats['successful'] / total * 100:.2f}%" if total else "0%"
        return {
            "totalSent": total,
            "successful": self._stats["successful"],
            "failed": self._stats["failed"],
            "byType": dict(self._stats["byType"]),
            "successRate": rate,
        }

    def reset_stats(self) -> None:
        self._stats = _empty_stats()
