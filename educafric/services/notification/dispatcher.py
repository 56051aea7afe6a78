"""
Event dispatcher for automatic notifications.

``NotificationDispatcher.process_event`` is the single entry point feature
code uses to announce that something happened (a student was marked
absent, a payment was received, ...). The dispatcher checks the platform
auto-notify flag for the event type, routes the event to the handler
registered for it and reports a result dict. It never raises: unknown
types and handler errors come back as ``{"success": False, "errors": [...]}``.

Handlers are plain async callables ``handler(event, db) -> dict`` kept in a
registry, so new event types can be added with ``register_handler``.
"""
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from educafric.core.config import Settings, settings as default_settings
from educafric.core.exceptions import UnknownEventTypeError
from educafric.core.platform_config import PlatformNotificationConfig
from educafric.models.shared.enums import ChannelStatus, EventType
from educafric.schemas.notification.notification_schema import NotificationEvent
from educafric.services.communication.email_service import EmailService
from educafric.services.communication.whatsapp_service import WhatsAppService
from educafric.services.notification.attendance_notification_service import (
    AttendanceNotificationData,
    AttendanceNotificationService,
)
from educafric.services.notification.fanout import EVENT_CHANNELS, NotificationFanout
from educafric.services.notification.fee_notification_service import FeeNotificationService
from educafric.services.notification.metrics import NotificationMetrics
from educafric.services.notification.queue_service import NotificationQueueService
from educafric.templates.messages import MessageTemplateRegistry, message_templates

logger = logging.getLogger(__name__)

Handler = Callable[[NotificationEvent, AsyncSession], Awaitable[Dict[str, Any]]]


def _test_payloads() -> Dict[str, Dict[str, Any]]:
    now = datetime.now(timezone.utc)
    return {
        EventType.ATTENDANCE.value: {
            "studentId": 1,
            "studentName": "Jean Dupont (Test)",
            "className": "Terminale A",
            "date": now.strftime("%d/%m/%Y"),
            "status": "absent",
            "notes": "Test de notification automatique",
            "schoolName": "École de Test Educafric",
            "markedBy": "Système Automatique",
        },
        EventType.GRADES.value: {
            "studentId": 1,
            "bulletinId": 1,
            "period": "Trimestre 1",
            "subjectName": "Mathématiques",
            "grade": "15/20",
            "schoolId": 1,
        },
        EventType.PAYMENTS.value: {
            "userId": 1,
            "amount": 50000,
            "currency": "XAF",
            "paymentMethod": "stripe",
            "transactionId": f"test_{int(now.timestamp() * 1000)}",
            "description": "Test de paiement",
        },
        EventType.GEOLOCATION.value: {
            "studentId": 1,
            "alertType": "zone_exit",
            "zoneName": "École",
            "location": "4.0511, 9.7679",
            "timestamp": now.strftime("%H:%M"),
        },
        EventType.ONLINE_CLASSES.value: {
            "studentId": 1,
            "courseName": "Physique - Cours en ligne",
            "teacherName": "M. Kamga",
            "startTime": now.strftime("%d/%m/%Y %H:%M"),
            "duration": "60 min",
            "joinLink": "https://www.educafric.com/online-class/test",
        },
        EventType.SUBSCRIPTIONS.value: {
            "userId": 1,
            "planName": "Parent Premium",
            "subscriptionStatus": "active",
            "expiresAt": now.strftime("%d/%m/%Y"),
        },
    }


class NotificationDispatcher:
    """Routes notification events to their registered handlers."""

    def __init__(
        self,
        session_factory: async_sessionmaker,
        config: PlatformNotificationConfig,
        email_service: EmailService,
        whatsapp_service: WhatsAppService,
        metrics: Optional[NotificationMetrics] = None,
        templates: MessageTemplateRegistry = message_templates,
        settings: Optional[Settings] = None,
    ):
        self.session_factory = session_factory
        self.config = config
        self.email_service = email_service
        self.whatsapp_service = whatsapp_service
        self.metrics = metrics or NotificationMetrics()
        self.templates = templates
        self.settings = settings or default_settings
        self._handlers: Dict[str, Handler] = {}

        self.register_handler(EventType.ATTENDANCE.value, self._handle_attendance)
        for event_type in EVENT_CHANNELS:
            self.register_handler(event_type, self._handle_fanout)

        logger.info("Notification dispatcher initialized; active channels: %s", config.active_channels())
        logger.info("Auto-notify settings: %s", config.auto_notify_settings())

    @classmethod
    def from_settings(cls, session_factory: async_sessionmaker,
                      settings: Optional[Settings] = None) -> "NotificationDispatcher":
        settings = settings or default_settings
        return cls(
            session_factory,
            PlatformNotificationConfig.from_settings(settings),
            EmailService(settings),
            WhatsAppService(settings),
            settings=settings,
        )

    # ---- service construction ----

    def attendance_service(self, db: AsyncSession) -> AttendanceNotificationService:
        return AttendanceNotificationService(
            db, self.config, self.email_service, self.whatsapp_service, self.templates, self.metrics)

    def fanout(self, db: AsyncSession) -> NotificationFanout:
        return NotificationFanout(
            db, self.config, self.email_service, self.whatsapp_service, self.templates, self.metrics)

    def queue_service(self, db: AsyncSession) -> NotificationQueueService:
        return NotificationQueueService(
            db, self.config, self.email_service, self.whatsapp_service, self.metrics, self.settings)

    def fee_service(self, db: AsyncSession) -> FeeNotificationService:
        return FeeNotificationService(db, self.config, self.queue_service(db), self.templates, self.settings)

    # ---- registry ----

    def register_handler(self, event_type: str, handler: Handler) -> None:
        self._handlers[event_type] = handler

    @property
    def event_types(self):
        return list(self._handlers)

    # ---- handlers ----

    async def _handle_attendance(self, event: NotificationEvent, db: AsyncSession) -> Dict[str, Any]:
        result = await self.attendance_service(db).send_attendance_notification(
            AttendanceNotificationData.from_event(event.data))
        sent = [c for c in ("email", "whatsapp", "pwa") if result["channels"].get(c) == ChannelStatus.SENT.value]
        return {
            "success": result["success"],
            "notificationsSent": result["notificationsSent"],
            "channels": sent,
            "errors": result.get("errors"),
        }

    async def _handle_fanout(self, event: NotificationEvent, db: AsyncSession) -> Dict[str, Any]:
        return await self.fanout(db).deliver(event.type, event.data)

    # ---- entry points ----

    def _auto_notify_enabled(self, event_type: str) -> bool:
        # types registered without a platform flag are always on
        if event_type not in self.config.auto_notify:
            return True
        return self.config.should_auto_notify(event_type)

    async def process_event(self, event: Union[NotificationEvent, Dict[str, Any]]) -> Dict[str, Any]:
        """Process any notification event; never raises."""
        try:
            if not isinstance(event, NotificationEvent):
                event = NotificationEvent.model_validate(event)
        except Exception as e:
            logger.error("Invalid notification event: %s", e)
            return {"success": False, "notificationsSent": 0, "channels": [], "errors": [str(e)]}

        if not self._auto_notify_enabled(event.type):
            logger.info("Auto-notify disabled for %s", event.type)
            return {
                "success": False,
                "notificationsSent": 0,
                "channels": [],
                "errors": ["Auto-notify disabled for this event type"],
                "skipped": True,
            }

        logger.info("Processing %s event...", event.type)
        try:
            handler = self._handlers.get(event.type)
            if handler is None:
                raise UnknownEventTypeError(event.type)
            async with self.session_factory() as db:
                result = await handler(event, db)
        except Exception as e:
            if isinstance(e, UnknownEventTypeError):
                logger.error("Error processing %s: %s", event.type, e)
            else:
                logger.exception("Error processing %s", event.type)
            self.metrics.record_event_failure(event.type)
            return {"success": False, "notificationsSent": 0, "channels": [], "errors": [str(e)]}

        self.metrics.record_event(event.type)
        return result

    def get_stats(self) -> Dict[str, Any]:
        counters = self.metrics.snapshot(self.event_types)
        stats: Dict[str, Any] = {"total": counters["total"], "failed": counters["failed"]}
        stats.update(counters["byType"])
        stats["channels"] = self.config.active_channels()
        stats["settings"] = self.config.auto_notify_settings()
        return stats

    async def send_test_notification(self, event_type: str, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Fire a synthetic event, with a built-in payload when none is given."""
        logger.info("Sending test %s notification...", event_type)
        payload = data or _test_payloads().get(event_type, {})
        return await self.process_event(NotificationEvent(type=event_type, data=payload, school_id=1))

