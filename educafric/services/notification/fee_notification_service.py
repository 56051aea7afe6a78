import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Optional, Tuple

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from educafric.core.config import Settings, settings as default_settings
from educafric.core.platform_config import PlatformNotificationConfig
from educafric.models.auth.user import User
from educafric.models.fees.assigned_fee import AssignedFee
from educafric.models.fees.fee_structure import FeeStructure
from educafric.models.notification.notification_job import NotificationJob
from educafric.models.shared.enums import DEFAULT_JOB_CHANNELS, FeeStatus, NotificationType
from educafric.services.notification.queue_service import NotificationQueueService
from educafric.templates.messages import MessageTemplateRegistry, message_templates, translate_payment_method
from educafric.utils.formatting import format_amount, format_date, utcnow

logger = logging.getLogger(__name__)


class FeeNotificationService:
    """Queue fee reminders, overdue notices and payment receipts."""

    def __init__(
        self,
        db: AsyncSession,
        config: PlatformNotificationConfig,
        queue: NotificationQueueService,
        templates: MessageTemplateRegistry = message_templates,
        settings: Optional[Settings] = None,
    ):
        self.db = db
        self.config = config
        self.queue = queue
        self.templates = templates
        self.settings = settings or default_settings

    def _bilingual(self, prefix: str, fr: Dict[str, Any], en: Dict[str, Any]) -> Tuple[str, str]:
        """Title 'FR / EN' and message 'FR\\n\\nEN' for a fee template pair."""
        title = f"{self.templates.render(f'{prefix}.title', 'fr', fr)} / {self.templates.render(f'{prefix}.title', 'en', en)}"
        message = f"{self.templates.render(f'{prefix}.message', 'fr', fr)}\n\n{self.templates.render(f'{prefix}.message', 'en', en)}"
        return title, message

    def _fee_values(self, student: User, fee: AssignedFee, fee_name: Optional[str], language: str) -> Dict[str, Any]:
        return {
            "first_name": student.first_name,
            "amount": format_amount(fee.balance_amount, language, self.config.currency),
            "fee_name": fee_name or ("Frais de scolarité" if language == "fr" else "School fees"),
            "due_date": format_date(fee.due_date, language, self.config.timezone),
        }

    async def _get_student(self, student_id: int) -> Optional[User]:
        result = await self.db.execute(select(User).where(User.id == student_id))
        return result.scalar_one_or_none()

    async def _queue_fee_notice(self, fee: AssignedFee, fee_name: Optional[str],
                                notification_type: NotificationType, prefix: str) -> Optional[NotificationJob]:
        student = await self._get_student(fee.student_id)
        if student is None:
            logger.warning("Student %s not found; no %s notice for fee %s",
                           fee.student_id, notification_type.value, fee.id)
            return None

        title, message = self._bilingual(
            prefix,
            self._fee_values(student, fee, fee_name, "fr"),
            self._fee_values(student, fee, fee_name, "en"),
        )
        return await self.queue.enqueue(
            school_id=fee.school_id,
            student_id=fee.student_id,
            assigned_fee_id=fee.id,
            notification_type=notification_type.value,
            title=title,
            message=message,
            channels=DEFAULT_JOB_CHANNELS,
        )

    async def check_overdue_fees(self, now: Optional[datetime] = None) -> int:
        """Flag fees past due and queue one overdue notice per fee."""
        now = now or utcnow()
        logger.info("Checking for overdue fees...")

        result = await self.db.execute(
            select(AssignedFee, FeeStructure.name)
            .outerjoin(FeeStructure, AssignedFee.fee_structure_id == FeeStructure.id)
            .where(
                and_(
                    AssignedFee.due_date <= now,
                    AssignedFee.status.in_([FeeStatus.PENDING.value, FeeStatus.PARTIAL.value]),
                    AssignedFee.overdue_notice_sent == False,
                    AssignedFee.is_deleted == False,
                )
            )
            .order_by(AssignedFee.due_date)
            .limit(self.settings.NOTIFICATION_SCAN_LIMIT)
        )
        rows = result.all()

        queued = 0
        for fee, fee_name in rows:
            fee.status = FeeStatus.OVERDUE.value
            job = await self._queue_fee_notice(fee, fee_name, NotificationType.OVERDUE, "fee.overdue")
            if job is not None:
                fee.overdue_notice_sent = True
                fee.overdue_notice_sent_at = now
                queued += 1

        await self.db.commit()
        logger.info("Found %s overdue fees, queued %s notices", len(rows), queued)
        return queued

    async def check_upcoming_dues(self, now: Optional[datetime] = None) -> int:
        """Queue one reminder for each pending fee due within the reminder window."""
        now = now or utcnow()
        horizon = now + timedelta(days=self.settings.NOTIFICATION_REMINDER_DAYS)
        logger.info("Checking for upcoming due dates...")

        result = await self.db.execute(
            select(AssignedFee, FeeStructure.name)
            .outerjoin(FeeStructure, AssignedFee.fee_structure_id == FeeStructure.id)
            .where(
                and_(
                    AssignedFee.due_date >= now,
                    AssignedFee.due_date <= horizon,
                    AssignedFee.status == FeeStatus.PENDING.value,
                    AssignedFee.reminder_sent == False,
                    AssignedFee.is_deleted == False,
                )
            )
            .order_by(AssignedFee.due_date)
            .limit(self.settings.NOTIFICATION_SCAN_LIMIT)
        )
        rows = result.all()

        queued = 0
        for fee, fee_name in rows:
            job = await self._queue_fee_notice(fee, fee_name, NotificationType.REMINDER, "fee.reminder")
            if job is not None:
                fee.reminder_sent = True
                fee.reminder_sent_at = now
                queued += 1

        await self.db.commit()
        logger.info("Queued %s reminder notifications", queued)
        return queued

    async def send_receipt_notification(
        self,
        student_id: int,
        school_id: int,
        receipt_number: str,
        amount: int,
        payment_method: str,
        commit: bool = True,
    ) -> Optional[NotificationJob]:
        """Queue a receipt notice for a recorded payment."""
        student = await self._get_student(student_id)
        if student is None:
            logger.warning("Student %s not found; no receipt notice for %s", student_id, receipt_number)
            return None

        def values(language: str) -> Dict[str, Any]:
            return {
                "first_name": student.first_name,
                "amount": format_amount(amount, language, self.config.currency),
                "raw_amount": int(amount),
                "currency": self.config.currency,
                "payment_method": translate_payment_method(payment_method, language),
                "receipt_number": receipt_number,
            }

        title, message = self._bilingual("fee.receipt", values("fr"), values("en"))
        job = await self.queue.enqueue(
            school_id=school_id,
            student_id=student_id,
            notification_type=NotificationType.RECEIPT.value,
            title=title,
            message=message,
            channels=DEFAULT_JOB_CHANNELS,
        )
        if commit:
            await self.db.commit()
        return job
