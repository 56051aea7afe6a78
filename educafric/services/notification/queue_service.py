import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import and_, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from educafric.core.config import Settings, settings as default_settings
from educafric.core.platform_config import PlatformNotificationConfig
from educafric.models.notification.in_app_notification import InAppNotification
from educafric.models.notification.notification_job import NotificationJob
from educafric.models.shared.enums import (
    DEFAULT_JOB_CHANNELS,
    ChannelStatus,
    NotificationStatus,
    NotificationType,
)
from educafric.services.communication.email_service import EmailService
from educafric.services.communication.whatsapp_service import WhatsAppService
from educafric.services.notification.metrics import NotificationMetrics
from educafric.services.notification.recipient_service import Recipient, RecipientService
from educafric.utils.formatting import ensure_utc, utcnow

logger = logging.getLogger(__name__)

DELIVERABLE_CHANNELS = ("email", "whatsapp", "pwa")


class NotificationQueueService:
    """
    Persisted notification queue.

    Jobs are inserted by the domain services and drained by the scheduler.
    A drain claims each job (pending -> in_progress) with a conditional
    update before any channel is attempted, so two overlapping drains never
    deliver the same job; a claim older than the lease is considered
    abandoned and may be taken over.
    """

    def __init__(
        self,
        db: AsyncSession,
        config: PlatformNotificationConfig,
        email_service: EmailService,
        whatsapp_service: WhatsAppService,
        metrics: Optional[NotificationMetrics] = None,
        settings: Optional[Settings] = None,
    ):
        self.db = db
        self.config = config
        self.email_service = email_service
        self.whatsapp_service = whatsapp_service
        self.metrics = metrics
        self.settings = settings or default_settings
        self.recipients = RecipientService(db, config.default_language)

    async def enqueue(
        self,
        school_id: int,
        notification_type: str,
        title: str,
        message: str,
        student_id: Optional[int] = None,
        assigned_fee_id: Optional[int] = None,
        channels: Optional[Sequence[str]] = None,
        scheduled_for: Optional[datetime] = None,
    ) -> NotificationJob:
        """Add a pending job to the session; the caller commits."""
        job = NotificationJob(
            school_id=school_id,
            student_id=student_id,
            assigned_fee_id=assigned_fee_id,
            notification_type=notification_type,
            title=title,
            message=message,
            channels=list(channels or DEFAULT_JOB_CHANNELS),
            status=NotificationStatus.PENDING.value,
            scheduled_for=scheduled_for,
            retry_count=0,
            max_retries=self.settings.NOTIFICATION_MAX_RETRIES,
        )
        self.db.add(job)
        await self.db.flush()
        logger.info("Queued %s notification %s for student %s", notification_type, job.id, student_id)
        return job

    async def list_jobs(
        self,
        status: Optional[str] = None,
        notification_type: Optional[str] = None,
        student_id: Optional[int] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[NotificationJob]:
        query = select(NotificationJob)
        if status:
            query = query.where(NotificationJob.status == status)
        if notification_type:
            query = query.where(NotificationJob.notification_type == notification_type)
        if student_id:
            query = query.where(NotificationJob.student_id == student_id)
        query = query.order_by(NotificationJob.id.desc()).offset(skip).limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    def _claimable(self, now: datetime):
        lease_cutoff = now - timedelta(seconds=self.settings.NOTIFICATION_CLAIM_LEASE_SECONDS)
        return or_(
            and_(
                NotificationJob.status == NotificationStatus.PENDING.value,
                or_(NotificationJob.scheduled_for.is_(None), NotificationJob.scheduled_for <= now),
            ),
            and_(
                NotificationJob.status == NotificationStatus.IN_PROGRESS.value,
                NotificationJob.claimed_at < lease_cutoff,
            ),
        )

    async def fetch_due_ids(self, now: Optional[datetime] = None, limit: Optional[int] = None) -> List[int]:
        now = now or utcnow()
        result = await self.db.execute(
            select(NotificationJob.id)
            .where(self._claimable(now))
            .order_by(NotificationJob.id)
            .limit(limit or self.settings.NOTIFICATION_BATCH_SIZE)
        )
        return list(result.scalars().all())

    async def claim(self, job_id: int, now: Optional[datetime] = None) -> bool:
        """Move a job to in_progress; False when another drain got there first."""
        now = now or utcnow()
        result = await self.db.execute(
            update(NotificationJob)
            .where(and_(NotificationJob.id == job_id, self._claimable(now)))
            .values(status=NotificationStatus.IN_PROGRESS.value, claimed_at=now)
            .execution_options(synchronize_session=False)
        )
        await self.db.commit()
        return result.rowcount == 1

    async def process_pending(self, now: Optional[datetime] = None) -> Dict[str, int]:
        """Drain one batch of due jobs."""
        now = now or utcnow()
        summary = {"processed": 0, "sent": 0, "failed": 0, "retried": 0, "skipped": 0}

        for job_id in await self.fetch_due_ids(now):
            if not await self.claim(job_id, now):
                summary["skipped"] += 1
                continue
            job = await self.db.get(NotificationJob, job_id, populate_existing=True)
            try:
                outcome = await self.deliver(job, now)
            except Exception as e:
                logger.exception("Error sending notification %s", job_id)
                await self.db.rollback()
                job = await self.db.get(NotificationJob, job_id, populate_existing=True)
                outcome = self._settle(job, now, [str(e)])
            await self.db.commit()

            summary["processed"] += 1
            summary[outcome] += 1
            if self.metrics:
                self.metrics.record_job(outcome)

        logger.info("Processed %s notifications (%s sent, %s failed, %s retried)",
                    summary["processed"], summary["sent"], summary["failed"], summary["retried"])
        return summary

    async def _job_recipients(self, student_id: int) -> Optional[List[Recipient]]:
        student = await self.recipients.get_recipient(student_id)
        if student is None:
            return None
        parents = await self.recipients.get_parents_for_student(student_id)
        return [student] + [p for p in parents if p.id != student.id]

    async def deliver(self, job: NotificationJob, now: Optional[datetime] = None) -> str:
        """Attempt every not-yet-sent channel of a claimed job and settle its status."""
        now = now or utcnow()
        recipients = await self._job_recipients(job.student_id) if job.student_id else None
        if recipients is None:
            job.status = NotificationStatus.FAILED.value
            job.error_message = "Student not found"
            job.claimed_at = None
            return "failed"

        errors: List[str] = []
        for channel in job.channels or DEFAULT_JOB_CHANNELS:
            if channel not in DELIVERABLE_CHANNELS:
                continue
            if job.channel_sent(channel) or not self.config.is_channel_enabled(channel):
                continue
            try:
                sent = await self._send_channel(channel, job, recipients)
            except Exception as e:
                logger.exception("Notification %s: %s channel failed", job.id, channel)
                errors.append(f"{channel}: {e}")
                sent = False
            if self.metrics:
                self.metrics.record_delivery(
                    channel, ChannelStatus.SENT.value if sent else ChannelStatus.FAILED.value)
            if sent:
                setattr(job, f"{channel}_sent", True)
            elif not any(e.startswith(f"{channel}:") for e in errors):
                errors.append(f"{channel}: not delivered")

        return self._settle(job, now, errors)

    def _settle(self, job: NotificationJob, now: datetime, errors: List[str]) -> str:
        job.claimed_at = None
        if job.email_sent or job.whatsapp_sent or job.pwa_sent:
            job.status = NotificationStatus.SENT.value
            job.sent_at = now
            job.error_message = None
            return "sent"

        detail = "All channels failed"
        if errors:
            detail = f"{detail}: {'; '.join(errors)}"
        job.error_message = detail

        if job.retry_count < job.max_retries:
            delay = self.settings.NOTIFICATION_RETRY_BASE_SECONDS * (2 ** job.retry_count)
            job.retry_count += 1
            job.status = NotificationStatus.PENDING.value
            job.scheduled_for = now + timedelta(seconds=delay)
            logger.warning("Notification %s failed on all channels; retry %s at %s",
                           job.id, job.retry_count, job.scheduled_for.isoformat())
            return "retried"

        job.status = NotificationStatus.FAILED.value
        logger.error("Notification %s failed: %s", job.id, detail)
        return "failed"

    async def _send_channel(self, channel: str, job: NotificationJob, recipients: List[Recipient]) -> bool:
        if channel == "email":
            sent = False
            for recipient in recipients:
                if not recipient.email:
                    continue
                html = self.email_service.render(
                    "fee_notification.html",
                    language=recipient.preferred_language,
                    title=job.title,
                    message=job.message,
                    recipient_name=recipient.display_name,
                    urgent=job.notification_type == NotificationType.OVERDUE.value,
                )
                if await self.email_service.send_email(recipient.email, job.title, html, job.message):
                    sent = True
            return sent

        if channel == "whatsapp":
            sent = False
            for recipient in recipients:
                if not recipient.can_receive_whatsapp:
                    continue
                result = await self.whatsapp_service.send_message(
                    recipient.phone_e164, f"{job.title}\n\n{job.message}")
                sent = sent or result["success"]
            return sent

        if channel == "pwa":
            urgent = job.notification_type == NotificationType.OVERDUE.value
            for recipient in recipients:
                self.db.add(InAppNotification(
                    user_id=recipient.id,
                    title=job.title,
                    message=job.message,
                    type="warning" if urgent else "info",
                    priority="high" if urgent else "normal",
                    extra_data={"notificationJobId": job.id},
                ))
            await self.db.flush()
            return True

        return False

    @staticmethod
    def serialize(job: NotificationJob) -> Dict[str, Any]:
        return {
            "id": job.id,
            "schoolId": job.school_id,
            "studentId": job.student_id,
            "assignedFeeId": job.assigned_fee_id,
            "notificationType": job.notification_type,
            "title": job.title,
            "message": job.message,
            "channels": job.channels,
            "status": job.status,
            "scheduledFor": ensure_utc(job.scheduled_for).isoformat() if job.scheduled_for else None,
            "sentAt": ensure_utc(job.sent_at).isoformat() if job.sent_at else None,
            "emailSent": job.email_sent,
            "whatsappSent": job.whatsapp_sent,
            "pwaSent": job.pwa_sent,
            "retryCount": job.retry_count,
            "maxRetries": job.max_retries,
            "errorMessage": job.error_message,
        }
