"""
In-process polling scheduler for the notification queue.

Used when ``SCHEDULER_BACKEND == "inprocess"``: the FastAPI lifespan calls
``initialize()`` on start-up and ``shutdown()`` on exit. With the Celery
backend the same ``run_cycle`` is driven by beat instead.
"""
import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from educafric.core.config import Settings, settings as default_settings
from educafric.services.notification.dispatcher import NotificationDispatcher
from educafric.utils.formatting import utcnow

logger = logging.getLogger(__name__)


async def run_notification_cycle(dispatcher: NotificationDispatcher,
                                 now: Optional[datetime] = None) -> Dict[str, Any]:
    """Drain the queue, then rescan overdue fees, then upcoming dues.

    Each step runs in its own session; a failing step is logged and the
    next one still runs.
    """
    now = now or utcnow()
    summary: Dict[str, Any] = {"queue": None, "overdue": None, "upcoming": None, "errors": []}

    steps = (
        ("queue", lambda db: dispatcher.queue_service(db).process_pending(now)),
        ("overdue", lambda db: dispatcher.fee_service(db).check_overdue_fees(now)),
        ("upcoming", lambda db: dispatcher.fee_service(db).check_upcoming_dues(now)),
    )
    for name, step in steps:
        try:
            async with dispatcher.session_factory() as db:
                summary[name] = await step(db)
        except Exception as e:
            logger.exception("Notification cycle step '%s' failed", name)
            summary["errors"].append(f"{name}: {e}")
    return summary


class NotificationScheduler:
    """Runs ``run_notification_cycle`` after a warm-up delay and then at a fixed interval."""

    def __init__(self, dispatcher: NotificationDispatcher, settings: Optional[Settings] = None):
        settings = settings or default_settings
        self.dispatcher = dispatcher
        self.warmup_seconds = settings.NOTIFICATION_WARMUP_SECONDS
        self.interval_seconds = settings.NOTIFICATION_POLL_INTERVAL_SECONDS
        self._task: Optional[asyncio.Task] = None
        self.last_run: Optional[Dict[str, Any]] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_cycle(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        self.last_run = await run_notification_cycle(self.dispatcher, now)
        return self.last_run

    async def _loop(self) -> None:
        await asyncio.sleep(self.warmup_seconds)
        while True:
            try:
                await self.run_cycle()
            except Exception:
                logger.exception("Notification cycle crashed")
            await asyncio.sleep(self.interval_seconds)

    def initialize(self) -> None:
        if self.is_running:
            return
        self._task = asyncio.create_task(self._loop(), name="notification-scheduler")
        logger.info("Notification scheduler started - first run in %ss, then every %ss",
                    self.warmup_seconds, self.interval_seconds)

    async def shutdown(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Notification scheduler shut down")
