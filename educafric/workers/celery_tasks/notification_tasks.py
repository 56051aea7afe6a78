"""
Notification tasks - Celery entry points for the notification cycle
"""
import asyncio
import logging

from educafric.core.celery_app import celery_app
from educafric.core.config import settings
from educafric.core.database import build_engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

logger = logging.getLogger(__name__)


def run_async_task(coro_factory):
    """Run an async job in a fresh event loop with its own engine.

    Celery workers may run tasks in different threads and loops, so the
    engine (and its connection pool) is created and disposed per task.
    """
    async def _runner():
        engine = build_engine(settings.DATABASE_URL)
        session_maker = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
        try:
            from educafric.services.notification.dispatcher import NotificationDispatcher

            dispatcher = NotificationDispatcher.from_settings(session_maker, settings)
            return await coro_factory(dispatcher)
        finally:
            await engine.dispose()

    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(_runner())
    except Exception as e:
        logger.error(f"Error in async task: {e}")
        raise
    finally:
        loop.close()


@celery_app.task
def run_notification_cycle():
    """Drain the queue, then rescan overdue fees and upcoming dues"""
    from educafric.workers.scheduler import run_notification_cycle as _cycle

    result = run_async_task(lambda dispatcher: _cycle(dispatcher))
    logger.info(f"✅ Notification cycle finished: {result}")
    return result


@celery_app.task
def process_notification_queue():
    """Drain one batch of due notification jobs"""
    async def _process(dispatcher):
        async with dispatcher.session_factory() as db:
            return await dispatcher.queue_service(db).process_pending()

    return run_async_task(_process)


@celery_app.task
def check_overdue_fees():
    """Flag overdue fees and queue overdue notices"""
    async def _check(dispatcher):
        async with dispatcher.session_factory() as db:
            return await dispatcher.fee_service(db).check_overdue_fees()

    count = run_async_task(_check)
    return f"✅ Overdue check completed: {count} notices queued"


@celery_app.task
def check_upcoming_dues():
    """Queue reminders for fees due soon"""
    async def _check(dispatcher):
        async with dispatcher.session_factory() as db:
            return await dispatcher.fee_service(db).check_upcoming_dues()

    count = run_async_task(_check)
    return f"✅ Upcoming dues check completed: {count} reminders queued"


@celery_app.task
def dispatch_notification_event(event: dict):
    """Process a notification event outside the request cycle"""
    return run_async_task(lambda dispatcher: dispatcher.process_event(event))
