from typing import AsyncIterator
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from educafric.services.notification.dispatcher import NotificationDispatcher
from educafric.workers.scheduler import NotificationScheduler
import logging

logger = logging.getLogger(__name__)


def get_dispatcher(request: Request) -> NotificationDispatcher:
    """Dispatcher built in the application lifespan"""
    return request.app.state.notification_dispatcher


def get_scheduler(request: Request) -> NotificationScheduler:
    return request.app.state.notification_scheduler


async def get_db(
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> AsyncIterator[AsyncSession]:
    """Request-scoped session bound to the same engine as the dispatcher"""
    async with dispatcher.session_factory() as session:
        yield session
