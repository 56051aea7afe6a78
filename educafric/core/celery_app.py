from celery import Celery

from educafric.core.config import settings

NOTIFICATION_TASKS = "educafric.workers.celery_tasks.notification_tasks"

celery_app = Celery(
    "educafric_notifications",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=[NOTIFICATION_TASKS],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone=settings.TIMEZONE,
    enable_utc=True,
    result_expires=3600,
    task_default_queue="notifications",
    task_routes={
        f"{NOTIFICATION_TASKS}.*": {"queue": "notifications"},
    },
    worker_prefetch_multiplier=1,
    task_acks_late=True,
)

# The cycle runs drain -> overdue -> upcoming in order, so beat fires a single task
celery_app.conf.beat_schedule = {
    "notification-cycle": {
        "task": f"{NOTIFICATION_TASKS}.run_notification_cycle",
        "schedule": float(settings.NOTIFICATION_POLL_INTERVAL_SECONDS),
    },
}
