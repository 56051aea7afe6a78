import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware

from educafric.api.v1.api import api_router, test_notifications_router
from educafric.core.config import Settings, settings as default_settings
from educafric.core.logging_config import setup_logging
from educafric.middleware.logging import LoggingMiddleware
from educafric.services.notification.dispatcher import NotificationDispatcher
from educafric.workers.scheduler import NotificationScheduler

logger = logging.getLogger(__name__)

app_config = {
    "title": "EDUCAFRIC Notification Service",
    "description": "Automatic parent notifications for attendance, grades, payments and school fees",
    "version": "1.0.0",
    "docs_url": "/api/docs",
}


def create_app(dispatcher: Optional[NotificationDispatcher] = None,
               settings: Optional[Settings] = None,
               configure_logging: bool = True) -> FastAPI:
    """Build the application; tests pass their own dispatcher and settings."""
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if configure_logging:
            setup_logging()

        current = dispatcher
        if current is None:
            from educafric.core.database import async_session_maker

            current = NotificationDispatcher.from_settings(async_session_maker, settings)
        scheduler = NotificationScheduler(current, settings)
        app.state.notification_dispatcher = current
        app.state.notification_scheduler = scheduler

        if settings.SCHEDULER_BACKEND == "inprocess":
            scheduler.initialize()
        else:
            logger.info("In-process scheduler not started (backend: %s)", settings.SCHEDULER_BACKEND)

        logger.info("🚀 EDUCAFRIC notification service started")
        try:
            yield
        finally:
            await scheduler.shutdown()
            logger.info("EDUCAFRIC notification service stopped")

    app = FastAPI(lifespan=lifespan, **app_config)

    # Add middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"]
    )
    app.add_middleware(TrustedHostMiddleware, allowed_hosts=["*"])
    app.add_middleware(LoggingMiddleware)

    # Include routers
    app.include_router(api_router, prefix="/api/v1")
    app.include_router(test_notifications_router, prefix="/api")

    @app.get("/")
    async def root():
        return {
            "message": "Welcome to the EDUCAFRIC notification service",
            "status": "active",
            "version": app_config["version"],
            "docs": "/api/docs"
        }

    @app.get("/health")
    async def health_check():
        scheduler: NotificationScheduler = app.state.notification_scheduler
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "components": {
                "scheduler": "running" if scheduler.is_running else settings.SCHEDULER_BACKEND,
                "email": "configured" if app.state.notification_dispatcher.email_service.is_configured
                else "not_configured",
                "whatsapp": "configured" if app.state.notification_dispatcher.whatsapp_service.is_configured
                else "not_configured",
            },
            "lastCycle": scheduler.last_run,
        }

    @app.get("/metrics")
    async def metrics():
        """Prometheus exposition of the notification counters"""
        registry = app.state.notification_dispatcher.metrics
        return Response(content=registry.render(), media_type=registry.CONTENT_TYPE)

    return app


app = create_app()


def run_http():
    """Run HTTP server on port 9106"""
    import uvicorn
    print("🚀 Starting HTTP server on port 9106...")
    uvicorn.run(
        "main:app",  # Use string import
        host="0.0.0.0",
        port=9106,
        reload=False
    )


def run_https():
    """Run HTTPS server on port 9105"""
    import uvicorn
    print("🔒 Starting HTTPS server on port 9105...")
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=9105,
        reload=False,
        ssl_certfile="cert.pem",
        ssl_keyfile="key.pem"
    )


if __name__ == "__main__":
    import sys

    if "--https-only" in sys.argv:
        run_https()
    else:
        run_http()
