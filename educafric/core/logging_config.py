import logging
import logging.config
import os
from datetime import datetime
from educafric.core.config import settings

def setup_logging(log_dir: str = None, to_file: bool = None):
    """Setup application logging configuration"""
    log_dir = log_dir or settings.LOG_DIR
    to_file = settings.LOG_TO_FILE if to_file is None else to_file

    handlers = {
        "console": {
            "class": "logging.StreamHandler",
            "level": settings.LOG_LEVEL,
            "formatter": "default",
            "stream": "ext://sys.stdout",
        },
    }
    root_handlers = ["console"]
    access_handlers = ["console"]
    celery_handlers = ["console"]
    notification_handlers = root_handlers

    if to_file:
        # Create logs directories if they don't exist
        for sub in ("app", "access", "error", "celery", "notifications"):
            os.makedirs(os.path.join(log_dir, sub), exist_ok=True)

        # Get current date for log file naming
        current_date = datetime.now().strftime("%Y-%m-%d")

        def rotating(sub: str, level: str, formatter: str) -> dict:
            return {
                "class": "logging.handlers.RotatingFileHandler",
                "level": level,
                "formatter": formatter,
                "filename": os.path.join(log_dir, sub, f"{sub}-{current_date}.log"),
                "maxBytes": 10485760,  # 10MB
                "backupCount": 10,
                "encoding": "utf-8",
            }

        handlers.update({
            "app_file": rotating("app", settings.LOG_LEVEL, "detailed"),
            "error_file": rotating("error", "ERROR", "detailed"),
            "access_file": rotating("access", "INFO", "access"),
            "celery_file": rotating("celery", "INFO", "detailed"),
            "notifications_file": rotating("notifications", "INFO", "detailed"),
        })
        root_handlers = ["console", "app_file", "error_file"]
        access_handlers = ["access_file"]
        celery_handlers = ["celery_file", "console"]
        notification_handlers = root_handlers + ["notifications_file"]

    logging_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "detailed": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(module)s - %(funcName)s:%(lineno)d - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
            "access": {
                "format": "%(asctime)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": handlers,
        "loggers": {
            "": {  # Root logger
                "level": settings.LOG_LEVEL,
                "handlers": root_handlers,
                "propagate": False,
            },
            "celery": {
                "level": "INFO",
                "handlers": celery_handlers,
                "propagate": False,
            },
            "access": {
                "level": "INFO",
                "handlers": access_handlers,
                "propagate": False,
            },
            "uvicorn.access": {
                "level": "INFO",
                "handlers": access_handlers,
                "propagate": False,
            },
            "educafric.services": {
                "level": settings.LOG_LEVEL,
                "handlers": notification_handlers,
                "propagate": False,
            },
            "educafric.workers": {
                "level": settings.LOG_LEVEL,
                "handlers": notification_handlers,
                "propagate": False,
            },
            "sqlalchemy.engine": {
                "level": "WARNING",  # Reduce DB query noise
                "handlers": root_handlers,
                "propagate": False,
            },
            "httpx": {
                "level": "WARNING",
                "handlers": root_handlers,
                "propagate": False,
            },
        },
    }

    logging.config.dictConfig(logging_config)

    # Log startup message
    logger = logging.getLogger(__name__)
    logger.info("🚀 EDUCAFRIC notification backend - Logging configured")
    logger.info(f"📝 Log level: {settings.LOG_LEVEL}")
    if to_file:
        logger.info(f"🗂️  Logs directory: {log_dir}/")
