import time
import logging
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger("access")

# Polled endpoints are logged at DEBUG to keep the access log readable
QUIET_PATHS = {"/health", "/metrics"}


class LoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for logging HTTP requests"""

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        path = request.url.path
        level = logging.DEBUG if path in QUIET_PATHS else logging.INFO
        client = request.client.host if request.client else "unknown"

        logger.log(level, f"🌐 {request.method} {path} - Client: {client}")

        try:
            response = await call_next(request)
        except Exception:
            process_time = time.time() - start_time
            logger.exception(f"❌ {request.method} {path} - Unhandled error after {process_time:.4f}s")
            raise

        process_time = time.time() - start_time
        if response.status_code >= 500:
            level = logging.ERROR
        elif response.status_code >= 400:
            level = max(level, logging.WARNING)
        logger.log(
            level,
            f"✅ {request.method} {path} - Status: {response.status_code} - Time: {process_time:.4f}s"
        )

        response.headers["X-Process-Time"] = str(process_time)
        return response
