"""
Request logging middleware: logs every request with its status and duration.
Unhandled exceptions are logged with traceback and re-raised.
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

logger = logging.getLogger("app.requests")

# Paths not worth a log line
QUIET_PATHS = {"/api/health", "/favicon.ico"}


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if path in QUIET_PATHS or request.method == "OPTIONS":
            return await call_next(request)

        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            logger.exception("Exception in %s %s", request.method, path)
            raise

        duration = time.perf_counter() - start
        logger.info("%s %s -> %d (%.3fs)", request.method, path, response.status_code, duration)
        return response
