"""
Request logging middleware.

Logs one line per request: method, path, status, content length and
duration, in the compact "tiny" access log format.
"""

import logging
import time

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger("tts_proxy.access")


class RequestLoggerMiddleware(BaseHTTPMiddleware):
    """Middleware to log all requests with timing"""

    async def dispatch(self, request: Request, call_next):
        start_time = time.perf_counter()
        path = request.url.path
        if request.url.query:
            path = f"{path}?{request.url.query}"

        try:
            response = await call_next(request)
        except Exception as error:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(f"{request.method} {path} ERROR - {duration_ms:.3f} ms ({error})")
            raise

        # Streamed bodies have no length until they finish
        duration_ms = (time.perf_counter() - start_time) * 1000
        content_length = response.headers.get("content-length", "-")
        logger.info(
            f"{request.method} {path} {response.status_code} {content_length} - {duration_ms:.3f} ms"
        )
        return response
