"""
Request logging middleware.

Pure ASGI middleware that logs method, path, status and latency for every HTTP
request. Resource ids in the path are collapsed to ``{id}`` so log lines group
by route.
"""

import logging
import time
import uuid

from fastapi import Request

logger = logging.getLogger(__name__)

SLOW_REQUEST_MS = 2000
SKIP_PATHS = ("/docs", "/redoc", "/favicon.ico", "/health")


class RequestLoggingMiddleware:
    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request = Request(scope, receive)
        if self._should_skip(request.url.path):
            await self.app(scope, receive, send)
            return

        start_time = time.perf_counter()
        status_code = 500

        async def send_wrapper(message):
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            self._log(request.method, self.clean_path(request.url.path), status_code, elapsed_ms)

    @staticmethod
    def _should_skip(path: str) -> bool:
        return path.endswith("/openapi.json") or any(path.startswith(p) for p in SKIP_PATHS)

    @staticmethod
    def _log(method: str, path: str, status_code: int, elapsed_ms: float) -> None:
        line = f"{method} {path} -> {status_code} in {elapsed_ms:.0f}ms"
        if status_code >= 500:
            logger.error(line)
        elif status_code >= 400 or elapsed_ms > SLOW_REQUEST_MS:
            logger.warning(line)
        else:
            logger.info(line)

    @staticmethod
    def clean_path(path: str) -> str:
        parts = []
        for part in path.split("/"):
            if _looks_like_uuid(part):
                parts.append("{id}")
            else:
                parts.append(part)
        return "/".join(parts)


def _looks_like_uuid(value: str) -> bool:
    if len(value) != 36 or value.count("-") != 4:
        return False
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True
