"""Logging for the provider: structlog rendered through stdlib logging.

Every log call passes its context as keywords (``run_id``, ``port``,
``pid``). Requests to the HTTP surface additionally bind the run id of the
URL, so log lines emitted while serving a request carry it even when the
caller did not pass it.
"""

import logging
import re
import sys
import time
from typing import Any, cast

import structlog

from chrome_provider.config import settings

_RUN_PATH_RE = re.compile(r"^/browsers/(?P<run_id>[^/]+)")

# Libraries that log every request or frame at INFO
_QUIET_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "websockets")


def setup_logging(log_level: str | None = None, json_logs: bool | None = None) -> None:
    """
    Configure structlog and the root logger.

    Args:
        log_level: Level name, defaults to the configured level
        json_logs: Render JSON lines; defaults to on unless debugging
    """
    level = logging.getLevelName((log_level or settings.log_level).upper())
    if not isinstance(level, int):
        level = logging.INFO
    if json_logs is None:
        json_logs = not settings.debug

    renderer: Any = (
        structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout)
    logging.getLogger().setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return cast(structlog.stdlib.BoundLogger, structlog.get_logger(name))


def run_id_from_path(path: str) -> str | None:
    """Run id of a ``/browsers/{run_id}...`` path."""
    match = _RUN_PATH_RE.match(path)
    return match.group("run_id") if match else None


class AccessLogMiddleware:
    """ASGI middleware that logs each request and binds its run id."""

    def __init__(self, app: Any) -> None:
        self.app = app
        self.logger = get_logger("chrome_provider.access")

    async def __call__(self, scope: dict[str, Any], receive: Any, send: Any) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        path = scope.get("path", "")
        run_id = run_id_from_path(path)
        started = time.perf_counter()
        status_code = 0

        async def send_wrapper(message: dict[str, Any]) -> None:
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message["status"]
            await send(message)

        context = {"run_id": run_id} if run_id else {}
        with structlog.contextvars.bound_contextvars(**context):
            try:
                await self.app(scope, receive, send_wrapper)
            finally:
                self.logger.info(
                    "HTTP request",
                    method=scope.get("method", "-"),
                    path=path,
                    run_id=run_id,
                    status=status_code,
                    duration_ms=round((time.perf_counter() - started) * 1000, 2),
                )
