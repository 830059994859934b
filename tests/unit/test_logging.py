"""Tests for logging setup and the access log middleware."""

import logging
from typing import Any
from unittest.mock import AsyncMock

import pytest
import structlog
from structlog.testing import capture_logs

from chrome_provider.utils.logging import AccessLogMiddleware, run_id_from_path, setup_logging


def test_run_id_from_path() -> None:
    """Run ids are read from browser routes only."""
    assert run_id_from_path("/browsers/run-1") == "run-1"
    assert run_id_from_path("/browsers/run-1/resize") == "run-1"
    assert run_id_from_path("/health") is None


def test_setup_logging_level() -> None:
    """An explicit level is applied to the root logger."""
    try:
        setup_logging(log_level="debug", json_logs=False)
        assert logging.getLogger().level == logging.DEBUG
        assert logging.getLogger("httpx").level == logging.WARNING
    finally:
        setup_logging()


def test_setup_logging_unknown_level_falls_back() -> None:
    """Unknown level names mean INFO."""
    try:
        setup_logging(log_level="chatty")
        assert logging.getLogger().level == logging.INFO
    finally:
        setup_logging()


@pytest.mark.asyncio
async def test_middleware_binds_run_id() -> None:
    """Logs emitted while serving a browser route carry its run id."""
    seen: dict[str, Any] = {}

    async def app(scope: dict[str, Any], receive: Any, send: Any) -> None:
        seen.update(structlog.contextvars.get_contextvars())
        await send({"type": "http.response.start", "status": 204, "headers": []})
        await send({"type": "http.response.body", "body": b""})

    with capture_logs() as logs:
        middleware = AccessLogMiddleware(app)
        await middleware(
            {"type": "http", "method": "POST", "path": "/browsers/run-3/ready"},
            AsyncMock(),
            AsyncMock(),
        )

    assert seen == {"run_id": "run-3"}
    assert "run_id" not in structlog.contextvars.get_contextvars()

    access = [entry for entry in logs if entry["event"] == "HTTP request"]
    assert access[0]["run_id"] == "run-3"
    assert access[0]["status"] == 204
    assert access[0]["method"] == "POST"


@pytest.mark.asyncio
async def test_middleware_skips_non_http() -> None:
    """Lifespan and websocket scopes pass straight through."""
    app = AsyncMock()
    middleware = AccessLogMiddleware(app)
    scope = {"type": "lifespan"}

    await middleware(scope, None, None)

    app.assert_awaited_once_with(scope, None, None)
