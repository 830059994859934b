"""Chrome DevTools Protocol (CDP) client."""

import asyncio
import json
from typing import Any

import httpx
import websockets
from websockets import ClientConnection

from chrome_provider.config import settings
from chrome_provider.errors import ProtocolError
from chrome_provider.models import TargetInfo
from chrome_provider.utils.logging import get_logger

logger = get_logger(__name__)


class CDPError(ProtocolError):
    """CDP protocol error."""

    pass


class CDPEndpoint:
    """HTTP side of a DevTools endpoint: target listing and tab management."""

    def __init__(
        self,
        host: str,
        port: int,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout: float = 10.0,
    ) -> None:
        self.host = host
        self.port = port
        self._transport = transport
        self._timeout = timeout

    @property
    def base_url(self) -> str:
        """Base URL for DevTools HTTP endpoints."""
        return f"http://{self.host}:{self.port}"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            transport=self._transport,
            timeout=self._timeout,
        )

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            async with self._client() as client:
                response = await client.request(method, path, **kwargs)
                response.raise_for_status()
                return response
        except httpx.HTTPError as e:
            raise CDPError(f"DevTools request {method} {path} failed: {e}") from e

    async def list_targets(self) -> list[TargetInfo]:
        """List all targets of the browser."""
        response = await self._request("GET", "/json/list")
        return [TargetInfo.model_validate(target) for target in response.json()]

    async def new_tab(self, url: str = "about:blank") -> TargetInfo:
        """
        Open a new tab.

        Args:
            url: Initial URL for the new tab

        Returns:
            Target of the new tab
        """
        response = await self._request("PUT", "/json/new", params={"url": url})
        target = TargetInfo.model_validate(response.json())
        logger.debug("Created new tab", target_id=target.id, port=self.port)
        return target

    async def close_tab(self, target_id: str) -> None:
        """Close a tab by target id."""
        await self._request("GET", f"/json/close/{target_id}")
        logger.debug("Closed tab", target_id=target_id, port=self.port)


class CDPClient:
    """Client for Chrome DevTools Protocol communication with one target."""

    def __init__(self, ws_url: str, command_timeout: float | None = None) -> None:
        self.ws_url = ws_url
        self.command_timeout = command_timeout or settings.cdp_command_timeout
        self._ws: ClientConnection | None = None
        self._message_id = 0
        self._pending_responses: dict[int, asyncio.Future[Any]] = {}
        self._receive_task: asyncio.Task[None] | None = None
        self._closed = False

    @property
    def connected(self) -> bool:
        return self._ws is not None and not self._closed

    async def connect(self) -> None:
        """Connect to the target WebSocket."""
        logger.debug("Connecting to target WebSocket", url=self.ws_url)

        try:
            self._ws = await websockets.connect(self.ws_url, max_size=100 * 1024 * 1024)
        except (OSError, websockets.WebSocketException) as e:
            raise CDPError(f"Failed to connect to {self.ws_url}: {e}") from e

        self._closed = False
        self._receive_task = asyncio.create_task(self._receive_messages())

        logger.info("CDP connected", url=self.ws_url)

    async def disconnect(self) -> None:
        """Disconnect from the target."""
        if self._receive_task:
            self._receive_task.cancel()
            try:
                await self._receive_task
            except asyncio.CancelledError:
                pass
            self._receive_task = None

        if self._ws:
            await self._ws.close()
            self._ws = None

        self._fail_pending("Disconnected from DevTools")
        logger.debug("CDP disconnected", url=self.ws_url)

    def _fail_pending(self, reason: str) -> None:
        for future in self._pending_responses.values():
            if not future.done():
                future.set_exception(CDPError(reason))
        self._pending_responses.clear()

    async def _receive_messages(self) -> None:
        """Background task to receive WebSocket messages."""
        if not self._ws:
            return

        try:
            async for message in self._ws:
                data = json.loads(message)

                # Handle response to our command
                if "id" in data:
                    msg_id = data["id"]
                    if msg_id in self._pending_responses:
                        future = self._pending_responses.pop(msg_id)
                        if future.done():
                            continue
                        if "error" in data:
                            error_msg = data["error"].get("message", "Unknown error")
                            future.set_exception(CDPError(error_msg))
                        else:
                            future.set_result(data.get("result", {}))

                elif "method" in data:
                    logger.debug("CDP event", method=data["method"])

        except websockets.ConnectionClosed:
            logger.debug("WebSocket connection closed", url=self.ws_url)
        except Exception as e:
            logger.error("Error receiving CDP messages", error=str(e))
        finally:
            # No responses can arrive once the receive loop is gone
            self._closed = True
            self._fail_pending("DevTools connection closed")

    async def send(self, method: str, params: dict[str, Any] | None = None) -> Any:
        """
        Send a CDP command and wait for response.

        Args:
            method: CDP method name (e.g., "Page.navigate")
            params: Method parameters

        Returns:
            Command result
        """
        if not self._ws or self._closed:
            raise CDPError("Not connected to DevTools")

        self._message_id += 1
        msg_id = self._message_id

        message = {
            "id": msg_id,
            "method": method,
            "params": params or {},
        }

        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._pending_responses[msg_id] = future

        try:
            await self._ws.send(json.dumps(message))
        except websockets.ConnectionClosed as e:
            self._pending_responses.pop(msg_id, None)
            self._closed = True
            raise CDPError(f"DevTools connection closed while sending {method}") from e
        logger.debug("CDP command sent", method=method, id=msg_id)

        try:
            return await asyncio.wait_for(future, timeout=self.command_timeout)
        except TimeoutError as e:
            self._pending_responses.pop(msg_id, None)
            raise CDPError(f"Timeout waiting for response to {method}") from e

    async def navigate(self, url: str) -> dict[str, Any]:
        """
        Navigate to a URL.

        Args:
            url: URL to navigate to

        Returns:
            Navigation result
        """
        logger.info("Navigating to URL", url=url)
        result: dict[str, Any] = await self.send("Page.navigate", {"url": url})
        return result

    async def capture_screenshot(
        self,
        from_surface: bool = False,
        format: str = "png",
        quality: int = 80,
    ) -> str:
        """
        Capture the page.

        Args:
            from_surface: Capture from the surface rather than the view
            format: Image format ("png" or "jpeg")
            quality: JPEG quality (0-100)

        Returns:
            Base64 encoded image
        """
        params: dict[str, Any] = {"format": format, "fromSurface": from_surface}
        if format == "jpeg":
            params["quality"] = quality

        result = await self.send("Page.captureScreenshot", params)
        data: str = result.get("data", "")
        return data
