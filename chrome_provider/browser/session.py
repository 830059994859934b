"""Protocol-level operations on a browser session.

Tab discovery, client attach, device emulation, window sizing and
screenshots. Everything here talks to the browser only through
``CDPEndpoint`` (HTTP) and ``CDPClient`` (WebSocket).
"""

import asyncio
import base64
from collections.abc import Callable
from pathlib import Path
from typing import Any

from chrome_provider.browser.cdp import CDPClient, CDPEndpoint
from chrome_provider.errors import ProtocolError
from chrome_provider.models import (
    AttachResult,
    AttachStatus,
    BrowserConfig,
    DeviceOverride,
    Session,
    TargetInfo,
)
from chrome_provider.utils.logging import get_logger

logger = get_logger(__name__)

ClientFactory = Callable[[str], CDPClient]


async def discover_tab(endpoint: CDPEndpoint, run_id: str) -> TargetInfo | None:
    """
    Find the page target whose URL carries the run id.

    Returns:
        First matching page target, or None when there is none
    """
    targets = await endpoint.list_targets()
    for target in targets:
        if target.type == "page" and run_id in target.url:
            return target
    return None


async def get_window_id(client: Any, tab: TargetInfo) -> int | None:
    """Resolve the native window of a tab; None when the browser can't tell."""
    try:
        result = await client.send("Browser.getWindowForTarget", {"targetId": tab.id})
    except ProtocolError as e:
        logger.debug("Window handle unavailable", target_id=tab.id, error=str(e))
        return None

    window_id: int | None = result.get("windowId")
    return window_id


async def connect(
    config: BrowserConfig,
    run_id: str,
    endpoint: CDPEndpoint,
    client_factory: ClientFactory = CDPClient,
) -> AttachResult:
    """
    Attach a protocol client to the tab of a run.

    Local browsers already show the run's page, so its tab is discovered by
    run id. Remote browsers get a fresh tab that the caller navigates later.

    Returns:
        CONNECTED with tab, client and window id; NO_TAB when the run's page
        is not open; FAILED with the reason when the protocol failed
    """
    try:
        if config.remote:
            tab: TargetInfo | None = await endpoint.new_tab()
        else:
            tab = await discover_tab(endpoint, run_id)
    except ProtocolError as e:
        logger.warning("Tab lookup failed", run_id=run_id, error=str(e))
        return AttachResult(AttachStatus.FAILED, error=str(e))

    if tab is None:
        logger.warning("No tab found for run", run_id=run_id, port=endpoint.port)
        return AttachResult(AttachStatus.NO_TAB)

    if not tab.ws_url:
        return AttachResult(AttachStatus.FAILED, tab=tab, error="Tab has no debugger URL")

    client = client_factory(tab.ws_url)
    try:
        await client.connect()
    except ProtocolError as e:
        logger.warning("Client attach failed", run_id=run_id, error=str(e))
        return AttachResult(AttachStatus.FAILED, tab=tab, error=str(e))

    window_id = await get_window_id(client, tab)

    logger.info(
        "Attached to tab",
        run_id=run_id,
        target_id=tab.id,
        window_id=window_id,
    )
    return AttachResult(AttachStatus.CONNECTED, tab=tab, client=client, window_id=window_id)


async def set_emulation_bounds(
    client: Any,
    device: DeviceOverride,
    width: int | None = None,
    height: int | None = None,
) -> None:
    """Override the reported viewport; explicit width/height win over the device's."""
    width = device.width if width is None else width
    height = device.height if height is None else height

    await client.send(
        "Emulation.setDeviceMetricsOverride",
        {
            "width": width,
            "height": height,
            "deviceScaleFactor": device.density,
            "mobile": device.mobile,
            "fitWindow": True,
        },
    )
    await client.send("Emulation.setVisibleSize", {"width": width, "height": height})


async def enable_emulation(client: Any, device: DeviceOverride) -> None:
    """Apply user agent, touch and screen emulation for a device."""
    if device.user_agent is not None:
        await client.send("Network.setUserAgentOverride", {"userAgent": device.user_agent})

    if device.touch is not None:
        await client.send(
            "Emulation.setTouchEmulationEnabled",
            {
                "enabled": device.touch,
                "configuration": "mobile" if device.mobile else "desktop",
            },
        )

    await set_emulation_bounds(client, device)


async def _get_window_bounds(client: Any, window_id: int) -> dict[str, Any]:
    result = await client.send("Browser.getWindowBounds", {"windowId": window_id})
    bounds: dict[str, Any] = result.get("bounds", {})
    return bounds


async def resize_window(
    session: Session,
    width: int,
    height: int,
    current_width: int,
    current_height: int,
) -> None:
    """
    Resize the page viewport of a session.

    Emulated and windowless headless sessions get the target size as an
    absolute metrics override. Sessions with a native window get their
    window bounds shifted by the size difference, because window bounds
    include browser chrome the page size does not.
    """
    config = session.config
    client = session.client
    if client is None:
        raise ProtocolError(f"No protocol client for run: {session.run_id}")

    if config.emulation or (session.window_id is None and config.headless):
        await set_emulation_bounds(client, config.device, width, height)
        return

    if session.window_id is None:
        logger.debug("Resize skipped, no window handle", run_id=session.run_id)
        return

    current = await _get_window_bounds(client, session.window_id)
    if current.get("windowState", "normal") != "normal":
        # Size can only be set on a normal window
        await client.send(
            "Browser.setWindowBounds",
            {"windowId": session.window_id, "bounds": {"windowState": "normal"}},
        )
        current = await _get_window_bounds(client, session.window_id)

    bounds = {key: current[key] for key in ("left", "top") if key in current}
    bounds["width"] = current.get("width", 0) + width - current_width
    bounds["height"] = current.get("height", 0) + height - current_height

    await client.send(
        "Browser.setWindowBounds",
        {"windowId": session.window_id, "bounds": bounds},
    )


async def maximize_window(session: Session) -> None:
    """Maximize the native window of a session."""
    if session.client is None or session.window_id is None:
        raise ProtocolError(f"No native window for run: {session.run_id}")

    await session.client.send(
        "Browser.setWindowBounds",
        {"windowId": session.window_id, "bounds": {"windowState": "maximized"}},
    )


async def take_screenshot(session: Session, path: str | Path) -> Path:
    """
    Capture the session's page into a PNG file.

    Headless browsers have no on-screen view, so the capture is taken from
    the rendering surface.
    """
    if session.client is None:
        raise ProtocolError(f"No protocol client for run: {session.run_id}")

    data = await session.client.capture_screenshot(from_surface=session.config.headless)

    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    await asyncio.to_thread(target.write_bytes, base64.b64decode(data))

    logger.debug("Screenshot saved", run_id=session.run_id, path=str(target))
    return target


async def get_video_frame(session: Session) -> bytes:
    """Capture one JPEG video frame of the session's page."""
    if session.client is None:
        raise ProtocolError(f"No protocol client for run: {session.run_id}")

    data = await session.client.capture_screenshot(
        from_surface=session.config.headless,
        format="jpeg",
    )
    return base64.b64decode(data)
