"""Tests for protocol-level session operations."""

import base64
from pathlib import Path
from typing import Any

import pytest

from chrome_provider.browser import session as protocol
from chrome_provider.browser.cdp import CDPError
from chrome_provider.configuration import parse_config
from chrome_provider.errors import ProtocolError
from chrome_provider.models import AttachStatus, Session, TargetInfo
from tests.unit.fakes import PNG_BYTES, FakeCDPClient, FakeEndpoint, page_tab


def make_session(config_string: str, client: FakeCDPClient | None, window_id: int | None) -> Session:
    return Session(
        run_id="run-1",
        config=parse_config(config_string),
        cdp_port=9222,
        tab=page_tab("run-1") if client else None,
        client=client,  # type: ignore[arg-type]
        window_id=window_id,
    )


@pytest.mark.asyncio
async def test_discover_tab_matches_run_id() -> None:
    """Only page targets whose URL has the run id match."""
    endpoint = FakeEndpoint(
        [
            TargetInfo(id="sw", type="service_worker", url="http://x/run-1/sw.js"),
            page_tab("run-2", "tab-2"),
            page_tab("run-1", "tab-1"),
            page_tab("run-1", "tab-3"),
        ]
    )

    tab = await protocol.discover_tab(endpoint, "run-1")  # type: ignore[arg-type]

    assert tab is not None
    assert tab.id == "tab-1"


@pytest.mark.asyncio
async def test_discover_tab_none() -> None:
    """A missing tab is not an error."""
    endpoint = FakeEndpoint([page_tab("run-2")])

    assert await protocol.discover_tab(endpoint, "run-1") is None  # type: ignore[arg-type]


@pytest.mark.asyncio
async def test_connect_local(client: FakeCDPClient, endpoint: FakeEndpoint) -> None:
    """Local browsers attach to the discovered tab and resolve its window."""
    result = await protocol.connect(
        parse_config(""), "run-1", endpoint, lambda ws_url: client  # type: ignore[arg-type]
    )

    assert result.status == AttachStatus.CONNECTED
    assert result.tab is not None and result.tab.id == "tab-1"
    assert result.client is client
    assert result.window_id == 7
    assert client.params("Browser.getWindowForTarget") == {"targetId": "tab-1"}


@pytest.mark.asyncio
async def test_connect_remote_opens_new_tab(client: FakeCDPClient) -> None:
    """Remote browsers get a fresh tab instead of discovery."""
    endpoint = FakeEndpoint()

    result = await protocol.connect(
        parse_config("host=example.com"), "run-1", endpoint, lambda ws_url: client  # type: ignore[arg-type]
    )

    assert result.connected
    assert endpoint.new_tabs == ["about:blank"]


@pytest.mark.asyncio
async def test_connect_without_tab(client: FakeCDPClient) -> None:
    """No tab for the run yields NO_TAB, distinct from failure."""
    result = await protocol.connect(
        parse_config(""), "run-1", FakeEndpoint(), lambda ws_url: client  # type: ignore[arg-type]
    )

    assert result.status == AttachStatus.NO_TAB
    assert result.client is None


@pytest.mark.asyncio
async def test_connect_attach_failure(client: FakeCDPClient, endpoint: FakeEndpoint) -> None:
    """A client that can't connect yields FAILED with the reason."""
    client.fail_connect = True

    result = await protocol.connect(
        parse_config(""), "run-1", endpoint, lambda ws_url: client  # type: ignore[arg-type]
    )

    assert result.status == AttachStatus.FAILED
    assert result.error == "connection refused"
    assert result.client is None


@pytest.mark.asyncio
async def test_window_id_failure_is_null(endpoint: FakeEndpoint) -> None:
    """A window lookup error leaves the window handle empty."""
    client = FakeCDPClient(responses={"Browser.getWindowForTarget": CDPError("not supported")})

    result = await protocol.connect(
        parse_config("headless"), "run-1", endpoint, lambda ws_url: client  # type: ignore[arg-type]
    )

    assert result.connected
    assert result.window_id is None


@pytest.mark.asyncio
async def test_enable_emulation_full_device() -> None:
    """A device sets user agent, touch and metrics."""
    client = FakeCDPClient()
    device = parse_config("deviceName=iPhone X").device

    await protocol.enable_emulation(client, device)

    assert client.methods == [
        "Network.setUserAgentOverride",
        "Emulation.setTouchEmulationEnabled",
        "Emulation.setDeviceMetricsOverride",
        "Emulation.setVisibleSize",
    ]
    assert client.params("Emulation.setTouchEmulationEnabled") == {
        "enabled": True,
        "configuration": "mobile",
    }
    assert client.params("Emulation.setDeviceMetricsOverride") == {
        "width": 375,
        "height": 812,
        "deviceScaleFactor": 3,
        "mobile": True,
        "fitWindow": True,
    }


@pytest.mark.asyncio
async def test_enable_emulation_size_only() -> None:
    """Without user agent or touch settings only metrics are applied."""
    client = FakeCDPClient()

    await protocol.enable_emulation(client, parse_config("width=400;height=300").device)

    assert client.methods == ["Emulation.setDeviceMetricsOverride", "Emulation.setVisibleSize"]
    assert client.params("Emulation.setVisibleSize") == {"width": 400, "height": 300}


@pytest.mark.asyncio
async def test_resize_native_window_applies_delta() -> None:
    """Native windows grow by the size difference, not to the target size."""
    client = FakeCDPClient(
        responses={
            "Browser.getWindowBounds": {
                "bounds": {"left": 10, "top": 20, "width": 1040, "height": 860}
            }
        }
    )
    session = make_session("", client, window_id=7)

    await protocol.resize_window(session, 800, 600, 1024, 768)

    assert client.params("Browser.setWindowBounds") == {
        "windowId": 7,
        "bounds": {"left": 10, "top": 20, "width": 1040 - 224, "height": 860 - 168},
    }


MAXIMIZED_BOUNDS = {"left": 0, "top": 0, "width": 1920, "height": 1080}
NORMAL_BOUNDS = {"left": 40, "top": 30, "width": 1000, "height": 800}


class RestoringWindowClient(FakeCDPClient):
    """Client whose window reports maximized until set back to normal."""

    def __init__(self) -> None:
        super().__init__()
        self.state = "maximized"

    async def send(self, method: str, params: dict[str, Any] | None = None) -> Any:
        result = await super().send(method, params)
        if method == "Browser.setWindowBounds" and params:
            self.state = params["bounds"].get("windowState", self.state)
        if method == "Browser.getWindowBounds":
            if self.state == "maximized":
                return {"bounds": {**MAXIMIZED_BOUNDS, "windowState": "maximized"}}
            return {"bounds": {**NORMAL_BOUNDS, "windowState": "normal"}}
        return result


@pytest.mark.asyncio
async def test_resize_maximized_window_restores_first() -> None:
    """A maximized window is made normal before its size is changed."""
    client = RestoringWindowClient()
    session = make_session("", client, window_id=7)

    await protocol.resize_window(session, 900, 700, 1000, 800)

    set_bounds = [params for method, params in client.calls if method == "Browser.setWindowBounds"]
    assert set_bounds == [
        {"windowId": 7, "bounds": {"windowState": "normal"}},
        {"windowId": 7, "bounds": {"left": 40, "top": 30, "width": 900, "height": 700}},
    ]


@pytest.mark.asyncio
async def test_resize_emulated_uses_absolute_size() -> None:
    """Emulated sessions get the target size as metrics override."""
    client = FakeCDPClient()
    session = make_session("deviceName=iPhone X", client, window_id=7)

    await protocol.resize_window(session, 500, 900, 375, 812)

    assert "Browser.setWindowBounds" not in client.methods
    metrics = client.params("Emulation.setDeviceMetricsOverride")
    assert (metrics["width"], metrics["height"]) == (500, 900)
    assert client.params("Emulation.setVisibleSize") == {"width": 500, "height": 900}


@pytest.mark.asyncio
async def test_resize_headless_without_window_uses_emulation() -> None:
    """Headless sessions without a window fall back to metrics override."""
    client = FakeCDPClient()
    session = make_session("headless", client, window_id=None)

    await protocol.resize_window(session, 800, 600, 1024, 768)

    assert client.methods == ["Emulation.setDeviceMetricsOverride", "Emulation.setVisibleSize"]


@pytest.mark.asyncio
async def test_resize_without_window_is_noop() -> None:
    """A windowed session without a window handle is left alone."""
    client = FakeCDPClient()
    session = make_session("", client, window_id=None)

    await protocol.resize_window(session, 800, 600, 1024, 768)

    assert client.calls == []


@pytest.mark.asyncio
async def test_resize_without_client_raises() -> None:
    """Resizing needs a protocol client."""
    with pytest.raises(ProtocolError):
        await protocol.resize_window(make_session("", None, None), 800, 600, 1024, 768)


@pytest.mark.asyncio
async def test_maximize_window() -> None:
    """Maximizing sets the window state."""
    client = FakeCDPClient()

    await protocol.maximize_window(make_session("", client, window_id=3))

    assert client.params("Browser.setWindowBounds") == {
        "windowId": 3,
        "bounds": {"windowState": "maximized"},
    }


@pytest.mark.asyncio
async def test_take_screenshot_writes_file(tmp_path: Path) -> None:
    """The decoded capture is written to the path."""
    client = FakeCDPClient()
    target = tmp_path / "shots" / "page.png"

    saved = await protocol.take_screenshot(make_session("", client, 7), target)

    assert saved == target
    assert target.read_bytes() == PNG_BYTES
    assert client.params("Page.captureScreenshot")["fromSurface"] is False


@pytest.mark.asyncio
async def test_take_screenshot_headless_from_surface(tmp_path: Path) -> None:
    """Headless captures come from the rendering surface."""
    client = FakeCDPClient()

    await protocol.take_screenshot(make_session("headless", client, None), tmp_path / "a.png")

    assert client.params("Page.captureScreenshot")["fromSurface"] is True


@pytest.mark.asyncio
async def test_video_frame_is_jpeg() -> None:
    """Video frames are captured as JPEG bytes."""
    client = FakeCDPClient()
    client.screenshot_data = base64.b64encode(b"jpeg-bytes").decode()

    frame = await protocol.get_video_frame(make_session("", client, 7))

    assert frame == b"jpeg-bytes"
    assert client.params("Page.captureScreenshot")["format"] == "jpeg"
