"""Tests for data models."""

import pytest
from pydantic import ValidationError

from chrome_provider.models import (
    AttachResult,
    AttachStatus,
    BrowserConfig,
    Capabilities,
    Device,
    DeviceOverride,
    Orientation,
    ScreenSize,
    Session,
    SessionState,
    TargetInfo,
)


def test_browser_config_defaults() -> None:
    """Test browser config default values."""
    config = BrowserConfig()

    assert not config.remote
    assert not config.headless
    assert config.host == "localhost"
    assert config.port is None
    assert config.device == DeviceOverride()


def test_browser_config_rejects_bad_port() -> None:
    """Ports must be valid TCP ports."""
    with pytest.raises(ValidationError):
        BrowserConfig(port=70000)


def test_device_override_rejects_negative_size() -> None:
    """Device dimensions can't be negative."""
    with pytest.raises(ValidationError):
        DeviceOverride(width=-1)


def test_device_screen_by_orientation() -> None:
    """Test Device screen selection."""
    device = Device(
        title="Tablet",
        capabilities=frozenset({"touch"}),
        vertical=ScreenSize(width=600, height=960),
        horizontal=ScreenSize(width=960, height=600),
        pixel_ratio=2,
        user_agent="tablet",
    )

    assert device.touch
    assert not device.mobile
    assert device.screen(Orientation.VERTICAL).height == 960
    assert device.screen(Orientation.HORIZONTAL).width == 960


def test_target_info_from_devtools_json() -> None:
    """Targets parse DevTools JSON and ignore unknown fields."""
    target = TargetInfo.model_validate(
        {
            "id": "abc",
            "type": "page",
            "url": "http://localhost/run-1",
            "webSocketDebuggerUrl": "ws://localhost/devtools/page/abc",
            "faviconUrl": "http://localhost/favicon.ico",
        }
    )

    assert target.ws_url == "ws://localhost/devtools/page/abc"
    assert target.title == ""


def test_session_creation() -> None:
    """Test basic session creation."""
    session = Session(run_id="run-1", config=BrowserConfig())

    assert session.state == SessionState.UNOPENED
    assert session.client is None
    assert session.has_local_window


def test_session_local_window() -> None:
    """Headless and remote browsers have no local window."""
    assert not Session(run_id="a", config=BrowserConfig(headless=True)).has_local_window
    assert not Session(run_id="b", config=BrowserConfig(remote=True)).has_local_window


def test_session_attach_only_when_connected() -> None:
    """Only a successful attach is adopted by the session."""
    tab = TargetInfo(id="abc", type="page")
    session = Session(run_id="run-1", config=BrowserConfig())

    session.attach(AttachResult(AttachStatus.FAILED, tab=tab, error="refused"))
    assert session.tab is None

    session.attach(AttachResult(AttachStatus.CONNECTED, tab=tab, window_id=3))
    assert session.tab == tab
    assert session.window_id == 3


def test_capabilities_defaults() -> None:
    """Test capabilities default to nothing supported."""
    capabilities = Capabilities()

    assert not capabilities.has_resize_window
    assert not capabilities.has_take_screenshot
    assert not capabilities.has_can_resize_window_to_dimensions
    assert not capabilities.has_maximize_window
