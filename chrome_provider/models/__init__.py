"""Data models for the Chrome provider."""

from chrome_provider.models.browser_config import BrowserConfig, DeviceOverride
from chrome_provider.models.device import Device, Orientation, ScreenSize
from chrome_provider.models.session import (
    AttachResult,
    AttachStatus,
    Capabilities,
    Session,
    SessionState,
    TargetInfo,
)

__all__ = [
    "AttachResult",
    "AttachStatus",
    "BrowserConfig",
    "Capabilities",
    "Device",
    "DeviceOverride",
    "Orientation",
    "ScreenSize",
    "Session",
    "SessionState",
    "TargetInfo",
]
