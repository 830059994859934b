"""Browser management module."""

from chrome_provider.browser.cdp import CDPClient, CDPEndpoint, CDPError
from chrome_provider.browser.chrome import ChromeLauncher, build_args
from chrome_provider.browser.opener import BrowserInfo, BrowserOpener
from chrome_provider.browser.ports import PortAllocator
from chrome_provider.browser.provider import BrowserProvider
from chrome_provider.browser.readiness import ConnectionReadiness

__all__ = [
    "CDPClient",
    "CDPEndpoint",
    "CDPError",
    "ChromeLauncher",
    "build_args",
    "BrowserInfo",
    "BrowserOpener",
    "PortAllocator",
    "BrowserProvider",
    "ConnectionReadiness",
]
