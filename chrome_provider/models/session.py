"""Browser session models."""

import asyncio
from dataclasses import dataclass
from enum import Enum
from tempfile import TemporaryDirectory
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from chrome_provider.models.browser_config import BrowserConfig

if TYPE_CHECKING:
    from chrome_provider.browser.cdp import CDPClient


class SessionState(str, Enum):
    """Lifecycle states of a browser session."""

    UNOPENED = "unopened"
    LAUNCHING = "launching"
    CONNECTED = "connected"
    CLOSING = "closing"
    CLOSED = "closed"


class TargetInfo(BaseModel):
    """A DevTools target as reported by the /json endpoints."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str
    type: str
    url: str = ""
    title: str = ""
    ws_url: str | None = Field(default=None, alias="webSocketDebuggerUrl")


class AttachStatus(str, Enum):
    """Outcome of attaching a protocol client to a run's tab."""

    CONNECTED = "connected"
    NO_TAB = "no_tab"
    FAILED = "failed"


@dataclass
class AttachResult:
    """Tagged result of a protocol attach attempt."""

    status: AttachStatus
    tab: TargetInfo | None = None
    client: "CDPClient | None" = None
    window_id: int | None = None
    error: str | None = None

    @property
    def connected(self) -> bool:
        return self.status == AttachStatus.CONNECTED


class Capabilities(BaseModel):
    """Custom browser actions the provider can perform for a session."""

    has_resize_window: bool = False
    has_take_screenshot: bool = False
    has_can_resize_window_to_dimensions: bool = False
    has_maximize_window: bool = False


@dataclass
class Session:
    """Runtime state of one open browser, keyed by run id."""

    run_id: str
    config: BrowserConfig
    cdp_port: int | None = None
    tab: TargetInfo | None = None
    client: "CDPClient | None" = None
    window_id: int | None = None
    temp_profile_dir: TemporaryDirectory[str] | None = None
    process: asyncio.subprocess.Process | None = None
    allocated_port: bool = False
    process_stopped: bool = True
    state: SessionState = SessionState.UNOPENED

    @property
    def has_local_window(self) -> bool:
        """Whether the browser shows a native window on this machine."""
        return not self.config.remote and not self.config.headless

    def attach(self, result: AttachResult) -> None:
        """Adopt the tab and client of a successful attach."""
        if result.connected:
            self.tab = result.tab
            self.client = result.client
            self.window_id = result.window_id
