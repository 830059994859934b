"""Parsed browser configuration models."""

from pydantic import BaseModel, ConfigDict, Field

from chrome_provider.models.device import Orientation


class DeviceOverride(BaseModel):
    """Device emulation settings applied over the DevTools protocol."""

    model_config = ConfigDict(frozen=True)

    name: str = ""
    mobile: bool = False
    touch: bool | None = None
    orientation: Orientation | None = None
    width: int = Field(default=0, ge=0)
    height: int = Field(default=0, ge=0)
    density: float = Field(default=0, ge=0)
    user_agent: str | None = None


class BrowserConfig(BaseModel):
    """Immutable result of parsing one browser configuration string."""

    model_config = ConfigDict(frozen=True)

    # Modes
    remote: bool = False
    headless: bool = False
    incognito: bool = False
    emulation: bool = False
    no_temp_user_data: bool = False
    no_cdp: bool = False

    # Connection target
    host: str = "localhost"
    port: int | None = Field(default=None, gt=0, lt=65536)
    path: str = ""

    # Process
    args: str = ""
    user_data_dir: str | None = None

    device: DeviceOverride = Field(default_factory=DeviceOverride)
