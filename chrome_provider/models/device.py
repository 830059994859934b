"""Emulated device models."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Orientation(str, Enum):
    """Screen orientation of an emulated device."""

    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"


class ScreenSize(BaseModel):
    """Screen dimensions in CSS pixels."""

    model_config = ConfigDict(frozen=True)

    width: int
    height: int


class Device(BaseModel):
    """A device profile from the built-in catalog."""

    model_config = ConfigDict(frozen=True)

    title: str
    capabilities: frozenset[str] = Field(default_factory=frozenset)
    horizontal: ScreenSize
    vertical: ScreenSize
    pixel_ratio: float
    user_agent: str

    @property
    def mobile(self) -> bool:
        return "mobile" in self.capabilities

    @property
    def touch(self) -> bool:
        return "touch" in self.capabilities

    def screen(self, orientation: Orientation) -> ScreenSize:
        """Screen size for the given orientation."""
        if orientation == Orientation.VERTICAL:
            return self.vertical
        return self.horizontal
