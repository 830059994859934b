"""Locating browser binaries and opening them at a page URL."""

import asyncio
import os
import platform
import shlex
import shutil

from pydantic import BaseModel, ConfigDict

from chrome_provider.errors import ProcessError
from chrome_provider.utils.logging import get_logger

logger = get_logger(__name__)

# Well-known browser identity -> candidate executables per platform
_CANDIDATES: dict[str, dict[str, list[str]]] = {
    "chrome": {
        "Darwin": ["/Applications/Google Chrome.app/Contents/MacOS/Google Chrome"],
        "Linux": ["google-chrome", "google-chrome-stable"],
        "Windows": [
            r"C:\Program Files\Google\Chrome\Application\chrome.exe",
            r"C:\Program Files (x86)\Google\Chrome\Application\chrome.exe",
        ],
    },
    "chrome-canary": {
        "Darwin": [
            "/Applications/Google Chrome Canary.app/Contents/MacOS/Google Chrome Canary"
        ],
        "Linux": ["google-chrome-unstable"],
        "Windows": [],
    },
    "chromium": {
        "Darwin": ["/Applications/Chromium.app/Contents/MacOS/Chromium"],
        "Linux": ["chromium-browser", "chromium"],
        "Windows": [],
    },
    "edge": {
        "Darwin": ["/Applications/Microsoft Edge.app/Contents/MacOS/Microsoft Edge"],
        "Linux": ["microsoft-edge", "microsoft-edge-stable"],
        "Windows": [r"C:\Program Files (x86)\Microsoft\Edge\Application\msedge.exe"],
    },
}

# Arguments every launch gets, appended after the provider's own
_PLATFORM_ARGS: dict[str, str] = {
    "Darwin": "--no-first-run --no-default-browser-check",
    "Linux": (
        "--no-first-run --no-default-browser-check --disable-background-networking "
        "--disable-client-side-phishing-detection --disable-default-apps "
        "--disable-hang-monitor --disable-popup-blocking --disable-prompt-on-repost "
        "--disable-sync --disable-translate --metrics-recording-only "
        "--safebrowsing-disable-auto-update --disable-dev-shm-usage"
    ),
    "Windows": "--no-first-run --no-default-browser-check",
}


class BrowserInfo(BaseModel):
    """Executable and default command line arguments of a browser."""

    model_config = ConfigDict(frozen=True)

    path: str
    cmd: str = ""


def split_command(cmd: str, system: str) -> list[str]:
    """
    Split a command line built with ``shlex.quote`` back into arguments.

    Quotes are removed on every platform. Backslashes are only escapes on
    POSIX systems; on Windows they are path separators and stay literal.
    """
    if system != "Windows":
        return shlex.split(cmd)

    lexer = shlex.shlex(cmd, posix=True)
    lexer.whitespace_split = True
    lexer.escape = ""
    return list(lexer)


def _resolve(candidate: str) -> str | None:
    if os.path.isabs(candidate):
        return candidate if os.path.isfile(candidate) else None
    return shutil.which(candidate)


class BrowserOpener:
    """Finds browser executables and starts them with a page URL."""

    def __init__(self, system: str | None = None) -> None:
        self.system = system or platform.system()

    async def get_browser_info(self, name_or_path: str) -> BrowserInfo:
        """
        Resolve a browser by explicit path or well-known identity.

        Raises:
            ProcessError: No executable could be found
        """
        platform_args = _PLATFORM_ARGS.get(self.system, "")

        if name_or_path.lower() not in _CANDIDATES:
            path = _resolve(name_or_path)
            if path is None:
                raise ProcessError(f"Browser executable not found: {name_or_path}")
            return BrowserInfo(path=path, cmd=platform_args)

        for candidate in _CANDIDATES[name_or_path.lower()].get(self.system, []):
            path = _resolve(candidate)
            if path:
                return BrowserInfo(path=path, cmd=platform_args)

        raise ProcessError(f"Browser {name_or_path!r} is not installed on {self.system}")

    async def open(self, info: BrowserInfo, page_url: str) -> asyncio.subprocess.Process:
        """
        Start the browser with its arguments and the page URL.

        Returns:
            The spawned process
        """
        args = split_command(info.cmd, self.system)

        logger.info("Opening browser", path=info.path, url=page_url)

        try:
            process = await asyncio.create_subprocess_exec(
                info.path,
                *args,
                page_url,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as e:
            raise ProcessError(f"Failed to start {info.path}: {e}") from e

        logger.debug("Browser process started", pid=process.pid)
        return process
