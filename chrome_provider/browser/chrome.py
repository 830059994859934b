"""Chrome process management."""

import asyncio
import shlex
import tempfile

import psutil

from chrome_provider.browser.opener import BrowserOpener
from chrome_provider.browser.readiness import ConnectionReadiness
from chrome_provider.config import settings
from chrome_provider.errors import ProcessError, ResourceError
from chrome_provider.models import BrowserConfig
from chrome_provider.utils.logging import get_logger

logger = get_logger(__name__)


def debugging_port_flag(cdp_port: int) -> str:
    return f"--remote-debugging-port={cdp_port}"


def build_args(
    config: BrowserConfig,
    cdp_port: int | None,
    platform_args: str = "",
    profile_dir: str | None = None,
) -> str:
    """
    Build the Chrome command line argument string.

    Order is fixed: debugging port, profile directory, --headless,
    --incognito, user arguments, platform defaults.
    """
    user_data_dir = config.user_data_dir or profile_dir

    args = []
    if not config.no_cdp and cdp_port is not None:
        args.append(debugging_port_flag(cdp_port))
    if user_data_dir:
        args.append(f"--user-data-dir={shlex.quote(user_data_dir)}")
    if config.headless:
        args.append("--headless")
    if config.incognito:
        args.append("--incognito")
    if config.args:
        args.append(config.args)
    if platform_args:
        args.append(platform_args)

    return " ".join(args)


def create_temp_profile_dir(prefix: str | None = None) -> tempfile.TemporaryDirectory[str]:
    """
    Create a throwaway Chrome profile directory.

    The directory removes itself when cleaned up explicitly, when garbage
    collected, or at interpreter exit, whichever happens first.
    """
    try:
        profile = tempfile.TemporaryDirectory(
            prefix=prefix or settings.temp_profile_prefix,
            ignore_cleanup_errors=True,
        )
    except OSError as e:
        raise ResourceError(f"Failed to create temporary profile directory: {e}") from e

    logger.debug("Created temporary profile", path=profile.name)
    return profile


def dispose_temp_profile_dir(profile: tempfile.TemporaryDirectory[str] | None) -> None:
    """Remove a temporary profile directory, logging instead of raising."""
    if profile is None:
        return

    try:
        profile.cleanup()
        logger.debug("Cleaned up temporary profile", path=profile.name)
    except OSError as e:
        logger.warning("Failed to clean up temporary profile", path=profile.name, error=str(e))


def find_browser_processes(cdp_port: int) -> list[psutil.Process]:
    """Processes whose command line carries the debugging flag for the port."""
    flag = debugging_port_flag(cdp_port)
    found = []

    for proc in psutil.process_iter(["pid", "cmdline"]):
        try:
            cmdline = proc.info.get("cmdline") or []
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            continue
        if flag in cmdline:
            found.append(proc)

    return found


class ChromeLauncher:
    """Manages Chrome process lifecycle."""

    def __init__(
        self,
        opener: BrowserOpener | None = None,
        readiness: ConnectionReadiness | None = None,
        browser_name: str | None = None,
        closing_timeout: float | None = None,
        kill_attempts: int | None = None,
    ) -> None:
        self.opener = opener or BrowserOpener()
        self.readiness = readiness or ConnectionReadiness()
        self.browser_name = browser_name or settings.browser_name
        self.closing_timeout = (
            settings.browser_closing_timeout if closing_timeout is None else closing_timeout
        )
        self.kill_attempts = settings.kill_attempts if kill_attempts is None else kill_attempts

    async def spawn_local(
        self,
        run_id: str,
        config: BrowserConfig,
        cdp_port: int | None,
        page_url: str,
        profile_dir: str | None = None,
    ) -> asyncio.subprocess.Process:
        """
        Launch a local Chrome at the page URL and wait for the page to connect.

        Args:
            run_id: Run identifier the page reports readiness for
            config: Parsed browser configuration
            cdp_port: DevTools port, None when CDP is disabled
            page_url: URL the browser opens
            profile_dir: Temporary profile directory, if one is in effect

        Returns:
            The spawned process
        """
        info = await self.opener.get_browser_info(config.path or self.browser_name)
        cmd = build_args(config, cdp_port, info.cmd, profile_dir)

        logger.info(
            "Launching Chrome",
            run_id=run_id,
            path=info.path,
            devtools_port=cdp_port,
            headless=config.headless,
        )

        process = await self.opener.open(info.model_copy(update={"cmd": cmd}), page_url)
        await self._wait_ready(run_id, process)

        logger.info("Chrome launched successfully", run_id=run_id, pid=process.pid)
        return process

    async def _wait_ready(self, run_id: str, process: asyncio.subprocess.Process) -> None:
        """Wait for the readiness signal, failing if Chrome dies first."""
        ready = asyncio.create_task(self.readiness.wait(run_id))
        exited = asyncio.create_task(process.wait())

        try:
            done, _pending = await asyncio.wait(
                {ready, exited},
                return_when=asyncio.FIRST_COMPLETED,
            )
            if ready in done:
                return

            # Exit code 0 means Chrome handed the URL to an already running instance
            if process.returncode != 0:
                raise ProcessError(
                    f"Chrome exited unexpectedly (code {process.returncode}) for run {run_id}"
                )
            await ready
        finally:
            for task in (ready, exited):
                if not task.done():
                    task.cancel()

    async def _kill_browser(self, cdp_port: int) -> bool:
        """One lookup-and-terminate attempt; True when nothing is left running."""
        processes = await asyncio.to_thread(find_browser_processes, cdp_port)
        if not processes:
            return True

        try:
            for proc in processes:
                try:
                    proc.terminate()
                except psutil.NoSuchProcess:
                    pass
            _gone, alive = await asyncio.to_thread(
                psutil.wait_procs, processes, timeout=self.closing_timeout
            )
        except psutil.Error as e:
            logger.warning("Error terminating Chrome", devtools_port=cdp_port, error=str(e))
            return False

        return not alive

    async def stop_local(self, cdp_port: int | None) -> bool:
        """
        Terminate the local Chrome listening on a DevTools port.

        Makes at most ``kill_attempts`` attempts and never raises.

        Returns:
            True when no such process is left running
        """
        if cdp_port is None:
            return True

        for attempt in range(1, self.kill_attempts + 1):
            try:
                if await self._kill_browser(cdp_port):
                    logger.info("Chrome stopped", devtools_port=cdp_port, attempt=attempt)
                    return True
            except Exception as e:
                logger.warning("Chrome kill attempt failed", devtools_port=cdp_port, error=str(e))

            logger.warning("Chrome still running", devtools_port=cdp_port, attempt=attempt)

        logger.error("Giving up on stopping Chrome", devtools_port=cdp_port)
        return False

    async def terminate_process(self, process: asyncio.subprocess.Process | None) -> bool:
        """Terminate a process spawned by this launcher, with a bounded wait."""
        if process is None or process.returncode is not None:
            return True

        try:
            process.terminate()
            await asyncio.wait_for(process.wait(), timeout=self.closing_timeout)
        except ProcessLookupError:
            return True
        except TimeoutError:
            logger.warning("Chrome required force kill", pid=process.pid)
            try:
                process.kill()
            except ProcessLookupError:
                pass
            return False

        return True
