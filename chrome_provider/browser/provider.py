"""Browser provider: opens, drives and closes Chrome sessions per run."""

import asyncio
from collections.abc import Callable
from pathlib import Path

from chrome_provider.browser import session as protocol
from chrome_provider.browser.cdp import CDPClient, CDPEndpoint
from chrome_provider.browser.chrome import (
    ChromeLauncher,
    create_temp_profile_dir,
    dispose_temp_profile_dir,
)
from chrome_provider.browser.ports import PortAllocator
from chrome_provider.browser.readiness import ConnectionReadiness
from chrome_provider.configuration import ConfigCache
from chrome_provider.errors import ProtocolError, SessionNotFoundError
from chrome_provider.models import Capabilities, Session, SessionState
from chrome_provider.utils.logging import get_logger

logger = get_logger(__name__)

EndpointFactory = Callable[[str, int], CDPEndpoint]


class BrowserProvider:
    """
    Owns every open browser session, keyed by run id.

    A session is published only once it is fully open and is always removed
    when it is closed, whatever the close calls report. Sessions for
    different runs may be opened and closed concurrently; callers serialize
    operations on the same run.
    """

    def __init__(
        self,
        launcher: ChromeLauncher | None = None,
        config_cache: ConfigCache | None = None,
        ports: PortAllocator | None = None,
        client_factory: protocol.ClientFactory = CDPClient,
        endpoint_factory: EndpointFactory = CDPEndpoint,
    ) -> None:
        self.launcher = launcher or ChromeLauncher()
        self.config_cache = config_cache or ConfigCache()
        self.ports = ports or PortAllocator()
        self._client_factory = client_factory
        self._endpoint_factory = endpoint_factory
        self._sessions: dict[str, Session] = {}
        self._lock = asyncio.Lock()

    @property
    def readiness(self) -> ConnectionReadiness:
        return self.launcher.readiness

    @property
    def open_session_count(self) -> int:
        """Number of open browser sessions."""
        return len(self._sessions)

    def get_session(self, run_id: str) -> Session | None:
        """Get the open session of a run."""
        return self._sessions.get(run_id)

    def _require_session(self, run_id: str) -> Session:
        session = self._sessions.get(run_id)
        if session is None:
            raise SessionNotFoundError(run_id)
        return session

    def _endpoint(self, session: Session) -> CDPEndpoint:
        if session.cdp_port is None:
            raise ProtocolError(f"DevTools disabled for run: {session.run_id}")
        return self._endpoint_factory(session.config.host, session.cdp_port)

    def notify_ready(self, run_id: str) -> None:
        """Signal that the page of a run has connected."""
        self.readiness.notify(run_id)

    async def open_browser(self, run_id: str, page_url: str, config_string: str = "") -> None:
        """
        Open a browser for a run at the page URL.

        Local browsers are launched with the page URL and attached to once
        the page reports ready. Remote browsers get a new tab that is
        navigated to the page URL.

        Raises:
            ConfigurationError: The configuration string is invalid
            ProcessError: Chrome could not be started
            ProtocolError: A remote browser could not be attached to
        """
        config = await self.config_cache.get(config_string)
        session = Session(run_id=run_id, config=config, state=SessionState.LAUNCHING)

        logger.info(
            "Opening browser",
            run_id=run_id,
            remote=config.remote,
            headless=config.headless,
            emulation=config.emulation,
        )

        try:
            if config.remote:
                session.cdp_port = config.port
            else:
                await self._launch(session, page_url)

            if not config.no_cdp:
                await self._attach(session, page_url)

        except BaseException:
            await self._release(session)
            raise

        session.state = SessionState.CONNECTED
        async with self._lock:
            self._sessions[run_id] = session

        logger.info(
            "Browser opened",
            run_id=run_id,
            port=session.cdp_port,
            has_client=session.client is not None,
            window_id=session.window_id,
        )

    async def _launch(self, session: Session, page_url: str) -> None:
        config = session.config

        if config.port is not None or config.no_cdp:
            session.cdp_port = config.port
        else:
            session.cdp_port = await self.ports.acquire()
            session.allocated_port = True

        profile_dir = None
        if not config.no_temp_user_data:
            session.temp_profile_dir = create_temp_profile_dir()
            profile_dir = session.temp_profile_dir.name

        session.process = await self.launcher.spawn_local(
            session.run_id,
            config,
            None if config.no_cdp else session.cdp_port,
            page_url,
            profile_dir,
        )

    async def _attach(self, session: Session, page_url: str) -> None:
        config = session.config
        result = await protocol.connect(
            config,
            session.run_id,
            self._endpoint(session),
            self._client_factory,
        )

        if not result.connected or result.client is None:
            if config.remote:
                raise ProtocolError(
                    f"Could not attach to remote browser at {config.host}:{session.cdp_port}: "
                    f"{result.error or result.status.value}"
                )
            # Local browsers stay usable without a protocol client
            return

        session.attach(result)
        client = result.client

        await client.send("Page.enable")
        await client.send("Network.enable")

        if config.emulation:
            await protocol.enable_emulation(client, config.device)

        if config.remote:
            await client.navigate(page_url)
            await self.readiness.wait(session.run_id)

    async def close_browser(self, run_id: str) -> bool:
        """
        Close the browser of a run.

        The session is removed even when closing fails part way.

        Returns:
            True when the tab and process were closed cleanly
        """
        session = self._require_session(run_id)
        session.state = SessionState.CLOSING
        closed = False

        logger.info("Closing browser", run_id=run_id)

        try:
            closed = await self._close_session(session)
        finally:
            async with self._lock:
                if self._sessions.get(run_id) is session:
                    del self._sessions[run_id]
            session.state = SessionState.CLOSED

        logger.info("Browser closed", run_id=run_id, clean=closed)
        return closed

    def _shares_process(self, session: Session) -> bool:
        """Whether another open session talks to the same local Chrome."""
        if session.config.remote or session.cdp_port is None:
            return False
        return any(
            other is not session
            and not other.config.remote
            and other.cdp_port == session.cdp_port
            for other in self._sessions.values()
        )

    async def _close_session(self, session: Session) -> bool:
        config = session.config
        shared = self._shares_process(session)
        closed = True

        if session.tab is not None and (config.headless or config.remote or shared):
            try:
                await self._endpoint(session).close_tab(session.tab.id)
            except ProtocolError as e:
                logger.warning("Failed to close tab", run_id=session.run_id, error=str(e))
                closed = False

        await self._release(session, stop_process=not shared)
        return closed and session.process_stopped

    async def _release(self, session: Session, stop_process: bool = True) -> None:
        """Free everything a session holds; never raises."""
        if session.client is not None:
            try:
                await session.client.disconnect()
            except Exception as e:
                logger.warning("Error disconnecting CDP", run_id=session.run_id, error=str(e))

        if stop_process and not session.config.remote:
            if session.cdp_port is not None and not session.config.no_cdp:
                session.process_stopped = await self.launcher.stop_local(session.cdp_port)
            else:
                session.process_stopped = await self.launcher.terminate_process(session.process)

        dispose_temp_profile_dir(session.temp_profile_dir)
        session.temp_profile_dir = None

        if session.allocated_port and session.cdp_port is not None:
            await self.ports.release(session.cdp_port)
            session.allocated_port = False

        self.readiness.discard(session.run_id)

    async def close_all(self) -> None:
        """Close every open session."""
        run_ids = list(self._sessions.keys())
        if run_ids:
            logger.info("Closing all browsers", count=len(run_ids))
        await asyncio.gather(*(self.close_browser(run_id) for run_id in run_ids))
        self.config_cache.clear()

    async def is_local_browser(self, run_id: str, config_string: str = "") -> bool:
        """Whether the run's browser shows a native window on this machine."""
        session = self._sessions.get(run_id)
        if session is not None:
            return session.has_local_window

        config = await self.config_cache.get(config_string)
        return not config.remote and not config.headless

    async def take_screenshot(self, run_id: str, path: str | Path) -> Path:
        """Save a PNG screenshot of the run's page."""
        return await protocol.take_screenshot(self._require_session(run_id), path)

    async def resize_window(
        self,
        run_id: str,
        width: int,
        height: int,
        current_width: int,
        current_height: int,
    ) -> None:
        """Resize the run's page from its current size to the target size."""
        session = self._require_session(run_id)
        await protocol.resize_window(session, width, height, current_width, current_height)

    async def maximize_window(self, run_id: str) -> None:
        """Maximize the run's native browser window."""
        await protocol.maximize_window(self._require_session(run_id))

    async def get_video_frame_data(self, run_id: str) -> bytes:
        """Capture a JPEG frame of the run's page for video recording."""
        return await protocol.get_video_frame(self._require_session(run_id))

    async def has_custom_action_for_browser(self, run_id: str) -> Capabilities:
        """Report which window actions the provider can perform for the run."""
        session = self._require_session(run_id)
        config = session.config
        has_client = session.client is not None
        has_window = session.window_id is not None

        return Capabilities(
            has_resize_window=has_client and (config.emulation or has_window or config.headless),
            has_take_screenshot=has_client,
            has_can_resize_window_to_dimensions=False,
            has_maximize_window=(
                has_client and has_window and not config.headless and not config.emulation
            ),
        )
