"""Connection readiness signals keyed by run id."""

import asyncio

from chrome_provider.utils.logging import get_logger

logger = get_logger(__name__)


class ConnectionReadiness:
    """
    One-shot "the page of this run has connected" signals.

    A signal may arrive before anyone waits for it; it is kept until the
    next ``wait`` for that run consumes it.
    """

    def __init__(self) -> None:
        self._events: dict[str, asyncio.Event] = {}

    def _event(self, run_id: str) -> asyncio.Event:
        event = self._events.get(run_id)
        if event is None:
            event = asyncio.Event()
            self._events[run_id] = event
        return event

    async def wait(self, run_id: str) -> None:
        """Wait until the run's page reports ready."""
        event = self._event(run_id)
        await event.wait()
        if self._events.get(run_id) is event:
            del self._events[run_id]
        logger.debug("Connection ready", run_id=run_id)

    def notify(self, run_id: str) -> None:
        """Mark the run's page as ready."""
        self._event(run_id).set()

    def discard(self, run_id: str) -> None:
        """Forget any pending signal of a run."""
        self._events.pop(run_id, None)

    def is_pending(self, run_id: str) -> bool:
        return run_id in self._events
