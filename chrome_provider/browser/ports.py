"""Allocation of free TCP ports for DevTools endpoints."""

import asyncio
import socket

from chrome_provider.utils.logging import get_logger

logger = get_logger(__name__)


def _find_free_port(host: str) -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind((host, 0))
        port: int = sock.getsockname()[1]
        return port


class PortAllocator:
    """Hands out free TCP ports and remembers which ones are taken."""

    def __init__(self, host: str = "127.0.0.1", max_attempts: int = 20) -> None:
        """
        Initialize the allocator.

        Args:
            host: Interface the ports must be free on
            max_attempts: Probes before giving up on finding an unused port
        """
        self.host = host
        self.max_attempts = max_attempts
        self._in_use: set[int] = set()
        self._lock = asyncio.Lock()

    async def acquire(self) -> int:
        """
        Acquire a free port.

        Raises:
            OSError: No unused port was found
        """
        async with self._lock:
            for _attempt in range(self.max_attempts):
                port = _find_free_port(self.host)
                if port not in self._in_use:
                    self._in_use.add(port)
                    logger.debug("Acquired port", port=port)
                    return port

        raise OSError("No free TCP port available")

    async def release(self, port: int) -> None:
        """Give a port back."""
        async with self._lock:
            if port in self._in_use:
                self._in_use.remove(port)
                logger.debug("Released port", port=port)
            else:
                logger.warning("Attempted to release unknown port", port=port)

    @property
    def in_use_count(self) -> int:
        """Number of ports currently handed out."""
        return len(self._in_use)
