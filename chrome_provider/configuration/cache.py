"""Time-limited cache of parsed browser configurations."""

import asyncio
from collections.abc import Callable

from chrome_provider.config import settings
from chrome_provider.configuration.parser import parse_config
from chrome_provider.models import BrowserConfig
from chrome_provider.utils.logging import get_logger

logger = get_logger(__name__)


class ConfigCache:
    """
    Memoizes parsed configurations by raw configuration string.

    Every entry is evicted a fixed interval after it was created, whether or
    not it was used in between. Concurrent callers asking for the same string
    share one pending result, so each string is parsed at most once per
    entry lifetime. Failed parses are not kept.
    """

    def __init__(
        self,
        parser: Callable[[str], BrowserConfig] = parse_config,
        ttl: float | None = None,
    ) -> None:
        self._parser = parser
        self._ttl = settings.config_cache_ttl_seconds if ttl is None else ttl
        self._entries: dict[str, asyncio.Future[BrowserConfig]] = {}
        self._evictions: dict[str, asyncio.TimerHandle] = {}

    async def get(self, config_string: str | None) -> BrowserConfig:
        """Get the parsed configuration, parsing it on first use."""
        key = config_string or ""
        future = self._entries.get(key)

        if future is None:
            loop = asyncio.get_running_loop()
            future = loop.create_future()
            self._entries[key] = future
            self._evictions[key] = loop.call_later(self._ttl, self._evict, key, future)

            try:
                future.set_result(self._parser(key))
            except Exception as e:
                future.set_exception(e)
                self._evict(key, future)
            else:
                logger.debug("Configuration cached", config_string=key, ttl=self._ttl)

        return await future

    def _evict(self, key: str, future: asyncio.Future[BrowserConfig]) -> None:
        if self._entries.get(key) is not future:
            return

        del self._entries[key]
        handle = self._evictions.pop(key, None)
        if handle is not None:
            handle.cancel()
        logger.debug("Configuration evicted", config_string=key)

    def clear(self) -> None:
        """Drop all entries and pending evictions."""
        for handle in self._evictions.values():
            handle.cancel()
        self._evictions.clear()
        self._entries.clear()

    def __contains__(self, config_string: str) -> bool:
        return config_string in self._entries

    def __len__(self) -> int:
        return len(self._entries)
