"""Provider error taxonomy."""


class ProviderError(Exception):
    """Base class for all provider errors."""


class ConfigurationError(ProviderError):
    """Browser configuration string could not be turned into a config."""


class ProcessError(ProviderError):
    """Browser process could not be spawned."""


class ProtocolError(ProviderError):
    """DevTools protocol communication failed."""


class ResourceError(ProviderError):
    """Temporary profile directory could not be created."""


class SessionNotFoundError(ProviderError):
    """No open browser session for the given run id."""

    def __init__(self, run_id: str) -> None:
        self.run_id = run_id
        super().__init__(f"No open browser for run: {run_id}")
