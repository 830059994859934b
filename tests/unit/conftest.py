"""Shared fixtures for provider tests."""

import pytest

from chrome_provider.browser.chrome import ChromeLauncher
from chrome_provider.browser.provider import BrowserProvider
from chrome_provider.browser.readiness import ConnectionReadiness
from chrome_provider.configuration import ConfigCache
from tests.unit.fakes import FakeCDPClient, FakeEndpoint, FakeOpener, page_tab


@pytest.fixture
def client() -> FakeCDPClient:
    return FakeCDPClient(responses={"Browser.getWindowForTarget": {"windowId": 7}})


@pytest.fixture
def endpoint() -> FakeEndpoint:
    return FakeEndpoint([page_tab("run-1")])


@pytest.fixture
def opener() -> FakeOpener:
    return FakeOpener()


@pytest.fixture
def launcher(opener: FakeOpener) -> ChromeLauncher:
    return ChromeLauncher(
        opener=opener,
        readiness=ConnectionReadiness(),
        browser_name="chrome",
        closing_timeout=0.1,
        kill_attempts=2,
    )


@pytest.fixture
def provider(
    launcher: ChromeLauncher, client: FakeCDPClient, endpoint: FakeEndpoint
) -> BrowserProvider:
    return BrowserProvider(
        launcher=launcher,
        config_cache=ConfigCache(),
        client_factory=lambda ws_url: client,  # type: ignore[arg-type,return-value]
        endpoint_factory=lambda host, port: endpoint,  # type: ignore[arg-type,return-value]
    )
