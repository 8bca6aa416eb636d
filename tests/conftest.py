import threading
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

import httpx
import pytest
from typer.testing import CliRunner

from gamemeta.domain.exceptions import ImageNotFound
from gamemeta.domain.interfaces.asset_downloader import AssetDownloader
from gamemeta.domain.interfaces.metadata_backend import MetadataBackend
from gamemeta.domain.models.metadata import MetadataSource
from gamemeta.infrastructure.config import settings
from gamemeta.infrastructure.resilience.rate_governor import RateLimitGovernor


class FakeClock:
    """Monotonic clock whose sleep advances time instead of blocking."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: List[float] = []
        self._lock = threading.Lock()

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        with self._lock:
            self.sleeps.append(seconds)
            self.now += seconds

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ScriptedBackend(MetadataBackend):
    """Backend that replays a script of results (lists) or exceptions."""

    def __init__(self, script: List[Union[list, Exception]]):
        self.script = list(script)
        self.calls: List[tuple] = []
        self.closed = False

    def query(self, endpoint, query_body):
        self.calls.append((endpoint, query_body))
        item = self.script.pop(0) if len(self.script) > 1 else self.script[0]
        if isinstance(item, Exception):
            raise item
        return item

    def close(self):
        self.closed = True


class FakeDownloader(AssetDownloader):
    """Writes fixed bytes to the destination; sizes listed in `missing` raise ImageNotFound."""

    def __init__(self, missing: Optional[set] = None, body: bytes = b"\xff\xd8jpeg-bytes"):
        self.missing = missing or set()
        self.body = body
        self.calls: List[tuple] = []

    def download(self, uri, destination_path):
        self.calls.append((uri, destination_path))
        if any(f"/t_{tag}/" in uri for tag in self.missing):
            raise ImageNotFound(uri)
        path = Path(destination_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(self.body)
        return True


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def events():
    """Collects domain events; pass `events.append` as an event_sink."""
    return []


@pytest.fixture
def igdb_governor(fake_clock, events):
    return RateLimitGovernor(
        source=MetadataSource.IGDB, clock=fake_clock, sleep=fake_clock.sleep, event_sink=events.append
    )


@pytest.fixture
def fake_downloader():
    return FakeDownloader()


def mock_http_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


@pytest.fixture(scope="session")
def runner():
    """Provides a Typer CliRunner instance."""
    return CliRunner()


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """Keep tests away from the user's real environment and config files."""
    for var in ("METADATA_SOURCE", "IGDB_CLIENT_ID", "IGDB_SECRET", "IMAGES_CACHE_DIR",
                "HTTP_TIMEOUT", "LOGGING_DEBUG", "LOGGING_FORMAT", "LOGGING_FILE"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setattr(settings, "_config", {})
    monkeypatch.setattr(settings, "_loaded", True)
    settings.clear_test_config()
    yield
    settings.clear_test_config()
