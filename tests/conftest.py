"""Root pytest configuration for mogfs tests."""
import pytest

from mogfs.client import MogileClient
from mogfs.fakes import FakeConnectionFactory, FakeTracker, FakeTrackerFactory
from mogfs.settings import Settings

DOMAIN = "testdomain"


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers",
        "slow: mark test as slow (may take significant time)"
    )


@pytest.fixture(autouse=True)
def test_env(monkeypatch):
    """Automatically set up test environment variables."""
    monkeypatch.setenv("MOGFS_TRACKERS", "localhost:7001")
    monkeypatch.setenv("MOGFS_DOMAIN", DOMAIN)
    monkeypatch.delenv("MOGFS_STORAGE_CLASS", raising=False)
    monkeypatch.delenv("MOGFS_BACKEND", raising=False)


@pytest.fixture
def settings():
    """Standard test settings."""
    return Settings(trackers=("localhost:7001",), domain=DOMAIN, storage_class="default")


@pytest.fixture
def tracker():
    """Fake tracker with three devices (node1..node3)."""
    return FakeTracker(devices=(1, 2, 3))


@pytest.fixture
def tracker_factory(tracker):
    return FakeTrackerFactory(tracker)


@pytest.fixture
def http():
    """Fake storage nodes."""
    return FakeConnectionFactory()


@pytest.fixture
def client(tracker_factory, http):
    """Client over fakes with a default storage class."""
    return MogileClient(tracker_factory, http, DOMAIN, storage_class="default")


@pytest.fixture
def stored_file(client, tracker, http):
    """A handle on ``existing.txt``, already stored on node1."""
    url = "http://node1.test:7500/dev1/0000000099.fid"
    http.objects[url] = b"existing content"
    tracker.seed(DOMAIN, "existing.txt", url, len(http.objects[url]))
    return client.get_file("existing.txt")
