# Fake implementations for testing

from .fake_http import FakeConnectionFactory
from .fake_tracker import FakeTracker, FakeTrackerFactory

__all__ = ["FakeConnectionFactory", "FakeTracker", "FakeTrackerFactory", "create_fake_client"]


def create_fake_client(domain: str = "testdomain", storage_class: str = "default"):
    """
    MogileClient backed by in-memory fakes, seeded with one file.

    The seeded file is ``hello.txt`` containing ``b"hello world\\n"``.
    """
    from ..client import MogileClient

    tracker = FakeTracker()
    http = FakeConnectionFactory()
    url = "http://node1.test:7500/dev1/0000000000.fid"
    http.objects[url] = b"hello world\n"
    tracker.seed(domain, "hello.txt", url, len(http.objects[url]), storage_class=storage_class)
    return MogileClient(FakeTrackerFactory(tracker), http, domain, storage_class)
