"""Shared fixtures and fakes for the pyeo tests."""

import queue
import threading
import time
from typing import Any, Optional

import pytest

from pyeo.exceptions import EoWatchError
from pyeo.models import Backend, ChangeEvent, RemoteObjectRef
from pyeo.output import OutputFormatter


class FakeStorage:
    """In-memory storage backend recording every call."""

    def __init__(self, upload_delay: float = 0.0):
        self.objects: dict[RemoteObjectRef, bytes] = {}
        self.uploads: list[tuple[RemoteObjectRef, bytes]] = []
        self.download_error: Optional[Exception] = None
        self.upload_errors: list[Exception] = []
        self.upload_delay = upload_delay
        self.in_flight = 0
        self.max_in_flight = 0
        self._lock = threading.Lock()
        self._uploaded = threading.Condition(self._lock)

    def download(self, ref: RemoteObjectRef) -> bytes:
        if self.download_error is not None:
            raise self.download_error
        return self.objects[ref]

    def upload(self, ref: RemoteObjectRef, content: bytes) -> None:
        with self._lock:
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.upload_delay:
                time.sleep(self.upload_delay)
            with self._lock:
                if self.upload_errors:
                    raise self.upload_errors.pop(0)
                self.objects[ref] = content
                self.uploads.append((ref, content))
                self._uploaded.notify_all()
        finally:
            with self._lock:
                self.in_flight -= 1

    def wait_for_uploads(self, count: int, timeout: float = 5.0) -> bool:
        with self._uploaded:
            return self._uploaded.wait_for(
                lambda: len(self.uploads) >= count, timeout=timeout
            )

    def close(self) -> None:
        pass


class FakeWatcher:
    """Watcher that only emits events when told to."""

    def __init__(self, path: Any, events: "queue.Queue[Any]", fail: bool = False):
        self.path = path
        self.events = events
        self.fail = fail
        self.started = False
        self.stopped = False

    def start(self) -> None:
        if self.fail:
            raise EoWatchError(f"Cannot watch {self.path}")
        self.started = True

    def stop(self) -> None:
        self.stopped = True

    def emit(self) -> None:
        self.events.put(ChangeEvent(timestamp=time.monotonic()))


class WatcherFactory:
    """Creates FakeWatchers and remembers them."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.watchers: list[FakeWatcher] = []

    def __call__(self, path: Any, events: "queue.Queue[Any]") -> FakeWatcher:
        watcher = FakeWatcher(path, events, fail=self.fail)
        self.watchers.append(watcher)
        return watcher

    @property
    def last(self) -> FakeWatcher:
        return self.watchers[-1]


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def ref():
    """Reference to a test object."""
    return RemoteObjectRef(backend=Backend.S3, bucket="b", key="k")


@pytest.fixture
def storage(ref):
    """Fake storage holding "v1" for the test object."""
    fake = FakeStorage()
    fake.objects[ref] = b"v1"
    return fake


@pytest.fixture
def watcher_factory():
    """Factory for fake watchers."""
    return WatcherFactory()


@pytest.fixture
def quiet_output():
    """Output formatter that prints nothing but warnings and errors."""
    return OutputFormatter(quiet=True)


@pytest.fixture
def clock():
    """Fake clock starting at zero."""
    return FakeClock()


@pytest.fixture
def slow_storage(ref):
    """Fake storage whose uploads take a while."""
    fake = FakeStorage(upload_delay=0.05)
    fake.objects[ref] = b"v1"
    return fake


@pytest.fixture
def failing_watcher_factory():
    """Factory for watchers that fail to start."""
    return WatcherFactory(fail=True)
