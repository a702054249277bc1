"""Filesystem watch on the working copy, built on watchdog."""

import logging
import os
import queue
import time
from pathlib import Path
from typing import Any, Optional

from watchdog.events import (
    FileClosedEvent,
    FileModifiedEvent,
    FileMovedEvent,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer

from ..exceptions import EoWatchError
from ..models import ChangeEvent

logger = logging.getLogger(__name__)


class ChangeEventHandler(FileSystemEventHandler):
    """Forwards content changes of one file as ChangeEvents.

    A change is one of:

    - a modification that changed the file's size or mtime (inotify also
      reports chmod and other attribute changes as modifications, those
      leave both untouched and are dropped)
    - a close after writing
    - a rename onto the file, as done by editors that save through a
      temporary file

    Created and deleted events, moves away from the file and directory
    events are not forwarded.
    """

    def __init__(self, path: Path, events: "queue.Queue[Any]"):
        super().__init__()
        self.path = os.path.normcase(os.path.abspath(path))
        self.events = events
        self._fingerprint = self._stat()

    def _is_target(self, src_path: Any) -> bool:
        if isinstance(src_path, bytes):
            src_path = os.fsdecode(src_path)
        return os.path.normcase(os.path.abspath(src_path)) == self.path

    def _stat(self) -> Optional[tuple[int, int]]:
        try:
            st = os.stat(self.path)
        except OSError:
            return None
        return st.st_size, st.st_mtime_ns

    def _forward(self, path: Any) -> None:
        self._fingerprint = self._stat()
        logger.debug("Change detected: %s", path)
        self.events.put(ChangeEvent(timestamp=time.monotonic()))

    def on_modified(self, event: FileSystemEvent) -> None:
        if not isinstance(event, FileModifiedEvent) or event.is_directory:
            return
        if not self._is_target(event.src_path):
            return
        fingerprint = self._stat()
        if fingerprint is None or fingerprint == self._fingerprint:
            logger.debug("Ignoring metadata change of %s", event.src_path)
            return
        self._forward(event.src_path)

    def on_closed(self, event: FileSystemEvent) -> None:
        if not isinstance(event, FileClosedEvent) or event.is_directory:
            return
        if self._is_target(event.src_path):
            self._forward(event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        if not isinstance(event, FileMovedEvent) or event.is_directory:
            return
        if self._is_target(event.dest_path):
            self._forward(event.dest_path)


class FileWatcher:
    """Watches a single file and pushes ChangeEvents onto a queue.

    watchdog watches directories, so the observer is scheduled
    non-recursively on the parent directory and events for other entries
    are filtered out by the handler. A watcher cannot be restarted.
    """

    def __init__(self, path: Path, events: "queue.Queue[Any]"):
        """Initialize the watcher.

        Args:
            path: File to watch
            events: Queue receiving ChangeEvent instances
        """
        self.path = Path(path)
        self.events = events
        self._observer: Optional[Any] = None
        self._stopped = False

    def start(self) -> None:
        """Start watching.

        Raises:
            EoWatchError: If the watch cannot be established
        """
        if self._stopped or self._observer is not None:
            raise EoWatchError("File watcher cannot be restarted")
        if not self.path.is_file():
            raise EoWatchError(f"Cannot watch {self.path}: not a file")

        observer = Observer()
        handler = ChangeEventHandler(self.path, self.events)
        try:
            observer.schedule(handler, str(self.path.parent), recursive=False)
            observer.start()
        except OSError as e:
            raise EoWatchError(f"Cannot watch {self.path}: {e}") from e

        self._observer = observer
        logger.debug("Watching %s", self.path)

    def stop(self, timeout: Optional[float] = 5.0) -> None:
        """Stop watching. Safe to call more than once or before start()."""
        self._stopped = True
        observer, self._observer = self._observer, None
        if observer is None:
            return
        observer.stop()
        observer.join(timeout)
        logger.debug("Stopped watching %s", self.path)

    def __enter__(self) -> "FileWatcher":
        self.start()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.stop()
