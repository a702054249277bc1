"""Background worker that uploads the working copy after each settled edit."""

import logging
import queue
import threading
import time
from typing import Any, Callable, Optional

from ..exceptions import EoStorageError, EoTransientError
from ..models import ChangeEvent, WorkingCopy
from ..output import OutputFormatter
from ..storage import StorageBackend
from ..utils import (
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_DELAY,
    calculate_retry_delay,
    content_digest,
)
from .debounce import Debouncer
from .watcher import FileWatcher

logger = logging.getLogger(__name__)

# Pushed onto the event queue to stop the worker
STOP = object()

WatcherFactory = Callable[[Any, "queue.Queue[Any]"], Any]


class SyncWorker:
    """Runs the watch/debounce/upload loop of an edit session.

    The worker waits on a single queue that carries both ChangeEvents and
    the STOP sentinel, bounded by the debouncer's timer. All uploads run on
    the worker thread, so a session never has more than one upload in
    flight and flushes that come due during an upload are simply handled
    after it.
    """

    def __init__(
        self,
        storage: StorageBackend,
        working_copy: WorkingCopy,
        debouncer: Debouncer,
        output: Optional[OutputFormatter] = None,
        watcher_factory: WatcherFactory = FileWatcher,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        synced_digest: Optional[str] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize the sync worker.

        Args:
            storage: Storage backend shared with the session
            working_copy: Local file to upload
            debouncer: Debouncer deciding when to flush
            output: Output formatter for sync failure warnings
            watcher_factory: Callable creating a watcher from (path, queue)
            max_retries: Retries for transient upload errors
            retry_delay: Base delay between retries in seconds
            synced_digest: Digest of the content known to be on the remote
            sleep: Function used to wait between retries
        """
        self.storage = storage
        self.working_copy = working_copy
        self.debouncer = debouncer
        self.output = output or OutputFormatter(quiet=True)
        self.watcher_factory = watcher_factory
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.events: "queue.Queue[Any]" = queue.Queue()

        self.uploads = 0
        self.failed_uploads = 0
        self.final_flush = False
        self.unsynced = False
        self.errors: list[str] = []

        self._synced_digest = synced_digest
        self._sleep = sleep
        self._watcher: Any = None
        self._thread: Optional[threading.Thread] = None
        self._stop_sent = False
        self._exception: Optional[Exception] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the file watcher and the worker thread.

        Raises:
            EoWatchError: If the watch on the working copy cannot be set up
        """
        self._watcher = self.watcher_factory(self.working_copy.path, self.events)
        self._watcher.start()

        self._thread = threading.Thread(
            target=self._run, name="pyeo-sync", daemon=True
        )
        self._thread.start()

    def stop(self) -> None:
        """Ask the worker to perform its final flush and exit."""
        if self._stop_sent:
            return
        self._stop_sent = True
        self.events.put(STOP)

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the worker thread to exit.

        Returns:
            True if the thread has exited

        Raises:
            Exception: Any unexpected error that ended the worker thread
        """
        if self._thread is not None:
            self._thread.join(timeout)
            if self._thread.is_alive():
                return False
        if self._exception is not None:
            raise self._exception
        return True

    def _run(self) -> None:
        try:
            self._loop()
        except Exception as e:
            logger.exception("Sync worker failed")
            self._exception = e
        finally:
            self._watcher.stop()

    def _loop(self) -> None:
        while True:
            try:
                item = self.events.get(timeout=self.debouncer.timeout())
            except queue.Empty:
                item = None

            # Events queued up behind an upload belong to the same burst, so
            # all of them are recorded before the timer is checked
            stop_requested = False
            while item is not None:
                if item is STOP:
                    stop_requested = True
                elif isinstance(item, ChangeEvent):
                    self.debouncer.notify(item.timestamp)
                    # A zero window flushes once per event
                    if self.debouncer.duration == 0 and self.debouncer.poll():
                        self.flush()
                try:
                    item = self.events.get_nowait()
                except queue.Empty:
                    item = None

            if stop_requested:
                logger.debug("Stop requested, pending=%s", self.debouncer.pending)
                self.debouncer.reset()
                self.final_flush = self.flush()
                return

            if self.debouncer.poll():
                self.flush()

    def flush(self) -> bool:
        """Upload the working copy if it differs from the synced content.

        Failures are reported and counted, never raised.

        Returns:
            True if an upload succeeded
        """
        try:
            content = self.working_copy.read()
        except OSError as e:
            self._report_failure(f"Could not read {self.working_copy.path}: {e}")
            return False

        digest = content_digest(content)
        if digest == self._synced_digest:
            logger.debug("Content unchanged, skipping upload")
            return False

        try:
            self._upload_with_retry(content)
        except EoStorageError as e:
            self._report_failure(
                f"Failed to sync changes to {self.working_copy.origin}: {e}"
            )
            return False

        self._synced_digest = digest
        self.uploads += 1
        self.unsynced = False
        logger.info("Synced %d bytes to %s", len(content), self.working_copy.origin)
        return True

    def _upload_with_retry(self, content: bytes) -> None:
        ref = self.working_copy.origin
        for attempt in range(self.max_retries + 1):
            try:
                self.storage.upload(ref, content)
                return
            except EoTransientError as e:
                if attempt >= self.max_retries:
                    raise
                delay = calculate_retry_delay(attempt, self.retry_delay)
                logger.debug(
                    "Upload attempt %d failed (%s), retrying in %.2fs",
                    attempt + 1,
                    e,
                    delay,
                )
                self._sleep(delay)

    def _report_failure(self, message: str) -> None:
        logger.debug(message)
        self.failed_uploads += 1
        self.unsynced = True
        self.errors.append(message)
        self.output.warning(message)
