"""Edit session: download, edit with live sync, shut down."""

import logging
import tempfile
from pathlib import Path
from typing import Callable, Optional, Union

from rich.progress import Progress, SpinnerColumn, TextColumn

from ..editor import launch_editor, resolve_editor
from ..exceptions import EoDownloadError, EoStorageError
from ..models import RemoteObjectRef, SessionResult, SessionState, WorkingCopy
from ..output import OutputFormatter
from ..storage import StorageBackend
from ..utils import (
    DEFAULT_DEBOUNCE_MS,
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_DELAY,
    DEFAULT_SHUTDOWN_TIMEOUT,
    content_digest,
    format_size,
)
from .debounce import Debouncer
from .watcher import FileWatcher
from .worker import SyncWorker, WatcherFactory

logger = logging.getLogger(__name__)

EditorRunner = Callable[[str, Path], int]


class SyncSession:
    """Edits one remote object through a local working copy.

    The session moves through INITIALIZING, DOWNLOADING, EDITING, STOPPING
    and TERMINATED, strictly in that order. While editing, the editor runs
    in the foreground and a SyncWorker uploads settled changes in the
    background. When the editor exits the worker performs a final flush and
    is joined before ``run()`` returns.
    """

    def __init__(
        self,
        storage: StorageBackend,
        ref: RemoteObjectRef,
        file_path: Optional[Union[str, Path]] = None,
        debounce: float = DEFAULT_DEBOUNCE_MS / 1000,
        max_wait: Optional[float] = None,
        editor_command: Optional[str] = None,
        output: Optional[OutputFormatter] = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        watcher_factory: WatcherFactory = FileWatcher,
        editor: EditorRunner = launch_editor,
        shutdown_timeout: Optional[float] = DEFAULT_SHUTDOWN_TIMEOUT,
    ):
        """Initialize an edit session.

        Args:
            storage: Storage backend for the object
            ref: Remote object to edit
            file_path: Local working copy path (a temp file is used if None)
            debounce: Quiet period in seconds before uploading
            max_wait: Maximum delay in seconds between an edit and its upload
                      while edits keep arriving (None for no limit)
            editor_command: Editor command (resolved from the environment
                            if None)
            output: Output formatter for progress and warnings
            max_retries: Retries for transient upload errors
            retry_delay: Base delay between upload retries in seconds
            watcher_factory: Callable creating a watcher from (path, queue)
            editor: Callable running the editor and returning its exit status
            shutdown_timeout: Seconds to wait for the worker after the editor
                              exits (None waits forever)
        """
        self.storage = storage
        self.ref = ref
        self.file_path = Path(file_path) if file_path is not None else None
        self.debounce = debounce
        self.max_wait = max_wait
        self.editor_command = editor_command or resolve_editor()
        self.output = output or OutputFormatter()
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.watcher_factory = watcher_factory
        self.editor = editor
        self.shutdown_timeout = shutdown_timeout

        self.working_copy: Optional[WorkingCopy] = None
        self._keep_working_copy = False
        self._state = SessionState.INITIALIZING

    @property
    def state(self) -> SessionState:
        return self._state

    def _transition(self, state: SessionState) -> None:
        if state.order <= self._state.order:
            raise RuntimeError(
                f"Invalid session transition: {self._state.value} -> {state.value}"
            )
        logger.debug("Session state: %s -> %s", self._state.value, state.value)
        self._state = state

    def _allocate_working_copy(self) -> WorkingCopy:
        if self.file_path is not None:
            return WorkingCopy(path=self.file_path, origin=self.ref)

        with tempfile.NamedTemporaryFile(
            prefix="eo-", suffix=self.ref.suffix, delete=False
        ) as f:
            path = Path(f.name)
        return WorkingCopy(path=path, origin=self.ref, temporary=True)

    def _download(self) -> bytes:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=self.output.console,
            transient=True,
            disable=self.output.quiet,
        ) as progress:
            progress.add_task(f"Downloading {self.ref}", total=None)
            try:
                return self.storage.download(self.ref)
            except EoStorageError as e:
                raise EoDownloadError(f"Failed to download {self.ref}: {e}") from e

    def run(self) -> SessionResult:
        """Run the session until the editor exits.

        Returns:
            Session result with the editor exit status and upload counts

        Raises:
            EoDownloadError: If the initial download fails (editor not started)
            EoWatchError: If the working copy cannot be watched
            EoEditorError: If the editor cannot be started
        """
        if self._state is not SessionState.INITIALIZING:
            raise RuntimeError("A session can only be run once")

        working_copy = self._allocate_working_copy()
        self.working_copy = working_copy
        try:
            self._transition(SessionState.DOWNLOADING)
            content = self._download()
            try:
                working_copy.write(content)
            except OSError as e:
                raise EoDownloadError(
                    f"Could not write working copy {working_copy.path}: {e}"
                ) from e
            logger.info("Downloaded %s to %s", self.ref, working_copy.path)
            self.output.info(f"Downloaded {self.ref} ({format_size(len(content))})")

            return self._edit(working_copy, content_digest(content))
        finally:
            if self._state is not SessionState.TERMINATED:
                self._transition(SessionState.TERMINATED)
            # Unsynced edits in a temp file would be lost otherwise
            if not self._keep_working_copy:
                working_copy.cleanup()

    def _edit(self, working_copy: WorkingCopy, synced_digest: str) -> SessionResult:
        worker = SyncWorker(
            storage=self.storage,
            working_copy=working_copy,
            debouncer=Debouncer(self.debounce, max_wait=self.max_wait),
            output=self.output,
            watcher_factory=self.watcher_factory,
            max_retries=self.max_retries,
            retry_delay=self.retry_delay,
            synced_digest=synced_digest,
        )
        worker.start()
        self._transition(SessionState.EDITING)

        try:
            exit_code = self.editor(self.editor_command, working_copy.path)
        finally:
            self._transition(SessionState.STOPPING)
            worker.stop()
            # Keep the file if the worker dies or hangs before its final flush
            self._keep_working_copy = True
            if not worker.join(self.shutdown_timeout):
                self.output.warning(
                    f"Sync of {self.ref} did not finish within "
                    f"{self.shutdown_timeout:.0f}s, the last changes may not "
                    "have been uploaded"
                )
            self._keep_working_copy = worker.unsynced or worker.running
            self._transition(SessionState.TERMINATED)

        return SessionResult(
            editor_exit_code=exit_code,
            uploads=worker.uploads,
            failed_uploads=worker.failed_uploads,
            final_flush=worker.final_flush,
            errors=list(worker.errors),
            unsynced=worker.unsynced,
        )
