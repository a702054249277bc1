"""Edit-session synchronization: watch, debounce and upload."""

from .debounce import Debouncer
from .session import SyncSession
from .watcher import ChangeEventHandler, FileWatcher
from .worker import STOP, SyncWorker

__all__ = [
    "Debouncer",
    "SyncSession",
    "SyncWorker",
    "STOP",
    "FileWatcher",
    "ChangeEventHandler",
]
