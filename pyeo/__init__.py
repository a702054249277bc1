"""pyeo - edit files in cloud object storage with your local editor."""

from .exceptions import (
    EoAccessDeniedError,
    EoBackendError,
    EoConfigError,
    EoDownloadError,
    EoEditorError,
    EoError,
    EoNotFoundError,
    EoPayloadTooLargeError,
    EoStorageError,
    EoTransientError,
    EoUriError,
    EoWatchError,
)
from .models import Backend, RemoteObjectRef, SessionResult, SessionState
from .storage import create_storage
from .sync import Debouncer, SyncSession
from .uri import parse_uri, resolve_object_ref

__version__ = "1.0.0"

__all__ = [
    "Backend",
    "Debouncer",
    "RemoteObjectRef",
    "SessionResult",
    "SessionState",
    "SyncSession",
    "create_storage",
    "parse_uri",
    "resolve_object_ref",
    "EoError",
    "EoAccessDeniedError",
    "EoBackendError",
    "EoConfigError",
    "EoDownloadError",
    "EoEditorError",
    "EoNotFoundError",
    "EoPayloadTooLargeError",
    "EoStorageError",
    "EoTransientError",
    "EoUriError",
    "EoWatchError",
]
