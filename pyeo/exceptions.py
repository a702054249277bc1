"""Custom exceptions for pyeo."""


class EoError(Exception):
    """Base exception for all pyeo errors."""


class EoConfigError(EoError):
    """Raised when the configuration or the object reference is invalid."""


class EoUriError(EoConfigError):
    """Raised when a cloud storage URI cannot be parsed."""


# =========================
# Storage errors
# =========================


class EoStorageError(EoError):
    """Base exception for failures reported by a storage backend."""


class EoNotFoundError(EoStorageError):
    """Raised when the remote object or bucket does not exist."""


class EoAccessDeniedError(EoStorageError):
    """Raised when the credentials are missing, invalid or lack permission."""


class EoTransientError(EoStorageError):
    """Raised for failures that may succeed when retried.

    Covers network errors, throttling and 5xx responses.
    """


class EoBackendError(EoStorageError):
    """Raised for any other error returned by a storage backend."""


class EoPayloadTooLargeError(EoStorageError):
    """Raised when the backend rejects an upload because of its size."""


# =========================
# Session errors
# =========================


class EoDownloadError(EoError):
    """Raised when the initial download of the remote object fails.

    The underlying storage error is available as ``__cause__``.
    """


class EoWatchError(EoError):
    """Raised when the filesystem watch on the working copy cannot be set up."""


class EoEditorError(EoError):
    """Raised when the editor process cannot be started."""
