"""Common interface for object storage backends."""

from abc import ABC, abstractmethod
from typing import Any

from ..models import Backend, RemoteObjectRef


class StorageBackend(ABC):
    """Download/upload capability over a single remote object.

    Instances are shared between the foreground session and the background
    sync worker, so implementations must not keep per-call state on the
    instance. Backends do not retry; errors are translated into the
    ``EoStorageError`` hierarchy and propagated.
    """

    backend: Backend

    @classmethod
    @abstractmethod
    def from_config(cls, config: Any, **overrides: Any) -> "StorageBackend":
        """Create a backend from a Config object.

        Args:
            config: Configuration to read credentials and endpoints from
            **overrides: Values that take precedence over the configuration
        """

    @abstractmethod
    def download(self, ref: RemoteObjectRef) -> bytes:
        """Fetch the full content of a remote object.

        Raises:
            EoNotFoundError: If the object does not exist
            EoAccessDeniedError: If access is not allowed
            EoTransientError: On network errors or throttling
            EoBackendError: On any other backend failure
        """

    @abstractmethod
    def upload(self, ref: RemoteObjectRef, content: bytes) -> None:
        """Replace the content of a remote object.

        Raises:
            EoAccessDeniedError: If access is not allowed
            EoTransientError: On network errors or throttling
            EoPayloadTooLargeError: If the content is too large
            EoBackendError: On any other backend failure
        """

    def close(self) -> None:
        """Release connections held by the backend."""
