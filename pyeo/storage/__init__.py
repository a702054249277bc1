"""Object storage backends and the registry used to select one."""

from typing import Any

from ..exceptions import EoConfigError
from ..models import Backend
from .base import StorageBackend
from .gcs import GCSStorage
from .s3 import S3Storage

_REGISTRY: dict[Backend, type[StorageBackend]] = {}


def register_backend(backend: Backend, cls: type[StorageBackend]) -> None:
    """Register the implementation for a backend discriminator."""
    _REGISTRY[backend] = cls


def get_backend_class(backend: Backend) -> type[StorageBackend]:
    """Get the implementation registered for a backend.

    Raises:
        EoConfigError: If no implementation is registered
    """
    try:
        return _REGISTRY[backend]
    except KeyError:
        raise EoConfigError(f"Unsupported storage provider: {backend.value}") from None


def create_storage(backend: Backend, config: Any, **overrides: Any) -> StorageBackend:
    """Create the storage backend selected by a discriminator.

    Args:
        backend: Backend to create
        config: Configuration to read credentials and endpoints from
        **overrides: Values taking precedence over the configuration

    Returns:
        Ready to use storage backend
    """
    return get_backend_class(backend).from_config(config, **overrides)


register_backend(Backend.S3, S3Storage)
register_backend(Backend.GCS, GCSStorage)

__all__ = [
    "StorageBackend",
    "S3Storage",
    "GCSStorage",
    "register_backend",
    "get_backend_class",
    "create_storage",
]
