"""Parsing of cloud storage URIs and object references."""

from typing import Optional

from .exceptions import EoConfigError, EoUriError
from .models import Backend, RemoteObjectRef

URI_FORMAT_HINT = (
    "Invalid cloud storage URI format. Expected s3://bucket/key or gs://bucket/key"
)


def parse_uri(uri: Optional[str]) -> Optional[tuple[str, str]]:
    """Parse a cloud storage URI into a (bucket, key) tuple.

    Args:
        uri: URI such as ``s3://bucket/key`` or ``gs://bucket/key``

    Returns:
        Tuple of (bucket, key), or None if no URI was given

    Raises:
        EoUriError: If the URI is not in a supported format

    Examples:
        >>> parse_uri("s3://mybucket/path/to/key")
        ('mybucket', 'path/to/key')
        >>> parse_uri(None) is None
        True
    """
    if uri is None:
        return None

    for scheme in ("s3://", "gs://"):
        if uri.startswith(scheme):
            bucket, sep, key = uri[len(scheme) :].partition("/")
            if sep and bucket and key:
                return bucket, key
            break

    raise EoUriError(URI_FORMAT_HINT)


def backend_for_uri(uri: str) -> Backend:
    """Get the backend implied by the scheme of a URI.

    Raises:
        EoUriError: If the scheme is not supported
    """
    scheme, sep, _ = uri.partition("://")
    if not sep:
        raise EoUriError(URI_FORMAT_HINT)
    try:
        return Backend.from_scheme(scheme)
    except ValueError as e:
        raise EoUriError(URI_FORMAT_HINT) from e


def resolve_object_ref(
    storage: Optional[str] = None,
    uri: Optional[str] = None,
    bucket: Optional[str] = None,
    key: Optional[str] = None,
    region: Optional[str] = None,
) -> RemoteObjectRef:
    """Build a RemoteObjectRef from command line style inputs.

    A URI takes precedence over bucket and key. When no storage backend is
    given it is inferred from the URI scheme, and defaults to S3 otherwise.

    Args:
        storage: Backend name (``s3`` or ``gcs``)
        uri: Object URI
        bucket: Bucket name (used when no URI is given)
        key: Object key (used when no URI is given)
        region: Region for the S3 backend

    Returns:
        Reference to the remote object

    Raises:
        EoConfigError: If the inputs do not identify an object
    """
    parsed = parse_uri(uri)
    if parsed is not None:
        bucket, key = parsed
    elif not bucket or not key:
        raise EoConfigError("Either --uri or both --bucket and --key are required")

    if storage:
        try:
            backend = Backend(storage.lower())
        except ValueError:
            raise EoConfigError(f"Unsupported storage provider: {storage}") from None
    elif uri is not None:
        backend = backend_for_uri(uri)
    else:
        backend = Backend.S3

    return RemoteObjectRef(backend=backend, bucket=bucket, key=key, region=region)
