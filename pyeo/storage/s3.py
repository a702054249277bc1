"""Amazon S3 backend built on boto3."""

import logging
from typing import Any, Optional

import boto3
from botocore.exceptions import (
    BotoCoreError,
    ClientError,
    ConnectionError as BotoConnectionError,
    HTTPClientError,
    NoCredentialsError,
    PartialCredentialsError,
)

from ..exceptions import (
    EoAccessDeniedError,
    EoBackendError,
    EoNotFoundError,
    EoPayloadTooLargeError,
    EoStorageError,
    EoTransientError,
)
from ..models import Backend, RemoteObjectRef
from .base import StorageBackend

logger = logging.getLogger(__name__)

NOT_FOUND_CODES = {"NoSuchKey", "NoSuchBucket", "404", "NotFound"}
ACCESS_DENIED_CODES = {
    "AccessDenied",
    "403",
    "InvalidAccessKeyId",
    "SignatureDoesNotMatch",
    "ExpiredToken",
    "AllAccessDisabled",
}
TRANSIENT_CODES = {
    "SlowDown",
    "Throttling",
    "ThrottlingException",
    "RequestTimeout",
    "RequestTimeTooSkewed",
    "InternalError",
    "ServiceUnavailable",
    "503",
    "500",
}
TOO_LARGE_CODES = {"EntityTooLarge", "413"}


def translate_s3_error(e: Exception, ref: RemoteObjectRef) -> EoStorageError:
    """Translate a botocore exception into a pyeo storage error.

    Args:
        e: Exception raised by boto3
        ref: Object the failing request was about

    Returns:
        Matching EoStorageError instance (not raised)
    """
    if isinstance(e, ClientError):
        error = e.response.get("Error", {})
        code = str(error.get("Code", ""))
        message = error.get("Message") or str(e)
        status = e.response.get("ResponseMetadata", {}).get("HTTPStatusCode", 0)

        if code in NOT_FOUND_CODES:
            return EoNotFoundError(f"Object not found: {ref}")
        if code in ACCESS_DENIED_CODES:
            return EoAccessDeniedError(f"Access denied to {ref}: {message}")
        if code in TOO_LARGE_CODES:
            return EoPayloadTooLargeError(f"Object too large for {ref}: {message}")
        if code in TRANSIENT_CODES or 500 <= status < 600:
            return EoTransientError(f"S3 request for {ref} failed: {message}")
        return EoBackendError(f"S3 request for {ref} failed ({code}): {message}")

    if isinstance(e, (NoCredentialsError, PartialCredentialsError)):
        return EoAccessDeniedError(f"AWS credentials not configured: {e}")
    # Timeouts and broken response streams are HTTPClientErrors, not ConnectionErrors
    if isinstance(e, (BotoConnectionError, HTTPClientError)):
        return EoTransientError(f"Network error talking to S3: {e}")
    return EoBackendError(f"S3 error for {ref}: {e}")


class S3Storage(StorageBackend):
    """Storage backend for S3 and S3-compatible object stores.

    A boto3 client is thread-safe, so a single instance can serve the
    foreground download and the background uploads at the same time.
    """

    backend = Backend.S3

    def __init__(
        self,
        region: Optional[str] = None,
        endpoint_url: Optional[str] = None,
        client: Any = None,
    ):
        """Initialize the S3 backend.

        Args:
            region: AWS region (uses the environment/profile default if None)
            endpoint_url: Custom endpoint for S3-compatible stores
            client: Preconfigured boto3 S3 client (mostly for tests)
        """
        self.region = region
        self.endpoint_url = endpoint_url
        self._client = client or boto3.client(
            "s3", region_name=region, endpoint_url=endpoint_url
        )

    @classmethod
    def from_config(cls, config: Any, **overrides: Any) -> "S3Storage":
        return cls(
            region=overrides.get("region") or config.region,
            endpoint_url=overrides.get("endpoint_url") or config.endpoint_url,
        )

    def download(self, ref: RemoteObjectRef) -> bytes:
        logger.debug("GetObject bucket=%s key=%s", ref.bucket, ref.key)
        try:
            response = self._client.get_object(Bucket=ref.bucket, Key=ref.key)
            return response["Body"].read()
        except (BotoCoreError, ClientError) as e:
            raise translate_s3_error(e, ref) from e

    def upload(self, ref: RemoteObjectRef, content: bytes) -> None:
        logger.debug(
            "PutObject bucket=%s key=%s size=%d", ref.bucket, ref.key, len(content)
        )
        try:
            self._client.put_object(Bucket=ref.bucket, Key=ref.key, Body=content)
        except (BotoCoreError, ClientError) as e:
            raise translate_s3_error(e, ref) from e

    def close(self) -> None:
        close = getattr(self._client, "close", None)
        if close is not None:
            close()
