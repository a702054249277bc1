"""Google Cloud Storage backend using the JSON API over httpx.

Requests are authorized with Application Default Credentials from
google-auth (service account key, ``gcloud auth application-default
login`` or the metadata server). The credentials are refreshed whenever
they expire, so long edit sessions keep syncing. An explicit access token
(``EO_GCS_TOKEN``) overrides them but cannot be refreshed.
"""

from __future__ import annotations

import logging
import threading
from typing import Any
from urllib.parse import quote

import google.auth
import google.auth.transport.requests
import httpx
from google.auth.exceptions import DefaultCredentialsError, RefreshError, TransportError

from ..config import DEFAULT_GCS_API_URL
from ..exceptions import (
    EoAccessDeniedError,
    EoBackendError,
    EoConfigError,
    EoNotFoundError,
    EoPayloadTooLargeError,
    EoStorageError,
    EoTransientError,
)
from ..models import Backend, RemoteObjectRef
from .base import StorageBackend

logger = logging.getLogger(__name__)

GCS_SCOPE = "https://www.googleapis.com/auth/devstorage.read_write"


def load_default_credentials() -> Any:
    """Load Application Default Credentials scoped for object read/write.

    Raises:
        EoConfigError: If no credentials can be found
    """
    try:
        credentials, _ = google.auth.default(scopes=[GCS_SCOPE])
    except DefaultCredentialsError as e:
        raise EoConfigError(
            f"GCS credentials not found: {e}. Run `gcloud auth "
            "application-default login` or set EO_GCS_TOKEN."
        ) from e
    return credentials


class GCSStorage(StorageBackend):
    """Storage backend for Google Cloud Storage.

    Unlike S3, a GCS media upload addresses the object through a ``name``
    query parameter rather than the request path. The parameter is built
    for every request from the given ref and never stored on the instance.
    """

    backend = Backend.GCS

    def __init__(
        self,
        credentials: Any = None,
        token: str | None = None,
        api_url: str = DEFAULT_GCS_API_URL,
        timeout: float = 60.0,
        transport: httpx.BaseTransport | None = None,
        auth_request: Any = None,
    ):
        """Initialize the GCS backend.

        Args:
            credentials: google-auth credentials, refreshed when expired
            token: Fixed OAuth2 access token, used instead of credentials
            api_url: Base URL of the JSON API
            timeout: Request timeout in seconds
            transport: Optional httpx transport (mostly for tests)
            auth_request: google-auth transport used to refresh credentials
        """
        if credentials is None and not token:
            raise EoConfigError(
                "GCS credentials not configured. Run `gcloud auth "
                "application-default login` or set EO_GCS_TOKEN."
            )
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self._credentials = credentials
        self._token = token
        self._auth_request = auth_request
        self._auth_lock = threading.Lock()
        # httpx.Client is thread-safe and is created once, up front
        self._client = httpx.Client(
            timeout=httpx.Timeout(timeout),
            follow_redirects=True,
            transport=transport,
        )

    @classmethod
    def from_config(cls, config: Any, **overrides: Any) -> GCSStorage:
        api_url = overrides.get("api_url") or config.gcs_api_url
        token = overrides.get("token") or config.gcs_token
        if token:
            return cls(token=token, api_url=api_url)
        return cls(credentials=load_default_credentials(), api_url=api_url)

    def close(self) -> None:
        """Close the client and release connections."""
        if not self._client.is_closed:
            self._client.close()

    def _access_token(self, force_refresh: bool = False) -> str:
        if self._credentials is None:
            return self._token

        # Uploads and the initial download may refresh concurrently
        with self._auth_lock:
            if force_refresh or not self._credentials.valid:
                if self._auth_request is None:
                    self._auth_request = google.auth.transport.requests.Request()
                logger.debug("Refreshing GCS credentials")
                try:
                    self._credentials.refresh(self._auth_request)
                except RefreshError as e:
                    raise EoAccessDeniedError(
                        f"Could not refresh GCS credentials: {e}"
                    ) from e
                except TransportError as e:
                    raise EoTransientError(
                        f"Network error while refreshing GCS credentials: {e}"
                    ) from e
            return self._credentials.token

    def _send(
        self, method: str, url: str, headers: dict[str, str] | None = None, **kwargs
    ) -> httpx.Response:
        """Send an authorized request, refreshing once on a 401 response."""
        request_headers = dict(headers or {})
        request_headers["Authorization"] = f"Bearer {self._access_token()}"
        response = self._client.request(method, url, headers=request_headers, **kwargs)

        if response.status_code == 401 and self._credentials is not None:
            logger.debug("GCS returned 401, retrying with refreshed credentials")
            token = self._access_token(force_refresh=True)
            request_headers["Authorization"] = f"Bearer {token}"
            response = self._client.request(
                method, url, headers=request_headers, **kwargs
            )

        response.raise_for_status()
        return response

    def _object_url(self, ref: RemoteObjectRef) -> str:
        bucket = quote(ref.bucket, safe="")
        name = quote(ref.key, safe="")
        return f"{self.api_url}/storage/v1/b/{bucket}/o/{name}"

    def _upload_url(self, ref: RemoteObjectRef) -> str:
        bucket = quote(ref.bucket, safe="")
        return f"{self.api_url}/upload/storage/v1/b/{bucket}/o"

    def _handle_http_error(
        self, e: httpx.HTTPStatusError, ref: RemoteObjectRef
    ) -> EoStorageError:
        """Map an HTTP error response to a storage error.

        Args:
            e: The HTTP error exception
            ref: Object the failing request was about

        Returns:
            Exception to raise
        """
        status_code = e.response.status_code
        error_msg = f"GCS request for {ref} failed with status {status_code}"

        # Try to extract more details from response body
        try:
            if e.response.content:
                error_data = e.response.json()
                if isinstance(error_data, dict):
                    error = error_data.get("error")
                    msg = error.get("message") if isinstance(error, dict) else error
                    if msg:
                        error_msg = f"{error_msg}: {msg}"
        except ValueError:
            # Not JSON, keep the status-based message
            pass

        if status_code in (401, 403):
            return EoAccessDeniedError(error_msg)
        if status_code == 404:
            return EoNotFoundError(f"Object not found: {ref}")
        if status_code == 413:
            return EoPayloadTooLargeError(error_msg)
        if status_code in (408, 429) or 500 <= status_code < 600:
            return EoTransientError(error_msg)
        return EoBackendError(error_msg)

    def download(self, ref: RemoteObjectRef) -> bytes:
        logger.debug("GET object bucket=%s key=%s", ref.bucket, ref.key)
        try:
            response = self._send("GET", self._object_url(ref), params={"alt": "media"})
            return response.content
        except httpx.HTTPStatusError as e:
            raise self._handle_http_error(e, ref) from e
        except httpx.RequestError as e:
            raise EoTransientError(f"Network error during download: {e}") from e

    def upload(self, ref: RemoteObjectRef, content: bytes) -> None:
        logger.debug(
            "POST media upload bucket=%s key=%s size=%d",
            ref.bucket,
            ref.key,
            len(content),
        )
        try:
            self._send(
                "POST",
                self._upload_url(ref),
                params={"uploadType": "media", "name": ref.key},
                content=content,
                headers={"Content-Type": "application/octet-stream"},
            )
        except httpx.HTTPStatusError as e:
            raise self._handle_http_error(e, ref) from e
        except httpx.RequestError as e:
            raise EoTransientError(f"Network error during upload: {e}") from e
