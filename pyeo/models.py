"""Data models for edit sessions."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional


class Backend(str, Enum):
    """Supported object storage backends."""

    S3 = "s3"
    """Amazon S3 and S3-compatible stores"""

    GCS = "gcs"
    """Google Cloud Storage"""

    @property
    def scheme(self) -> str:
        """URI scheme used for objects of this backend."""
        return "gs" if self is Backend.GCS else "s3"

    @classmethod
    def from_scheme(cls, scheme: str) -> "Backend":
        """Get the backend for a URI scheme.

        Args:
            scheme: URI scheme without ``://`` (``s3`` or ``gs``)

        Returns:
            Matching backend

        Raises:
            ValueError: If the scheme is not known
        """
        schemes = {"s3": cls.S3, "gs": cls.GCS}
        try:
            return schemes[scheme.lower()]
        except KeyError:
            raise ValueError(f"Unknown storage scheme: {scheme}") from None


@dataclass(frozen=True)
class RemoteObjectRef:
    """Identifies a single object in remote storage."""

    backend: Backend
    """Storage backend holding the object"""

    bucket: str
    """Bucket name"""

    key: str
    """Object key inside the bucket"""

    region: Optional[str] = None
    """Region (only meaningful for S3)"""

    @property
    def uri(self) -> str:
        """URI of the object, e.g. ``s3://bucket/key``."""
        return f"{self.backend.scheme}://{self.bucket}/{self.key}"

    @property
    def suffix(self) -> str:
        """File extension of the key, including the leading dot."""
        name = self.key.rsplit("/", 1)[-1]
        return Path(name).suffix if name else ""

    def __str__(self) -> str:
        return self.uri


@dataclass
class WorkingCopy:
    """Local file backing an edit session."""

    path: Path
    """Path of the local file the editor works on"""

    origin: RemoteObjectRef
    """Remote object this file mirrors"""

    temporary: bool = False
    """Whether the session allocated the file and must delete it afterwards"""

    def read(self) -> bytes:
        """Read the current content from disk."""
        return self.path.read_bytes()

    def write(self, content: bytes) -> None:
        """Replace the content on disk."""
        self.path.write_bytes(content)

    def cleanup(self) -> None:
        """Delete the file if it was allocated by the session."""
        if self.temporary:
            self.path.unlink(missing_ok=True)


@dataclass(frozen=True)
class ChangeEvent:
    """Notification that the working copy may have changed."""

    timestamp: float
    """Observation time (``time.monotonic()`` clock)"""


class SessionState(str, Enum):
    """Lifecycle of an edit session. Transitions only move forward."""

    INITIALIZING = "initializing"
    DOWNLOADING = "downloading"
    EDITING = "editing"
    STOPPING = "stopping"
    TERMINATED = "terminated"

    @property
    def order(self) -> int:
        return list(SessionState).index(self)


@dataclass
class SessionResult:
    """Outcome of a finished edit session."""

    editor_exit_code: int = 0
    """Exit status of the editor process"""

    uploads: int = 0
    """Number of successful uploads"""

    failed_uploads: int = 0
    """Number of uploads that failed after all retries"""

    final_flush: bool = False
    """Whether an upload was performed while shutting down"""

    errors: list[str] = field(default_factory=list)
    """Messages of the failed uploads"""

    unsynced: bool = False
    """Whether the last attempted upload failed, leaving local changes unsynced"""

    @property
    def succeeded(self) -> bool:
        """True when the editor exited cleanly."""
        return self.editor_exit_code == 0
