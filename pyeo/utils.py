"""Utility functions for pyeo."""

import hashlib
import random

# =============================================================================
# Defaults
# =============================================================================

# Quiet period before a burst of writes is uploaded (milliseconds)
DEFAULT_DEBOUNCE_MS: int = 500

# Retry configuration for transient upload errors
DEFAULT_MAX_RETRIES: int = 3
DEFAULT_RETRY_DELAY: float = 1.0  # seconds

# Editor used when neither $VISUAL nor $EDITOR is set
DEFAULT_EDITOR: str = "vim"

# How long to wait for the sync worker after the editor exits (seconds)
DEFAULT_SHUTDOWN_TIMEOUT: float = 60.0


# =============================================================================
# Retry helpers
# =============================================================================


def calculate_retry_delay(attempt: int, retry_delay: float) -> float:
    """Calculate delay before the next retry using exponential backoff.

    Args:
        attempt: Current attempt number (0-based)
        retry_delay: Base delay in seconds

    Returns:
        Delay in seconds
    """
    base_delay = retry_delay * (2**attempt)
    # Add jitter: +/- 25% of base delay
    jitter = base_delay * 0.25 * (2 * random.random() - 1)
    return base_delay + jitter


# =============================================================================
# Content helpers
# =============================================================================


def content_digest(content: bytes) -> str:
    """Return the SHA-256 hex digest of some content.

    Examples:
        >>> content_digest(b"")[:12]
        'e3b0c44298fc'
    """
    return hashlib.sha256(content).hexdigest()


def format_size(size_bytes: int) -> str:
    """Format file size in human-readable format.

    Args:
        size_bytes: Size in bytes

    Returns:
        Formatted size string (e.g., "1.5 MB", "256 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    elif size_bytes < 1024 * 1024 * 1024:
        return f"{size_bytes / 1024 / 1024:.1f} MB"
    else:
        return f"{size_bytes / 1024 / 1024 / 1024:.1f} GB"
