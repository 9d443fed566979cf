"""Error kinds raised by the attachment extraction subsystem.

- ResourceNotFoundError: media item, media source or attachment index does not exist
- ProbeError: the container prober failed for any other reason
- AttachmentIndexError: the prober reports the requested index is absent
- StorageFailure: the extraction cache could not read or write its files
- ExtractionTimeoutError: a caller stopped waiting for an in-flight extraction
"""

from __future__ import annotations


class ResourceNotFoundError(LookupError):
    """Raised when a media item, media source or attachment cannot be found."""


class ProbeError(Exception):
    """Raised when the container prober fails to extract an attachment.

    Probe failures are never cached, so a later attempt (for example after
    the container was repaired) starts from scratch.
    """


class AttachmentIndexError(ProbeError):
    """Raised when the container has no attachment at the requested index.

    Attributes:
        index: The requested attachment ordinal.
        available: Number of attachment streams the container reports.
    """

    def __init__(self, index: int, available: int) -> None:
        self.index = index
        self.available = available
        super().__init__(
            f"Attachment index {index} is out of range "
            f"(container has {available} attachment stream(s))"
        )


class StorageFailure(Exception):
    """Raised when the extraction cache hits an I/O error (disk full, permissions...)."""


class ExtractionTimeoutError(TimeoutError):
    """Raised when a caller gives up waiting for an extraction.

    The extraction itself keeps running for the benefit of other waiters
    and to populate the cache.
    """
