"""Value types shared by the extraction cache, coordinator and service."""

from __future__ import annotations

import datetime
import hashlib
import ntpath
import os
from dataclasses import dataclass, field
from pathlib import Path

from mediastash.attachment.errors import ResourceNotFoundError

DEFAULT_CONTENT_TYPE = "application/octet-stream"


def sanitize_filename(filename: str) -> str:
    """Remove path components from filename, returning just the basename.

    Strips trailing separators first to handle path-only inputs like "/" or "dir/",
    then extracts basename. Returns empty string for invalid inputs.
    """
    stripped = filename.rstrip("/\\")
    basename = os.path.basename(ntpath.basename(stripped))
    if basename in (".", ".."):
        return ""
    return basename


@dataclass(frozen=True)
class MediaSourceRef:
    """The physical file backing a media item.

    Attributes:
        item_id: Identifier of the media item.
        media_source_id: Identifier of the media source within the item.
        path: Absolute path of the container file.
    """

    item_id: str
    media_source_id: str
    path: Path


def fingerprint_file(path: Path) -> str:
    """Compute a fingerprint from file metadata without reading the content.

    Uses resolved path, size and mtime, so replacing or touching the file
    yields a new fingerprint.

    Raises:
        ResourceNotFoundError: If the file does not exist.
    """
    resolved = Path(path).resolve()
    try:
        stat = resolved.stat()
    except FileNotFoundError as e:
        raise ResourceNotFoundError(f"Media file '{resolved}' does not exist") from e
    parts = f"{resolved}|{stat.st_size}|{stat.st_mtime_ns}"
    return hashlib.sha256(parts.encode()).hexdigest()[:16]


@dataclass(frozen=True)
class CacheKey:
    """Identity of one extracted attachment.

    Attributes:
        media_source_id: Identifier of the media source.
        index: Zero-based attachment ordinal within the container.
        fingerprint: Digest of the source file's path, size and mtime.
    """

    media_source_id: str
    index: int
    fingerprint: str

    @classmethod
    def for_source(cls, source: MediaSourceRef, index: int) -> CacheKey:
        return cls(
            media_source_id=source.media_source_id,
            index=index,
            fingerprint=fingerprint_file(source.path),
        )


@dataclass(frozen=True)
class ProbedAttachment:
    """Metadata reported by the container prober for an extracted attachment."""

    mime_type: str | None = None
    filename: str | None = None


@dataclass(frozen=True)
class ExtractedAttachment:
    """An attachment stored in the extraction cache.

    Attributes:
        key: Cache key the entry was stored under.
        path: Location of the extracted bytes on local storage.
        size: Length of the extracted content in bytes.
        mime_type: MIME type, or None when unknown.
        filename: Filename reported by the container, if any.
        created_at: When the entry was written (UTC).
    """

    key: CacheKey
    path: Path
    size: int
    mime_type: str | None = None
    filename: str | None = None
    created_at: datetime.datetime = field(
        default_factory=lambda: datetime.datetime.now(datetime.timezone.utc)
    )

    @property
    def content_type(self) -> str:
        """MIME type to serve, falling back to generic binary when unknown."""
        return self.mime_type or DEFAULT_CONTENT_TYPE

    @property
    def download_name(self) -> str:
        """Suggested filename for clients saving the attachment."""
        if self.filename:
            sanitized = sanitize_filename(self.filename)
            if sanitized:
                return sanitized
        return f"attachment_{self.key.index}"
