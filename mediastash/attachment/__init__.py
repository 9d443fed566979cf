"""Attachment extraction subsystem.

Serves attachments embedded in media containers (fonts, subtitle tracks,
chapter images...) without re-extracting them on every request:

- ExtractionCache: durable, fingerprint-checked storage of extracted bytes
- ExtractionCoordinator: runs at most one extraction per cache key at a time
- AttachmentService: resolves item + media source + index to a readable stream

Example:
    >>> from mediastash.attachment import (
    ...     AttachmentService, ExtractionCache, ExtractionCoordinator, FfmpegProber
    ... )
    >>> coordinator = ExtractionCoordinator(ExtractionCache("/var/cache/mediastash"))
    >>> service = AttachmentService(library, FfmpegProber(), coordinator)
    >>> attachment, stream = service.get_attachment(item_id, "source-1", 0)
"""

from mediastash.attachment.cache import ExtractionCache
from mediastash.attachment.coordinator import ExtractionCoordinator
from mediastash.attachment.errors import (
    AttachmentIndexError,
    ExtractionTimeoutError,
    ProbeError,
    ResourceNotFoundError,
    StorageFailure,
)
from mediastash.attachment.models import (
    DEFAULT_CONTENT_TYPE,
    CacheKey,
    ExtractedAttachment,
    MediaSourceRef,
    ProbedAttachment,
)
from mediastash.attachment.prober import ContainerProber, FfmpegProber
from mediastash.attachment.service import AttachmentService, Library

__all__ = [
    "AttachmentIndexError",
    "AttachmentService",
    "CacheKey",
    "ContainerProber",
    "DEFAULT_CONTENT_TYPE",
    "ExtractedAttachment",
    "ExtractionCache",
    "ExtractionCoordinator",
    "ExtractionTimeoutError",
    "FfmpegProber",
    "Library",
    "MediaSourceRef",
    "ProbeError",
    "ProbedAttachment",
    "ResourceNotFoundError",
    "StorageFailure",
]
