"""Attachment service: the contract the HTTP layer consumes."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import BinaryIO, Protocol

from mediastash.attachment.cache import ExtractionCache
from mediastash.attachment.coordinator import ExtractionCoordinator
from mediastash.attachment.errors import (
    ProbeError,
    ResourceNotFoundError,
    StorageFailure,
)
from mediastash.attachment.mime_detection import resolve_mime_type
from mediastash.attachment.models import (
    CacheKey,
    ExtractedAttachment,
    MediaSourceRef,
    ProbedAttachment,
)
from mediastash.attachment.prober import ContainerProber

logger = logging.getLogger(__name__)


class Library(Protocol):
    """Resolves media items to the files backing them."""

    def get_media_source(self, item_id: str, media_source_id: str) -> MediaSourceRef:
        """Raises ResourceNotFoundError if the item or media source does not exist."""
        ...


class AttachmentService:
    """Serve attachments embedded in media containers.

    Args:
        library: Resolves (item, media source) pairs to files.
        prober: Extracts attachment streams from containers.
        coordinator: Deduplicates extraction work and owns the cache.
        wait_timeout: Seconds a request waits for an extraction; None waits forever.
    """

    def __init__(
        self,
        library: Library,
        prober: ContainerProber,
        coordinator: ExtractionCoordinator,
        wait_timeout: float | None = None,
    ) -> None:
        self.library = library
        self.prober = prober
        self.coordinator = coordinator
        self.wait_timeout = wait_timeout

    @property
    def cache(self) -> ExtractionCache:
        return self.coordinator.cache

    def get_attachment(
        self, item_id: str, media_source_id: str, index: int
    ) -> tuple[ExtractedAttachment, BinaryIO]:
        """Return an attachment and an open read handle on its bytes.

        The caller owns the returned stream and must close it.

        Args:
            item_id: Media item identifier.
            media_source_id: Media source identifier within the item.
            index: Zero-based attachment ordinal.

        Returns:
            Tuple of the attachment metadata and a binary stream.

        Raises:
            ValueError: If index is negative.
            ResourceNotFoundError: If the item, media source or attachment does not exist,
                or the prober cannot extract it.
            StorageFailure: If the cache cannot be read or written.
            ExtractionTimeoutError: If the extraction did not finish within wait_timeout.
        """
        if index < 0:
            raise ValueError(f"Attachment index must be non-negative, got {index}")

        source = self.library.get_media_source(item_id, media_source_id)
        key = CacheKey.for_source(source, index)

        try:
            attachment = self.coordinator.resolve(
                key,
                lambda destination: self._extract(source, index, destination),
                timeout=self.wait_timeout,
            )
        except ProbeError as e:
            raise ResourceNotFoundError(
                f"Attachment {index} of media source '{media_source_id}' "
                f"could not be extracted: {e}"
            ) from e

        try:
            stream = attachment.path.open("rb")
        except FileNotFoundError as e:
            # Evicted between resolve and open
            raise StorageFailure(f"Cached attachment '{attachment.path}' disappeared") from e
        except OSError as e:
            raise StorageFailure(f"Cannot open cached attachment '{attachment.path}': {e}") from e

        return attachment, stream

    def evict(self, media_source_id: str) -> int:
        """Drop every cached attachment of a media source."""
        return self.cache.evict(media_source_id)

    def _extract(self, source: MediaSourceRef, index: int, destination: Path) -> ProbedAttachment:
        probed = self.prober.extract(source.path, index, destination)
        mime_type = resolve_mime_type(probed.mime_type, probed.filename, destination)
        if mime_type is None:
            logger.debug(
                "Unknown content type for attachment %d of %s", index, source.media_source_id
            )
        return ProbedAttachment(mime_type=mime_type, filename=probed.filename)
