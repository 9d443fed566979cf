"""Extraction cache: durable storage for extracted attachments.

Layout under the cache root::

    <root>/<digest of media source id>/<index>-<fingerprint>.bin   extracted bytes
    <root>/<digest of media source id>/<index>-<fingerprint>.json  metadata record
    <root>/.staging/                                               prober output in progress

Both files are written under a temporary name and moved into place with
``os.replace``. The data file is moved first and the metadata record last,
so the metadata record is the commit marker: a lookup never returns an
entry whose bytes are not completely in place.
"""

from __future__ import annotations

import datetime
import hashlib
import json
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import BinaryIO, Callable, Union

import humanize

from mediastash.attachment.errors import StorageFailure
from mediastash.attachment.models import CacheKey, ExtractedAttachment

logger = logging.getLogger(__name__)

DATA_SUFFIX = ".bin"
METADATA_SUFFIX = ".json"
STAGING_DIR = ".staging"

BytesSource = Union[bytes, BinaryIO, Path]


class ExtractionCache:
    """Maps cache keys to extracted attachment files on local storage.

    Args:
        root: Cache root directory. Created on first write.
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def source_dir(self, media_source_id: str) -> Path:
        """Directory holding every entry of one media source."""
        digest = hashlib.sha256(media_source_id.encode("utf-8")).hexdigest()[:32]
        return self.root / digest

    def data_path(self, key: CacheKey) -> Path:
        return self.source_dir(key.media_source_id) / f"{_entry_stem(key)}{DATA_SUFFIX}"

    def metadata_path(self, key: CacheKey) -> Path:
        return self.source_dir(key.media_source_id) / f"{_entry_stem(key)}{METADATA_SUFFIX}"

    def lookup(self, key: CacheKey) -> ExtractedAttachment | None:
        """Return the cached entry for key, or None on a miss.

        Entries stored under another fingerprint for the same source and
        index are treated as misses; they are evicted by the next store.

        Raises:
            StorageFailure: If the metadata record exists but cannot be read.
        """
        metadata_path = self.metadata_path(key)
        try:
            raw = metadata_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageFailure(f"Cannot read cache metadata '{metadata_path}': {e}") from e

        try:
            record = json.loads(raw)
            recorded_fingerprint = record["fingerprint"]
            recorded_size = int(record["size"])
            created_at = datetime.datetime.fromisoformat(record["created_at"])
        except (ValueError, KeyError, TypeError):
            logger.warning("Ignoring unreadable cache metadata '%s'", metadata_path)
            return None

        if recorded_fingerprint != key.fingerprint:
            return None

        data_path = self.data_path(key)
        try:
            size = data_path.stat().st_size
        except FileNotFoundError:
            logger.warning("Cache metadata '%s' has no data file", metadata_path)
            return None
        except OSError as e:
            raise StorageFailure(f"Cannot stat cached attachment '{data_path}': {e}") from e

        if size != recorded_size:
            logger.warning(
                "Cached attachment '%s' has size %d, expected %d", data_path, size, recorded_size
            )
            return None

        return ExtractedAttachment(
            key=key,
            path=data_path,
            size=size,
            mime_type=record.get("mime_type"),
            filename=record.get("filename"),
            created_at=created_at,
        )

    def staging_path(self, key: CacheKey) -> Path:
        """Reserve a unique temporary file on the cache filesystem for prober output.

        Raises:
            StorageFailure: If the staging area cannot be created.
        """
        staging_dir = self.root / STAGING_DIR
        try:
            staging_dir.mkdir(parents=True, exist_ok=True)
            fd, name = tempfile.mkstemp(prefix=f"{_entry_stem(key)}-", dir=staging_dir)
            os.close(fd)
        except OSError as e:
            raise StorageFailure(f"Cannot create staging file in '{staging_dir}': {e}") from e
        return Path(name)

    def store(
        self,
        key: CacheKey,
        source: BytesSource,
        mime_type: str | None = None,
        filename: str | None = None,
    ) -> ExtractedAttachment:
        """Persist extracted bytes under key and return the new entry.

        Args:
            key: Cache key of the entry.
            source: Extracted content as bytes, a readable binary file, or a
                staging file path (moved, not copied).
            mime_type: MIME type of the content, None when unknown.
            filename: Filename reported by the container, if any.

        Returns:
            The stored entry.

        Raises:
            StorageFailure: If any file cannot be written or moved into place.
        """
        source_dir = self.source_dir(key.media_source_id)
        data_path = self.data_path(key)
        created_at = datetime.datetime.now(datetime.timezone.utc)

        try:
            source_dir.mkdir(parents=True, exist_ok=True)
            if isinstance(source, Path):
                os.replace(source, data_path)
            else:
                _atomic_write(data_path, lambda f: _copy_source(source, f))
            size = data_path.stat().st_size

            record = {
                "media_source_id": key.media_source_id,
                "index": key.index,
                "fingerprint": key.fingerprint,
                "size": size,
                "mime_type": mime_type,
                "filename": filename,
                "created_at": created_at.isoformat(),
            }
            payload = json.dumps(record).encode("utf-8")
            _atomic_write(self.metadata_path(key), lambda f: f.write(payload))
        except OSError as e:
            raise StorageFailure(f"Cannot store attachment '{data_path}': {e}") from e

        self._evict_stale(key)
        logger.info(
            "Cached attachment %d of media source %s (%s)",
            key.index,
            key.media_source_id,
            humanize.naturalsize(size, binary=True),
        )
        return ExtractedAttachment(
            key=key,
            path=data_path,
            size=size,
            mime_type=mime_type,
            filename=filename,
            created_at=created_at,
        )

    def evict(self, media_source_id: str) -> int:
        """Remove every cached entry of a media source.

        Returns:
            Number of entries removed.

        Raises:
            StorageFailure: If the entries cannot be removed.
        """
        source_dir = self.source_dir(media_source_id)
        if not source_dir.is_dir():
            return 0

        count = sum(1 for _ in source_dir.glob(f"*{METADATA_SUFFIX}"))
        try:
            shutil.rmtree(source_dir)
        except FileNotFoundError:
            return 0
        except OSError as e:
            raise StorageFailure(f"Cannot evict cache entries in '{source_dir}': {e}") from e

        logger.info("Evicted %d cached attachment(s) of media source %s", count, media_source_id)
        return count

    def _evict_stale(self, key: CacheKey) -> None:
        """Remove entries stored under older fingerprints for the same source and index."""
        source_dir = self.source_dir(key.media_source_id)
        current = _entry_stem(key)
        for path in sorted(source_dir.glob(f"{key.index}-*"), key=_metadata_first):
            if path.name.startswith(f"{current}."):
                continue
            try:
                path.unlink()
            except FileNotFoundError:
                continue
            except OSError as e:
                logger.warning("Failed to remove stale cache file '%s': %s", path, e)
                continue
            logger.debug("Removed stale cache file '%s'", path)


def _entry_stem(key: CacheKey) -> str:
    return f"{key.index}-{key.fingerprint}"


def _metadata_first(path: Path) -> tuple[int, str]:
    # Drop the commit marker before the data so no reader sees a record without bytes
    return (0 if path.suffix == METADATA_SUFFIX else 1, path.name)


def _copy_source(source: bytes | BinaryIO, target: BinaryIO) -> None:
    if isinstance(source, (bytes, bytearray, memoryview)):
        target.write(source)
    else:
        shutil.copyfileobj(source, target)


def _atomic_write(target: Path, write: Callable[[BinaryIO], object]) -> None:
    """Write to a temporary file next to target, then move it into place."""
    fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}-", dir=target.parent)
    try:
        with os.fdopen(fd, "wb") as f:
            write(f)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_name, target)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise
