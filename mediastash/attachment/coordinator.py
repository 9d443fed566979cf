"""Extraction coordinator: deduplicates concurrent extraction work per cache key.

The first caller that misses the cache for a key becomes the leader and
starts the extraction. Every other caller for the same key joins the
in-flight record and waits on the same future, so the container prober runs
at most once per key at a time and all waiters observe an identical outcome.

Each extraction runs on its own worker thread, so a slow container never
delays requests for unrelated keys. The worker, not the calling request,
owns the extraction: a caller that times out simply stops waiting, and the
worker still completes and populates the cache for everybody else.
"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from opentelemetry import trace

from mediastash.attachment.cache import ExtractionCache
from mediastash.attachment.errors import ExtractionTimeoutError
from mediastash.attachment.models import CacheKey, ExtractedAttachment, ProbedAttachment

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

ExtractorFn = Callable[[Path], ProbedAttachment]


@dataclass
class InFlightExtraction:
    """Coordination record of one running extraction.

    Attributes:
        key: Cache key being extracted.
        future: Resolves to the stored entry, or to the extraction error.
        waiters: Number of callers that joined this extraction.
        worker: Thread running the extraction.
    """

    key: CacheKey
    future: Future[ExtractedAttachment] = field(default_factory=Future)
    waiters: int = 1
    worker: threading.Thread | None = None


class ExtractionCoordinator:
    """Serve cached attachments and run at most one extraction per key.

    Args:
        cache: Extraction cache consulted before, and written after, extraction.
    """

    def __init__(self, cache: ExtractionCache) -> None:
        self.cache = cache
        self._lock = threading.Lock()
        self._in_flight: dict[CacheKey, InFlightExtraction] = {}
        self._closed = False

    def resolve(
        self,
        key: CacheKey,
        extractor_fn: ExtractorFn,
        timeout: float | None = None,
    ) -> ExtractedAttachment:
        """Return the extracted attachment for key, extracting it if needed.

        Args:
            key: Cache key of the attachment.
            extractor_fn: Writes the attachment bytes to the given path and
                returns the metadata the prober reported.
            timeout: Seconds to wait for an in-flight extraction; None waits forever.

        Returns:
            The cached or freshly stored entry.

        Raises:
            ExtractionTimeoutError: If the wait exceeds timeout. The extraction
                continues in the background.
            Exception: Whatever the extraction raised, shared by all waiters.
        """
        cached = self.cache.lookup(key)
        if cached is not None:
            logger.debug("Cache hit for attachment %d of %s", key.index, key.media_source_id)
            return cached

        with self._lock:
            record = self._in_flight.get(key)
            if record is not None:
                record.waiters += 1
                logger.debug(
                    "Joining in-flight extraction of attachment %d of %s (%d waiter(s))",
                    key.index,
                    key.media_source_id,
                    record.waiters,
                )
            else:
                # An extraction may have finished between the lookup above and taking the lock
                cached = self.cache.lookup(key)
                if cached is not None:
                    return cached
                if self._closed:
                    raise RuntimeError("Extraction coordinator is shut down")
                record = InFlightExtraction(key=key)
                record.worker = threading.Thread(
                    target=self._run,
                    args=(record, extractor_fn),
                    name=f"attachment-extractor-{key.media_source_id}-{key.index}",
                    daemon=True,
                )
                self._in_flight[key] = record
                record.worker.start()

        try:
            return record.future.result(timeout=timeout)
        except FutureTimeoutError as e:
            raise ExtractionTimeoutError(
                f"Timed out after {timeout}s waiting for attachment {key.index} "
                f"of media source {key.media_source_id}"
            ) from e

    def in_flight(self) -> int:
        """Number of extractions currently running."""
        with self._lock:
            return len(self._in_flight)

    def shutdown(self, wait: bool = True) -> None:
        """Refuse new extractions and optionally wait for running ones to finish."""
        with self._lock:
            self._closed = True
            workers = [r.worker for r in self._in_flight.values() if r.worker is not None]
        if wait:
            for worker in workers:
                worker.join()

    def _run(self, record: InFlightExtraction, extractor_fn: ExtractorFn) -> None:
        key = record.key
        try:
            entry = self._extract_and_store(key, extractor_fn)
        except BaseException as e:
            self._finish(key)
            logger.warning(
                "Extraction of attachment %d of %s failed: %s", key.index, key.media_source_id, e
            )
            record.future.set_exception(e)
        else:
            self._finish(key)
            record.future.set_result(entry)

    def _extract_and_store(self, key: CacheKey, extractor_fn: ExtractorFn) -> ExtractedAttachment:
        with tracer.start_as_current_span("attachment.extract") as span:
            span.set_attribute("attachment.media_source_id", key.media_source_id)
            span.set_attribute("attachment.index", key.index)

            staging = self.cache.staging_path(key)
            try:
                probed = extractor_fn(staging)
                entry = self.cache.store(
                    key, staging, mime_type=probed.mime_type, filename=probed.filename
                )
            finally:
                # Gone already when store moved it into place
                staging.unlink(missing_ok=True)

            span.set_attribute("attachment.size", entry.size)
            return entry

    def _finish(self, key: CacheKey) -> None:
        with self._lock:
            self._in_flight.pop(key, None)
