"""Content type resolution for extracted attachments.

Containers usually tag attachment streams with a MIME type, but the tag is
optional and frequently wrong or blank. Resolution order:

1. The type reported by the prober, when it is a well-formed ``type/subtype``.
2. A guess from the attachment filename (fonts and subtitle formats first).
3. Magic byte sniffing of the extracted content using puremagic.

When all three fail the type stays unknown (None) and the caller serves the
content as generic binary.

Example:
    >>> from mediastash.attachment.mime_detection import resolve_mime_type
    >>> resolve_mime_type(None, "DejaVuSans.ttf", path)
    'font/ttf'
"""

from __future__ import annotations

import logging
import mimetypes
from pathlib import Path

import puremagic

logger = logging.getLogger(__name__)

# Number of leading bytes handed to puremagic for signature matching
SNIFF_SIZE = 8192

# Types commonly embedded in media containers that the mimetypes module
# does not know on every platform
ATTACHMENT_MIME_TYPES: dict[str, str] = {
    # Fonts
    ".ttf": "font/ttf",
    ".ttc": "font/collection",
    ".otf": "font/otf",
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    # Subtitles
    ".vtt": "text/vtt",
    ".srt": "application/x-subrip",
    ".ass": "text/x-ssa",
    ".ssa": "text/x-ssa",
    ".sup": "application/x-pgs",
    # Chapters and tags
    ".xml": "application/xml",
}

# Matroska muxers tag fonts with legacy types; normalize them
MIME_TYPE_EQUIVALENCES: dict[str, str] = {
    "application/x-truetype-font": "font/ttf",
    "application/x-font-ttf": "font/ttf",
    "application/x-font-truetype": "font/ttf",
    "application/vnd.ms-opentype": "font/otf",
    "application/x-font-otf": "font/otf",
    "application/x-font-opentype": "font/otf",
}


def _is_valid_mime_type(mime_type: str) -> bool:
    major, _, minor = mime_type.partition("/")
    return bool(major) and bool(minor) and " " not in mime_type


def normalize_mime_type(mime_type: str | None) -> str | None:
    """Return a lower-cased, canonical MIME type, or None if it is malformed."""
    if mime_type is None:
        return None
    normalized = mime_type.strip().lower()
    if not _is_valid_mime_type(normalized):
        return None
    return MIME_TYPE_EQUIVALENCES.get(normalized, normalized)


def guess_from_filename(filename: str | None) -> str | None:
    """Guess a MIME type from an attachment filename."""
    if not filename:
        return None
    suffix = Path(filename).suffix.lower()
    if suffix in ATTACHMENT_MIME_TYPES:
        return ATTACHMENT_MIME_TYPES[suffix]
    guessed, _ = mimetypes.guess_type(filename)
    return normalize_mime_type(guessed)


def sniff_content(path: Path) -> str | None:
    """Detect a MIME type from the leading bytes of a file.

    Args:
        path: File to inspect.

    Returns:
        The best puremagic match, or None if the content cannot be identified.
    """
    with Path(path).open("rb") as f:
        head = f.read(SNIFF_SIZE)

    if not head:
        return None

    try:
        detected = puremagic.magic_string(head)
    except puremagic.PureError:
        logger.debug("Could not identify content type of '%s'", path)
        return None

    for match in detected:
        normalized = normalize_mime_type(match.mime_type)
        if normalized:
            return normalized
    return None


def resolve_mime_type(reported: str | None, filename: str | None, path: Path) -> str | None:
    """Resolve the content type of an extracted attachment.

    Args:
        reported: MIME type tag reported by the prober (may be blank).
        filename: Filename tag reported by the prober, if any.
        path: Location of the extracted bytes.

    Returns:
        A MIME type, or None when the type is unknown.
    """
    normalized = normalize_mime_type(reported)
    if normalized:
        return normalized

    if reported:
        logger.debug("Ignoring malformed MIME type tag '%s' for '%s'", reported, filename)

    return guess_from_filename(filename) or sniff_content(path)
