"""Tests for content type resolution of extracted attachments."""

from pathlib import Path

import pytest

from mediastash.attachment.mime_detection import (
    guess_from_filename,
    normalize_mime_type,
    resolve_mime_type,
    sniff_content,
)

PNG_CONTENT = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR" + b"\x00" * 32


@pytest.fixture
def png_file(tmp_path: Path) -> Path:
    path = tmp_path / "cover"
    path.write_bytes(PNG_CONTENT)
    return path


@pytest.mark.parametrize(
    ("reported", "expected"),
    [
        ("text/vtt", "text/vtt"),
        (" Image/JPEG ", "image/jpeg"),
        ("application/x-truetype-font", "font/ttf"),
        ("application/vnd.ms-opentype", "font/otf"),
        ("", None),
        ("   ", None),
        (None, None),
        ("notamimetype", None),
        ("text/", None),
        ("text/ plain", None),
    ],
)
def test_normalize_mime_type(reported, expected):
    assert normalize_mime_type(reported) == expected


@pytest.mark.parametrize(
    ("filename", "expected"),
    [
        ("DejaVuSans.ttf", "font/ttf"),
        ("Font.OTF", "font/otf"),
        ("subs.ass", "text/x-ssa"),
        ("subs.vtt", "text/vtt"),
        ("cover.jpg", "image/jpeg"),
        ("noextension", None),
        (None, None),
    ],
)
def test_guess_from_filename(filename, expected):
    assert guess_from_filename(filename) == expected


def test_sniff_png(png_file: Path):
    assert sniff_content(png_file) == "image/png"


def test_sniff_empty_file(tmp_path: Path):
    empty = tmp_path / "empty"
    empty.touch()
    assert sniff_content(empty) is None


def test_reported_type_wins(png_file: Path):
    assert resolve_mime_type("image/webp", "cover.jpg", png_file) == "image/webp"


def test_filename_used_when_tag_blank(png_file: Path):
    assert resolve_mime_type("", "cover.jpg", png_file) == "image/jpeg"


def test_content_sniffed_when_nothing_reported(png_file: Path):
    assert resolve_mime_type(None, None, png_file) == "image/png"
