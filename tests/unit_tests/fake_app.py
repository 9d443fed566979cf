"""Shared fixtures: a fake container prober and a fully assembled test app."""

import threading
from pathlib import Path
from typing import Any

import pytest

from mediastash.app import create_engine
from mediastash.attachment import AttachmentIndexError, ProbedAttachment, ProbeError
from mediastash.config import Config
from mediastash.db.json_db import db_from_config

VTT_CONTENT = b"WEBVTT\n\n00:00.000 --> 00:01.000\nHello\n"


class FakeProber:
    """In-memory stand-in for the ffmpeg prober.

    Attributes:
        attachments: index -> (content, reported MIME type, reported filename)
        calls: (file_path, index) of every extract call
        failures: number of upcoming calls that raise ProbeError
        gate: if set, extract blocks until the event is set
    """

    def __init__(self, attachments: dict[int, tuple[bytes, str | None, str | None]]) -> None:
        self.attachments = attachments
        self.calls: list[tuple[Path, int]] = []
        self.failures = 0
        self.gate: threading.Event | None = None
        self.started = threading.Event()
        self._lock = threading.Lock()

    def extract(self, file_path: Path, index: int, destination: Path) -> ProbedAttachment:
        with self._lock:
            self.calls.append((Path(file_path), index))
            fail = self.failures > 0
            if fail:
                self.failures -= 1
        self.started.set()
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if fail:
            raise ProbeError("corrupt container")
        if index not in self.attachments:
            raise AttachmentIndexError(index, len(self.attachments))
        content, mime_type, filename = self.attachments[index]
        destination.write_bytes(content)
        return ProbedAttachment(mime_type=mime_type, filename=filename)


def make_config_data(cache_dir: Path, container: Path) -> dict[str, Any]:
    return {
        "APP_NAME": "testingApp",
        "SECRET_KEY": "secret",
        "TESTING": True,
        "ATTACHMENTS": {"CACHE_DIR": str(cache_dir)},
        "DB": {
            "TYPE": "json",
            "DATA": {
                "items": [
                    {
                        "id": "video-1",
                        "name": "Test video",
                        "media_sources": [{"id": "source-1", "path": str(container)}],
                    },
                    {
                        "id": "video-2",
                        "media_sources": [
                            {"id": "source-2", "path": str(container.parent / "missing.mkv")}
                        ],
                    },
                ],
                "users": [
                    {"id": "admin-1", "name": "Alice", "is_administrator": True},
                    {"id": "viewer-1", "name": "Bob"},
                    {"id": "admin-2", "name": "Carol", "is_administrator": True},
                ],
            },
        },
    }


@pytest.fixture
def container(tmp_path: Path) -> Path:
    path = tmp_path / "movie.mkv"
    path.write_bytes(b"\x1a\x45\xdf\xa3 matroska container v1")
    return path


@pytest.fixture
def fake_prober() -> FakeProber:
    return FakeProber({0: (VTT_CONTENT, "text/vtt", "subs.vtt")})


@pytest.fixture
def test_app(tmp_path: Path, container: Path, fake_prober: FakeProber):
    config = Config.model_validate(make_config_data(tmp_path / "cache", container))
    db = db_from_config(config.db)  # pyright: ignore[reportArgumentType]
    app = create_engine(config, db, prober=fake_prober)
    yield app
    app.attachment_service.coordinator.shutdown()
