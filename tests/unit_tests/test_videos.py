from unittest.mock import patch

import pytest

from mediastash.attachment import ExtractionTimeoutError, StorageFailure
from mediastash.engine import Engine
from tests.unit_tests.fake_app import VTT_CONTENT, FakeProber
from tests.unit_tests.fake_app import container as container  # noqa: F401
from tests.unit_tests.fake_app import fake_prober as fake_prober  # noqa: F401
from tests.unit_tests.fake_app import test_app as test_app  # noqa: F401

ATTACHMENT_URL = "/Videos/video-1/source-1/Attachments/{index}"


def test_get_attachment_returns_bytes_and_type(test_app: Engine):
    client = test_app.test_client()

    response = client.get(ATTACHMENT_URL.format(index=0))

    assert response.status_code == 200
    assert response.data == VTT_CONTENT
    assert response.mimetype == "text/vtt"
    assert "subs.vtt" in response.headers["Content-Disposition"]
    response.close()


def test_repeated_requests_extract_once(test_app: Engine, fake_prober: FakeProber):
    client = test_app.test_client()

    first = client.get(ATTACHMENT_URL.format(index=0))
    second = client.get(ATTACHMENT_URL.format(index=0))

    assert first.data == second.data
    assert len(fake_prober.calls) == 1
    first.close()
    second.close()


def test_missing_index_is_404(test_app: Engine):
    response = test_app.test_client().get(ATTACHMENT_URL.format(index=99))

    assert response.status_code == 404
    assert b"could not be extracted" in response.data


def test_unknown_video_is_404(test_app: Engine):
    response = test_app.test_client().get("/Videos/nope/source-1/Attachments/0")
    assert response.status_code == 404


def test_unknown_media_source_is_404(test_app: Engine):
    response = test_app.test_client().get("/Videos/video-1/nope/Attachments/0")
    assert response.status_code == 404


def test_missing_media_file_is_404(test_app: Engine, fake_prober: FakeProber):
    response = test_app.test_client().get("/Videos/video-2/source-2/Attachments/0")

    assert response.status_code == 404
    assert fake_prober.calls == []


def test_negative_index_does_not_route(test_app: Engine, fake_prober: FakeProber):
    response = test_app.test_client().get(ATTACHMENT_URL.format(index=-1))

    assert response.status_code == 404
    assert fake_prober.calls == []


def test_unknown_type_served_as_octet_stream(test_app: Engine, fake_prober: FakeProber):
    fake_prober.attachments[1] = (b"opaque", None, None)

    with patch("mediastash.attachment.service.resolve_mime_type", return_value=None):
        response = test_app.test_client().get(ATTACHMENT_URL.format(index=1))

    assert response.status_code == 200
    assert response.mimetype == "application/octet-stream"
    assert "attachment_1" in response.headers["Content-Disposition"]
    response.close()


def test_storage_failure_is_500(test_app: Engine):
    with patch.object(
        test_app.attachment_service, "get_attachment", side_effect=StorageFailure("disk full")
    ):
        response = test_app.test_client().get(ATTACHMENT_URL.format(index=0))

    assert response.status_code == 500
    assert b"disk full" not in response.data


def test_timeout_is_504(test_app: Engine):
    with patch.object(
        test_app.attachment_service,
        "get_attachment",
        side_effect=ExtractionTimeoutError("too slow"),
    ):
        response = test_app.test_client().get(ATTACHMENT_URL.format(index=0))

    assert response.status_code == 504


def test_stream_is_closed_when_response_cannot_be_built(test_app: Engine):
    service = test_app.attachment_service
    opened = []
    get_attachment = service.get_attachment

    def recording_get_attachment(*args):
        attachment, stream = get_attachment(*args)
        opened.append(stream)
        return attachment, stream

    with (
        patch.object(service, "get_attachment", side_effect=recording_get_attachment),
        patch("mediastash.blueprints.videos.send_file", side_effect=RuntimeError("boom")),
        pytest.raises(RuntimeError, match="boom"),
    ):
        test_app.test_client().get(ATTACHMENT_URL.format(index=0))

    assert len(opened) == 1
    assert opened[0].closed
