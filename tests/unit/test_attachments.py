# =============================================================================
# tests/unit/test_attachments.py
# Unit Tests for Data-URI Attachment Processing
# =============================================================================

import base64

import pytest

from fleet_core.errors import SessionCorruptedError
from fleet_core.offline.attachments import (
    extension_for,
    is_data_uri,
    parse_data_uri,
    process_attachments,
    storage_path,
)

PNG = "data:image/png;base64," + base64.b64encode(b"\x89PNG fake").decode()
JPEG = "data:image/jpeg;base64," + base64.b64encode(b"jpeg bytes").decode()


class TestDataUri:
    def test_detects_prefix(self):
        assert is_data_uri(PNG)
        assert not is_data_uri("https://cdn.test/a.png")
        assert not is_data_uri(None)

    def test_parse(self):
        data = parse_data_uri(JPEG)

        assert data.mime_type == "image/jpeg"
        assert data.content == b"jpeg bytes"
        assert data.extension == "jpg"

    def test_parse_invalid(self):
        with pytest.raises(ValueError):
            parse_data_uri("data:image/png,not-base64")

    @pytest.mark.parametrize("mime,ext", [
        ("image/jpeg", "jpg"),
        ("image/png", "png"),
        ("image/svg+xml", "svg"),
        ("application/pdf", "pdf"),
    ])
    def test_extension_for(self, mime, ext):
        assert extension_for(mime) == ext

    def test_storage_path_strips_unsafe_characters(self):
        assert storage_path("fuel", "photo 1/ä.x", "jpg", timestamp_ms=1700) == "fuel/1700_photo1x.jpg"


class TestProcessAttachments:
    def test_uploads_and_replaces_url(self, gateway):
        items = [{"id": "img1", "url": PNG}, {"id": "img2", "url": "https://cdn.test/keep.png"}]

        processed = process_attachments(gateway, items, "machinery")

        assert processed[0]["url"].startswith("https://storage.test/images/machinery/")
        assert processed[0]["url"].endswith("_img1.png")
        assert processed[1]["url"] == "https://cdn.test/keep.png"
        assert len(gateway.uploads) == 1

    def test_failed_upload_dropped(self, gateway):
        gateway.fail("upload")
        assert process_attachments(gateway, [{"id": "a", "url": PNG}], "machinery") == []

    def test_failed_upload_kept_when_requested(self, gateway):
        gateway.fail("upload")
        items = [{"id": "a", "url": PNG}]

        assert process_attachments(gateway, items, "fuel", keep_failed=True) == items

    def test_no_gateway_counts_as_failure(self):
        assert process_attachments(None, [{"id": "a", "url": PNG}], "fuel") == []

    def test_none_stays_none(self, gateway):
        assert process_attachments(gateway, None, "fuel") is None

    def test_session_corruption_propagates(self, gateway):
        gateway.fail("upload", SessionCorruptedError("too large", status="431"))

        with pytest.raises(SessionCorruptedError):
            process_attachments(gateway, [{"id": "a", "url": PNG}], "fuel", keep_failed=True)
