"""Tests for range-request streaming of stored media."""

import os
import pytest
from typing import Optional
from unittest.mock import patch

from fastapi import FastAPI, Header
from fastapi.testclient import TestClient

from src.services.media_streaming import (
    DEFAULT_CACHE_CONTROL,
    IMAGE_CACHE_CONTROL,
    VIDEO_CACHE_CONTROL,
    RangeStreamingHandler,
    cache_control_for,
    parse_range_header,
)
from src.storage.errors import InvalidRangeError, StorageIOError, StorageNotFoundError

VIDEO_KEY = "items/shop-1/item-2-clip.mp4"
IMAGE_KEY = "shop-profiles/shop-1/profile-logo.png"


def _make_client(handler: RangeStreamingHandler) -> TestClient:
    app = FastAPI()

    @app.get("/media/{key:path}")
    def serve(key: str, range_header: Optional[str] = Header(None, alias="Range")):
        return handler.stream(key, range_header, "clip.mp4")

    return TestClient(app)


@pytest.fixture
def media_client(storage_context, local_strategy):
    local_strategy.write(VIDEO_KEY, b"0123456789", "video/mp4")
    local_strategy.write(IMAGE_KEY, b"pngbytes", "image/png")
    return _make_client(RangeStreamingHandler(storage_context))


class TestParseRangeHeader:
    """Range header parsing and validation."""

    def test_closed_range(self):
        byte_range = parse_range_header("bytes=2-5", 10, 1024)
        assert (byte_range.start, byte_range.end, byte_range.length) == (2, 5, 4)

    def test_open_ended_range(self):
        byte_range = parse_range_header("bytes=5-", 10, 1024)
        assert (byte_range.start, byte_range.end) == (5, 9)

    def test_end_clamped_to_last_byte(self):
        byte_range = parse_range_header("bytes=0-100", 10, 1024)
        assert (byte_range.start, byte_range.end) == (0, 9)

    def test_span_capped_at_max_chunk(self):
        byte_range = parse_range_header("bytes=100-", 10_000, 256)
        assert (byte_range.start, byte_range.end) == (100, 355)

    @pytest.mark.parametrize("header", [
        "bytes=20-25",   # start past the end
        "bytes=10-",     # start == size
        "bytes=5-3",     # start after end
        "bytes=-5",      # suffix ranges are not supported
        "bytes=abc",
        "bytes=0-1,4-5",
    ])
    def test_unsatisfiable_or_malformed(self, header):
        with pytest.raises(InvalidRangeError):
            parse_range_header(header, 10, 1024)


class TestCacheControl:

    def test_by_content_type(self):
        assert cache_control_for("video/mp4") == VIDEO_CACHE_CONTROL
        assert cache_control_for("image/png") == IMAGE_CACHE_CONTROL
        assert cache_control_for("application/octet-stream") == DEFAULT_CACHE_CONTROL


class TestRangeStreamingHandler:
    """Responses produced for full, partial and failed requests."""

    def test_full_content_without_range(self, media_client):
        response = media_client.get(f"/media/{VIDEO_KEY}")

        assert response.status_code == 200
        assert response.content == b"0123456789"
        assert response.headers["content-length"] == "10"
        assert response.headers["accept-ranges"] == "bytes"
        assert response.headers["content-type"] == "video/mp4"
        assert response.headers["cache-control"] == VIDEO_CACHE_CONTROL
        assert response.headers["content-disposition"] == 'inline; filename="clip.mp4"'
        assert "content-range" not in response.headers

    def test_partial_content(self, media_client):
        response = media_client.get(f"/media/{VIDEO_KEY}", headers={"Range": "bytes=2-5"})

        assert response.status_code == 206
        assert response.content == b"2345"
        assert response.headers["content-range"] == "bytes 2-5/10"
        assert response.headers["content-length"] == "4"
        assert response.headers["accept-ranges"] == "bytes"

    def test_range_end_past_resource_is_clamped(self, media_client):
        response = media_client.get(f"/media/{VIDEO_KEY}", headers={"Range": "bytes=0-100"})

        assert response.status_code == 206
        assert response.content == b"0123456789"
        assert response.headers["content-range"] == "bytes 0-9/10"

    def test_open_ended_range(self, media_client):
        response = media_client.get(f"/media/{VIDEO_KEY}", headers={"Range": "bytes=7-"})

        assert response.status_code == 206
        assert response.content == b"789"
        assert response.headers["content-range"] == "bytes 7-9/10"

    def test_unsatisfiable_range(self, media_client):
        response = media_client.get(f"/media/{VIDEO_KEY}", headers={"Range": "bytes=20-25"})

        assert response.status_code == 416
        assert response.headers["content-range"] == "bytes */10"
        assert response.content == b""

    def test_malformed_bytes_range(self, media_client):
        response = media_client.get(f"/media/{VIDEO_KEY}", headers={"Range": "bytes=x-y"})

        assert response.status_code == 416
        assert response.headers["content-range"] == "bytes */10"

    def test_non_bytes_range_unit_is_ignored(self, media_client):
        response = media_client.get(f"/media/{VIDEO_KEY}", headers={"Range": "items=0-3"})

        assert response.status_code == 200
        assert response.content == b"0123456789"

    def test_missing_key(self, media_client):
        response = media_client.get("/media/items/shop-1/nope.mp4", headers={"Range": "bytes=0-1"})

        assert response.status_code == 404
        assert response.json() == {"error": "File not found"}
        assert "content-range" not in response.headers

    def test_image_cache_control(self, media_client):
        response = media_client.get(f"/media/{IMAGE_KEY}", headers={"Range": "bytes=0-2"})

        assert response.status_code == 206
        assert response.headers["content-type"] == "image/png"
        assert response.headers["cache-control"] == IMAGE_CACHE_CONTROL

    def test_unknown_extension_served_as_octet_stream(self, media_client, local_strategy):
        local_strategy.write("items/shop-1/blob.bin", b"raw", None)

        response = media_client.get("/media/items/shop-1/blob.bin")

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/octet-stream"
        assert response.headers["cache-control"] == DEFAULT_CACHE_CONTROL

    def test_large_range_capped_at_one_mebibyte(self, storage_context, local_strategy):
        data = os.urandom(3 * 1024 * 1024)
        local_strategy.write(VIDEO_KEY, data, "video/mp4")
        client = _make_client(RangeStreamingHandler(storage_context))

        response = client.get(f"/media/{VIDEO_KEY}", headers={"Range": "bytes=0-"})

        assert response.status_code == 206
        assert response.headers["content-range"] == f"bytes 0-1048575/{len(data)}"
        assert response.content == data[:1024 * 1024]

    def test_configured_chunk_cap(self, storage_context, local_strategy):
        local_strategy.write(VIDEO_KEY, b"0123456789", "video/mp4")
        client = _make_client(RangeStreamingHandler(storage_context, max_chunk_size=4))

        response = client.get(f"/media/{VIDEO_KEY}", headers={"Range": "bytes=3-"})

        assert response.headers["content-range"] == "bytes 3-6/10"
        assert response.content == b"3456"

    def test_full_content_larger_than_chunk_size(self, storage_context, local_strategy):
        data = os.urandom(200 * 1024)
        local_strategy.write(VIDEO_KEY, data, "video/mp4")
        client = _make_client(RangeStreamingHandler(storage_context))

        response = client.get(f"/media/{VIDEO_KEY}")

        assert response.status_code == 200
        assert response.content == data

    def test_file_removed_during_request(self, media_client, storage_context):
        with patch.object(storage_context, "size", side_effect=StorageNotFoundError(VIDEO_KEY)):
            response = media_client.get(f"/media/{VIDEO_KEY}")

        assert response.status_code == 404

    def test_storage_failure(self, media_client, storage_context):
        with patch.object(storage_context, "read_chunk", side_effect=StorageIOError("disk gone")):
            response = media_client.get(f"/media/{VIDEO_KEY}", headers={"Range": "bytes=0-1"})

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to stream file"}

    def test_no_active_strategy(self, local_strategy):
        from src.storage.context import StorageContext

        client = _make_client(RangeStreamingHandler(StorageContext({"local": local_strategy})))

        response = client.get(f"/media/{VIDEO_KEY}")

        assert response.status_code == 404
