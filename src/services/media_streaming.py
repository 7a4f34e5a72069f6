"""
HTTP range-request streaming of stored media.

Turns a storage key plus an optional Range header into one of:
200 full content, 206 partial content, 404, 416 or 500.
"""

import logging
import re
from typing import BinaryIO, Iterator, Optional

from fastapi.responses import JSONResponse, Response, StreamingResponse

from src.models.domain import ByteRange
from src.storage.context import StorageContext
from src.storage.errors import InvalidRangeError, StorageError, StorageNotFoundError
from src.storage.policy import content_type_for

logger = logging.getLogger(__name__)

DEFAULT_MAX_CHUNK_SIZE = 1024 * 1024  # 1 MiB
RANGE_PATTERN = re.compile(r"bytes=(?P<start>\d+)-(?P<end>\d*)")

VIDEO_CACHE_CONTROL = "public, max-age=86400, immutable"  # 24 hours
IMAGE_CACHE_CONTROL = "public, max-age=3600, immutable"  # 1 hour
DEFAULT_CACHE_CONTROL = "public, max-age=1800"  # 30 minutes


def cache_control_for(content_type: str) -> str:
    """Cache-Control value keyed by the content type's top-level category."""
    if content_type.startswith("video/"):
        return VIDEO_CACHE_CONTROL
    if content_type.startswith("image/"):
        return IMAGE_CACHE_CONTROL
    return DEFAULT_CACHE_CONTROL


def parse_range_header(range_header: str, total_size: int, max_chunk_size: int) -> ByteRange:
    """
    Parse and validate a single `bytes=<start>-<end?>` range.

    The end defaults to the last byte and is clamped to it when it overruns.
    Spans larger than max_chunk_size are shortened from the end.

    Raises:
        InvalidRangeError: If the header is malformed or the range is unsatisfiable
    """
    match = RANGE_PATTERN.fullmatch(range_header.strip())
    if not match:
        raise InvalidRangeError(f"Invalid range header: {range_header}")

    start = int(match.group("start"))
    end = int(match.group("end")) if match.group("end") else total_size - 1

    if start >= total_size or start > end:
        raise InvalidRangeError(f"Invalid range: start={start}, end={end}, size={total_size}")

    end = min(end, total_size - 1)

    if end - start + 1 > max_chunk_size:
        end = min(start + max_chunk_size - 1, total_size - 1)

    return ByteRange(start=start, end=end)


def _iter_stream(stream: BinaryIO, chunk_size: int) -> Iterator[bytes]:
    try:
        while chunk := stream.read(chunk_size):
            yield chunk
    finally:
        stream.close()


class RangeStreamingHandler:
    """
    Serves stored media with byte-range support.

    Stateless; a single handler is shared by all requests. Nothing is retried:
    clients recover from failures with a fresh range request.
    """

    def __init__(self, storage: StorageContext, max_chunk_size: int = DEFAULT_MAX_CHUNK_SIZE):
        self.storage = storage
        self.max_chunk_size = max_chunk_size

    def stream(self, key: str, range_header: Optional[str], display_name: str) -> Response:
        """
        Build the response for a media request.

        Args:
            key: Storage key of the media
            range_header: Raw Range header value, or None
            display_name: Filename advertised in Content-Disposition

        Returns:
            FastAPI response; this method never raises
        """
        if not self.storage.exists(key):
            logger.warning(f"File not found: {key}")
            return JSONResponse(status_code=404, content={"error": "File not found"})

        try:
            total_size = self.storage.size(key)
            content_type = content_type_for(key)

            logger.debug(
                f"Streaming file: key={key}, size={total_size}, "
                f"range={range_header}, contentType={content_type}"
            )

            if range_header and range_header.strip().startswith("bytes="):
                return self._partial_content(key, range_header, total_size, content_type, display_name)
            return self._full_content(key, total_size, content_type, display_name)

        except StorageNotFoundError:
            # Deleted between the existence check and the read
            logger.warning(f"File disappeared while streaming: {key}")
            return JSONResponse(status_code=404, content={"error": "File not found"})
        except (StorageError, OSError) as e:
            logger.error(f"Error streaming file: {key}: {e}", exc_info=True)
            return JSONResponse(status_code=500, content={"error": "Failed to stream file"})

    def _partial_content(
        self,
        key: str,
        range_header: str,
        total_size: int,
        content_type: str,
        display_name: str,
    ) -> Response:
        try:
            byte_range = parse_range_header(range_header, total_size, self.max_chunk_size)
        except InvalidRangeError as e:
            logger.warning(str(e))
            return Response(
                status_code=416,
                headers={"Content-Range": f"bytes */{total_size}"},
            )

        data = self.storage.read_chunk(key, byte_range.start, byte_range.end)

        logger.debug(
            f"Serving range: start={byte_range.start}, end={byte_range.end}, "
            f"contentLength={byte_range.length}"
        )

        headers = self._common_headers(content_type, display_name)
        headers["Content-Range"] = f"bytes {byte_range.start}-{byte_range.end}/{total_size}"
        headers["Content-Length"] = str(len(data))
        return Response(content=data, status_code=206, media_type=content_type, headers=headers)

    def _full_content(self, key: str, total_size: int, content_type: str, display_name: str) -> Response:
        stream = self.storage.as_resource(key)
        chunk_size = self.storage.optimal_chunk_size(key)

        logger.debug(f"Serving full file: size={total_size}, contentType={content_type}")

        headers = self._common_headers(content_type, display_name)
        headers["Content-Length"] = str(total_size)
        return StreamingResponse(
            _iter_stream(stream, chunk_size),
            status_code=200,
            media_type=content_type,
            headers=headers,
        )

    @staticmethod
    def _common_headers(content_type: str, display_name: str) -> dict:
        return {
            "Accept-Ranges": "bytes",
            "Content-Disposition": f'inline; filename="{display_name}"',
            "Cache-Control": cache_control_for(content_type),
        }
