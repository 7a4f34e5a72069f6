import logging
from abc import ABC, abstractmethod
from typing import BinaryIO, Dict

from src.models.domain import ByteRange, MediaCategory, StorageNamingContext, UploadedFile
from src.storage.errors import InvalidRangeError
from src.storage.policy import build_storage_key, validate_upload

logger = logging.getLogger(__name__)


class StorageStrategy(ABC):
    """
    Abstract base class for interchangeable media storage backends.

    Every implementation must behave identically for each operation; callers
    can only tell them apart through `strategy_name`.

    Keys are namespace-relative ("shop-profiles/shop-1/profile-<uuid>.png"),
    so the same key is meaningful in every strategy.
    """

    strategy_name: str = ""

    def __init__(self, namespaces: Dict[MediaCategory, str]):
        self.namespaces = dict(namespaces)

    def namespace_for(self, category: MediaCategory) -> str:
        """Directory or key prefix that holds files of the given category."""
        return self.namespaces[category]

    def store(self, upload: UploadedFile, category: MediaCategory, naming: StorageNamingContext) -> str:
        """
        Validate an upload, assign it a unique key and write it.

        Args:
            upload: Raw bytes with the declared filename and content type
            category: Shop profile image or item media
            naming: Owning shop (and item) ids used for the key prefix

        Returns:
            Storage key to persist with the owning entity

        Raises:
            PolicyViolationError: If the upload is rejected (nothing is written)
            StorageIOError: If the backend fails to write
        """
        media_type = validate_upload(upload, category)
        key = build_storage_key(self.namespace_for(category), category, naming, upload.filename)

        self.write(key, upload.data, upload.content_type)

        logger.info(
            f"Stored {category.value} using {self.strategy_name} storage: "
            f"shop_id={naming.shop_id}, item_id={naming.item_id}, key={key}, type={media_type.value}"
        )
        return key

    def read(self, key: str) -> bytes:
        """Read the full content of a key."""
        stream = self.as_resource(key)
        try:
            return stream.read()
        finally:
            stream.close()

    @staticmethod
    def resolve_range(start: int, end: int, total_size: int) -> ByteRange:
        """
        Validate a chunk request against the resource size.

        The lower bound is never adjusted; an end past the resource (or
        negative) is clamped to the last byte.

        Raises:
            InvalidRangeError: If start is out of bounds or start > end
        """
        if start < 0 or start >= total_size:
            raise InvalidRangeError(f"Invalid start position: {start}")

        if end < 0 or end >= total_size:
            end = total_size - 1

        if start > end:
            raise InvalidRangeError(f"Invalid range: start > end ({start} > {end})")

        return ByteRange(start=start, end=end)

    @abstractmethod
    def write(self, key: str, data: bytes, content_type: str | None = None) -> str:
        """
        Write bytes under an explicit key, replacing any existing content.

        Raises:
            StorageIOError: If the backend fails to write
        """
        pass

    @abstractmethod
    def exists(self, key: str) -> bool:
        """Check if key exists. Never raises; any failure reports False."""
        pass

    @abstractmethod
    def size(self, key: str) -> int:
        """
        Size of the stored content in bytes.

        Raises:
            StorageNotFoundError: If key doesn't exist
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> None:
        """
        Delete key from storage.

        Fire-and-forget: a missing key is not an error and backend failures
        are logged, never raised.
        """
        pass

    @abstractmethod
    def read_chunk(self, key: str, start: int, end: int) -> bytes:
        """
        Read the inclusive byte span [start, end].

        Raises:
            StorageNotFoundError: If key doesn't exist
            InvalidRangeError: If start is outside the resource or start > end
        """
        pass

    @abstractmethod
    def as_resource(self, key: str) -> BinaryIO:
        """
        Open the full content as a readable stream. Caller closes it.

        Raises:
            StorageNotFoundError: If key doesn't exist or is unreadable
        """
        pass

    @abstractmethod
    def is_available(self) -> bool:
        """Liveness probe. Never raises."""
        pass

    @abstractmethod
    def supports_streaming(self, key: str) -> bool:
        """Whether the backend serves this key efficiently in ranges."""
        pass

    @abstractmethod
    def optimal_chunk_size(self, key: str) -> int:
        """Preferred read size when streaming this key."""
        pass
