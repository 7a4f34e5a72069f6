import logging
import os
from pathlib import Path
from typing import BinaryIO, Dict

from .base import StorageStrategy
from .errors import PolicyViolationError, StorageIOError, StorageNotFoundError
from .policy import get_file_extension, validate_storage_key
from src.models.domain import MediaCategory

logger = logging.getLogger(__name__)

STREAMING_EXTENSIONS = frozenset({"mp4", "webm", "mov", "avi", "mkv"})


class LocalStorageStrategy(StorageStrategy):
    """Local filesystem storage with one subdirectory per media category and shop."""

    strategy_name = "local"

    def __init__(self, base_path: str, namespaces: Dict[MediaCategory, str]):
        super().__init__(namespaces)
        self.base_path = Path(base_path)

    def _get_full_path(self, key: str) -> Path:
        """Convert storage key to full filesystem path."""
        full_path = self.base_path / key
        # Ensure path is within base_path (security check)
        full_path.resolve().relative_to(self.base_path.resolve())
        return full_path

    def _existing_path(self, key: str) -> Path:
        try:
            full_path = self._get_full_path(key)
        except ValueError:
            raise StorageNotFoundError(key)
        if not full_path.is_file():
            raise StorageNotFoundError(key)
        return full_path

    def write(self, key: str, data: bytes, content_type: str | None = None) -> str:
        """Write data to the local filesystem."""
        validate_storage_key(key)
        try:
            full_path = self._get_full_path(key)
        except ValueError:
            raise PolicyViolationError(f"Invalid storage key: {key}")
        try:
            full_path.parent.mkdir(parents=True, exist_ok=True)
            with open(full_path, 'wb') as f:
                f.write(data)
        except OSError as e:
            logger.error(f"Failed to write {key} to local storage: {e}")
            raise StorageIOError(f"Failed to store file in local storage: {key}") from e
        return key

    def exists(self, key: str) -> bool:
        try:
            return self._get_full_path(key).is_file()
        except (OSError, ValueError):
            return False

    def size(self, key: str) -> int:
        full_path = self._existing_path(key)
        try:
            return full_path.stat().st_size
        except FileNotFoundError:
            raise StorageNotFoundError(key)
        except OSError as e:
            raise StorageIOError(f"Failed to get file size from local storage: {key}") from e

    def delete(self, key: str) -> None:
        try:
            full_path = self._get_full_path(key)
        except ValueError:
            logger.warning(f"Refusing to delete key outside upload directory: {key}")
            return

        try:
            if full_path.is_file():
                full_path.unlink()
                logger.info(f"Deleted file using local storage: {key}")
            else:
                logger.warning(f"File not found for deletion: {key}")
        except OSError as e:
            logger.error(f"Failed to delete file from local storage: {key}: {e}")

    def read_chunk(self, key: str, start: int, end: int) -> bytes:
        full_path = self._existing_path(key)
        try:
            with open(full_path, 'rb') as f:
                total_size = os.fstat(f.fileno()).st_size
                byte_range = self.resolve_range(start, end, total_size)
                f.seek(byte_range.start)
                return f.read(byte_range.length)
        except FileNotFoundError:
            raise StorageNotFoundError(key)
        except OSError as e:
            logger.error(f"Failed to read chunk of {key} from local storage: {e}")
            raise StorageIOError(f"Failed to read file chunk from local storage: {key}") from e

    def as_resource(self, key: str) -> BinaryIO:
        full_path = self._existing_path(key)
        try:
            return open(full_path, 'rb')
        except FileNotFoundError:
            raise StorageNotFoundError(key)
        except OSError as e:
            raise StorageIOError(f"Failed to open file from local storage: {key}") from e

    def is_available(self) -> bool:
        try:
            self.base_path.mkdir(parents=True, exist_ok=True)
            return os.access(self.base_path, os.W_OK)
        except OSError as e:
            logger.error(f"Local storage is not available: {e}")
            return False

    def supports_streaming(self, key: str) -> bool:
        return get_file_extension(key) in STREAMING_EXTENSIONS

    def optimal_chunk_size(self, key: str) -> int:
        extension = get_file_extension(key)
        if extension in ("mp4", "webm", "mov"):
            return 1024 * 1024
        if extension in ("avi", "mkv", "wmv"):
            return 512 * 1024
        return 64 * 1024
