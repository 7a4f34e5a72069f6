"""Upload policy, file extension helpers and content-type inference for stored media."""

import uuid
from pathlib import PurePosixPath
from typing import Optional

from src.models.domain import MediaCategory, MediaType, StorageNamingContext, UploadedFile
from src.storage.errors import FileTooLargeError, PolicyViolationError


MAX_IMAGE_SIZE = 5 * 1024 * 1024
MAX_VIDEO_SIZE = 50 * 1024 * 1024

IMAGE_EXTENSIONS = frozenset({"jpg", "jpeg", "png", "gif", "webp"})
VIDEO_EXTENSIONS = frozenset({"mp4", "avi", "mov", "wmv", "flv", "webm", "mkv"})

CONTENT_TYPES = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "mp4": "video/mp4",
    "avi": "video/avi",
    "mov": "video/quicktime",
    "wmv": "video/x-ms-wmv",
    "flv": "video/x-flv",
    "webm": "video/webm",
    "mkv": "video/x-matroska",
}
DEFAULT_CONTENT_TYPE = "application/octet-stream"


def get_file_extension(filename: Optional[str]) -> str:
    """Return the lower-cased extension of a filename or key, without the dot."""
    if not filename:
        return ""
    return PurePosixPath(filename).suffix.lstrip(".").lower()


def content_type_for(key: str) -> str:
    """Infer a MIME type from the key's file extension."""
    return CONTENT_TYPES.get(get_file_extension(key), DEFAULT_CONTENT_TYPE)


def determine_media_type(content_type: Optional[str]) -> MediaType:
    """Classify an upload from its declared content type. Unknown types count as images."""
    if content_type and content_type.startswith("video/"):
        return MediaType.VIDEO
    return MediaType.IMAGE


def validate_storage_key(key: str) -> None:
    """Reject keys that are empty, absolute or step outside their namespace."""
    normalized = key.replace("\\", "/") if key else ""
    if not normalized or normalized.startswith("/") or ".." in PurePosixPath(normalized).parts:
        raise PolicyViolationError(f"Invalid storage key: {key}")


def check_size(size: int, max_size: int) -> None:
    """Raise FileTooLargeError when size exceeds max_size bytes."""
    if size > max_size:
        raise FileTooLargeError(f"File size must be less than {max_size // (1024 * 1024)}MB")


def validate_upload(upload: UploadedFile, category: MediaCategory) -> MediaType:
    """
    Check an upload against the media policy before anything is written.

    Shop profile uploads must be images; item media may be images or videos.

    Returns:
        The media type of the upload

    Raises:
        PolicyViolationError: If the type, extension or payload is not allowed
        FileTooLargeError: If the payload exceeds the ceiling for its media type
    """
    if upload.size == 0:
        raise PolicyViolationError("File is empty")

    content_type = upload.content_type or ""
    is_image = content_type.startswith("image/")
    is_video = content_type.startswith("video/")

    if category == MediaCategory.SHOP_PROFILE and not is_image:
        raise PolicyViolationError("File must be an image")
    if not (is_image or is_video):
        raise PolicyViolationError("File must be an image or video")

    check_size(upload.size, MAX_VIDEO_SIZE if is_video else MAX_IMAGE_SIZE)

    if not upload.filename:
        raise PolicyViolationError("Invalid filename")

    extension = get_file_extension(upload.filename)
    if is_image and extension not in IMAGE_EXTENSIONS:
        raise PolicyViolationError("Only JPG, JPEG, PNG, GIF, and WebP image files are allowed")
    if is_video and extension not in VIDEO_EXTENSIONS:
        raise PolicyViolationError("Only MP4, AVI, MOV, WMV, FLV, WebM, and MKV video files are allowed")

    return MediaType.VIDEO if is_video else MediaType.IMAGE


def build_storage_key(
    namespace: str,
    category: MediaCategory,
    naming: StorageNamingContext,
    filename: str,
) -> str:
    """
    Build a unique key under the owning shop's prefix.

    Example:
        shop-profiles/shop-7/profile-<uuid>.png
        items/shop-7/item-42-<uuid>.mp4
    """
    extension = get_file_extension(filename)
    suffix = f".{extension}" if extension else ""

    if category == MediaCategory.SHOP_PROFILE:
        unique_name = f"profile-{uuid.uuid4()}{suffix}"
    else:
        if naming.item_id is None:
            raise PolicyViolationError("Item media requires an item id")
        unique_name = f"item-{naming.item_id}-{uuid.uuid4()}{suffix}"

    return f"{namespace}/shop-{naming.shop_id}/{unique_name}"
