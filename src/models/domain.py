from dataclasses import dataclass
from typing import Optional
from enum import Enum


class MediaType(str, Enum):
    """Rendering classification attached to stored media."""
    IMAGE = "IMAGE"
    VIDEO = "VIDEO"


class MediaCategory(str, Enum):
    """What a stored file belongs to; selects the storage namespace and upload policy."""
    SHOP_PROFILE = "shop_profile"
    ITEM_MEDIA = "item_media"


@dataclass(frozen=True)
class UploadedFile:
    """Raw upload handed to a storage strategy."""
    data: bytes
    filename: Optional[str]
    content_type: Optional[str]

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class StorageNamingContext:
    """Owning entity ids used to build a deterministic storage prefix."""
    shop_id: int
    item_id: Optional[int] = None


@dataclass(frozen=True)
class ByteRange:
    """Inclusive byte span validated against a resource size."""
    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start + 1
