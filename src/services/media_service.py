"""Bookkeeping of which stored file belongs to which shop or item."""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from src.db.models import MediaRecord, owner_id_for
from src.models.domain import MediaCategory, MediaType, StorageNamingContext, UploadedFile
from src.storage.context import StorageContext
from src.storage.policy import determine_media_type

logger = logging.getLogger(__name__)


class MediaService:
    """
    Stores uploads through the storage context and records the resulting keys.

    Replacing or deleting media removes the old bytes best-effort: the record
    change is what matters, leftover files are only logged.
    """

    def __init__(self, storage: StorageContext, session: Session):
        self.storage = storage
        self.session = session

    def upload_shop_profile(self, shop_id: int, upload: UploadedFile) -> MediaRecord:
        """Store a shop profile image, replacing any previous one."""
        naming = StorageNamingContext(shop_id=shop_id)
        key = self.storage.store(upload, MediaCategory.SHOP_PROFILE, naming)
        record = self.get_shop_profile(shop_id)
        return self._save_record(record, MediaCategory.SHOP_PROFILE, naming, key, upload)

    def upload_item_media(self, shop_id: int, item_id: int, upload: UploadedFile) -> MediaRecord:
        """Store an item image or video, replacing any previous one."""
        naming = StorageNamingContext(shop_id=shop_id, item_id=item_id)
        key = self.storage.store(upload, MediaCategory.ITEM_MEDIA, naming)
        record = self.get_item_media(item_id)
        return self._save_record(record, MediaCategory.ITEM_MEDIA, naming, key, upload)

    def get_shop_profile(self, shop_id: int) -> Optional[MediaRecord]:
        stmt = select(MediaRecord).where(
            MediaRecord.category == MediaCategory.SHOP_PROFILE,
            MediaRecord.owner_id == shop_id,
        )
        return self.session.execute(stmt).scalars().first()

    def get_item_media(self, item_id: int) -> Optional[MediaRecord]:
        stmt = select(MediaRecord).where(
            MediaRecord.category == MediaCategory.ITEM_MEDIA,
            MediaRecord.owner_id == item_id,
        )
        return self.session.execute(stmt).scalars().first()

    def delete_shop_profile(self, shop_id: int) -> bool:
        return self._delete_record(self.get_shop_profile(shop_id))

    def delete_item_media(self, item_id: int) -> bool:
        return self._delete_record(self.get_item_media(item_id))

    def shop_media_stats(self, shop_id: int) -> dict:
        """Counts of item media stored for a shop, by media type."""
        stmt = select(MediaRecord).where(
            MediaRecord.category == MediaCategory.ITEM_MEDIA,
            MediaRecord.shop_id == shop_id,
        )
        records = self.session.execute(stmt).scalars().all()

        image_count = sum(1 for r in records if r.media_type == MediaType.IMAGE)
        video_count = sum(1 for r in records if r.media_type == MediaType.VIDEO)

        logger.debug(
            f"Media stats for shop {shop_id}: {len(records)} total, "
            f"{image_count} images, {video_count} videos"
        )
        return {
            "shopId": shop_id,
            "totalItems": len(records),
            "imageCount": image_count,
            "videoCount": video_count,
            "lastChecked": datetime.now(timezone.utc),
        }

    def _save_record(
        self,
        record: Optional[MediaRecord],
        category: MediaCategory,
        naming: StorageNamingContext,
        key: str,
        upload: UploadedFile,
    ) -> MediaRecord:
        previous_key = record.storage_key if record else None

        if record is None:
            record = MediaRecord(
                category=category,
                shop_id=naming.shop_id,
                item_id=naming.item_id,
                owner_id=owner_id_for(category, naming.shop_id, naming.item_id),
            )
            self.session.add(record)

        record.shop_id = naming.shop_id
        record.storage_key = key
        record.media_type = determine_media_type(upload.content_type)
        record.file_name = upload.filename
        record.content_type = upload.content_type
        record.size_bytes = upload.size

        try:
            self.session.commit()
        except Exception as e:
            logger.error(f"Failed to save media record for {key}: {e}")
            self.session.rollback()
            # The new file is unreferenced now
            self.storage.delete(key)
            raise

        self.session.refresh(record)

        if previous_key and previous_key != key:
            self.storage.delete(previous_key)

        logger.info(
            f"Saved {category.value} record: shop_id={naming.shop_id}, "
            f"item_id={naming.item_id}, key={key}"
        )
        return record

    def _delete_record(self, record: Optional[MediaRecord]) -> bool:
        if record is None:
            return False

        key = record.storage_key
        self.session.delete(record)
        self.session.commit()
        self.storage.delete(key)

        logger.info(f"Deleted {record.category.value} record for key {key}")
        return True
