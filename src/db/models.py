from sqlalchemy import String, Integer, DateTime, Enum, Index, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from datetime import datetime, timezone
from typing import Optional

from src.models.domain import MediaCategory, MediaType


class Base(DeclarativeBase):
    """Base class for all database models."""
    pass


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def owner_id_for(category: MediaCategory, shop_id: int, item_id: Optional[int]) -> int:
    """The id a media record is unique on within its category."""
    return item_id if category == MediaCategory.ITEM_MEDIA else shop_id


class MediaRecord(Base):
    """Which storage key holds a shop's profile image or an item's media."""
    __tablename__ = "media_records"
    __table_args__ = (
        UniqueConstraint("category", "owner_id", name="uq_media_records_owner"),
        Index("ix_media_records_item", "item_id"),
    )
    
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    
    # Owner
    category: Mapped[MediaCategory] = mapped_column(Enum(MediaCategory))
    shop_id: Mapped[int] = mapped_column(Integer, index=True)
    item_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # None for shop profiles
    owner_id: Mapped[int] = mapped_column(Integer)  # shop_id for profiles, item_id for item media
    
    # Stored file
    storage_key: Mapped[str] = mapped_column(String(512))
    media_type: Mapped[MediaType] = mapped_column(Enum(MediaType))
    file_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)  # Original upload name
    content_type: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    size_bytes: Mapped[int] = mapped_column(Integer, default=0)
    
    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)
