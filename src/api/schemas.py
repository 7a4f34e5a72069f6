"""Pydantic schemas for API request/response models."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import Dict, List, Optional
from datetime import datetime
from enum import Enum


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys; accepts either form on input."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MediaTypeEnum(str, Enum):
    """Media type values for API responses."""
    IMAGE = "IMAGE"
    VIDEO = "VIDEO"


class UploadResponse(CamelModel):
    """Response for a successful upload."""
    storage_key: str = Field(..., description="Key identifying the stored file")
    message: str
    media_type: MediaTypeEnum

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "storageKey": "items/shop-7/item-42-3f2a9c1e-0d4b-4c55-9a57-2b8f1f6e1c11.mp4",
                "message": "Item media uploaded successfully",
                "mediaType": "VIDEO"
            }
        }
    )


class StrategyRequest(CamelModel):
    """Request body for switching the active storage strategy."""
    strategy: Optional[str] = Field(None, description="Registered strategy name, e.g. local or s3")


class StrategyDetail(CamelModel):
    name: str
    available: bool


class StorageHealthResponse(CamelModel):
    """Point-in-time availability of every storage strategy."""
    current_strategy: str
    available_strategies: Dict[str, bool]
    strategy_details: Dict[str, StrategyDetail]


class StrategyResponse(CamelModel):
    """Response for the current strategy query."""
    current_strategy: str
    available_strategies: Dict[str, bool]
    health_status: StorageHealthResponse


class StrategySwitchResponse(CamelModel):
    """Response after switching strategy."""
    message: str
    current_strategy: str
    available_strategies: Dict[str, bool]


class MigrateRequest(CamelModel):
    """Request body for copying files between strategies."""
    from_strategy: Optional[str] = None
    to_strategy: Optional[str] = None
    storage_identifiers: Optional[List[str]] = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "fromStrategy": "local",
                "toStrategy": "s3",
                "storageIdentifiers": ["shop-profiles/shop-1/profile-3f2a9c1e.png"]
            }
        }
    )


class MigrateResponse(CamelModel):
    """Response for a completed migration."""
    message: str
    migrated_files: int
    migration_map: Dict[str, str]


class StorageTestResponse(CamelModel):
    """Response for the storage self-test."""
    current_strategy: str
    is_available: Optional[bool] = None
    test_status: str
    message: str


class MediaStatsResponse(CamelModel):
    """Item media counts for a shop."""
    shop_id: int
    total_items: int
    image_count: int
    video_count: int
    last_checked: datetime


class ServiceHealth(CamelModel):
    current_strategy: str
    available: bool


class HealthResponse(CamelModel):
    """Service health."""
    status: str
    storage: ServiceHealth


class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str = Field(..., description="Error message")

    model_config = {
        "json_schema_extra": {
            "example": {
                "error": "File size must be less than 5MB"
            }
        }
    }
