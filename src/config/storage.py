from pydantic_settings import BaseSettings
from typing import Optional


class StorageSettings(BaseSettings):
    """Storage configuration for the local and S3 media strategies."""
    
    # Strategy active at startup
    STORAGE_STRATEGY: str = "local"  # local | s3
    
    # Local backend
    STORAGE_LOCAL_UPLOAD_DIR: str = "uploads"
    STORAGE_LOCAL_SHOP_PROFILES_DIR: str = "shop-profiles"
    STORAGE_LOCAL_ITEMS_DIR: str = "items"
    
    # S3/MinIO configuration
    STORAGE_S3_BUCKET: str = ""
    STORAGE_S3_REGION: str = "us-east-1"
    STORAGE_S3_ENDPOINT_URL: Optional[str] = None  # Set for MinIO/local S3
    STORAGE_S3_ACCESS_KEY: Optional[str] = None
    STORAGE_S3_SECRET_KEY: Optional[str] = None
    STORAGE_S3_SHOP_PROFILES_PREFIX: str = "shop-profiles"
    STORAGE_S3_ITEMS_PREFIX: str = "items"
    STORAGE_S3_CREATE_BUCKET: bool = False
    
    model_config = {
        "env_file": ".env",
        "case_sensitive": True,
        "extra": "ignore"
    }
