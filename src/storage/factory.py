"""Factory for building the storage context with every known strategy registered."""

import logging

from src.config.storage import StorageSettings
from src.models.domain import MediaCategory
from src.storage.context import StorageContext
from src.storage.errors import StorageError
from src.storage.local import LocalStorageStrategy
from src.storage.s3 import S3StorageStrategy

logger = logging.getLogger(__name__)

FALLBACK_STRATEGY = "local"


def create_storage_context(settings: StorageSettings | None = None) -> StorageContext:
    """
    Create the storage context and activate the configured default strategy.

    Both strategies are always registered so they can be switched to at runtime.
    If the default cannot be activated, local storage is used instead; if that
    fails too, no strategy is active until one is set explicitly.

    Args:
        settings: Optional settings instance (creates new if not provided)

    Returns:
        Configured storage context

    Example:
        # In production
        context = create_storage_context()

        # In tests with dependency injection
        test_settings = StorageSettings(STORAGE_LOCAL_UPLOAD_DIR=str(tmp_path))
        context = create_storage_context(settings=test_settings)
    """
    if settings is None:
        settings = StorageSettings()

    context = StorageContext({
        LocalStorageStrategy.strategy_name: _create_local_strategy(settings),
        S3StorageStrategy.strategy_name: _create_s3_strategy(settings),
    })

    default_strategy = settings.STORAGE_STRATEGY.lower()
    try:
        context.set_strategy(default_strategy)
    except StorageError as e:
        logger.error(f"Could not activate default storage strategy '{default_strategy}': {e}")
        if default_strategy != FALLBACK_STRATEGY:
            try:
                context.set_strategy(FALLBACK_STRATEGY)
            except StorageError as fallback_error:
                logger.error(f"Could not activate fallback storage strategy: {fallback_error}")

    logger.info(f"Storage context initialized with strategy: {context.current_strategy_name()}")
    return context


def _create_local_strategy(settings: StorageSettings) -> LocalStorageStrategy:
    """Create local strategy rooted at the upload directory."""
    return LocalStorageStrategy(
        base_path=settings.STORAGE_LOCAL_UPLOAD_DIR,
        namespaces={
            MediaCategory.SHOP_PROFILE: settings.STORAGE_LOCAL_SHOP_PROFILES_DIR,
            MediaCategory.ITEM_MEDIA: settings.STORAGE_LOCAL_ITEMS_DIR,
        },
    )


def _create_s3_strategy(settings: StorageSettings) -> S3StorageStrategy:
    """Create S3 strategy; bucket problems are logged, not raised."""
    strategy = S3StorageStrategy(
        bucket=settings.STORAGE_S3_BUCKET,
        namespaces={
            MediaCategory.SHOP_PROFILE: settings.STORAGE_S3_SHOP_PROFILES_PREFIX,
            MediaCategory.ITEM_MEDIA: settings.STORAGE_S3_ITEMS_PREFIX,
        },
        endpoint_url=settings.STORAGE_S3_ENDPOINT_URL,  # None for real AWS, set for MinIO
        access_key=settings.STORAGE_S3_ACCESS_KEY,
        secret_key=settings.STORAGE_S3_SECRET_KEY,
        region=settings.STORAGE_S3_REGION,
    )
    strategy.initialize(create_bucket=settings.STORAGE_S3_CREATE_BUCKET)
    return strategy
