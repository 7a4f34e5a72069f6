"""FastAPI dependency injection for database, storage and streaming."""

from typing import Generator
from fastapi import Depends
from sqlalchemy.orm import Session

from src.db.session import DatabaseSessionManager
from src.config.database import DatabaseSettings
from src.config.storage import StorageSettings
from src.config.settings import Settings
from src.config.logging import setup_logging
from src.storage.factory import create_storage_context
from src.storage.context import StorageContext
from src.services.media_service import MediaService
from src.services.media_streaming import RangeStreamingHandler


# Global instances (initialized on startup)
_db_manager: DatabaseSessionManager | None = None
_general_settings: Settings | None = None
_storage_context: StorageContext | None = None
_streaming_handler: RangeStreamingHandler | None = None


def initialize_dependencies():
    """
    Initialize global dependencies on application startup.

    Call this in FastAPI lifespan/startup event.
    """
    global _db_manager, _general_settings, _storage_context, _streaming_handler

    _general_settings = Settings()
    setup_logging(_general_settings)

    db_settings = DatabaseSettings()
    _db_manager = DatabaseSessionManager(
        database_url=db_settings.DATABASE_URL,
        echo=db_settings.DATABASE_ECHO
    )
    _db_manager.create_tables_sync()

    _storage_context = create_storage_context(StorageSettings())
    _streaming_handler = RangeStreamingHandler(
        _storage_context,
        max_chunk_size=_general_settings.STREAM_MAX_CHUNK_BYTES
    )


def cleanup_dependencies():
    """
    Cleanup dependencies on application shutdown.

    Call this in FastAPI lifespan/shutdown event.
    """
    global _db_manager
    if _db_manager:
        _db_manager.close()


def get_db_session() -> Generator[Session, None, None]:
    """
    Dependency for database session.

    Usage:
        @app.get("/files/item/{item_id}/media")
        def get_item_media(item_id: int, db: Session = Depends(get_db_session)):
            ...
    """
    if not _db_manager:
        raise RuntimeError("Dependencies not initialized. Call initialize_dependencies() on startup.")

    with _db_manager.get_sync_session() as session:
        yield session


def get_storage_context() -> StorageContext:
    """
    Dependency for the shared storage context.

    The same instance is returned on every call so strategy switches are
    visible to all requests.
    """
    if not _storage_context:
        raise RuntimeError("Dependencies not initialized.")
    return _storage_context


def get_streaming_handler() -> RangeStreamingHandler:
    """Dependency for the range streaming handler."""
    if not _streaming_handler:
        raise RuntimeError("Dependencies not initialized.")
    return _streaming_handler


def get_media_service(
    storage: StorageContext = Depends(get_storage_context),
    db: Session = Depends(get_db_session),
) -> MediaService:
    """Dependency for the per-request media service."""
    return MediaService(storage=storage, session=db)

