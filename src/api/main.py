"""FastAPI application for marketplace media storage and streaming."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, UploadFile, File, Form, Depends, Header, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, Response

from src.api.dependencies import (
    initialize_dependencies,
    cleanup_dependencies,
    get_media_service,
    get_storage_context,
    get_streaming_handler,
)
from src.api.schemas import (
    ErrorResponse,
    HealthResponse,
    MediaStatsResponse,
    MigrateRequest,
    MigrateResponse,
    StorageHealthResponse,
    StorageTestResponse,
    StrategyRequest,
    StrategyResponse,
    StrategySwitchResponse,
    UploadResponse,
)
from src.models.domain import MediaCategory, UploadedFile
from src.services.media_service import MediaService
from src.services.media_streaming import RangeStreamingHandler
from src.storage.context import StorageContext
from src.storage.errors import (
    FileTooLargeError,
    InvalidMigrationError,
    InvalidRangeError,
    NoActiveStrategyError,
    PolicyViolationError,
    StorageError,
    StorageNotFoundError,
    StrategyUnavailableError,
    UnknownStrategyError,
)
from src.storage.policy import MAX_IMAGE_SIZE, MAX_VIDEO_SIZE, check_size

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown."""
    # Startup
    initialize_dependencies()
    logger.info("Media storage API ready")

    yield

    # Shutdown
    logger.info("Shutting down API...")
    cleanup_dependencies()
    logger.info("API shutdown complete")


app = FastAPI(
    title="Market Media",
    description="Media upload, storage strategy management and range streaming for the marketplace",
    version="1.0.0",
    lifespan=lifespan,
)


def _status_for(exc: StorageError) -> int:
    if isinstance(exc, StorageNotFoundError):
        return 404
    if isinstance(exc, InvalidRangeError):
        return 416
    if isinstance(exc, FileTooLargeError):
        return 413
    if isinstance(exc, (PolicyViolationError, UnknownStrategyError, StrategyUnavailableError, InvalidMigrationError)):
        return 400
    if isinstance(exc, NoActiveStrategyError):
        return 503
    return 500


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    status_code = _status_for(exc)
    if status_code >= 500:
        logger.error(f"Storage error on {request.url.path}: {exc}")
    else:
        logger.warning(f"Rejected {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=status_code, content={"error": str(exc)})


async def _read_upload(file: UploadFile, max_size: int) -> UploadedFile:
    """Read the part body, stopping once it is known to exceed max_size."""
    if file.size is not None:
        check_size(file.size, max_size)
    data = await file.read(max_size + 1)
    check_size(len(data), max_size)
    return UploadedFile(data=data, filename=file.filename, content_type=file.content_type)


# ==================== UPLOAD ENDPOINTS ====================

@app.post(
    "/files/upload/shop-profile",
    response_model=UploadResponse,
    responses={400: {"model": ErrorResponse}, 413: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="Upload shop profile image",
)
async def upload_shop_profile(
    file: UploadFile = File(..., description="Image (jpg, jpeg, png, gif, webp; max 5MB)"),
    shop_id: int = Form(..., alias="shopId"),
    media_service: MediaService = Depends(get_media_service),
):
    """Store a shop profile image, replacing the shop's previous one."""
    logger.info(f"Uploading shop profile image for shop ID: {shop_id}")
    upload = await _read_upload(file, MAX_IMAGE_SIZE)

    try:
        record = await run_in_threadpool(media_service.upload_shop_profile, shop_id, upload)
    except StorageError:
        raise
    except Exception as e:
        logger.error(f"Failed to upload shop profile image for shop ID: {shop_id}: {e}")
        return JSONResponse(status_code=500, content={"error": f"Failed to upload image: {e}"})

    logger.info(f"Successfully uploaded shop profile image: {record.storage_key}")
    return UploadResponse(
        storage_key=record.storage_key,
        message="Shop profile image uploaded successfully",
        media_type=record.media_type.value,
    )


@app.post(
    "/files/upload/item-media",
    response_model=UploadResponse,
    responses={400: {"model": ErrorResponse}, 413: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="Upload item image or video",
)
async def upload_item_media(
    file: UploadFile = File(..., description="Image (max 5MB) or video (mp4, avi, mov, wmv, flv, webm, mkv; max 50MB)"),
    shop_id: int = Form(..., alias="shopId"),
    item_id: int = Form(..., alias="itemId"),
    media_service: MediaService = Depends(get_media_service),
):
    """Store an item's media, replacing the item's previous media."""
    logger.info(f"Uploading item media for shop ID: {shop_id}, item ID: {item_id}")
    upload = await _read_upload(file, MAX_VIDEO_SIZE)

    try:
        record = await run_in_threadpool(media_service.upload_item_media, shop_id, item_id, upload)
    except StorageError:
        raise
    except Exception as e:
        logger.error(f"Failed to upload item media for shop ID: {shop_id}, item ID: {item_id}: {e}")
        return JSONResponse(status_code=500, content={"error": f"Failed to upload media: {e}"})

    logger.info(f"Successfully uploaded item media: {record.storage_key}")
    return UploadResponse(
        storage_key=record.storage_key,
        message="Item media uploaded successfully",
        media_type=record.media_type.value,
    )


# ==================== STREAMING ENDPOINTS ====================

@app.get("/files/shop/{shop_id}/profile", summary="Stream shop profile image")
def get_shop_profile(
    shop_id: int,
    range_header: Optional[str] = Header(None, alias="Range"),
    media_service: MediaService = Depends(get_media_service),
    handler: RangeStreamingHandler = Depends(get_streaming_handler),
):
    record = media_service.get_shop_profile(shop_id)
    if record is None:
        logger.debug(f"Shop {shop_id} has no profile image")
        return JSONResponse(status_code=404, content={"error": f"Shop {shop_id} has no profile image"})

    return handler.stream(record.storage_key, range_header, f"shop-profile-{shop_id}")


@app.get("/files/item/{item_id}/media", summary="Stream item media")
def get_item_media(
    item_id: int,
    range_header: Optional[str] = Header(None, alias="Range"),
    media_service: MediaService = Depends(get_media_service),
    handler: RangeStreamingHandler = Depends(get_streaming_handler),
):
    record = media_service.get_item_media(item_id)
    if record is None:
        logger.debug(f"Item {item_id} has no media")
        return JSONResponse(status_code=404, content={"error": f"Item {item_id} has no media"})

    return handler.stream(record.storage_key, range_header, f"item-media-{item_id}")


@app.get("/files/shop-profiles/{shop_id}/{filename}", summary="Stream shop profile image by filename")
def get_shop_profile_by_filename(
    shop_id: int,
    filename: str,
    range_header: Optional[str] = Header(None, alias="Range"),
    storage: StorageContext = Depends(get_storage_context),
    handler: RangeStreamingHandler = Depends(get_streaming_handler),
):
    key = f"{storage.namespace_for(MediaCategory.SHOP_PROFILE)}/shop-{shop_id}/{filename}"
    return handler.stream(key, range_header, filename)


@app.get("/files/items/{shop_id}/{filename}", summary="Stream item media by filename")
def get_item_media_by_filename(
    shop_id: int,
    filename: str,
    range_header: Optional[str] = Header(None, alias="Range"),
    storage: StorageContext = Depends(get_storage_context),
    handler: RangeStreamingHandler = Depends(get_streaming_handler),
):
    key = f"{storage.namespace_for(MediaCategory.ITEM_MEDIA)}/shop-{shop_id}/{filename}"
    return handler.stream(key, range_header, filename)


# ==================== MEDIA LIFECYCLE ====================

@app.delete("/files/shop/{shop_id}/profile", status_code=204, summary="Remove shop profile image")
def delete_shop_profile(shop_id: int, media_service: MediaService = Depends(get_media_service)):
    if not media_service.delete_shop_profile(shop_id):
        return JSONResponse(status_code=404, content={"error": f"Shop {shop_id} has no profile image"})
    return Response(status_code=204)


@app.delete("/files/item/{item_id}/media", status_code=204, summary="Remove item media")
def delete_item_media(item_id: int, media_service: MediaService = Depends(get_media_service)):
    if not media_service.delete_item_media(item_id):
        return JSONResponse(status_code=404, content={"error": f"Item {item_id} has no media"})
    return Response(status_code=204)


@app.get("/files/shop/{shop_id}/media-stats", response_model=MediaStatsResponse, summary="Item media counts for a shop")
def get_shop_media_stats(shop_id: int, media_service: MediaService = Depends(get_media_service)):
    return MediaStatsResponse.model_validate(media_service.shop_media_stats(shop_id))


# ==================== STORAGE STRATEGY ====================

@app.get("/api/storage/strategy", response_model=StrategyResponse, summary="Current storage strategy")
def get_current_strategy(storage: StorageContext = Depends(get_storage_context)):
    health = storage.health_status()
    return StrategyResponse(
        current_strategy=health["currentStrategy"],
        available_strategies=health["availableStrategies"],
        health_status=StorageHealthResponse.model_validate(health),
    )


@app.post(
    "/api/storage/strategy",
    response_model=StrategySwitchResponse,
    responses={400: {"model": ErrorResponse}},
    summary="Switch storage strategy",
)
def set_strategy(request: StrategyRequest, storage: StorageContext = Depends(get_storage_context)):
    if not request.strategy or not request.strategy.strip():
        return JSONResponse(status_code=400, content={"error": "Strategy name is required"})

    storage.set_strategy(request.strategy.strip())

    logger.info(f"Storage strategy switched to: {storage.current_strategy_name()}")
    return StrategySwitchResponse(
        message="Storage strategy switched successfully",
        current_strategy=storage.current_strategy_name(),
        available_strategies=storage.available_strategies(),
    )


@app.get("/api/storage/health", response_model=StorageHealthResponse, summary="Storage strategy health")
def get_storage_health(storage: StorageContext = Depends(get_storage_context)):
    return StorageHealthResponse.model_validate(storage.health_status())


@app.post(
    "/api/storage/migrate",
    response_model=MigrateResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="Copy files between strategies",
)
def migrate_files(request: MigrateRequest, storage: StorageContext = Depends(get_storage_context)):
    if not request.from_strategy or not request.to_strategy or request.storage_identifiers is None:
        return JSONResponse(
            status_code=400,
            content={"error": "fromStrategy, toStrategy, and storageIdentifiers are required"}
        )

    migration_map = storage.migrate(request.from_strategy, request.to_strategy, request.storage_identifiers)

    logger.info(
        f"File migration completed: {len(request.storage_identifiers)} files "
        f"from {request.from_strategy} to {request.to_strategy}"
    )
    return MigrateResponse(
        message="Migration completed successfully",
        migrated_files=len(migration_map),
        migration_map=migration_map,
    )


@app.post("/api/storage/test", response_model=StorageTestResponse, summary="Probe the active strategy")
def test_storage_strategy(storage: StorageContext = Depends(get_storage_context)):
    current = storage.current_strategy_name()
    is_available = storage.available_strategies().get(current)

    if not is_available:
        return StorageTestResponse(
            current_strategy=current,
            is_available=is_available,
            test_status="failure",
            message="Active storage strategy is not available",
        )
    return StorageTestResponse(
        current_strategy=current,
        is_available=True,
        test_status="success",
        message="Storage strategy is working correctly",
    )


@app.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Check if API is running and the active storage strategy is usable",
)
def health_check(storage: StorageContext = Depends(get_storage_context)):
    current = storage.current_strategy_name()
    available = bool(storage.available_strategies().get(current))
    return HealthResponse(
        status="healthy" if available else "degraded",
        storage={"current_strategy": current, "available": available},
    )
