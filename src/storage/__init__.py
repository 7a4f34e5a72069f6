from .base import StorageStrategy
from .context import StorageContext
from .errors import (
    StorageError,
    StorageNotFoundError,
    InvalidRangeError,
    PolicyViolationError,
    FileTooLargeError,
    UnknownStrategyError,
    StrategyUnavailableError,
    NoActiveStrategyError,
    InvalidMigrationError,
    StorageIOError,
    MigrationError,
)
from .local import LocalStorageStrategy
from .s3 import S3StorageStrategy
from .factory import create_storage_context


__all__ = [
    "StorageStrategy",
    "StorageContext",
    "LocalStorageStrategy",
    "S3StorageStrategy",
    "create_storage_context",
    "StorageError",
    "StorageNotFoundError",
    "InvalidRangeError",
    "PolicyViolationError",
    "FileTooLargeError",
    "UnknownStrategyError",
    "StrategyUnavailableError",
    "NoActiveStrategyError",
    "InvalidMigrationError",
    "StorageIOError",
    "MigrationError",
]
