"""Exceptions raised by storage strategies and the storage context."""


class StorageError(Exception):
    """Base exception for storage errors."""
    pass


class StorageNotFoundError(StorageError, FileNotFoundError):
    """Raised when a storage key does not exist in the active backend."""

    def __init__(self, key: str):
        super().__init__(f"Key not found: {key}")
        self.storage_key = key


class InvalidRangeError(StorageError, ValueError):
    """Raised when a byte range is malformed or outside the resource."""
    pass


class PolicyViolationError(StorageError, ValueError):
    """Raised when an upload is rejected by the media policy."""
    pass


class FileTooLargeError(PolicyViolationError):
    """Raised when an upload exceeds the size ceiling of its media type."""
    pass


class UnknownStrategyError(StorageError, ValueError):
    """Raised when a strategy name is not registered."""

    def __init__(self, name: str):
        super().__init__(f"Storage strategy not found: {name}")
        self.strategy_name = name


class StrategyUnavailableError(StorageError):
    """Raised when a registered strategy fails its liveness probe."""

    def __init__(self, name: str):
        super().__init__(f"Storage strategy is not available: {name}")
        self.strategy_name = name


class NoActiveStrategyError(StorageError, RuntimeError):
    """Raised when an operation is dispatched before any strategy is active."""

    def __init__(self):
        super().__init__("No storage strategy is set")


class InvalidMigrationError(StorageError, ValueError):
    """Raised when a migration request names the same strategy as source and destination."""

    def __init__(self, name: str):
        super().__init__(f"Source and destination strategy must differ: {name}")
        self.strategy_name = name


class StorageIOError(StorageError, IOError):
    """Raised when the backing store fails to read or write bytes."""
    pass


class MigrationError(StorageIOError):
    """Raised when copying a key between strategies fails."""

    def __init__(self, key: str, reason: str):
        super().__init__(f"Migration failed for file: {key} ({reason})")
        self.storage_key = key
