"""Runtime-switchable façade over the registered storage strategies."""

import logging
import threading
from typing import BinaryIO, Dict, List, Optional

from src.models.domain import MediaCategory, StorageNamingContext, UploadedFile
from src.storage.base import StorageStrategy
from src.storage.errors import (
    InvalidMigrationError,
    MigrationError,
    NoActiveStrategyError,
    StorageError,
    StrategyUnavailableError,
    UnknownStrategyError,
)
from src.storage.policy import content_type_for

logger = logging.getLogger(__name__)


class StorageContext:
    """
    Holds the registry of strategies and the single active one.

    The active reference is swapped under a lock after the availability probe,
    so every dispatch sees either the old or the new strategy. Each dispatch
    reads the reference exactly once.

    Usage:
        context = StorageContext({"local": local, "s3": s3})
        context.set_strategy("local")
        key = context.store(upload, MediaCategory.ITEM_MEDIA, StorageNamingContext(1, 42))
    """

    def __init__(self, strategies: Dict[str, StorageStrategy]):
        self._strategies = dict(strategies)
        self._current: Optional[StorageStrategy] = None
        self._lock = threading.Lock()

    @property
    def strategies(self) -> Dict[str, StorageStrategy]:
        return dict(self._strategies)

    def get_strategy(self, name: str) -> StorageStrategy:
        strategy = self._strategies.get(name)
        if strategy is None:
            raise UnknownStrategyError(name)
        return strategy

    def set_strategy(self, name: str) -> None:
        """
        Make a registered, available strategy the active one.

        Raises:
            UnknownStrategyError: If name is not registered
            StrategyUnavailableError: If its liveness probe fails
        """
        strategy = self.get_strategy(name)
        with self._lock:
            if not strategy.is_available():
                raise StrategyUnavailableError(name)
            self._current = strategy
        logger.info(f"Switched to storage strategy: {name}")

    @property
    def current_strategy(self) -> StorageStrategy:
        strategy = self._current
        if strategy is None:
            raise NoActiveStrategyError()
        return strategy

    def current_strategy_name(self) -> str:
        strategy = self._current
        return strategy.strategy_name if strategy is not None else "none"

    def available_strategies(self) -> Dict[str, bool]:
        return {name: strategy.is_available() for name, strategy in self._strategies.items()}

    def health_status(self) -> dict:
        """Point-in-time snapshot; probes every strategy on each call."""
        availability = self.available_strategies()
        return {
            "currentStrategy": self.current_strategy_name(),
            "availableStrategies": availability,
            "strategyDetails": {
                name: {"name": strategy.strategy_name, "available": availability[name]}
                for name, strategy in self._strategies.items()
            },
        }

    # Dispatch to the active strategy

    def namespace_for(self, category: MediaCategory) -> str:
        return self.current_strategy.namespace_for(category)

    def store(self, upload: UploadedFile, category: MediaCategory, naming: StorageNamingContext) -> str:
        strategy = self.current_strategy
        logger.debug(f"Storing {category.value} using strategy: {strategy.strategy_name}")
        return strategy.store(upload, category, naming)

    def exists(self, key: str) -> bool:
        strategy = self._current
        if strategy is None:
            return False
        return strategy.exists(key)

    def size(self, key: str) -> int:
        return self.current_strategy.size(key)

    def delete(self, key: str) -> None:
        strategy = self.current_strategy
        logger.debug(f"Deleting file using strategy: {strategy.strategy_name}")
        strategy.delete(key)

    def read_chunk(self, key: str, start: int, end: int) -> bytes:
        return self.current_strategy.read_chunk(key, start, end)

    def as_resource(self, key: str) -> BinaryIO:
        return self.current_strategy.as_resource(key)

    def supports_streaming(self, key: str) -> bool:
        strategy = self._current
        if strategy is None:
            return False
        return strategy.supports_streaming(key)

    def optimal_chunk_size(self, key: str) -> int:
        strategy = self._current
        if strategy is None:
            return 1024 * 1024
        return strategy.optimal_chunk_size(key)

    def migrate(self, from_name: str, to_name: str, keys: List[str]) -> Dict[str, str]:
        """
        Copy keys from one strategy into another.

        Keys are namespace-relative and are kept unchanged in the destination.
        The batch is all-or-nothing: on the first failure the keys this batch
        created in the destination are removed. Keys that already existed
        there are left in place.

        Returns:
            Mapping of old key to new key

        Raises:
            InvalidMigrationError: If source and destination are the same strategy
            UnknownStrategyError: If either name is not registered
            StrategyUnavailableError: If either strategy is unavailable
            MigrationError: Naming the key that failed
        """
        source = self.get_strategy(from_name)
        target = self.get_strategy(to_name)
        if source is target:
            raise InvalidMigrationError(from_name)

        for name, strategy in ((from_name, source), (to_name, target)):
            if not strategy.is_available():
                raise StrategyUnavailableError(name)

        migrated: Dict[str, str] = {}
        created: List[str] = []
        for key in keys:
            try:
                data = source.read(key)
                existed = target.exists(key)
                new_key = target.write(key, data, content_type_for(key))
            except (StorageError, OSError, ValueError) as e:
                logger.error(f"Failed to migrate file {key} from {from_name} to {to_name}: {e}")
                for copied in created:
                    target.delete(copied)
                raise MigrationError(key, str(e)) from e
            migrated[key] = new_key
            if not existed:
                created.append(new_key)

        logger.info(f"Migration completed: {len(migrated)} files from {from_name} to {to_name}")
        return migrated
