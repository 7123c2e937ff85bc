"""Name -> factory registry for backup and delivery strategies.

A registry is an ordinary object handed to BackupManager; there is no
process-wide instance. default_registry() builds one with the built-in
strategies.
"""

from typing import Callable
from typing import Dict
from typing import List

from dumphook.exceptions import DuplicateStrategyError
from dumphook.exceptions import UnknownStrategyError
from dumphook.strategies.backup.base import BackupStrategy
from dumphook.strategies.delivery.base import DeliveryStrategy


BackupStrategyFactory = Callable[[], BackupStrategy]
DeliveryStrategyFactory = Callable[[], DeliveryStrategy]


class StrategyRegistry:
    def __init__(self) -> None:
        self._backup: Dict[str, BackupStrategyFactory] = {}
        self._delivery: Dict[str, DeliveryStrategyFactory] = {}

    def register_backup(self, name: str, factory: BackupStrategyFactory) -> None:
        if name in self._backup:
            raise DuplicateStrategyError(f'Backup strategy "{name}" is already registered')
        self._backup[name] = factory

    def register_delivery(self, name: str, factory: DeliveryStrategyFactory) -> None:
        if name in self._delivery:
            raise DuplicateStrategyError(f'Delivery strategy "{name}" is already registered')
        self._delivery[name] = factory

    def get_backup_strategy(self, name: str) -> BackupStrategy:
        factory = self._backup.get(name)
        if factory is None:
            raise UnknownStrategyError("backup", name, self.list_backup_strategies())
        return factory()

    def get_delivery_strategy(self, name: str) -> DeliveryStrategy:
        factory = self._delivery.get(name)
        if factory is None:
            raise UnknownStrategyError("delivery", name, self.list_delivery_strategies())
        return factory()

    def list_backup_strategies(self) -> List[str]:
        return list(self._backup)

    def list_delivery_strategies(self) -> List[str]:
        return list(self._delivery)


def default_registry() -> StrategyRegistry:
    """Registry with every built-in strategy ('postgres' aliases 'postgresql')."""
    from dumphook.strategies.backup.mongodb import MongoBackupStrategy
    from dumphook.strategies.backup.mysql import MySQLBackupStrategy
    from dumphook.strategies.backup.postgresql import PostgresBackupStrategy
    from dumphook.strategies.backup.redis import RedisBackupStrategy
    from dumphook.strategies.backup.sqlite import SQLiteBackupStrategy
    from dumphook.strategies.delivery.discord import DiscordDeliveryStrategy
    from dumphook.strategies.delivery.telegram import TelegramDeliveryStrategy

    registry = StrategyRegistry()
    registry.register_backup("postgresql", PostgresBackupStrategy)
    registry.register_backup("postgres", PostgresBackupStrategy)
    registry.register_backup("mysql", MySQLBackupStrategy)
    registry.register_backup("mongodb", MongoBackupStrategy)
    registry.register_backup("redis", RedisBackupStrategy)
    registry.register_backup("sqlite", SQLiteBackupStrategy)
    registry.register_delivery("discord", DiscordDeliveryStrategy)
    registry.register_delivery("telegram", TelegramDeliveryStrategy)
    return registry
