"""Backup pipeline: dump -> deliver -> clean up.

Usage:
    manager = (
        BackupManager()
        .database("postgresql", {"connection_string": "postgresql://app@db/app"})
        .delivery("discord", {"webhook_url": "https://discord.com/api/webhooks/..."})
    )
    result = await manager.run()
"""

from __future__ import annotations

import contextlib
import dataclasses
import inspect
import logging
import time
from typing import Any
from typing import Awaitable
from typing import Callable
from typing import Mapping
from typing import Optional
from typing import Union

from dumphook.exceptions import BackupError
from dumphook.exceptions import Phase
from dumphook.models import BackupManagerResult
from dumphook.models import BackupResult
from dumphook.registry import StrategyRegistry
from dumphook.registry import default_registry
from dumphook.services.run_id_service import bind_run_id
from dumphook.strategies.backup.base import BackupStrategy
from dumphook.strategies.delivery.base import DeliveryStrategy
from dumphook.utils import async_timing_context
from dumphook.utils import elapsed_ms
from dumphook.utils import ensure_dir


logger = logging.getLogger(__name__)

OnSuccessCallback = Callable[[BackupManagerResult], Union[None, Awaitable[None]]]
OnErrorCallback = Callable[[BaseException, Phase], Union[None, Awaitable[None]]]
OnProgressCallback = Callable[[str, str], None]


async def _maybe_await(result: Any) -> None:
    if inspect.isawaitable(result):
        await result


@dataclasses.dataclass
class _Target:
    type: str
    config: Mapping[str, Any]


class BackupManager:
    """Fluent builder that runs one backup and delivers it."""

    def __init__(self, registry: Optional[StrategyRegistry] = None) -> None:
        self._registry = registry or default_registry()
        self._database: Optional[_Target] = None
        self._delivery: Optional[_Target] = None
        self._compress = True
        self._retain_backup = False
        self._temp_dir: Optional[str] = None
        self._on_success: Optional[OnSuccessCallback] = None
        self._on_error: Optional[OnErrorCallback] = None
        self._on_progress: Optional[OnProgressCallback] = None

    def database(self, type: str, config: Mapping[str, Any]) -> "BackupManager":
        self._database = _Target(type, config)
        return self

    def delivery(self, type: str, config: Mapping[str, Any]) -> "BackupManager":
        self._delivery = _Target(type, config)
        return self

    def compress(self, enabled: bool) -> "BackupManager":
        self._compress = enabled
        return self

    def retain_backup(self, enabled: bool) -> "BackupManager":
        self._retain_backup = enabled
        return self

    def temp_dir(self, path: Optional[str]) -> "BackupManager":
        self._temp_dir = path
        return self

    def on_success(self, callback: OnSuccessCallback) -> "BackupManager":
        self._on_success = callback
        return self

    def on_error(self, callback: OnErrorCallback) -> "BackupManager":
        self._on_error = callback
        return self

    def on_progress(self, callback: OnProgressCallback) -> "BackupManager":
        self._on_progress = callback
        return self

    def _progress(self, phase: str, message: str) -> None:
        logger.info(f"[{phase}] {message}")
        if self._on_progress is not None:
            self._on_progress(phase, message)

    async def run(self) -> BackupManagerResult:
        """Run the backup, deliver it, then remove the local artifact unless retained.

        Raises:
            ValueError: If database() or delivery() was not called
            UnknownStrategyError: If a strategy name is not registered
            BackupError: If a phase fails (phase attribute says which)
        """
        if self._database is None:
            raise ValueError("Database configuration is required. Call .database() first.")
        if self._delivery is None:
            raise ValueError("Delivery configuration is required. Call .delivery() first.")

        backup_strategy = self._registry.get_backup_strategy(self._database.type)
        delivery_strategy = self._registry.get_delivery_strategy(self._delivery.type)

        with bind_run_id() as run_id:
            logger.info(f"Backup run {run_id}: {backup_strategy.name} -> {delivery_strategy.name}")
            try:
                return await self._execute(self._database, self._delivery, backup_strategy, delivery_strategy)
            finally:
                await delivery_strategy.close()

    async def _execute(
        self,
        database: _Target,
        delivery: _Target,
        backup_strategy: BackupStrategy,
        delivery_strategy: DeliveryStrategy,
    ) -> BackupManagerResult:
        start = time.perf_counter()
        phase: Phase = "backup"
        backup_result: Optional[BackupResult] = None

        try:
            if self._temp_dir:
                ensure_dir(self._temp_dir)

            self._progress("backup", f"Starting {backup_strategy.name} backup...")
            backup_config = backup_strategy.parse_config({**database.config, "compress": self._compress})
            async with async_timing_context("backup", extra={"strategy": backup_strategy.name}):
                backup_result = await backup_strategy.backup(backup_config, self._temp_dir)
            self._progress("backup", f"Backup completed: {backup_result.file_name}")

            phase = "delivery"
            self._progress("delivery", f"Sending to {delivery_strategy.name}...")
            delivery_config = delivery_strategy.parse_config(delivery.config)
            delivery_result = await delivery_strategy.deliver(delivery_config, backup_result)
            if not delivery_result.success:
                raise BackupError(delivery_result.error or "Delivery failed", "delivery")
            self._progress("delivery", "Delivery completed successfully")

            if not self._retain_backup:
                phase = "cleanup"
                self._progress("cleanup", "Cleaning up temporary files...")
                await backup_strategy.cleanup(backup_result.file_path)
                self._progress("cleanup", "Cleanup completed")

            result = BackupManagerResult(
                backup=backup_result,
                delivery=delivery_result,
                total_duration_ms=elapsed_ms(start),
            )
            if self._on_success is not None:
                await _maybe_await(self._on_success(result))
            return result
        except Exception as e:
            failed_phase: Phase = e.phase if isinstance(e, BackupError) else phase
            logger.error(f"Backup run failed during {failed_phase}: {e}")

            if backup_result is not None and not self._retain_backup:
                with contextlib.suppress(OSError):
                    await backup_strategy.cleanup(backup_result.file_path)

            if self._on_error is not None:
                await _maybe_await(self._on_error(e, failed_phase))
            raise


@dataclasses.dataclass
class WebhookOptions:
    type: str
    url: str
    username: Optional[str] = None


@dataclasses.dataclass
class SimpleBackupOptions:
    database: str
    connection_string: str
    webhook: WebhookOptions
    database_name: Optional[str] = None
    compress: Optional[bool] = None
    retain_backup: Optional[bool] = None


async def backup(options: SimpleBackupOptions, registry: Optional[StrategyRegistry] = None) -> BackupManagerResult:
    """One-call API for connection-string databases and webhook deliveries."""
    database_config: dict[str, Any] = {"connection_string": options.connection_string}
    if options.database_name is not None:
        database_config["database"] = options.database_name

    delivery_config: dict[str, Any] = {"webhook_url": options.webhook.url}
    if options.webhook.username is not None:
        delivery_config["username"] = options.webhook.username

    manager = (
        BackupManager(registry)
        .database(options.database, database_config)
        .delivery(options.webhook.type, delivery_config)
    )
    if options.compress is not None:
        manager.compress(options.compress)
    if options.retain_backup is not None:
        manager.retain_backup(options.retain_backup)

    return await manager.run()
