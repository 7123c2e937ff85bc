"""Redis backup: BGSAVE, wait for the snapshot, then copy the RDB file.

The RDB file is read from the local filesystem, so the worker must share a
volume with the Redis server (or rdb_path must point at a mounted copy).
"""

import asyncio
import logging
import os
import shutil
import time
from pathlib import Path
from typing import Any
from typing import Optional

import redis.asyncio as aioredis

from dumphook.exceptions import BackupError
from dumphook.models import BackupResult
from dumphook.models import StrategyConfig
from dumphook.snapshot import SaveStatus
from dumphook.snapshot import await_snapshot
from dumphook.strategies.backup.base import BackupStrategy
from dumphook.utils import async_timing_context
from dumphook.utils import elapsed_ms
from dumphook.utils import generate_temp_path
from dumphook.utils import maybe_compress


logger = logging.getLogger(__name__)

CONNECT_TIMEOUT_MS = 10_000
SAVE_TIMEOUT_MS = 300_000
POLL_INTERVAL_MS = 500


class RedisConfig(StrategyConfig):
    host: str = "localhost"
    port: int = 6379
    password: Optional[str] = None
    database: int = 0
    compress: bool = True
    rdb_path: Optional[str] = None
    tls: bool = False
    connect_timeout_ms: int = CONNECT_TIMEOUT_MS
    save_timeout_ms: int = SAVE_TIMEOUT_MS
    poll_interval_ms: int = POLL_INTERVAL_MS


def validate_rdb_path(rdb_path: str) -> None:
    if Path(rdb_path).suffix.lower() != ".rdb":
        raise BackupError("Invalid RDB path: must end with .rdb extension", "backup")
    if ".." in rdb_path:
        raise BackupError("Invalid RDB path: path traversal not allowed", "backup")


class RedisBackupStrategy(BackupStrategy[RedisConfig]):
    name = "redis"
    config_model = RedisConfig

    async def _connect(self, config: RedisConfig) -> aioredis.Redis:
        client = aioredis.Redis(
            host=config.host,
            port=config.port,
            db=config.database,
            password=config.password,
            ssl=config.tls,
            socket_connect_timeout=config.connect_timeout_ms / 1000,
        )
        try:
            await asyncio.wait_for(client.ping(), timeout=config.connect_timeout_ms / 1000)
        except asyncio.TimeoutError as e:
            await client.aclose()
            raise BackupError("Redis connection timeout", "backup", e) from e
        except Exception as e:
            await client.aclose()
            raise BackupError(f"Redis connection failed: {e}", "backup", e) from e
        return client

    async def discover_rdb_path(self, client: Any) -> str:
        dir_result = await client.config_get("dir")
        file_result = await client.config_get("dbfilename")
        directory = _decode(dir_result.get("dir") or dir_result.get(b"dir"))
        dbfilename = _decode(file_result.get("dbfilename") or file_result.get(b"dbfilename"))
        if not directory or not dbfilename:
            raise BackupError("Could not determine RDB file path. Provide rdb_path in config.", "backup")
        return os.path.join(directory, dbfilename)

    async def backup(self, config: RedisConfig, temp_dir: Optional[str] = None) -> BackupResult:
        start = time.perf_counter()
        client = await self._connect(config)

        try:
            rdb_path = config.rdb_path or await self.discover_rdb_path(client)
            validate_rdb_path(rdb_path)

            async with async_timing_context("redis_bgsave", extra={"host": config.host}):
                outcome = await await_snapshot(client, config.poll_interval_ms, config.save_timeout_ms)

            if outcome.status is SaveStatus.FAILED:
                raise BackupError(f"Redis BGSAVE failed: {outcome.reason}", "backup")
            if outcome.status is SaveStatus.TIMED_OUT:
                raise BackupError(f"Redis BGSAVE timed out after {config.save_timeout_ms}ms", "backup")

            output_path = generate_temp_path("redis-backup", ".rdb", temp_dir)
            await asyncio.to_thread(shutil.copyfile, rdb_path, output_path)
            final_path, compressed, size_bytes = await maybe_compress(output_path, config.compress)
        finally:
            await client.aclose()

        logger.info(f"Redis snapshot copied from {rdb_path} to {final_path}")

        return BackupResult(
            file_path=final_path,
            file_name=Path(final_path).name,
            size_bytes=size_bytes,
            database=f"redis-db{config.database}",
            compressed=compressed,
            metadata={
                "type": "redis",
                "duration": elapsed_ms(start),
                "host": config.host,
                "port": config.port,
            },
        )


def _decode(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value or ""
