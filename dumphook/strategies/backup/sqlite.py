import asyncio
import logging
import os
import sqlite3
import time
from pathlib import Path
from typing import Optional

from pydantic import Field

from dumphook.exceptions import BackupError
from dumphook.models import BackupResult
from dumphook.models import StrategyConfig
from dumphook.strategies.backup.base import BackupStrategy
from dumphook.utils import elapsed_ms
from dumphook.utils import generate_temp_path
from dumphook.utils import maybe_compress


logger = logging.getLogger(__name__)

VALID_SQLITE_EXTENSIONS = (".db", ".sqlite", ".sqlite3")
BUSY_TIMEOUT_SECONDS = 300


class SQLiteConfig(StrategyConfig):
    path: str = Field(min_length=1)
    compress: bool = True


def validate_sqlite_path(db_path: str) -> None:
    if Path(db_path).suffix.lower() not in VALID_SQLITE_EXTENSIONS:
        raise BackupError(f"Invalid SQLite path: must end with {', '.join(VALID_SQLITE_EXTENSIONS)}", "backup")
    if ".." in db_path:
        raise BackupError("Invalid SQLite path: path traversal not allowed", "backup")


def _online_backup(source_path: str, output_path: str) -> None:
    uri = Path(source_path).resolve().as_uri() + "?mode=ro"
    src = sqlite3.connect(uri, uri=True, timeout=BUSY_TIMEOUT_SECONDS)
    try:
        try:
            src.execute("PRAGMA wal_checkpoint(PASSIVE)")
        except sqlite3.DatabaseError as e:
            logger.debug(f"WAL checkpoint skipped: {e}")
        dst = sqlite3.connect(output_path)
        try:
            src.backup(dst)
        finally:
            dst.close()
    finally:
        src.close()


class SQLiteBackupStrategy(BackupStrategy[SQLiteConfig]):
    name = "sqlite"
    config_model = SQLiteConfig

    async def backup(self, config: SQLiteConfig, temp_dir: Optional[str] = None) -> BackupResult:
        validate_sqlite_path(config.path)
        if not os.access(config.path, os.R_OK):
            raise BackupError(f"SQLite database file not found: {config.path}", "backup")

        start = time.perf_counter()
        output_path = generate_temp_path("sqlite-backup", ".db", temp_dir)
        await asyncio.to_thread(_online_backup, config.path, output_path)
        final_path, compressed, size_bytes = await maybe_compress(output_path, config.compress)
        logger.info(f"SQLite online backup finished: {final_path} ({size_bytes} bytes)")

        return BackupResult(
            file_path=final_path,
            file_name=Path(final_path).name,
            size_bytes=size_bytes,
            database=Path(config.path).name,
            compressed=compressed,
            metadata={
                "type": "sqlite",
                "duration": elapsed_ms(start),
                "source_path": config.path,
            },
        )
