import logging
import time
from pathlib import Path
from typing import List
from typing import Optional
from urllib.parse import urlsplit

from pydantic import Field

from dumphook.models import BackupResult
from dumphook.models import StrategyConfig
from dumphook.process import run_command
from dumphook.strategies.backup.base import BackupStrategy
from dumphook.utils import async_timing_context
from dumphook.utils import elapsed_ms
from dumphook.utils import generate_temp_path
from dumphook.utils import maybe_compress


logger = logging.getLogger(__name__)


class MongoConfig(StrategyConfig):
    connection_string: str = Field(min_length=1)
    database: Optional[str] = None
    collection: Optional[str] = None
    compress: bool = True
    authentication_database: Optional[str] = None
    additional_args: List[str] = Field(default_factory=list)


class MongoBackupStrategy(BackupStrategy[MongoConfig]):
    name = "mongodb"
    config_model = MongoConfig

    async def backup(self, config: MongoConfig, temp_dir: Optional[str] = None) -> BackupResult:
        start = time.perf_counter()
        archive_path = generate_temp_path("mongodb-backup", ".archive", temp_dir)
        database = extract_database_name(config)

        async with async_timing_context("mongodump", extra={"database": database}):
            await run_command(
                "mongodump",
                build_args(config, archive_path),
                not_found_message="mongodump not found. Please install MongoDB Database Tools.",
            )

        final_path, compressed, size_bytes = await maybe_compress(archive_path, config.compress)
        logger.info(f"mongodump finished: {final_path} ({size_bytes} bytes, compressed={compressed})")

        return BackupResult(
            file_path=final_path,
            file_name=Path(final_path).name,
            size_bytes=size_bytes,
            database=database,
            compressed=compressed,
            metadata={
                "type": "mongodb",
                "duration": elapsed_ms(start),
                "collection": config.collection,
            },
        )


def build_args(config: MongoConfig, archive_path: str) -> List[str]:
    args = [f"--uri={config.connection_string}", f"--archive={archive_path}"]
    if config.database:
        args.append(f"--db={config.database}")
    if config.collection:
        args.append(f"--collection={config.collection}")
    if config.authentication_database:
        args.append(f"--authenticationDatabase={config.authentication_database}")
    args.extend(config.additional_args)
    return args


def extract_database_name(config: MongoConfig) -> str:
    if config.database:
        return config.database
    parts = urlsplit(config.connection_string)
    if not parts.scheme.startswith("mongodb"):
        return "mongodb"
    return parts.path.lstrip("/") or "all-databases"
