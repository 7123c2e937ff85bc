import logging
import os
import re
import time
from pathlib import Path
from typing import Dict
from typing import List
from typing import Literal
from typing import Optional
from urllib.parse import unquote
from urllib.parse import urlsplit

from pydantic import Field

from dumphook.models import BackupResult
from dumphook.models import StrategyConfig
from dumphook.process import run_command
from dumphook.strategies.backup.base import BackupStrategy
from dumphook.utils import archive_directory
from dumphook.utils import async_timing_context
from dumphook.utils import elapsed_ms
from dumphook.utils import generate_temp_path
from dumphook.utils import maybe_compress


logger = logging.getLogger(__name__)

FORMAT_EXTENSIONS: Dict[str, str] = {
    "plain": ".sql",
    "custom": ".dump",
    "tar": ".tar",
    # pg_dump writes a directory; it is archived to one .tar for delivery
    "directory": "",
}


class PostgresConfig(StrategyConfig):
    connection_string: str = Field(min_length=1)
    format: Literal["plain", "custom", "directory", "tar"] = "custom"
    compress: bool = True
    schema_name: Optional[str] = None
    table: Optional[str] = None
    data_only: bool = False
    schema_only: bool = False
    clean: bool = False
    additional_args: List[str] = Field(default_factory=list)


class PostgresBackupStrategy(BackupStrategy[PostgresConfig]):
    name = "postgresql"
    config_model = PostgresConfig

    async def backup(self, config: PostgresConfig, temp_dir: Optional[str] = None) -> BackupResult:
        start = time.perf_counter()
        extension = FORMAT_EXTENSIONS.get(config.format, ".dump")
        output_path = generate_temp_path("postgres-backup", extension, temp_dir)
        database = extract_database_name(config.connection_string)

        async with async_timing_context("pg_dump", extra={"database": database}):
            await run_command(
                "pg_dump",
                build_args(config, output_path),
                env=build_env(config),
                not_found_message="pg_dump not found. Please install PostgreSQL client tools.",
            )

        if config.format == "directory":
            output_path = await archive_directory(output_path)

        # custom/tar/directory formats carry their own compression
        should_compress = config.compress and config.format == "plain"
        final_path, compressed, size_bytes = await maybe_compress(output_path, should_compress)
        logger.info(f"pg_dump finished: {final_path} ({size_bytes} bytes, compressed={compressed})")

        return BackupResult(
            file_path=final_path,
            file_name=Path(final_path).name,
            size_bytes=size_bytes,
            database=database,
            compressed=compressed,
            metadata={
                "type": "postgresql",
                "format": config.format,
                "duration": elapsed_ms(start),
                "schema": config.schema_name,
                "table": config.table,
            },
        )


def build_args(config: PostgresConfig, output_path: str) -> List[str]:
    args = [f"--format={config.format}", f"--file={output_path}"]
    if config.schema_name:
        args.append(f"--schema={config.schema_name}")
    if config.table:
        args.append(f"--table={config.table}")
    if config.data_only:
        args.append("--data-only")
    if config.schema_only:
        args.append("--schema-only")
    if config.clean:
        args.append("--clean")
    if config.format == "custom":
        args.append("--compress=9")
    args.extend(config.additional_args)
    args.append(config.connection_string)
    return args


def _is_url(connection_string: str) -> bool:
    return urlsplit(connection_string).scheme in ("postgres", "postgresql")


def build_env(config: PostgresConfig) -> Dict[str, str]:
    env = dict(os.environ)
    if _is_url(config.connection_string):
        password = urlsplit(config.connection_string).password
        if password:
            env["PGPASSWORD"] = unquote(password)
    return env


def extract_database_name(connection_string: str) -> str:
    if _is_url(connection_string):
        return urlsplit(connection_string).path.lstrip("/") or "postgres"
    match = re.search(r"dbname=(\S+)", connection_string, re.IGNORECASE)
    return match.group(1) if match else "postgres"
