import logging
import os
import time
from pathlib import Path
from typing import List
from typing import Optional

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


class MySQLConfig(StrategyConfig):
    host: str = "localhost"
    port: int = 3306
    user: str
    password: str
    database: str
    compress: bool = True
    single_transaction: bool = True
    additional_args: List[str] = Field(default_factory=list)


class MySQLBackupStrategy(BackupStrategy[MySQLConfig]):
    name = "mysql"
    config_model = MySQLConfig

    async def backup(self, config: MySQLConfig, temp_dir: Optional[str] = None) -> BackupResult:
        start = time.perf_counter()
        output_path = generate_temp_path("mysql-backup", ".sql", temp_dir)

        # Password goes through the environment so it never shows up in ps output
        env = dict(os.environ)
        env["MYSQL_PWD"] = config.password

        async with async_timing_context("mysqldump", extra={"database": config.database}):
            await run_command(
                "mysqldump",
                build_args(config, output_path),
                env=env,
                not_found_message="mysqldump not found. Please install MySQL client tools.",
            )

        final_path, compressed, size_bytes = await maybe_compress(output_path, config.compress)
        logger.info(f"mysqldump finished: {final_path} ({size_bytes} bytes, compressed={compressed})")

        return BackupResult(
            file_path=final_path,
            file_name=Path(final_path).name,
            size_bytes=size_bytes,
            database=config.database,
            compressed=compressed,
            metadata={
                "type": "mysql",
                "duration": elapsed_ms(start),
                "host": config.host,
                "port": config.port,
            },
        )


def build_args(config: MySQLConfig, output_path: str) -> List[str]:
    args = [
        f"--host={config.host}",
        f"--port={config.port}",
        f"--user={config.user}",
        f"--result-file={output_path}",
    ]
    if config.single_transaction:
        args.append("--single-transaction")
    args.extend(config.additional_args)
    args.append(config.database)
    return args
