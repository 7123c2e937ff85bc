#!/usr/bin/env python3
import asyncio
import logging
import sys
from pathlib import Path


sys.path.insert(0, str(Path(__file__).parent.parent))

from dumphook.config import Config
from dumphook.config import get_config
from dumphook.logging_config import setup_loki_logging
from dumphook.manager import BackupManager
from dumphook.models import BackupManagerResult
from dumphook.utils import format_bytes
from dumphook.utils import format_duration


logger = logging.getLogger(__name__)


def build_manager(config: Config) -> BackupManager:
    return (
        BackupManager()
        .database(config.database_type, config.database_config)
        .delivery(config.delivery_type, config.delivery_config)
        .compress(config.compress)
        .retain_backup(config.retain_backup)
        .temp_dir(config.temp_dir or None)
    )


def log_result(result: BackupManagerResult) -> None:
    logger.info(
        f"Backup {result.backup.file_name} ({format_bytes(result.backup.size_bytes)}) "
        f"delivered to {result.delivery.platform} in {result.delivery.parts} part(s), "
        f"total {format_duration(result.total_duration_ms)}"
    )


async def run_once(config: Config) -> bool:
    logger.info("Database Backup Run Started")
    logger.info(f"Environment: {config.environment}")
    logger.info(f"Database: {config.database_type}")
    logger.info(f"Delivery: {config.delivery_type}")

    try:
        result = await build_manager(config).run()
    except Exception as e:
        logger.error(f"Backup run failed: {e}", exc_info=True)
        return False

    log_result(result)
    return True


def main() -> int:
    try:
        config = get_config()
    except ValueError as e:
        logging.basicConfig(level=logging.ERROR)
        logger.error(str(e))
        return 1

    setup_loki_logging(config, "backup")
    return 0 if asyncio.run(run_once(config)) else 1


if __name__ == "__main__":
    sys.exit(main())
