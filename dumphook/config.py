import dataclasses
import json
from typing import Any
from typing import Dict

import dotenv

from dumphook.utils import env
from dumphook.utils import to_bool


dotenv.load_dotenv()


def _json_object(value: str) -> Dict[str, Any]:
    return json.loads(value) if value.strip() else {}


@dataclasses.dataclass
class Config:
    """Worker configuration settings."""

    # Logging
    log_level: str = env("LOG_LEVEL:INFO")
    loki_url: str = env("LOKI_URL:", convert=str)
    loki_enabled: bool = env("LOKI_ENABLED:false", convert=to_bool)
    environment: str = env("ENVIRONMENT:production")

    # Database to dump (strategy name + JSON config for that strategy)
    database_type: str = env("BACKUP_DATABASE_TYPE:")
    database_config: Dict[str, Any] = env("BACKUP_DATABASE_CONFIG:{}", convert=_json_object)
    # Shortcut merged into database_config as connection_string
    connection_string: str = env("BACKUP_CONNECTION_STRING:")

    # Delivery target (strategy name + JSON config for that strategy)
    delivery_type: str = env("BACKUP_DELIVERY_TYPE:discord")
    delivery_config: Dict[str, Any] = env("BACKUP_DELIVERY_CONFIG:{}", convert=_json_object)
    # Shortcut merged into delivery_config as webhook_url
    webhook_url: str = env("BACKUP_WEBHOOK_URL:")

    # Pipeline behaviour
    compress: bool = env("BACKUP_COMPRESS:true", convert=to_bool)
    retain_backup: bool = env("BACKUP_RETAIN:false", convert=to_bool)
    temp_dir: str = env("BACKUP_TEMP_DIR:")


def get_config() -> Config:
    """Load configuration from the environment and validate it.

    Raises:
        ValueError: If a required setting is missing or malformed
    """
    try:
        cfg = Config()
    except json.JSONDecodeError as e:
        raise ValueError(f"BACKUP_DATABASE_CONFIG / BACKUP_DELIVERY_CONFIG must be valid JSON: {e}") from e

    if not cfg.environment or not cfg.environment.strip():
        raise ValueError("ENVIRONMENT variable is required but not set or empty")
    if not cfg.database_type.strip():
        raise ValueError("BACKUP_DATABASE_TYPE variable is required but not set or empty")
    if not cfg.delivery_type.strip():
        raise ValueError("BACKUP_DELIVERY_TYPE variable is required but not set or empty")

    for name in ("database_config", "delivery_config"):
        if not isinstance(getattr(cfg, name), dict):
            raise ValueError(f"{name} must be a JSON object")

    if cfg.connection_string:
        cfg.database_config.setdefault("connection_string", cfg.connection_string)
    if cfg.webhook_url:
        cfg.delivery_config.setdefault("webhook_url", cfg.webhook_url)

    return cfg
