import json
from pathlib import Path
from typing import Any
from typing import Dict
from typing import List
from typing import Optional

from pydantic import HttpUrl

from dumphook.models import BackupResult
from dumphook.models import StrategyConfig
from dumphook.strategies.delivery.base import DeliveryStrategy
from dumphook.strategies.delivery.base import raise_for_status
from dumphook.utils import format_bytes
from dumphook.utils import format_duration


DISCORD_MAX_FILE_SIZE = 25 * 1024 * 1024
DEFAULT_EMBED_COLOR = 0x5865F2


class DiscordConfig(StrategyConfig):
    webhook_url: HttpUrl
    username: str = "Backup Bot"
    avatar_url: Optional[HttpUrl] = None
    thread_id: Optional[str] = None
    embed_color: int = DEFAULT_EMBED_COLOR
    include_metadata: bool = True


def build_embed(
    config: DiscordConfig,
    backup: BackupResult,
    part_number: Optional[int] = None,
    total_parts: Optional[int] = None,
) -> Dict[str, Any]:
    fields: List[Dict[str, Any]] = []

    if config.include_metadata:
        fields.extend(
            [
                {"name": "Database", "value": backup.database, "inline": True},
                {"name": "Size", "value": format_bytes(backup.size_bytes), "inline": True},
                {"name": "Compressed", "value": "Yes" if backup.compressed else "No", "inline": True},
            ]
        )
        duration = backup.metadata.get("duration")
        if isinstance(duration, (int, float)) and not isinstance(duration, bool):
            fields.append({"name": "Duration", "value": format_duration(duration), "inline": True})
        db_type = backup.metadata.get("type")
        if isinstance(db_type, str):
            fields.append({"name": "Type", "value": db_type.upper(), "inline": True})

    title = f"Database Backup: {backup.database}"
    if part_number is not None and total_parts is not None:
        title += f" (Part {part_number}/{total_parts})"

    return {
        "title": title,
        "color": config.embed_color,
        "fields": fields,
        "timestamp": backup.created_at.isoformat(),
        "footer": {"text": "dumphook"},
    }


class DiscordDeliveryStrategy(DeliveryStrategy[DiscordConfig]):
    """Posts the artifact to a Discord webhook as a file attachment with an embed."""

    name = "discord"
    config_model = DiscordConfig
    max_file_size_bytes = DISCORD_MAX_FILE_SIZE

    async def send_part(
        self,
        config: DiscordConfig,
        file_path: str,
        backup: BackupResult,
        part_number: Optional[int],
        total_parts: Optional[int],
    ) -> Optional[str]:
        params = {"wait": "true"}
        if config.thread_id:
            params["thread_id"] = config.thread_id

        payload: Dict[str, Any] = {
            "username": config.username,
            "embeds": [build_embed(config, backup, part_number, total_parts)],
        }
        if config.avatar_url:
            payload["avatar_url"] = str(config.avatar_url)

        with open(file_path, "rb") as fh:
            response = await self._client.post(
                str(config.webhook_url),
                params=params,
                data={"payload_json": json.dumps(payload)},
                files={"file": (Path(file_path).name, fh, "application/octet-stream")},
            )

        raise_for_status("Discord", response)
        message_id = response.json().get("id")
        return str(message_id) if message_id is not None else None
