import html
from pathlib import Path
from typing import Dict
from typing import Literal
from typing import Optional

from pydantic import Field

from dumphook.models import BackupResult
from dumphook.models import StrategyConfig
from dumphook.strategies.delivery.base import DeliveryStrategy
from dumphook.strategies.delivery.base import raise_for_status
from dumphook.utils import format_bytes
from dumphook.utils import format_duration


TELEGRAM_MAX_FILE_SIZE = 50 * 1024 * 1024
TELEGRAM_API_URL = "https://api.telegram.org"


class TelegramConfig(StrategyConfig):
    bot_token: str = Field(min_length=1)
    chat_id: str = Field(min_length=1)
    parse_mode: Literal["HTML", "Markdown", "MarkdownV2"] = "HTML"
    disable_notification: bool = False
    protect_content: bool = False
    api_url: str = TELEGRAM_API_URL


def build_caption(backup: BackupResult, part_number: Optional[int] = None, total_parts: Optional[int] = None) -> str:
    title = f"<b>Database Backup: {html.escape(backup.database)}</b>"
    if part_number is not None and total_parts is not None:
        title += f" (Part {part_number}/{total_parts})"

    lines = [
        title,
        "",
        f"<b>Size:</b> {format_bytes(backup.size_bytes)}",
        f"<b>Compressed:</b> {'Yes' if backup.compressed else 'No'}",
    ]

    duration = backup.metadata.get("duration")
    if isinstance(duration, (int, float)) and not isinstance(duration, bool):
        lines.append(f"<b>Duration:</b> {format_duration(duration)}")
    db_type = backup.metadata.get("type")
    if isinstance(db_type, str):
        lines.append(f"<b>Type:</b> {html.escape(db_type.upper())}")

    lines.extend(["", f"<i>{backup.created_at.isoformat()}</i>"])
    return "\n".join(lines)


class TelegramDeliveryStrategy(DeliveryStrategy[TelegramConfig]):
    """Sends the artifact through the Bot API sendDocument method."""

    name = "telegram"
    config_model = TelegramConfig
    max_file_size_bytes = TELEGRAM_MAX_FILE_SIZE

    async def send_part(
        self,
        config: TelegramConfig,
        file_path: str,
        backup: BackupResult,
        part_number: Optional[int],
        total_parts: Optional[int],
    ) -> Optional[str]:
        url = f"{config.api_url.rstrip('/')}/bot{config.bot_token}/sendDocument"

        data: Dict[str, str] = {
            "chat_id": config.chat_id,
            "caption": build_caption(backup, part_number, total_parts),
            "parse_mode": config.parse_mode,
        }
        if config.disable_notification:
            data["disable_notification"] = "true"
        if config.protect_content:
            data["protect_content"] = "true"

        with open(file_path, "rb") as fh:
            response = await self._client.post(
                url,
                data=data,
                files={"document": (Path(file_path).name, fh, "application/octet-stream")},
            )

        raise_for_status("Telegram", response)
        message_id = response.json().get("result", {}).get("message_id")
        return str(message_id) if message_id is not None else None
