from datetime import datetime
from datetime import timezone
from typing import Any

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field


def utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class StrategyConfig(BaseModel):
    """Base for per-strategy configuration; unknown keys are rejected."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class BackupResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    file_path: str
    file_name: str
    size_bytes: int
    database: str
    created_at: datetime = Field(default_factory=utcnow)
    compressed: bool = False
    metadata: dict[str, Any] = Field(default_factory=dict)


class DeliveryResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool
    platform: str
    message_id: str | None = None
    error: str | None = None
    parts: int = 0
    delivered_at: datetime = Field(default_factory=utcnow)


class BackupManagerResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    backup: BackupResult
    delivery: DeliveryResult
    total_duration_ms: int
