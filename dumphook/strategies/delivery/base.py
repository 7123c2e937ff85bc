"""Delivery strategy interface and the shared split/send loop."""

from __future__ import annotations

import abc
import logging
from pathlib import Path
from typing import Any
from typing import ClassVar
from typing import Generic
from typing import Mapping
from typing import Optional
from typing import Type
from typing import TypeVar

import httpx

from dumphook.exceptions import BackupError
from dumphook.models import BackupResult
from dumphook.models import DeliveryResult
from dumphook.models import StrategyConfig
from dumphook.splitter import split_file_async
from dumphook.utils import remove_file


logger = logging.getLogger(__name__)

ConfigT = TypeVar("ConfigT", bound=StrategyConfig)

DEFAULT_TIMEOUT = httpx.Timeout(300.0, connect=10.0)


class DeliveryStrategy(abc.ABC, Generic[ConfigT]):
    """Sends a backup artifact to a chat platform.

    max_file_size_bytes is the platform's upload ceiling. Larger artifacts are
    split into parts that are sent in order; each part file is deleted once
    it has been sent. The original artifact is left for the caller.
    """

    name: ClassVar[str]
    config_model: ClassVar[Type[StrategyConfig]]
    max_file_size_bytes: ClassVar[int]

    def __init__(self, client: Optional[httpx.AsyncClient] = None) -> None:
        self._client = client or httpx.AsyncClient(timeout=DEFAULT_TIMEOUT, follow_redirects=True)

    async def __aenter__(self) -> "DeliveryStrategy[ConfigT]":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    def parse_config(self, raw: Mapping[str, Any] | StrategyConfig) -> ConfigT:
        if isinstance(raw, self.config_model):
            return raw  # type: ignore[return-value]
        return self.config_model.model_validate(dict(raw))  # type: ignore[return-value]

    @abc.abstractmethod
    async def send_part(
        self,
        config: ConfigT,
        file_path: str,
        backup: BackupResult,
        part_number: Optional[int],
        total_parts: Optional[int],
    ) -> Optional[str]:
        """Upload one file and return the platform's message id."""

    async def deliver(self, config: ConfigT, backup: BackupResult) -> DeliveryResult:
        """Send backup.file_path, splitting it when it exceeds the ceiling.

        Errors are reported through DeliveryResult(success=False) rather than raised.
        """
        message_id: Optional[str] = None
        sent = 0
        try:
            parts = await split_file_async(backup.file_path, self.max_file_size_bytes)
            multipart = len(parts) > 1
            if multipart:
                logger.info(
                    f"{self.name}: {backup.file_name} exceeds {self.max_file_size_bytes} bytes, sending {len(parts)} parts"
                )

            try:
                for i, part_path in enumerate(parts, start=1):
                    part_id = await self.send_part(
                        config,
                        part_path,
                        backup,
                        i if multipart else None,
                        len(parts) if multipart else None,
                    )
                    if i == 1:
                        message_id = part_id
                    sent += 1
                    logger.debug(f"{self.name}: sent {Path(part_path).name} ({i}/{len(parts)})")
                    if multipart:
                        remove_file(part_path)
            finally:
                # Parts left behind by a failed send
                if multipart:
                    for part_path in parts[sent:]:
                        remove_file(part_path)
        except (BackupError, httpx.HTTPError, OSError, ValueError) as e:
            logger.error(f"{self.name} delivery failed after {sent} part(s): {e}")
            return DeliveryResult(success=False, platform=self.name, error=str(e) or type(e).__name__, parts=sent)

        return DeliveryResult(success=True, platform=self.name, message_id=message_id, parts=sent)


def raise_for_status(platform: str, response: httpx.Response) -> None:
    if response.status_code >= 400:
        raise BackupError(f"{platform} API error ({response.status_code}): {response.text}", "delivery")
