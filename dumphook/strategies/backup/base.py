"""Backup strategy interface."""

from __future__ import annotations

import abc
from typing import Any
from typing import ClassVar
from typing import Generic
from typing import Mapping
from typing import Optional
from typing import Type
from typing import TypeVar

from dumphook.models import BackupResult
from dumphook.models import StrategyConfig
from dumphook.utils import remove_file


ConfigT = TypeVar("ConfigT", bound=StrategyConfig)


class BackupStrategy(abc.ABC, Generic[ConfigT]):
    """Produces a backup artifact on local disk.

    Subclasses set name and config_model and implement backup(). The caller
    owns the returned file and disposes of it through cleanup().
    """

    name: ClassVar[str]
    config_model: ClassVar[Type[StrategyConfig]]

    def parse_config(self, raw: Mapping[str, Any] | StrategyConfig) -> ConfigT:
        if isinstance(raw, self.config_model):
            return raw  # type: ignore[return-value]
        return self.config_model.model_validate(dict(raw))  # type: ignore[return-value]

    @abc.abstractmethod
    async def backup(self, config: ConfigT, temp_dir: Optional[str] = None) -> BackupResult: ...

    async def cleanup(self, file_path: str) -> None:
        remove_file(file_path)
