"""Dump a database and deliver the artifact to a chat webhook."""

from dumphook.exceptions import BackupError  # noqa: F401
from dumphook.exceptions import DependencyUnavailable  # noqa: F401
from dumphook.exceptions import DuplicateStrategyError  # noqa: F401
from dumphook.exceptions import SourceTruncatedError  # noqa: F401
from dumphook.exceptions import UnknownStrategyError  # noqa: F401
from dumphook.manager import BackupManager  # noqa: F401
from dumphook.manager import SimpleBackupOptions  # noqa: F401
from dumphook.manager import WebhookOptions  # noqa: F401
from dumphook.manager import backup  # noqa: F401
from dumphook.models import BackupManagerResult  # noqa: F401
from dumphook.models import BackupResult  # noqa: F401
from dumphook.models import DeliveryResult  # noqa: F401
from dumphook.registry import StrategyRegistry  # noqa: F401
from dumphook.registry import default_registry  # noqa: F401
from dumphook.snapshot import PollOutcome  # noqa: F401
from dumphook.snapshot import SaveStatus  # noqa: F401
from dumphook.snapshot import await_snapshot  # noqa: F401
from dumphook.splitter import split_file  # noqa: F401


__all__ = [
    "BackupError",
    "BackupManager",
    "BackupManagerResult",
    "BackupResult",
    "DeliveryResult",
    "DependencyUnavailable",
    "DuplicateStrategyError",
    "PollOutcome",
    "SaveStatus",
    "SimpleBackupOptions",
    "SourceTruncatedError",
    "StrategyRegistry",
    "UnknownStrategyError",
    "WebhookOptions",
    "await_snapshot",
    "backup",
    "default_registry",
    "split_file",
]
