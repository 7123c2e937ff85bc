"""Error types raised by dumphook."""

from typing import Literal
from typing import Optional


Phase = Literal["backup", "delivery", "cleanup"]


class BackupError(Exception):
    """Raised when a backup run fails in one of its phases."""

    def __init__(self, message: str, phase: Phase = "backup", cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.phase: Phase = phase
        self.cause = cause


class DependencyUnavailable(BackupError):
    """Raised when a driver module or dump binary is not installed."""

    def __init__(self, message: str, install_hint: str = "", phase: Phase = "backup") -> None:
        super().__init__(message, phase)
        self.install_hint = install_hint


class DuplicateStrategyError(ValueError):
    pass


class UnknownStrategyError(KeyError):
    def __init__(self, kind: str, name: str, available: list[str]) -> None:
        self.kind = kind
        self.name = name
        self.available = available
        super().__init__(f'Unknown {kind} strategy "{name}". Available: {", ".join(available) or "none"}')

    def __str__(self) -> str:
        return str(self.args[0])


class SourceTruncatedError(OSError):
    """Raised when the source file ends before a chunk is fully copied."""
