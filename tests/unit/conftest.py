import os
from pathlib import Path
from typing import Callable
from typing import Generator

import pytest


@pytest.fixture(autouse=True)
def _clean_backup_env(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Keep BACKUP_* settings from the host environment out of the tests."""
    for key in list(os.environ):
        if key.startswith("BACKUP_"):
            monkeypatch.delenv(key, raising=False)
    yield


@pytest.fixture
def make_file(tmp_path: Path) -> Callable[..., Path]:
    def _make(name: str = "artifact.bin", size: int = 0, data: bytes | None = None) -> Path:
        path = tmp_path / name
        path.write_bytes(data if data is not None else bytes(i % 251 for i in range(size)))
        return path

    return _make
