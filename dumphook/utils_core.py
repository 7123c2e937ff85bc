"""Utility functions for the dumphook service."""

import asyncio
import dataclasses
import gzip
import logging
import os
import secrets
import shutil
import tarfile
import tempfile
import time
import typing
from pathlib import Path
from typing import Any
from typing import Callable
from typing import Optional
from typing import Tuple
from typing import TypeVar


T = TypeVar("T")

logger = logging.getLogger(__name__)

COMPRESSION_LEVEL = 9


def env(key: str, convert: Callable[[str], T] = typing.cast(Callable[[str], T], str), **kwargs: Any) -> T:
    """Load a value from environment variables with optional default and type conversion."""
    key, partition, default = key.partition(":")

    def default_factory(
        key_val: str = key, default_val: str = default, convert_func: Callable[[str], T] = convert
    ) -> T:
        if key_val in os.environ:
            return convert_func(os.environ[key_val])

        if partition == ":":
            return convert_func(default_val)

        raise KeyError(key_val)

    return typing.cast(T, dataclasses.field(default_factory=default_factory, **kwargs))


def to_bool(value: str) -> bool:
    return value.strip().lower() == "true"


def format_bytes(size: int) -> str:
    """Human readable size, e.g. 1536 -> '1.50 KB'."""
    if size == 0:
        return "0 B"
    k = 1024
    units = ["B", "KB", "MB", "GB"]
    i = 0
    while size >= k ** (i + 1):
        i += 1
    if i >= len(units):
        return f"{size} B"
    return f"{size / k**i:.2f} {units[i]}"


def format_duration(ms: float) -> str:
    if ms < 1000:
        return f"{int(ms)}ms"
    if ms < 60000:
        return f"{ms / 1000:.2f}s"
    return f"{ms / 60000:.2f}m"


def generate_temp_path(prefix: str, extension: str, temp_dir: Optional[str] = None) -> str:
    """Return a unique path of the form <tmp>/<prefix>-<epoch ms>-<16 hex><ext>."""
    base = temp_dir or tempfile.gettempdir()
    timestamp = int(time.time() * 1000)
    return str(Path(base) / f"{prefix}-{timestamp}-{secrets.token_hex(8)}{extension}")


def ensure_dir(path: str) -> None:
    Path(path).mkdir(parents=True, exist_ok=True)


def remove_file(path: str) -> None:
    """Delete a file, ignoring a missing one."""
    try:
        Path(path).unlink()
    except FileNotFoundError:
        pass


def get_file_size(path: str) -> int:
    return Path(path).stat().st_size


async def compress_file(input_path: str) -> str:
    """Gzip input_path to input_path + '.gz' and remove the original.

    Data is streamed through gzip so memory stays flat for large dumps.
    """
    output_path = f"{input_path}.gz"

    def _compress() -> None:
        with open(input_path, "rb") as src, gzip.open(output_path, "wb", compresslevel=COMPRESSION_LEVEL) as dst:
            shutil.copyfileobj(src, dst)

    await asyncio.to_thread(_compress)
    remove_file(input_path)
    logger.debug(f"Compressed {input_path} -> {output_path}")
    return output_path


async def archive_directory(directory: str) -> str:
    """Pack directory into directory + '.tar' and remove the directory.

    Members are stored under the directory's base name, uncompressed.
    """
    output_path = f"{directory}.tar"

    def _archive() -> None:
        with tarfile.open(output_path, "w") as tar:
            tar.add(directory, arcname=Path(directory).name)

    await asyncio.to_thread(_archive)
    await asyncio.to_thread(shutil.rmtree, directory)
    logger.debug(f"Archived {directory} -> {output_path}")
    return output_path


async def maybe_compress(path: str, enabled: bool) -> Tuple[str, bool, int]:
    """Compress when enabled.

    Returns:
        Tuple of (final_path, compressed, size_bytes)
    """
    final_path = path
    if enabled:
        final_path = await compress_file(path)
    return final_path, enabled, get_file_size(final_path)

