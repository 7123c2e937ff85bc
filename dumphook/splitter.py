"""Bounded-memory splitting of backup artifacts into upload-sized chunks.

Chunks are written next to the source as <source>.part1 .. <source>.partN.
Bytes are copied through a fixed transfer buffer, so peak memory does not
grow with the size of the artifact.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import math
import os
from typing import BinaryIO

from dumphook.exceptions import SourceTruncatedError


logger = logging.getLogger(__name__)

TRANSFER_BUFFER_SIZE = 64 * 1024


@dataclasses.dataclass(frozen=True)
class Chunk:
    """A 1-indexed slice [start, end) of a source file."""

    index: int
    path: str
    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start


def chunk_path(source_path: str, index: int) -> str:
    return f"{source_path}.part{index}"


def plan_chunks(source_path: str, file_size: int, max_chunk_bytes: int) -> list[Chunk]:
    """Lay out the chunks for a file of file_size bytes.

    Every chunk except the last is exactly max_chunk_bytes long. A file that
    already fits yields a single chunk pointing at the source itself.
    """
    if max_chunk_bytes <= 0:
        raise ValueError(f"max_chunk_bytes must be positive, got {max_chunk_bytes}")
    if file_size <= max_chunk_bytes:
        return [Chunk(index=1, path=source_path, start=0, end=file_size)]

    num_chunks = math.ceil(file_size / max_chunk_bytes)
    chunks = []
    for i in range(num_chunks):
        start = i * max_chunk_bytes
        length = min(max_chunk_bytes, file_size - start)
        chunks.append(Chunk(index=i + 1, path=chunk_path(source_path, i + 1), start=start, end=start + length))
    return chunks


def _copy_range(src: BinaryIO, dst: BinaryIO, start: int, length: int, buffer: bytearray) -> None:
    src.seek(start)
    view = memoryview(buffer)
    remaining = length
    while remaining > 0:
        want = min(len(buffer), remaining)
        read = src.readinto(view[:want])
        if not read:
            raise SourceTruncatedError(
                f"Source ended after {length - remaining} of {length} bytes at offset {start + length - remaining}"
            )
        dst.write(view[:read])
        remaining -= read


def split_file(source_path: str, max_chunk_bytes: int) -> list[str]:
    """Split source_path into files of at most max_chunk_bytes.

    Args:
        source_path: Existing, readable file. It is never modified or deleted.
        max_chunk_bytes: Upload ceiling of the delivery platform (> 0)

    Returns:
        Chunk paths in order. A file that already fits is returned as [source_path].

    Raises:
        ValueError: If max_chunk_bytes is not positive
        OSError: If the source cannot be read or a chunk cannot be written.
            Chunks written before the failure are left on disk for the caller.
    """
    if max_chunk_bytes <= 0:
        raise ValueError(f"max_chunk_bytes must be positive, got {max_chunk_bytes}")

    file_size = os.path.getsize(source_path)
    chunks = plan_chunks(source_path, file_size, max_chunk_bytes)
    if len(chunks) == 1:
        return [source_path]

    logger.debug(f"Splitting {source_path} ({file_size} bytes) into {len(chunks)} chunks of <= {max_chunk_bytes}")

    buffer = bytearray(TRANSFER_BUFFER_SIZE)
    with open(source_path, "rb") as src:
        for chunk in chunks:
            with open(chunk.path, "wb") as dst:
                _copy_range(src, dst, chunk.start, chunk.length, buffer)

    return [chunk.path for chunk in chunks]


async def split_file_async(source_path: str, max_chunk_bytes: int) -> list[str]:
    """Run split_file off the event loop."""
    return await asyncio.to_thread(split_file, source_path, max_chunk_bytes)
