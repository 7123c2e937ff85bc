"""Unit tests for bounded-memory artifact splitting."""

import math
from pathlib import Path

import pytest

from dumphook import splitter
from dumphook.exceptions import SourceTruncatedError
from dumphook.splitter import plan_chunks
from dumphook.splitter import split_file
from dumphook.splitter import split_file_async


def test_split_100_bytes_into_30_byte_chunks(make_file) -> None:
    source = make_file(size=100)

    paths = split_file(str(source), 30)

    assert paths == [f"{source}.part{i}" for i in range(1, 5)]
    assert [Path(p).stat().st_size for p in paths] == [30, 30, 30, 10]


def test_small_file_returns_source_path_unchanged(make_file) -> None:
    source = make_file(size=10)

    paths = split_file(str(source), 1024)

    assert paths == [str(source)]
    assert not Path(f"{source}.part1").exists()


def test_file_exactly_at_limit_is_not_split(make_file) -> None:
    source = make_file(size=64)

    assert split_file(str(source), 64) == [str(source)]


def test_exact_multiple_has_no_short_tail(make_file) -> None:
    source = make_file(size=90)

    paths = split_file(str(source), 30)

    assert [Path(p).stat().st_size for p in paths] == [30, 30, 30]


def test_concatenated_chunks_reproduce_source(make_file) -> None:
    source = make_file(size=10_000)

    paths = split_file(str(source), 999)

    assert b"".join(Path(p).read_bytes() for p in paths) == source.read_bytes()


def test_source_is_kept(make_file) -> None:
    source = make_file(size=100)
    original = source.read_bytes()

    split_file(str(source), 30)

    assert source.read_bytes() == original


def test_copies_through_small_transfer_buffer(make_file, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(splitter, "TRANSFER_BUFFER_SIZE", 7)
    source = make_file(size=1000)

    paths = split_file(str(source), 300)

    assert [Path(p).stat().st_size for p in paths] == [300, 300, 300, 100]
    assert b"".join(Path(p).read_bytes() for p in paths) == source.read_bytes()


def test_buffer_size_is_independent_of_file_size(make_file, monkeypatch: pytest.MonkeyPatch) -> None:
    allocations = []
    real_bytearray = bytearray

    def tracking_bytearray(*args):
        buf = real_bytearray(*args)
        allocations.append(len(buf))
        return buf

    monkeypatch.setattr(splitter, "bytearray", tracking_bytearray, raising=False)
    source = make_file(size=300_000)

    split_file(str(source), 100_000)

    assert allocations == [splitter.TRANSFER_BUFFER_SIZE]


@pytest.mark.parametrize("max_bytes", [0, -1])
def test_rejects_non_positive_threshold(make_file, max_bytes: int) -> None:
    source = make_file(size=10)

    with pytest.raises(ValueError):
        split_file(str(source), max_bytes)


def test_missing_source_raises_oserror(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        split_file(str(tmp_path / "missing.bin"), 10)


def test_source_shorter_than_reported_raises_and_keeps_written_chunks(
    make_file, monkeypatch: pytest.MonkeyPatch
) -> None:
    source = make_file(size=50)
    monkeypatch.setattr(splitter.os.path, "getsize", lambda _path: 100)

    with pytest.raises(SourceTruncatedError):
        split_file(str(source), 30)

    assert Path(f"{source}.part1").stat().st_size == 30
    assert not Path(f"{source}.part3").exists()


@pytest.mark.parametrize("file_size", [0, 1, 29, 30, 31, 59, 60, 61, 100, 1000])
def test_plan_covers_file_exactly_once(file_size: int) -> None:
    max_bytes = 30

    chunks = plan_chunks("src", file_size, max_bytes)

    if file_size <= max_bytes:
        assert len(chunks) == 1
        assert chunks[0].path == "src"
    else:
        assert len(chunks) == math.ceil(file_size / max_bytes)
    assert chunks[0].start == 0
    assert chunks[-1].end == file_size
    for prev, cur in zip(chunks, chunks[1:]):
        assert prev.end == cur.start
    assert all(c.length == max_bytes for c in chunks[:-1])
    assert sum(c.length for c in chunks) == file_size
    assert [c.index for c in chunks] == list(range(1, len(chunks) + 1))


@pytest.mark.asyncio
async def test_split_file_async_matches_sync(make_file) -> None:
    source = make_file(size=100)

    paths = await split_file_async(str(source), 30)

    assert [Path(p).stat().st_size for p in paths] == [30, 30, 30, 10]
