import gzip
import sqlite3
import tarfile
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock
from unittest.mock import patch

import pytest

from dumphook.exceptions import BackupError
from dumphook.strategies.backup import mongodb
from dumphook.strategies.backup import mysql
from dumphook.strategies.backup import postgresql
from dumphook.strategies.backup.mongodb import MongoBackupStrategy
from dumphook.strategies.backup.mongodb import MongoConfig
from dumphook.strategies.backup.mysql import MySQLBackupStrategy
from dumphook.strategies.backup.mysql import MySQLConfig
from dumphook.strategies.backup.postgresql import PostgresBackupStrategy
from dumphook.strategies.backup.postgresql import PostgresConfig
from dumphook.strategies.backup.redis import RedisBackupStrategy
from dumphook.strategies.backup.redis import RedisConfig
from dumphook.strategies.backup.redis import validate_rdb_path
from dumphook.strategies.backup.sqlite import SQLiteBackupStrategy
from dumphook.strategies.backup.sqlite import SQLiteConfig


def _fake_dump(flag: str, content: bytes = b"-- dump --\n") -> AsyncMock:
    """run_command replacement that writes the file named by --<flag>=."""

    async def _run(command: str, args: list[str], **kwargs: Any) -> None:
        for arg in args:
            if arg.startswith(f"--{flag}="):
                Path(arg.split("=", 1)[1]).write_bytes(content)

    return AsyncMock(side_effect=_run)


# PostgreSQL


def test_postgres_args_for_custom_format() -> None:
    config = PostgresConfig(connection_string="postgresql://u:p@db/app", schema_name="public", clean=True)

    args = postgresql.build_args(config, "/tmp/out.dump")

    assert args[:2] == ["--format=custom", "--file=/tmp/out.dump"]
    assert "--schema=public" in args
    assert "--clean" in args
    assert "--compress=9" in args
    assert args[-1] == "postgresql://u:p@db/app"


def test_postgres_env_decodes_url_password() -> None:
    config = PostgresConfig(connection_string="postgresql://user:p%40ss@db:5432/app")

    assert postgresql.build_env(config)["PGPASSWORD"] == "p@ss"


@pytest.mark.parametrize(
    "connection_string,expected",
    [
        ("postgresql://u@db/app", "app"),
        ("postgres://u@db", "postgres"),
        ("host=db dbname=inventory user=u", "inventory"),
        ("host=db user=u", "postgres"),
    ],
)
def test_postgres_database_name(connection_string: str, expected: str) -> None:
    assert postgresql.extract_database_name(connection_string) == expected


def test_postgres_config_rejects_unknown_keys() -> None:
    with pytest.raises(ValueError):
        PostgresConfig(connection_string="postgresql://db/app", bogus=True)


@pytest.mark.asyncio
async def test_postgres_plain_format_is_gzipped(tmp_path: Path) -> None:
    strategy = PostgresBackupStrategy()
    config = PostgresConfig(connection_string="postgresql://u@db/app", format="plain")

    with patch.object(postgresql, "run_command", _fake_dump("file")) as mock_run:
        result = await strategy.backup(config, str(tmp_path))

    assert mock_run.call_args.args[0] == "pg_dump"
    assert result.compressed is True
    assert result.file_name.endswith(".sql.gz")
    assert result.database == "app"
    assert gzip.decompress(Path(result.file_path).read_bytes()) == b"-- dump --\n"
    assert result.size_bytes == Path(result.file_path).stat().st_size


@pytest.mark.asyncio
async def test_postgres_custom_format_is_not_gzipped(tmp_path: Path) -> None:
    strategy = PostgresBackupStrategy()
    config = PostgresConfig(connection_string="postgresql://u@db/app")

    with patch.object(postgresql, "run_command", _fake_dump("file")):
        result = await strategy.backup(config, str(tmp_path))

    assert result.compressed is False
    assert result.file_name.endswith(".dump")
    assert result.metadata["format"] == "custom"

    await strategy.cleanup(result.file_path)
    assert not Path(result.file_path).exists()


@pytest.mark.asyncio
async def test_postgres_directory_format_is_delivered_as_tar(tmp_path: Path) -> None:
    strategy = PostgresBackupStrategy()
    config = PostgresConfig(connection_string="postgresql://u@db/app", format="directory")

    async def _dump_directory(command: str, args: list[str], **kwargs: Any) -> None:
        target = Path(next(a for a in args if a.startswith("--file=")).split("=", 1)[1])
        target.mkdir()
        (target / "toc.dat").write_bytes(b"toc")
        (target / "3001.dat.gz").write_bytes(b"rows")

    with patch.object(postgresql, "run_command", AsyncMock(side_effect=_dump_directory)):
        result = await strategy.backup(config, str(tmp_path))

    assert result.file_name.endswith(".tar")
    assert result.compressed is False
    assert Path(result.file_path).is_file()
    assert result.size_bytes == Path(result.file_path).stat().st_size
    assert not Path(result.file_path[: -len(".tar")]).exists()

    with tarfile.open(result.file_path) as tar:
        names = sorted(Path(n).name for n in tar.getnames())
    assert "toc.dat" in names
    assert "3001.dat.gz" in names

    await strategy.cleanup(result.file_path)
    assert list(tmp_path.iterdir()) == []


# MySQL)


def test_mysql_args() -> None:
    config = MySQLConfig(user="root", password="secret", database="shop", additional_args=["--routines"])

    args = mysql.build_args(config, "/tmp/out.sql")

    assert args == [
        "--host=localhost",
        "--port=3306",
        "--user=root",
        "--result-file=/tmp/out.sql",
        "--single-transaction",
        "--routines",
        "shop",
    ]
    assert "secret" not in " ".join(args)


@pytest.mark.asyncio
async def test_mysql_password_passed_through_env(tmp_path: Path) -> None:
    config = MySQLConfig(user="root", password="secret", database="shop", compress=False)

    with patch.object(mysql, "run_command", _fake_dump("result-file")) as mock_run:
        result = await MySQLBackupStrategy().backup(config, str(tmp_path))

    assert mock_run.call_args.kwargs["env"]["MYSQL_PWD"] == "secret"
    assert result.database == "shop"
    assert result.metadata["port"] == 3306


# MongoDB


@pytest.mark.parametrize(
    "config,expected",
    [
        (MongoConfig(connection_string="mongodb://db/app", database="other"), "other"),
        (MongoConfig(connection_string="mongodb+srv://u:p@cluster/app?retryWrites=true"), "app"),
        (MongoConfig(connection_string="mongodb://db"), "all-databases"),
    ],
)
def test_mongo_database_name(config: MongoConfig, expected: str) -> None:
    assert mongodb.extract_database_name(config) == expected


@pytest.mark.asyncio
async def test_mongo_archive_backup(tmp_path: Path) -> None:
    config = MongoConfig(connection_string="mongodb://db/app", collection="users", authentication_database="admin")

    with patch.object(mongodb, "run_command", _fake_dump("archive")) as mock_run:
        result = await MongoBackupStrategy().backup(config, str(tmp_path))

    args = mock_run.call_args.args[1]
    assert "--collection=users" in args
    assert "--authenticationDatabase=admin" in args
    assert result.file_name.endswith(".archive.gz")


# SQLite


@pytest.mark.asyncio
async def test_sqlite_online_backup(tmp_path: Path) -> None:
    db_path = tmp_path / "app.db"
    conn = sqlite3.connect(db_path)
    conn.execute("CREATE TABLE items (name TEXT)")
    conn.execute("INSERT INTO items VALUES ('widget')")
    conn.commit()
    conn.close()

    out_dir = tmp_path / "out"
    out_dir.mkdir()
    result = await SQLiteBackupStrategy().backup(SQLiteConfig(path=str(db_path), compress=False), str(out_dir))

    copy = sqlite3.connect(result.file_path)
    assert copy.execute("SELECT name FROM items").fetchall() == [("widget",)]
    copy.close()
    assert result.database == "app.db"


@pytest.mark.asyncio
@pytest.mark.parametrize("path,message", [("/data/app.txt", "must end with"), ("/data/../app.db", "path traversal")])
async def test_sqlite_rejects_bad_paths(path: str, message: str) -> None:
    with pytest.raises(BackupError, match=message):
        await SQLiteBackupStrategy().backup(SQLiteConfig(path=path))


@pytest.mark.asyncio
async def test_sqlite_missing_file(tmp_path: Path) -> None:
    with pytest.raises(BackupError, match="not found"):
        await SQLiteBackupStrategy().backup(SQLiteConfig(path=str(tmp_path / "missing.sqlite")))


# Redis


class FakeRedisClient:
    def __init__(self, rdb_dir: str, replies: list[dict[str, Any]]) -> None:
        self.rdb_dir = rdb_dir
        self.replies = replies
        self.closed = False

    async def config_get(self, pattern: str) -> dict[str, str]:
        return {"dir": self.rdb_dir} if pattern == "dir" else {"dbfilename": "dump.rdb"}

    async def info(self, section: str | None = None) -> dict[str, Any]:
        return self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]

    async def bgsave(self) -> bool:
        return True

    async def aclose(self) -> None:
        self.closed = True


def _persistence(token: int, status: str = "ok") -> dict[str, Any]:
    return {"rdb_last_save_time": token, "rdb_bgsave_in_progress": 0, "rdb_last_bgsave_status": status}


@pytest.mark.asyncio
async def test_redis_backup_copies_snapshot(tmp_path: Path) -> None:
    (tmp_path / "dump.rdb").write_bytes(b"REDIS0011")
    client = FakeRedisClient(str(tmp_path), [_persistence(100), _persistence(101)])
    strategy = RedisBackupStrategy()
    out_dir = tmp_path / "out"
    out_dir.mkdir()

    with patch.object(strategy, "_connect", AsyncMock(return_value=client)):
        result = await strategy.backup(RedisConfig(poll_interval_ms=5), str(out_dir))

    assert client.closed is True
    assert result.database == "redis-db0"
    assert gzip.decompress(Path(result.file_path).read_bytes()) == b"REDIS0011"


@pytest.mark.asyncio
async def test_redis_backup_fails_when_bgsave_fails(tmp_path: Path) -> None:
    client = FakeRedisClient(str(tmp_path), [_persistence(100), _persistence(100, status="err")])
    strategy = RedisBackupStrategy()

    with patch.object(strategy, "_connect", AsyncMock(return_value=client)):
        with pytest.raises(BackupError, match="BGSAVE failed"):
            await strategy.backup(RedisConfig(poll_interval_ms=5))

    assert client.closed is True


@pytest.mark.asyncio
async def test_redis_backup_times_out(tmp_path: Path) -> None:
    client = FakeRedisClient(str(tmp_path), [_persistence(100)])
    strategy = RedisBackupStrategy()

    with patch.object(strategy, "_connect", AsyncMock(return_value=client)):
        with pytest.raises(BackupError, match="timed out after 30ms"):
            await strategy.backup(RedisConfig(poll_interval_ms=5, save_timeout_ms=30))


@pytest.mark.parametrize("path,message", [("/data/dump.txt", ".rdb extension"), ("/data/../dump.rdb", "traversal")])
def test_redis_rdb_path_validation(path: str, message: str) -> None:
    with pytest.raises(BackupError, match=message):
        validate_rdb_path(path)
