"""Wait for a Redis background save (BGSAVE) to finish.

The completion token is rdb_last_save_time from INFO persistence. A save is
complete once the token moves past the value read before triggering. Each
poll is a single INFO round-trip that yields both the token and the status.
"""

from __future__ import annotations

import asyncio
import dataclasses
import enum
import logging
import time
from typing import Any
from typing import Mapping
from typing import Optional
from typing import Protocol
from typing import Union

from redis.exceptions import ResponseError


logger = logging.getLogger(__name__)


class SnapshotStore(Protocol):
    async def info(self, section: Optional[str] = None, *args: Any, **kwargs: Any) -> Any: ...

    async def bgsave(self, schedule: bool = True, **kwargs: Any) -> Any: ...


class SaveStatus(str, enum.Enum):
    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"


@dataclasses.dataclass(frozen=True)
class PollOutcome:
    status: SaveStatus
    reason: Optional[str] = None
    baseline_token: int = 0
    last_token: int = 0
    triggered: bool = False


@dataclasses.dataclass(frozen=True)
class PersistenceStatus:
    last_save_time: int
    bgsave_in_progress: bool
    last_bgsave_status: str


def _safe_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def parse_persistence_info(info: Union[Mapping[str, Any], str, bytes, None]) -> PersistenceStatus:
    """Read the save token and status from an INFO persistence reply.

    redis-py parses INFO into a dict; raw key:value text is accepted as well.
    Missing or malformed fields read as 0 / "" and never raise.
    """
    fields: Mapping[str, Any]
    if info is None:
        fields = {}
    elif isinstance(info, (str, bytes)):
        text = info.decode("utf-8", errors="replace") if isinstance(info, bytes) else info
        parsed: dict[str, str] = {}
        for line in text.splitlines():
            key, sep, value = line.strip().partition(":")
            if sep:
                parsed[key] = value.strip()
        fields = parsed
    else:
        fields = info

    status = fields.get("rdb_last_bgsave_status", "")
    if isinstance(status, bytes):
        status = status.decode("utf-8", errors="replace")

    return PersistenceStatus(
        last_save_time=_safe_int(fields.get("rdb_last_save_time")),
        bgsave_in_progress=_safe_int(fields.get("rdb_bgsave_in_progress")) == 1,
        last_bgsave_status=str(status).strip().lower(),
    )


async def _read_status(store: SnapshotStore) -> PersistenceStatus:
    return parse_persistence_info(await store.info("persistence"))


async def await_snapshot(store: SnapshotStore, poll_interval_ms: int, timeout_ms: int) -> PollOutcome:
    """Trigger BGSAVE unless one is running, then poll until it finishes.

    Args:
        store: Live async Redis connection (or anything with info()/bgsave())
        poll_interval_ms: Sleep between polls
        timeout_ms: Upper bound on the whole wait

    Returns:
        PollOutcome with COMPLETED, FAILED (reason from the store) or TIMED_OUT.

    A failed rdb_last_bgsave_status only counts while no save is running. If
    the flag was already set before triggering, it is only trusted after a
    poll has seen the save running: a BGSAVE SCHEDULE accepted during an AOF
    rewrite leaves in_progress at 0 and the old flag in place until it starts.
    Cancellation propagates out of the sleep between polls.
    """
    if poll_interval_ms <= 0:
        raise ValueError(f"poll_interval_ms must be positive, got {poll_interval_ms}")

    baseline = await _read_status(store)
    baseline_token = baseline.last_save_time

    triggered = False
    if not baseline.bgsave_in_progress:
        try:
            await store.bgsave()
            triggered = True
        except ResponseError as e:
            if "in progress" not in str(e).lower():
                raise
            logger.debug(f"BGSAVE already running: {e}")
    else:
        logger.debug("BGSAVE already in progress, not triggering another")

    interval = poll_interval_ms / 1000.0
    deadline = time.monotonic() + timeout_ms / 1000.0
    last_token = baseline_token
    stale_error = baseline.last_bgsave_status == "err"
    seen_running = baseline.bgsave_in_progress

    while True:
        status = await _read_status(store)
        last_token = status.last_save_time
        seen_running = seen_running or status.bgsave_in_progress

        if last_token > baseline_token:
            logger.info(f"BGSAVE completed: last_save_time {baseline_token} -> {last_token}")
            return PollOutcome(SaveStatus.COMPLETED, None, baseline_token, last_token, triggered)

        failed = status.last_bgsave_status == "err" and not status.bgsave_in_progress
        if failed and (seen_running or not stale_error):
            reason = f"rdb_last_bgsave_status:{status.last_bgsave_status}"
            logger.error(f"BGSAVE failed: {reason}")
            return PollOutcome(SaveStatus.FAILED, reason, baseline_token, last_token, triggered)

        remaining = deadline - time.monotonic()
        if remaining <= 0:
            logger.warning(f"BGSAVE did not complete within {timeout_ms}ms")
            return PollOutcome(SaveStatus.TIMED_OUT, None, baseline_token, last_token, triggered)

        await asyncio.sleep(min(interval, remaining))
