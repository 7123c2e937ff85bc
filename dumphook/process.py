"""Run external dump binaries (pg_dump, mysqldump, mongodump)."""

import asyncio
import logging
from typing import Mapping
from typing import Optional
from typing import Sequence

from dumphook.exceptions import BackupError
from dumphook.exceptions import DependencyUnavailable


logger = logging.getLogger(__name__)


async def run_command(
    command: str,
    args: Sequence[str],
    *,
    not_found_message: str,
    env: Optional[Mapping[str, str]] = None,
) -> None:
    """Run command to completion, raising BackupError on a non-zero exit.

    Raises:
        DependencyUnavailable: If the binary is not on PATH
        BackupError: If it cannot be spawned or exits with a non-zero code (stderr included)
    """
    logger.debug(f"Running {command} with {len(args)} args")
    try:
        proc = await asyncio.create_subprocess_exec(
            command,
            *args,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=dict(env) if env is not None else None,
        )
    except FileNotFoundError as e:
        raise DependencyUnavailable(not_found_message, install_hint=command) from e
    except OSError as e:
        raise BackupError(f"Failed to spawn {command}: {e}", "backup", e) from e

    _, stderr = await proc.communicate()
    if proc.returncode != 0:
        err = stderr.decode("utf-8", errors="replace").strip()
        raise BackupError(f"{command} exited with code {proc.returncode}: {err}", "backup")
