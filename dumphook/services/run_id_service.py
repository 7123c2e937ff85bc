"""Run id of the backup run in progress, carried into log records by contextvar."""

import contextlib
import contextvars
import uuid
from typing import Iterator
from typing import Optional


NO_RUN_ID = "no-run-id"

run_id_context: contextvars.ContextVar[str] = contextvars.ContextVar("run_id", default=NO_RUN_ID)


def generate_run_id() -> str:
    """16 lowercase hex characters, e.g. "a1b2c3d4e5f67890"."""
    return uuid.uuid4().hex[:16]


@contextlib.contextmanager
def bind_run_id(run_id: Optional[str] = None) -> Iterator[str]:
    """Set run_id_context for the duration of the block and restore it on exit."""
    run_id = run_id or generate_run_id()
    token = run_id_context.set(run_id)
    try:
        yield run_id
    finally:
        run_id_context.reset(token)
