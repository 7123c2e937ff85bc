"""Utility modules and functions for dumphook.

This package combines utility functions from utils_core.py with timing utilities.
"""

# Explicit imports only - no star imports to avoid namespace pollution
from dumphook.utils.timing import async_timing_context  # noqa: F401
from dumphook.utils.timing import elapsed_ms  # noqa: F401
from dumphook.utils_core import archive_directory  # noqa: F401
from dumphook.utils_core import compress_file  # noqa: F401
from dumphook.utils_core import ensure_dir  # noqa: F401
from dumphook.utils_core import env  # noqa: F401
from dumphook.utils_core import format_bytes  # noqa: F401
from dumphook.utils_core import format_duration  # noqa: F401
from dumphook.utils_core import generate_temp_path  # noqa: F401
from dumphook.utils_core import get_file_size  # noqa: F401
from dumphook.utils_core import maybe_compress  # noqa: F401
from dumphook.utils_core import remove_file  # noqa: F401
from dumphook.utils_core import to_bool  # noqa: F401


__all__ = [
    # From utils_core.py
    "archive_directory",
    "compress_file",
    "ensure_dir",
    "env",
    "format_bytes",
    "format_duration",
    "generate_temp_path",
    "get_file_size",
    "maybe_compress",
    "remove_file",
    "to_bool",
    # From timing.py
    "async_timing_context",
    "elapsed_ms",
]
