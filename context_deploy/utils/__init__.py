"""Utility functions for context-deploy"""

from .async_utils import run_async, retry_async, AsyncPool
from .file_utils import (
    atomic_write_bytes,
    atomic_write_text,
    atomic_write_json,
    read_json,
    copy_file,
    remove_path,
    safe_filename,
    format_size,
)
from .hash_utils import calculate_sha256_async, hash_string
from .version_utils import parse_version, is_compatible_format

__all__ = [
    # Async helpers
    "run_async",
    "retry_async",
    "AsyncPool",

    # File helpers
    "atomic_write_bytes",
    "atomic_write_text",
    "atomic_write_json",
    "read_json",
    "copy_file",
    "remove_path",
    "safe_filename",
    "format_size",

    # Hashing
    "calculate_sha256_async",
    "hash_string",

    # Format versions
    "parse_version",
    "is_compatible_format",
]
