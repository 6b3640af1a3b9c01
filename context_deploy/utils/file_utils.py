"""File operation utilities"""

import json
import os
import re
import shutil
import uuid
from pathlib import Path
from typing import Any, Union

import aiofiles

_UNSAFE_NAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def format_size(size: int) -> str:
    """
    Format file size in human-readable format

    Args:
        size: Size in bytes

    Returns:
        Formatted size string
    """
    for unit in ['B', 'KB', 'MB', 'GB', 'TB']:
        if size < 1024.0:
            return f"{size:.2f} {unit}"
        size /= 1024.0
    return f"{size:.2f} PB"


def safe_filename(name: str, max_length: int = 80) -> str:
    """Collapse anything outside ``[A-Za-z0-9._-]`` to ``_``"""
    cleaned = _UNSAFE_NAME_CHARS.sub("_", name).strip("._")
    return cleaned[:max_length] or "_"


def _temp_sibling(path: Path) -> Path:
    return path.with_name(f".{path.name}.{uuid.uuid4().hex[:8]}.tmp")


async def atomic_write_bytes(path: Path, data: bytes) -> int:
    """
    Write bytes through a temporary sibling and ``os.replace``

    Readers never observe a half-written file.

    Args:
        path: Destination file
        data: Content

    Returns:
        Number of bytes written
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = _temp_sibling(path)

    try:
        async with aiofiles.open(temp_path, 'wb') as f:
            await f.write(data)
            await f.flush()
        os.replace(temp_path, path)
    except BaseException:
        if temp_path.exists():
            temp_path.unlink()
        raise

    return len(data)


async def atomic_write_text(path: Path, text: str) -> int:
    return await atomic_write_bytes(path, text.encode('utf-8'))


async def atomic_write_json(path: Path, data: Any) -> int:
    """Serialise ``data`` as indented JSON and write it atomically"""
    text = json.dumps(data, indent=2, ensure_ascii=False) + "\n"
    return await atomic_write_text(path, text)


async def read_json(path: Path) -> Any:
    """
    Read and parse a JSON file

    Raises:
        OSError: If the file cannot be read
        ValueError: If the content is not valid JSON
    """
    async with aiofiles.open(path, 'r', encoding='utf-8') as f:
        content = await f.read()
    return json.loads(content)


async def copy_file(src: Path, dst: Path, chunk_size: int = 1024 * 1024) -> int:
    """
    Copy a file with aiofiles, preserving permissions

    Args:
        src: Source file
        dst: Destination file
        chunk_size: Copy chunk size

    Returns:
        Number of bytes copied
    """
    dst.parent.mkdir(parents=True, exist_ok=True)
    bytes_copied = 0

    async with aiofiles.open(src, 'rb') as fsrc:
        async with aiofiles.open(dst, 'wb') as fdst:
            while chunk := await fsrc.read(chunk_size):
                await fdst.write(chunk)
                bytes_copied += len(chunk)

    shutil.copymode(src, dst)
    return bytes_copied


def remove_path(path: Union[str, Path]) -> None:
    """
    Remove a file or directory tree

    Raises:
        OSError: If removal fails
    """
    path = Path(path)
    if path.is_dir() and not path.is_symlink():
        shutil.rmtree(path)
    elif path.exists() or path.is_symlink():
        path.unlink()
