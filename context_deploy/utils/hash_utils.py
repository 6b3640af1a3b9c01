"""Hash calculation utilities"""

import hashlib
from pathlib import Path
from typing import Union

import aiofiles


async def calculate_sha256_async(file_path: Path, chunk_size: int = 65536) -> str:
    """
    Calculate SHA256 hash of file without blocking the event loop

    Args:
        file_path: Path to file
        chunk_size: Read chunk size

    Returns:
        Hex digest string
    """
    sha256_hash = hashlib.sha256()

    async with aiofiles.open(file_path, 'rb') as f:
        while chunk := await f.read(chunk_size):
            sha256_hash.update(chunk)

    return sha256_hash.hexdigest()


def hash_string(content: Union[str, bytes], length: int = 0) -> str:
    """SHA256 of a string, optionally truncated to ``length`` hex chars"""
    if isinstance(content, str):
        content = content.encode('utf-8')
    digest = hashlib.sha256(content).hexdigest()
    return digest[:length] if length else digest
