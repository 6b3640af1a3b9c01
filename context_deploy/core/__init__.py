"""Core functionality for context-deploy"""

from .diff_engine import DiffEngine
from .lock_manager import LockManager, StalenessPolicy
from .path_guard import PathGuard
from .platform_layout import ComponentLayout, FilesystemPlatformDetector, PlatformDetector

__all__ = [
    "DiffEngine",
    "LockManager",
    "StalenessPolicy",
    "PathGuard",
    "ComponentLayout",
    "FilesystemPlatformDetector",
    "PlatformDetector",
]
