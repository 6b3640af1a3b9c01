"""Path safety checks applied before any file is written"""

import logging
import os
import re
from pathlib import Path, PurePath
from typing import Iterable, List, Optional, Union
from urllib.parse import unquote

from ..constants import BLOCKED_PATHS, PATH_TRAVERSAL_PATTERNS
from ..models.result import ValidationResult

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

_DOT_SEGMENT = re.compile(r"(?:^|[/\\])\.\.(?=[/\\]|$)")


def _decoded_forms(path: str) -> List[str]:
    """The raw path plus its single and double URL-decoded forms"""
    forms = [path]
    current = path
    for _ in range(2):
        decoded = unquote(current)
        if decoded == current:
            break
        forms.append(decoded)
        current = decoded
    return forms


def _is_within(candidate: PurePath, root: PurePath) -> bool:
    """Component-wise containment, so ``/ws2`` is not inside ``/ws``"""
    candidate_parts = [os.path.normcase(p) for p in candidate.parts]
    root_parts = [os.path.normcase(p) for p in root.parts]
    return candidate_parts[:len(root_parts)] == root_parts


class PathGuard:
    """Rejects traversal, sensitive system locations and escapes from allowed roots"""

    def __init__(self, blocked_paths: Optional[Iterable[str]] = None):
        """Initialize path guard

        Args:
            blocked_paths: Deny-list of sensitive locations, ``~`` is expanded
        """
        self.blocked_paths = list(blocked_paths if blocked_paths is not None else BLOCKED_PATHS)

    @staticmethod
    def resolve_path(path: PathLike) -> Path:
        """Expand ``~`` and return the canonical absolute path"""
        return Path(os.path.realpath(os.path.expanduser(str(path))))

    @staticmethod
    def contains_traversal(path: PathLike) -> bool:
        """Check for ``..`` sequences, including URL-encoded forms"""
        for form in _decoded_forms(str(path)):
            if any(pattern.search(form) for pattern in PATH_TRAVERSAL_PATTERNS):
                return True
            if _DOT_SEGMENT.search(form):
                return True
        return False

    def is_blocked(self, path: PathLike) -> bool:
        """Check whether a path lies in a sensitive location"""
        expanded = Path(os.path.abspath(os.path.expanduser(str(path))))
        canonical = self.resolve_path(path)

        for blocked in self.blocked_paths:
            blocked_abs = Path(os.path.abspath(os.path.expanduser(blocked)))
            blocked_canonical = self.resolve_path(blocked)
            for candidate in (expanded, canonical):
                if _is_within(candidate, blocked_abs) or _is_within(candidate, blocked_canonical):
                    return True
        return False

    def check_path(self, path: PathLike) -> ValidationResult:
        """Validate a path and explain any rejection"""
        result = ValidationResult()
        raw = str(path) if path is not None else ""

        if not raw.strip():
            result.add_error("Path is empty")
            return result

        if "\x00" in raw or any("\x00" in form for form in _decoded_forms(raw)):
            result.add_error("Path contains a null byte")
            return result

        if self.contains_traversal(raw):
            result.add_error(f"Path contains a directory traversal sequence: {raw}")
            return result

        if self.is_blocked(raw):
            result.add_error(f"Path points into a protected location: {raw}")

        return result

    def validate_path(self, path: PathLike) -> bool:
        """Check a path is free of null bytes, traversal and sensitive locations"""
        result = self.check_path(path)
        if not result:
            logger.warning("Rejected path: %s", "; ".join(result.errors))
        return result.is_valid

    def is_within_allowed_directory(self, path: PathLike, allowed_roots: Iterable[PathLike]) -> bool:
        """Check a path equals or descends from one of the allowed roots

        Traversal sequences are rejected before canonicalisation.
        """
        raw = str(path)
        if "\x00" in raw or self.contains_traversal(raw):
            return False

        canonical = self.resolve_path(raw)
        for root in allowed_roots:
            if _is_within(canonical, self.resolve_path(root)):
                return True
        return False

    @staticmethod
    def sanitize_path(path: PathLike) -> str:
        """Strip null bytes and ``..`` segments from a path string"""
        cleaned = unquote(unquote(str(path))).replace("\x00", "")
        separator = "\\" if "\\" in cleaned and "/" not in cleaned else "/"
        parts = re.split(r"[/\\]+", cleaned)
        kept = [p for p in parts if p not in ("..", ".")]
        result = separator.join(kept)
        if cleaned.startswith(("/", "\\")) and not result.startswith(separator):
            result = separator + result
        return result
