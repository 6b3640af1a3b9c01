"""Backup and restore models"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..__version__ import MANIFEST_FORMAT_VERSION


def _parse_time(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class BackedUpFile:
    """A single file copied into a backup"""

    component: str
    original_path: str
    backup_path: str
    relative_path: str
    size: int
    timestamp: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "component": self.component,
            "originalPath": self.original_path,
            "backupPath": self.backup_path,
            "relativePath": self.relative_path,
            "size": self.size,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BackedUpFile':
        return cls(
            component=data["component"],
            original_path=data["originalPath"],
            backup_path=data["backupPath"],
            relative_path=data.get("relativePath", ""),
            size=int(data.get("size", 0)),
            timestamp=_parse_time(data["timestamp"]),
        )


@dataclass
class BackupManifest:
    """Index of a backup directory, written as manifest.json"""

    backup_id: str
    deployment_id: str
    timestamp: datetime
    components: List[str] = field(default_factory=list)
    files: List[BackedUpFile] = field(default_factory=list)
    checksums: Dict[str, str] = field(default_factory=dict)
    # component -> paths that did not exist when the backup was taken
    missing_files: Dict[str, List[str]] = field(default_factory=dict)
    version: str = MANIFEST_FORMAT_VERSION

    @property
    def total_size(self) -> int:
        return sum(f.size for f in self.files)

    def files_for(self, components: List[str]) -> List[BackedUpFile]:
        wanted = set(components)
        return [f for f in self.files if f.component in wanted]

    def missing_for(self, components: List[str]) -> List[str]:
        return [p for c in components for p in self.missing_files.get(c, [])]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "backupId": self.backup_id,
            "deploymentId": self.deployment_id,
            "timestamp": self.timestamp.isoformat(),
            "components": list(self.components),
            "files": [f.to_dict() for f in self.files],
            "checksums": dict(self.checksums),
            "missingFiles": {c: list(p) for c, p in self.missing_files.items()},
            "version": self.version,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'BackupManifest':
        """Create from manifest JSON

        Raises:
            KeyError, ValueError, TypeError: On malformed content
        """
        return cls(
            backup_id=data["backupId"],
            deployment_id=data.get("deploymentId", ""),
            timestamp=_parse_time(data["timestamp"]),
            components=list(data.get("components", [])),
            files=[BackedUpFile.from_dict(f) for f in data.get("files", [])],
            checksums=dict(data.get("checksums", {})),
            missing_files={c: list(p) for c, p in data.get("missingFiles", {}).items()},
            version=data.get("version", MANIFEST_FORMAT_VERSION),
        )


@dataclass
class BackupResult:
    """Outcome of create_backup"""

    success: bool
    backup_id: str
    backup_path: Optional[Path] = None
    manifest: Optional[BackupManifest] = None
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def file_count(self) -> int:
        return len(self.manifest.files) if self.manifest else 0


@dataclass
class RestoreResult:
    """Outcome of a restore

    Partial restores are a valid outcome: ``success`` is False only when
    nothing could be restored from a non-empty manifest.
    """

    success: bool
    backup_id: str
    restored_files: List[str] = field(default_factory=list)
    failed_files: List[str] = field(default_factory=list)
    removed_files: List[str] = field(default_factory=list)
    components: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def partial(self) -> bool:
        return bool(self.restored_files) and bool(self.failed_files)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "partial": self.partial,
            "backup_id": self.backup_id,
            "components": self.components,
            "restored_files": self.restored_files,
            "failed_files": self.failed_files,
            "removed_files": self.removed_files,
            "errors": self.errors,
            "warnings": self.warnings,
        }


@dataclass
class BackupInfo:
    """Listing entry for an existing backup"""

    backup_id: str
    deployment_id: str
    timestamp: datetime
    path: Path
    components: List[str] = field(default_factory=list)
    file_count: int = 0
    size: int = 0


@dataclass
class CleanupResult:
    """Outcome of a retention sweep"""

    cleaned: int = 0
    removed: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
