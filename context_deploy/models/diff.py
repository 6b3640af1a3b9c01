"""Diff and conflict models"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List


class DiffKind(Enum):
    ADDITION = "addition"
    MODIFICATION = "modification"
    DELETION = "deletion"


class ConflictKind(Enum):
    VALUE_CONFLICT = "value_conflict"
    TYPE_CONFLICT = "type_conflict"


@dataclass
class DiffEntry:
    """A single change between two configuration trees"""

    path: str
    kind: DiffKind
    old_value: Any = None
    new_value: Any = None

    def to_dict(self) -> Dict[str, Any]:
        data = {"path": self.path, "kind": self.kind.value}
        if self.kind != DiffKind.ADDITION:
            data["old_value"] = self.old_value
        if self.kind != DiffKind.DELETION:
            data["new_value"] = self.new_value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DiffEntry':
        return cls(
            path=data["path"],
            kind=DiffKind(data["kind"]),
            old_value=data.get("old_value"),
            new_value=data.get("new_value"),
        )


@dataclass
class DiffResult:
    """Structural difference between source and target"""

    additions: List[DiffEntry] = field(default_factory=list)
    modifications: List[DiffEntry] = field(default_factory=list)
    deletions: List[DiffEntry] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.additions or self.modifications or self.deletions)

    @property
    def total_changes(self) -> int:
        return len(self.additions) + len(self.modifications) + len(self.deletions)

    def entries(self) -> List[DiffEntry]:
        """All entries, additions first"""
        return [*self.additions, *self.modifications, *self.deletions]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "has_changes": self.has_changes,
            "additions": [e.to_dict() for e in self.additions],
            "modifications": [e.to_dict() for e in self.modifications],
            "deletions": [e.to_dict() for e in self.deletions],
        }


@dataclass
class Conflict:
    """A key present in both trees with diverging values"""

    path: str
    source_value: Any
    target_value: Any
    kind: ConflictKind

    def to_dict(self) -> Dict[str, Any]:
        return {
            "path": self.path,
            "source_value": self.source_value,
            "target_value": self.target_value,
            "kind": self.kind.value,
        }
