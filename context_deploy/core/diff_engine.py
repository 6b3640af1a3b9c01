"""Structural diff and deterministic merge of configuration trees"""

import copy
from typing import Any, List, Union

from rich.markup import escape

from ..api.exceptions import ValidationError
from ..constants import BACKUP_MARKER_KEY, ConflictStrategy
from ..models.config_tree import (
    ValueKind,
    delete_at_path,
    is_array,
    is_object,
    join_path,
    kind_of,
    set_at_path,
    values_equal,
)
from ..models.diff import Conflict, ConflictKind, DiffEntry, DiffKind, DiffResult

# The empty path addresses the whole tree; join_path never yields it for a key
ROOT_PATH = ""


class DiffEngine:
    """Compares and merges configuration trees

    All operations are pure: inputs are never mutated and results share no
    structure with them.
    """

    def generate_diff(self, source: Any, target: Any) -> DiffResult:
        """Describe how ``target`` must change to become ``source``

        Args:
            source: Incoming configuration
            target: Existing configuration

        Returns:
            DiffResult with one entry per added, modified or deleted key
        """
        result = DiffResult()

        if is_object(source) and is_object(target):
            self._compare_objects(source, target, "", result)
        elif not values_equal(source, target):
            result.modifications.append(DiffEntry(
                path=ROOT_PATH,
                kind=DiffKind.MODIFICATION,
                old_value=copy.deepcopy(target),
                new_value=copy.deepcopy(source),
            ))

        return result

    def _compare_objects(self, source: dict, target: dict, path: str, result: DiffResult) -> None:
        for key in source:
            current_path = join_path(path, key)
            source_value = source[key]

            if key not in target:
                result.additions.append(DiffEntry(
                    path=current_path,
                    kind=DiffKind.ADDITION,
                    new_value=copy.deepcopy(source_value),
                ))
                continue

            target_value = target[key]
            if is_object(source_value) and is_object(target_value):
                self._compare_objects(source_value, target_value, current_path, result)
            elif not values_equal(source_value, target_value):
                result.modifications.append(DiffEntry(
                    path=current_path,
                    kind=DiffKind.MODIFICATION,
                    old_value=copy.deepcopy(target_value),
                    new_value=copy.deepcopy(source_value),
                ))

        for key in target:
            if key not in source:
                result.deletions.append(DiffEntry(
                    path=join_path(path, key),
                    kind=DiffKind.DELETION,
                    old_value=copy.deepcopy(target[key]),
                ))

    def merge_configurations(self,
                             source: Any,
                             target: Any,
                             strategy: Union[ConflictStrategy, str]) -> Any:
        """Reconcile new (source) and existing (target) configuration

        Args:
            source: Incoming configuration
            target: Existing configuration
            strategy: skip, overwrite, merge or backup

        Returns:
            New configuration tree

        Raises:
            ValidationError: If the strategy is unknown
        """
        strategy = self._coerce_strategy(strategy)

        if strategy == ConflictStrategy.SKIP:
            return copy.deepcopy(target)

        if strategy == ConflictStrategy.OVERWRITE:
            return copy.deepcopy(source)

        if strategy == ConflictStrategy.MERGE:
            return self._deep_merge(target, source)

        # BACKUP: overwrite, and record that the previous content was saved
        merged = copy.deepcopy(source)
        if is_object(merged):
            metadata = merged.get("metadata")
            metadata = dict(metadata) if is_object(metadata) else {}
            metadata[BACKUP_MARKER_KEY] = True
            merged["metadata"] = metadata
        return merged

    @staticmethod
    def _coerce_strategy(strategy: Union[ConflictStrategy, str]) -> ConflictStrategy:
        if isinstance(strategy, ConflictStrategy):
            return strategy
        try:
            return ConflictStrategy(strategy)
        except ValueError:
            raise ValidationError(f"Unknown merge strategy: {strategy}") from None

    def _deep_merge(self, target: Any, source: Any) -> Any:
        if not (is_object(target) and is_object(source)):
            return copy.deepcopy(source)

        result = copy.deepcopy(target)
        for key, source_value in source.items():
            target_value = target.get(key)
            if key in target and is_object(source_value) and is_object(target_value):
                result[key] = self._deep_merge(target_value, source_value)
            elif key in target and is_array(source_value) and is_array(target_value):
                result[key] = self._merge_arrays(target_value, source_value)
            else:
                result[key] = copy.deepcopy(source_value)
        return result

    def _merge_arrays(self, target: list, source: list) -> list:
        if not target:
            return copy.deepcopy(list(source))
        if not source:
            return copy.deepcopy(list(target))

        if _has_id(source[0]) or _has_id(target[0]):
            return self._merge_by_id(target, source)

        merged = copy.deepcopy(list(target))
        for item in source:
            if not any(values_equal(item, existing) for existing in merged):
                merged.append(copy.deepcopy(item))
        return merged

    @staticmethod
    def _merge_by_id(target: list, source: list) -> list:
        merged = copy.deepcopy(list(target))
        for item in source:
            if _has_id(item) and item["id"] is not None:
                for index, existing in enumerate(merged):
                    if _has_id(existing) and values_equal(existing["id"], item["id"]):
                        merged[index] = copy.deepcopy(item)
                        break
                else:
                    merged.append(copy.deepcopy(item))
            else:
                merged.append(copy.deepcopy(item))
        return merged

    def get_conflicts(self, source: Any, target: Any) -> List[Conflict]:
        """Find keys present in both trees whose values disagree

        Arrays are reconciled by merge and never reported here.
        """
        conflicts: List[Conflict] = []
        self._find_conflicts(source, target, "", conflicts)
        return conflicts

    def _find_conflicts(self, source: Any, target: Any, path: str, conflicts: List[Conflict]) -> None:
        if not (is_object(source) and is_object(target)):
            return

        for key in source:
            if key not in target:
                continue

            current_path = join_path(path, key)
            source_value = source[key]
            target_value = target[key]
            source_kind = kind_of(source_value)

            if source_kind != kind_of(target_value):
                conflicts.append(Conflict(
                    path=current_path,
                    source_value=copy.deepcopy(source_value),
                    target_value=copy.deepcopy(target_value),
                    kind=ConflictKind.TYPE_CONFLICT,
                ))
            elif source_kind == ValueKind.OBJECT:
                self._find_conflicts(source_value, target_value, current_path, conflicts)
            elif source_kind != ValueKind.ARRAY and source_value != target_value:
                conflicts.append(Conflict(
                    path=current_path,
                    source_value=source_value,
                    target_value=target_value,
                    kind=ConflictKind.VALUE_CONFLICT,
                ))

    def apply_patch(self, target: Any, patches: List[DiffEntry]) -> Any:
        """Apply an ordered patch list to a copy of ``target``

        Additions and modifications set the value at the entry path,
        deletions remove the key. A patch at the root path replaces the tree.
        """
        result = copy.deepcopy(target)

        for patch in patches:
            if patch.path == ROOT_PATH:
                result = None if patch.kind == DiffKind.DELETION else copy.deepcopy(patch.new_value)
                continue

            if patch.kind == DiffKind.DELETION:
                if is_object(result):
                    delete_at_path(result, patch.path)
                continue

            if not is_object(result):
                result = {}
            set_at_path(result, patch.path, copy.deepcopy(patch.new_value))

        return result

    def format_diff(self, diff: DiffResult, color: bool = False) -> str:
        """Render a diff as ``+``/``~``/``-`` lines

        Args:
            diff: Diff to render
            color: Wrap lines in rich markup

        Returns:
            Multi-line summary
        """
        if not diff.has_changes:
            return "No changes detected"

        sections = [
            ("Additions", "+", "green", diff.additions),
            ("Modifications", "~", "yellow", diff.modifications),
            ("Deletions", "-", "red", diff.deletions),
        ]

        lines = []
        for title, symbol, style, entries in sections:
            if not entries:
                continue
            lines.append(f"{title} ({len(entries)}):")
            for entry in entries:
                line = f"{symbol} {entry.path or '(root)'}"
                lines.append(f"[{style}]{escape(line)}[/{style}]" if color else line)
            lines.append("")

        return "\n".join(lines).strip()

    @staticmethod
    def strip_backup_marker(tree: Any) -> Any:
        """Return a copy of ``tree`` without the backup marker"""
        result = copy.deepcopy(tree)
        if is_object(result) and is_object(result.get("metadata")):
            result["metadata"].pop(BACKUP_MARKER_KEY, None)
            if not result["metadata"]:
                del result["metadata"]
        return result


def _has_id(item: Any) -> bool:
    return is_object(item) and "id" in item
