"""Tests for the diff/merge engine"""

import copy

import pytest

from context_deploy.api.exceptions import ValidationError
from context_deploy.constants import ConflictStrategy
from context_deploy.core.diff_engine import ROOT_PATH, DiffEngine
from context_deploy.models.diff import ConflictKind, DiffKind


@pytest.fixture
def engine():
    return DiffEngine()


EXISTING = {
    "theme": "dark",
    "editor": {"fontSize": 12, "tabSize": 2},
    "plugins": ["a", "b"],
    "legacy": True,
}

INCOMING = {
    "theme": "light",
    "editor": {"fontSize": 14},
    "plugins": ["b", "c"],
    "telemetry": False,
}


class TestGenerateDiff:

    def test_identical_trees_have_no_changes(self, engine):
        diff = engine.generate_diff(EXISTING, copy.deepcopy(EXISTING))
        assert not diff.has_changes
        assert engine.format_diff(diff) == "No changes detected"

    def test_classifies_changes(self, engine):
        diff = engine.generate_diff(INCOMING, EXISTING)

        assert [e.path for e in diff.additions] == ["telemetry"]
        assert sorted(e.path for e in diff.modifications) == ["editor.fontSize", "plugins", "theme"]
        assert sorted(e.path for e in diff.deletions) == ["editor.tabSize", "legacy"]

        theme = next(e for e in diff.modifications if e.path == "theme")
        assert theme.old_value == "dark"
        assert theme.new_value == "light"

    def test_deterministic(self, engine):
        first = engine.generate_diff(INCOMING, EXISTING).to_dict()
        second = engine.generate_diff(INCOMING, EXISTING).to_dict()
        assert first == second

    def test_non_object_roots(self, engine):
        diff = engine.generate_diff([1, 2], {"a": 1})
        assert [e.path for e in diff.modifications] == [ROOT_PATH]

    def test_patch_inverts_diff(self, engine):
        diff = engine.generate_diff(INCOMING, EXISTING)
        assert engine.apply_patch(EXISTING, diff.entries()) == INCOMING

    def test_patch_inverts_diff_for_dotted_keys(self, engine):
        source = {"editor.fontSize": 14, "files.exclude": {"**/.git": True}, "root": 1}
        target = {"editor.fontSize": 12, "old.key": "x"}

        diff = engine.generate_diff(source, target)

        assert engine.apply_patch(target, diff.entries()) == source
        assert engine.apply_patch({}, engine.generate_diff({"editor.fontSize": 14}, {}).entries()) == {
            "editor.fontSize": 14
        }

    def test_patch_does_not_mutate_input(self, engine):
        before = copy.deepcopy(EXISTING)
        engine.apply_patch(EXISTING, engine.generate_diff(INCOMING, EXISTING).entries())
        assert EXISTING == before

    def test_format_diff_lists_sections(self, engine):
        text = engine.format_diff(engine.generate_diff(INCOMING, EXISTING))
        assert "Additions (1):" in text
        assert "+ telemetry" in text
        assert "- legacy" in text


class TestMerge:

    def test_skip_keeps_existing(self, engine):
        assert engine.merge_configurations(INCOMING, EXISTING, ConflictStrategy.SKIP) == EXISTING

    def test_overwrite_takes_incoming(self, engine):
        assert engine.merge_configurations(INCOMING, EXISTING, "overwrite") == INCOMING

    def test_merge_combines(self, engine):
        merged = engine.merge_configurations(INCOMING, EXISTING, ConflictStrategy.MERGE)
        assert merged == {
            "theme": "light",
            "editor": {"fontSize": 14, "tabSize": 2},
            "plugins": ["a", "b", "c"],
            "legacy": True,
            "telemetry": False,
        }

    def test_merge_is_idempotent(self, engine):
        once = engine.merge_configurations(INCOMING, EXISTING, ConflictStrategy.MERGE)
        twice = engine.merge_configurations(INCOMING, once, ConflictStrategy.MERGE)
        assert once == twice

    def test_merge_arrays_by_id(self, engine):
        existing = {"servers": [{"id": "a", "port": 1}, {"id": "b", "port": 2}]}
        incoming = {"servers": [{"id": "b", "port": 20}, {"id": "c", "port": 3}]}
        merged = engine.merge_configurations(incoming, existing, ConflictStrategy.MERGE)
        assert merged["servers"] == [
            {"id": "a", "port": 1},
            {"id": "b", "port": 20},
            {"id": "c", "port": 3},
        ]

    def test_merge_result_shares_no_structure(self, engine):
        merged = engine.merge_configurations(INCOMING, EXISTING, ConflictStrategy.MERGE)
        merged["editor"]["tabSize"] = 8
        merged["plugins"].append("z")
        assert EXISTING["editor"]["tabSize"] == 2
        assert "z" not in INCOMING["plugins"]

    def test_backup_marks_metadata(self, engine):
        merged = engine.merge_configurations(INCOMING, EXISTING, ConflictStrategy.BACKUP)
        assert merged["metadata"] == {"backup_created": True}
        assert engine.strip_backup_marker(merged) == INCOMING

    def test_unknown_strategy(self, engine):
        with pytest.raises(ValidationError):
            engine.merge_configurations(INCOMING, EXISTING, "shuffle")


class TestConflicts:

    def test_value_and_type_conflicts(self, engine):
        conflicts = engine.get_conflicts(
            {"a": 1, "b": {"c": "x"}, "d": [1], "e": "new"},
            {"a": 2, "b": {"c": 5}, "d": [2], "f": "only-target"},
        )
        by_path = {c.path: c.kind for c in conflicts}
        assert by_path == {"a": ConflictKind.VALUE_CONFLICT, "b.c": ConflictKind.TYPE_CONFLICT}

    def test_diff_entry_roundtrip(self, engine):
        entry = engine.generate_diff({"a": 1}, {}).additions[0]
        assert entry.kind == DiffKind.ADDITION
        assert "old_value" not in entry.to_dict()
