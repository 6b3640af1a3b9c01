"""Tests for path safety checks"""

import pytest

from context_deploy.core.path_guard import PathGuard


@pytest.fixture
def guard():
    return PathGuard()


class TestTraversal:

    @pytest.mark.parametrize("path", [
        "../secrets",
        "a/../../b",
        "..\\windows",
        "a/..",
        "%2e%2e%2fetc",
        "..%252fetc",
    ])
    def test_traversal_detected(self, guard, path):
        assert guard.contains_traversal(path)
        assert not guard.validate_path(path)

    @pytest.mark.parametrize("path", ["settings.json", "a/b/c", "file..name", ".hidden/x"])
    def test_ordinary_paths(self, guard, path):
        assert not guard.contains_traversal(path)


class TestValidation:

    def test_null_byte(self, guard):
        result = guard.check_path("settings\x00.json")
        assert not result.is_valid
        assert "null byte" in result.errors[0]

    def test_empty(self, guard):
        assert not guard.validate_path("")

    def test_blocked_locations(self, guard):
        assert not guard.validate_path("/etc/passwd")
        assert not guard.validate_path("~/.ssh/authorized_keys")

    def test_custom_deny_list(self, tmp_path):
        guard = PathGuard(blocked_paths=[str(tmp_path / "private")])
        assert not guard.validate_path(tmp_path / "private" / "x.json")
        assert guard.validate_path(tmp_path / "public" / "x.json")


class TestContainment:

    def test_within_root(self, guard, tmp_path):
        root = tmp_path / "ws"
        assert guard.is_within_allowed_directory(root / ".vscode" / "settings.json", [root])
        assert guard.is_within_allowed_directory(root, [root])

    def test_sibling_with_common_prefix(self, guard, tmp_path):
        assert not guard.is_within_allowed_directory(tmp_path / "ws2" / "x", [tmp_path / "ws"])

    def test_traversal_rejected_before_resolution(self, guard, tmp_path):
        root = tmp_path / "ws"
        assert not guard.is_within_allowed_directory(f"{root}/sub/../x", [root])

    def test_symlink_escape(self, guard, tmp_path):
        root = tmp_path / "ws"
        outside = tmp_path / "outside"
        root.mkdir()
        outside.mkdir()
        (root / "link").symlink_to(outside)
        assert not guard.is_within_allowed_directory(root / "link" / "x.json", [root])

    def test_sanitize(self, guard):
        assert guard.sanitize_path("../../etc/passwd") == "etc/passwd"
        assert guard.sanitize_path("/a/./b/../c") == "/a/b/c"
