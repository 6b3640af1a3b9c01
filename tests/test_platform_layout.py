"""Tests for component file resolution"""

from pathlib import Path

import pytest

from context_deploy.api.exceptions import ValidationError
from context_deploy.constants import Platform
from context_deploy.core.platform_layout import (
    ComponentLayout,
    FilesystemPlatformDetector,
    file_format,
    layout_for_options,
)
from context_deploy.models import DeployOptions


class StaticDetector:

    def __init__(self, path):
        self.path = path

    def detect(self, platform):
        return self.path


class TestComponentLayout:

    def test_resolves_platform_and_workspace_files(self, tmp_path):
        layout = ComponentLayout(Platform.CURSOR, tmp_path / "cursor", tmp_path / "proj")

        assert layout.resolve("global-settings") == [tmp_path / "cursor" / "User" / "settings.json"]
        assert layout.resolve("ai-config") == [tmp_path / "proj" / ".cursorrules"]
        assert layout.resolve("workspace-config") == [tmp_path / "proj" / "proj.code-workspace"]

    def test_workspace_files_skipped_without_workspace(self, tmp_path):
        layout = ComponentLayout(Platform.CURSOR, tmp_path / "cursor")
        assert layout.resolve("ai-config") == []
        assert layout.needs_workspace("ai-config")
        assert layout.allowed_roots() == [tmp_path / "cursor"]

    def test_unknown_component(self, tmp_path):
        with pytest.raises(ValidationError):
            ComponentLayout("kiro", tmp_path).resolve("extensions-config")

    def test_file_format(self):
        assert file_format(Path("settings.json")) == "json"
        assert file_format(Path("proj.code-workspace")) == "json"
        assert file_format(Path(".cursorrules")) == "text"
        assert file_format(Path("CLAUDE.md")) == "markdown"
        assert file_format(Path(".kiro/steering/rules.md")) == "markdown"


class TestDetection:

    def test_explicit_platform_path_wins(self, tmp_path):
        options = DeployOptions(platform="cursor", platform_path=tmp_path / "explicit")
        layout = layout_for_options(options, StaticDetector(tmp_path / "detected"))
        assert layout.platform_path == tmp_path / "explicit"

    def test_detector_used_when_unset(self, tmp_path):
        options = DeployOptions(platform="cursor")
        layout = layout_for_options(options, StaticDetector(tmp_path / "detected"))
        assert layout.platform_path == tmp_path / "detected"

    def test_filesystem_detector_candidates(self, tmp_path, monkeypatch):
        monkeypatch.setenv("HOME", str(tmp_path))
        detector = FilesystemPlatformDetector(system="linux")

        assert detector.detect(Platform.CURSOR) is None
        assert detector.default_path(Platform.CURSOR) == tmp_path / ".config" / "Cursor"

        (tmp_path / ".cursor").mkdir()
        assert detector.detect(Platform.CURSOR) == tmp_path / ".cursor"
