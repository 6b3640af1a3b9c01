"""Tests for per-component conflict resolution"""

import json

import pytest

from context_deploy.constants import ConflictStrategy
from context_deploy.core.platform_layout import ComponentLayout
from context_deploy.services.component_writer import render_text
from context_deploy.services.conflict_resolver import (
    NO_EXISTING_CONFIG,
    PREAMBLE_KEY,
    ConflictResolver,
    markdown_to_tree,
    text_to_tree,
)


@pytest.fixture
def layout(platform_dir, workspace):
    return ComponentLayout("claude-code", platform_dir, workspace)


@pytest.fixture
def resolver(layout):
    return ConflictResolver(layout)


@pytest.mark.asyncio
async def test_no_existing_file(resolver, claude_options):
    result = await resolver.resolve_configuration_conflicts("settings", {"fontSize": 14}, claude_options())

    assert result.resolution_strategy == NO_EXISTING_CONFIG
    assert not result.has_conflicts
    assert result.resolved_config == {"fontSize": 14}


@pytest.mark.asyncio
async def test_merge_with_existing(resolver, claude_options, platform_dir):
    (platform_dir / "settings.json").write_text(json.dumps({"fontSize": 12, "theme": "dark"}))

    result = await resolver.resolve_configuration_conflicts("settings", {"fontSize": 14}, claude_options())

    assert result.has_conflicts
    assert result.resolution_strategy == "merge"
    assert result.resolved_config == {"fontSize": 14, "theme": "dark"}
    assert [c.path for c in result.conflicts] == ["fontSize"]
    assert [e.path for e in result.diff.modifications] == ["fontSize"]


@pytest.mark.asyncio
async def test_identical_config_has_no_conflicts(resolver, claude_options, platform_dir):
    (platform_dir / "settings.json").write_text(json.dumps({"fontSize": 14}))

    result = await resolver.resolve_configuration_conflicts("settings", {"fontSize": 14}, claude_options())

    assert not result.has_conflicts
    assert result.conflicts == []


@pytest.mark.asyncio
async def test_skip_keeps_existing(resolver, claude_options, platform_dir):
    (platform_dir / "settings.json").write_text(json.dumps({"fontSize": 12}))

    result = await resolver.resolve_configuration_conflicts(
        "settings", {"fontSize": 14}, claude_options(conflict_strategy=ConflictStrategy.SKIP)
    )
    assert result.resolved_config == {"fontSize": 12}


@pytest.mark.asyncio
async def test_backup_strategy_strips_marker(resolver, claude_options, platform_dir):
    (platform_dir / "settings.json").write_text(json.dumps({"fontSize": 12}))

    result = await resolver.resolve_configuration_conflicts(
        "settings", {"fontSize": 14}, claude_options(conflict_strategy="backup")
    )
    assert result.backup_required
    assert result.resolved_config == {"fontSize": 14}


@pytest.mark.asyncio
async def test_rule_list_merges_lines(platform_dir, workspace, claude_options):
    resolver = ConflictResolver(ComponentLayout("cursor", platform_dir, workspace))
    (workspace / ".cursorrules").write_text("Use type hints\nPrefer pytest\n")

    result = await resolver.resolve_configuration_conflicts(
        "ai-config", "Prefer pytest\nKeep functions small", claude_options()
    )
    assert result.resolved_config == {"rules": ["Use type hints", "Prefer pytest", "Keep functions small"]}


@pytest.mark.asyncio
async def test_markdown_merge_keeps_sections_intact(resolver, claude_options, workspace):
    (workspace / "CLAUDE.md").write_text("## Build\n\n```\nmake\n```\n")

    result = await resolver.resolve_configuration_conflicts(
        "ai-config", "## Test\n\n```\npytest\n```\n", claude_options()
    )

    assert result.has_conflicts
    assert render_text(result.resolved_config) == "## Build\n\n```\nmake\n```\n\n## Test\n\n```\npytest\n```\n"


@pytest.mark.asyncio
async def test_markdown_section_with_same_heading_is_replaced(resolver, claude_options, workspace):
    (workspace / "CLAUDE.md").write_text("Project notes\n\n## Style\n\nTabs\n\n## Build\n\nmake\n")

    result = await resolver.resolve_configuration_conflicts("ai-config", "## Style\n\nSpaces\n", claude_options())

    assert render_text(result.resolved_config) == "Project notes\n\n## Style\n\nSpaces\n\n## Build\n\nmake\n"
    assert [e.path for e in result.diff.modifications] == ["sections.## Style"]


@pytest.mark.asyncio
async def test_identical_markdown_has_no_conflicts(resolver, claude_options, workspace):
    (workspace / "CLAUDE.md").write_text("# Rules\n\n- one\n\n- two\n")

    result = await resolver.resolve_configuration_conflicts("ai-config", "# Rules\n\n- one\n\n- two", claude_options())
    assert not result.has_conflicts


@pytest.mark.asyncio
async def test_unparsable_existing_file_is_replaced(resolver, claude_options, platform_dir):
    (platform_dir / "settings.json").write_text("{not json")

    result = await resolver.resolve_configuration_conflicts("settings", {"fontSize": 14}, claude_options())

    assert result.resolution_strategy == NO_EXISTING_CONFIG
    assert result.warnings


def test_text_to_tree_drops_blank_lines():
    assert text_to_tree("a\n\n  \nb\n") == {"rules": ["a", "b"]}


def test_markdown_headings_inside_code_fences_stay_in_their_section():
    text = "Intro\n\n## Setup\n\n```bash\n# install\npip install .\n```\n\n\n## Usage\nrun it\n"

    assert markdown_to_tree(text) == {"sections": {
        PREAMBLE_KEY: "Intro",
        "## Setup": "## Setup\n\n```bash\n# install\npip install .\n```",
        "## Usage": "## Usage\nrun it",
    }}


def test_repeated_markdown_headings_are_kept_apart():
    assert list(markdown_to_tree("## Notes\na\n## Notes\nb\n")["sections"]) == ["## Notes", "## Notes (2)"]
