"""Tests for the default component writer"""

import json

import pytest

from context_deploy.services.component_writer import FileComponentWriter, render_text


@pytest.fixture
def writer():
    return FileComponentWriter()


class TestRenderText:

    @pytest.mark.parametrize("config, expected", [
        ("one\ntwo", "one\ntwo\n"),
        (["one", "two"], "one\ntwo\n"),
        ({"content": "body\n"}, "body\n"),
        ({"rules": ["a", "b"]}, "a\nb\n"),
        ({"sections": {"_preamble": "Intro", "## A": "## A\n\nbody"}}, "Intro\n\n## A\n\nbody\n"),
    ])
    def test_accepted_shapes(self, config, expected):
        assert render_text(config) == expected

    def test_rejects_other_shapes(self):
        with pytest.raises(ValueError):
            render_text({"fontSize": 14})


class TestWrite:

    @pytest.mark.asyncio
    async def test_writes_json(self, writer, claude_options, tmp_path):
        target = tmp_path / "nested" / "settings.json"
        result = await writer.write("settings", {"fontSize": 14}, target, claude_options())

        assert result.success
        assert json.loads(target.read_text()) == {"fontSize": 14}
        assert result.bytes_written == len(target.read_bytes())

    @pytest.mark.asyncio
    async def test_dry_run_does_not_touch_disk(self, writer, claude_options, tmp_path):
        target = tmp_path / "settings.json"
        result = await writer.write("settings", {"fontSize": 14}, target, claude_options(dry_run=True))

        assert result.success
        assert not target.exists()
        assert result.warnings

    @pytest.mark.asyncio
    async def test_render_failure_is_reported(self, writer, claude_options, tmp_path):
        target = tmp_path / "CLAUDE.md"
        result = await writer.write("ai-config", {"fontSize": 14}, target, claude_options())

        assert not result.success
        assert result.errors
        assert not target.exists()
